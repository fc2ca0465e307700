# src/pkcalib/models/one_compartment.py

def one_compartment_first_order(t, y, ka, CL, V, F, events):
    """
    One-compartment model with first-order absorption and elimination.
    Two states:
      y[0] = estradiol in absorption depot (mg)
      y[1] = estradiol in central compartment (mg)

    Parameters:
      t      : current time (h)
      y      : current state vector [A_depot, A_central]
      ka     : absorption rate constant (1/h)
      CL     : clearance (L/h)
      V      : volume of distribution (L)
      F      : bioavailable fraction of each dose
      events : DoseEvents of a single route
    """
    A_depot, A_c = y

    dA_depot_dt = -ka * A_depot
    dA_c_dt = ka * A_depot - (CL / V) * A_c

    # Patches release at a constant rate over their wear time
    for e in events:
        if e.duration_h > 0 and e.time_h <= t <= e.time_h + e.duration_h:
            dA_c_dt += F * e.dose_mg / e.duration_h

    return [dA_depot_dt, dA_c_dt]
