# src/pkcalib/solvers.py
from collections.abc import Sequence

import numpy as np
from scipy.integrate import solve_ivp

from .types import DoseEvent, RouteParams
from .models.one_compartment import one_compartment_first_order

# 1 mg/L == 1e6 pg/mL
MG_PER_L_TO_PG_PER_ML = 1.0e6


def time_grid(t_start_h: float, t_end_h: float, dt_h: float) -> np.ndarray:
    """Evenly spaced output times from t_start_h up to (and not past) t_end_h."""
    n = int(np.floor((t_end_h - t_start_h) / dt_h)) + 1
    grid = t_start_h + np.arange(n, dtype=float) * dt_h
    return grid[grid <= t_end_h]


def simulate_route(params: RouteParams, events: Sequence[DoseEvent], body_weight_kg: float,
                   t_start_h: float, t_end_h: float, dt_h: float = 1.0):
    """
    Simulate a one-compartment model with first-order absorption for one route.

    Bolus-type doses (duration_h == 0) enter the depot as instantaneous state
    jumps at their scheduled times; patches are continuous zero-order inputs
    inside the ODE right-hand side.

    Returns:
      t : array of time points (hours)
      C : array of concentrations (pg/mL)
    """
    CL = params.CL_L_per_h_per_kg * body_weight_kg
    V = params.V_L_per_kg * body_weight_kg
    ka = params.ka_per_h
    F = params.bioavailability

    y0 = [0.0, 0.0]
    t_grid = time_grid(t_start_h, t_end_h, dt_h)

    # Segment boundaries: dose times and patch removals, where the RHS changes
    boundaries: list[float] = [float(t_start_h)]
    for e in events:
        if t_start_h <= e.time_h <= t_end_h:
            boundaries.append(float(e.time_h))
        if e.duration_h > 0:
            end_t = e.time_h + e.duration_h
            if t_start_h <= end_t <= t_end_h:
                boundaries.append(float(end_t))
    boundaries.append(float(t_end_h))
    boundaries = sorted(set(boundaries))

    def rhs(t, y):
        return one_compartment_first_order(t, y, ka, CL, V, F, events)

    def apply_jumps(y, at):
        for e in events:
            if e.duration_h == 0 and np.isclose(e.time_h, at):
                y[0] += F * float(e.dose_mg)
        return y

    y0 = apply_jumps(y0, boundaries[0])

    t_out: list[float] = []
    Ac_out: list[float] = []

    prev = boundaries[0]
    for idx in range(1, len(boundaries)):
        curr = boundaries[idx]
        if curr <= prev:
            continue

        if len(t_out) == 0:
            t_eval_seg = t_grid[(t_grid >= prev) & (t_grid <= curr)]
        else:
            t_eval_seg = t_grid[(t_grid > prev) & (t_grid <= curr)]

        # Always evaluate at curr too, so the next segment starts from the true end state
        n_keep = t_eval_seg.size
        if n_keep == 0 or t_eval_seg[-1] != curr:
            t_eval_seg = np.append(t_eval_seg, curr)

        sol_seg = solve_ivp(rhs, t_span=(prev, curr), y0=y0, method="RK45", t_eval=t_eval_seg)
        t_out.extend(sol_seg.t[:n_keep].tolist())
        Ac_out.extend(sol_seg.y[1][:n_keep].tolist())
        y_end = sol_seg.y[:, -1]

        y0 = apply_jumps([float(y_end[0]), float(y_end[1])], curr)
        prev = curr

    t_arr = np.asarray(t_out, dtype=float)
    Ac_arr = np.asarray(Ac_out, dtype=float)
    C = np.maximum(Ac_arr / V, 0.0) * MG_PER_L_TO_PG_PER_ML
    return t_arr, C
