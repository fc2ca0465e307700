# src/pkcalib/sampling.py
from typing import Optional

import numpy as np

from .types import PredictedCurve


def sample_at(curve: Optional[PredictedCurve], t: float) -> float:
    """
    Predicted concentration (pg/mL) at time t.

    Clamped to the first/last sample outside the grid, piecewise linear inside.
    A missing curve contributes nothing.
    """
    if not np.isfinite(t):
        raise ValueError(f"t must be finite (got {t}).")
    if curve is None or len(curve) == 0:
        return 0.0
    times = curve.time_h
    concs = curve.conc_pg_ml

    if t <= times[0]:
        return float(concs[0])
    if t >= times[-1]:
        return float(concs[-1])

    # times[hi - 1] < t <= times[hi]
    hi = int(np.searchsorted(times, t, side="left"))
    lo = hi - 1
    t0, t1 = times[lo], times[hi]
    c0, c1 = concs[lo], concs[hi]
    if t1 == t0:
        return float(c0)
    return float(c0 + (c1 - c0) * (t - t0) / (t1 - t0))
