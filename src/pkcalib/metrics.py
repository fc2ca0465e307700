# src/pkcalib/metrics.py
from collections.abc import Mapping, Sequence

import numpy as np

from .calibration import eligible_measurements
from .sampling import sample_at
from .types import CalibrationFactors, LabMeasurement, PredictedCurve


def predicted_at(curves: Mapping[str, PredictedCurve], factors: Mapping[str, float], t: float) -> float:
    """Combined calibrated prediction (pg/mL) at time t."""
    factors = CalibrationFactors(factors)
    return float(sum(sample_at(curve, t) * factors.factor_for(route) for route, curve in curves.items()))


def ratios(measurements: Sequence[LabMeasurement], curves: Mapping[str, PredictedCurve],
           factors: Mapping[str, float]) -> np.ndarray:
    """
    Measured / predicted for each eligible measurement, in time order.
    nan where the prediction is zero.
    """
    out = []
    for m in eligible_measurements(measurements):
        pred = predicted_at(curves, factors, m.time_h)
        out.append(m.conc_pg_ml / pred if pred > 0 else float("nan"))
    return np.asarray(out, dtype=float)


def mean_abs_log_ratio(measurements: Sequence[LabMeasurement], curves: Mapping[str, PredictedCurve],
                       factors: Mapping[str, float]) -> float:
    """
    Mean |ln(measured / predicted)|; 0 is a perfect fit.
    Non-finite and non-positive ratios are left out; nan if nothing is left.
    """
    r = ratios(measurements, curves, factors)
    r = r[np.isfinite(r) & (r > 0)]
    if r.size == 0:
        return float("nan")
    return float(np.mean(np.abs(np.log(r))))
