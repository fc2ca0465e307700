# src/pkcalib/types.py
from dataclasses import dataclass
from typing import Literal, Optional

import numpy as np

# We keep *all* time in HOURS internally, concentrations in pg/mL.
Route = Literal["injection", "oral", "sublingual", "gel", "patch"]


@dataclass(frozen=True)
class DoseEvent:
    """
    A single administration of estradiol.

    route       : how the dose is given (injection, oral, sublingual, gel, patch)
    time_h      : when the dose is given (hours on the caller's timeline)
    dose_mg     : dose size in milligrams
    ester       : injection formulation (e.g. "EV", "EC"); None for other routes
    duration_h  : wear time for patches, 0 for everything else
    """
    route: Route
    time_h: float
    dose_mg: float
    ester: Optional[str] = None
    duration_h: float = 0.0  # >0 only for patches / zero-order inputs


@dataclass(frozen=True)
class LabMeasurement:
    """
    One blood test result entered by the user.

    id          : opaque identifier, only used to correlate with the UI
    time_h      : when the blood was drawn (same axis as DoseEvent.time_h)
    conc_pg_ml  : measured concentration in pg/mL
    ignored     : excluded from calibration when True
    """
    id: str
    time_h: float
    conc_pg_ml: float
    ignored: bool = False

    def __post_init__(self):
        if not np.isfinite(self.time_h):
            raise ValueError(f"time_h must be finite (got {self.time_h}).")
        if not np.isfinite(self.conc_pg_ml) or self.conc_pg_ml < 0:
            raise ValueError(f"conc_pg_ml must be finite and >= 0 (got {self.conc_pg_ml}).")


@dataclass(frozen=True)
class PredictedCurve:
    """
    Predicted concentration-time profile.

    time_h and conc_pg_ml are parallel 1-D arrays, time non-decreasing.
    """
    time_h: np.ndarray
    conc_pg_ml: np.ndarray

    def __post_init__(self):
        t = np.asarray(self.time_h, dtype=float)
        C = np.asarray(self.conc_pg_ml, dtype=float)
        if t.ndim != 1 or C.ndim != 1:
            raise ValueError("time_h and conc_pg_ml must be 1-D.")
        if t.size != C.size:
            raise ValueError(f"time_h and conc_pg_ml differ in length ({t.size} != {C.size}).")
        if t.size == 0:
            raise ValueError("A predicted curve needs at least one sample.")
        if np.any(np.diff(t) < 0):
            raise ValueError("time_h must be non-decreasing.")
        if not np.all(np.isfinite(C)) or np.any(C < 0):
            raise ValueError("conc_pg_ml must be finite and >= 0.")
        object.__setattr__(self, "time_h", t)
        object.__setattr__(self, "conc_pg_ml", C)

    def __len__(self) -> int:
        return int(self.time_h.size)

    def scaled(self, factor: float) -> "PredictedCurve":
        """Same time grid, concentrations multiplied by factor."""
        return PredictedCurve(time_h=self.time_h.copy(), conc_pg_ml=self.conc_pg_ml * float(factor))


@dataclass(frozen=True)
class RouteParams:
    """
    One-compartment, first-order parameters for a route, scaled by body weight.
    """
    ka_per_h: float
    CL_L_per_h_per_kg: float
    V_L_per_kg: float
    bioavailability: float = 1.0


class CalibrationFactors(dict):
    """
    Sparse route -> multiplier mapping.

    A route without an entry has never been calibrated and behaves as 1.0.
    Always read through factor_for() so that stays true everywhere.
    """

    def factor_for(self, route: str) -> float:
        return float(self.get(route, 1.0))
