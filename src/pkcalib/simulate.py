# src/pkcalib/simulate.py
"""
Reference forward simulator.

Turns dose events and a body weight into predicted estradiol concentration
curves. The calibration engine only relies on the run_simulation() signature,
so any other simulator with the same contract can be plugged in instead.
"""
import logging
from collections.abc import Mapping, Sequence
from typing import Optional

import numpy as np

from . import config
from .helpers import split_events_by_route
from .solvers import simulate_route, time_grid
from .types import CalibrationFactors, DoseEvent, PredictedCurve, RouteParams

_LOGGER = logging.getLogger(__name__)

# Illustrative population values, not fitted to any dataset.
ROUTE_PARAMS: dict[str, RouteParams] = {
    "injection":  RouteParams(ka_per_h=0.03, CL_L_per_h_per_kg=1.5, V_L_per_kg=2.0, bioavailability=1.0),
    "oral":       RouteParams(ka_per_h=0.5, CL_L_per_h_per_kg=1.5, V_L_per_kg=2.0, bioavailability=0.05),
    "sublingual": RouteParams(ka_per_h=1.5, CL_L_per_h_per_kg=1.5, V_L_per_kg=2.0, bioavailability=0.10),
    "gel":        RouteParams(ka_per_h=0.05, CL_L_per_h_per_kg=1.5, V_L_per_kg=2.0, bioavailability=0.10),
    "patch":      RouteParams(ka_per_h=0.0, CL_L_per_h_per_kg=1.5, V_L_per_kg=2.0, bioavailability=1.0),
}

# Depot release rate by injectable ester (1/h)
ESTER_KA_PER_H: dict[str, float] = {
    "EB": 0.1,     # benzoate
    "EV": 0.03,    # valerate
    "EC": 0.008,   # cypionate
    "EEn": 0.01,   # enanthate
    "EUn": 0.002,  # undecylate
}


def params_for(route: str, ester: Optional[str] = None) -> RouteParams:
    """PK parameters for a route, with the ester's absorption rate for injections."""
    params = ROUTE_PARAMS.get(route)
    if params is None:
        raise KeyError(f"Missing PK params for route '{route}'.")
    if ester is None:
        return params
    ka = ESTER_KA_PER_H.get(ester)
    if ka is None:
        raise ValueError(f"Unknown ester '{ester}'.")
    return RouteParams(ka_per_h=ka, CL_L_per_h_per_kg=params.CL_L_per_h_per_kg,
                       V_L_per_kg=params.V_L_per_kg, bioavailability=params.bioavailability)


def simulate_by_route(events: Sequence[DoseEvent], body_weight_kg: float,
                      calibration: Optional[Mapping[str, float]] = None,
                      dt_h: Optional[float] = None,
                      tail_h: Optional[float] = None) -> dict[str, PredictedCurve]:
    """
    Simulate every route on one shared time grid.

    Each route's curve is multiplied by its calibration factor (1.0 when the
    route has none). Returns an empty mapping when there are no events.
    """
    dt_h = config.SIM_DT_H if dt_h is None else float(dt_h)
    tail_h = config.SIM_TAIL_H if tail_h is None else float(tail_h)
    _validate_positive("body_weight_kg", body_weight_kg)
    _validate_positive("dt_h", dt_h)
    _validate_positive("tail_h", tail_h)
    for e in events:
        _validate_event(e)

    factors = CalibrationFactors(calibration or {})
    if not events:
        return {}

    t_start = min(float(e.time_h) for e in events)
    t_end = max(float(e.time_h + e.duration_h) for e in events) + tail_h

    curves: dict[str, PredictedCurve] = {}
    for route, route_events in split_events_by_route(events).items():
        # Injections may mix esters; simulate each ester separately and add up
        by_ester: dict[Optional[str], list[DoseEvent]] = {}
        for e in route_events:
            by_ester.setdefault(e.ester, []).append(e)

        total = np.zeros_like(time_grid(t_start, t_end, dt_h))
        t = None
        for ester, ester_events in by_ester.items():
            t, C = simulate_route(params_for(route, ester), ester_events, body_weight_kg,
                                  t_start_h=t_start, t_end_h=t_end, dt_h=dt_h)
            total = total + C
        curves[route] = PredictedCurve(time_h=t, conc_pg_ml=total).scaled(factors.factor_for(route))
        _LOGGER.debug("Simulated %s: %d events, peak %.1f pg/mL",
                      route, len(route_events), float(np.max(curves[route].conc_pg_ml)))
    return curves


def run_simulation(events: Sequence[DoseEvent], body_weight_kg: float,
                   calibration: Optional[Mapping[str, float]] = None,
                   dt_h: Optional[float] = None,
                   tail_h: Optional[float] = None) -> PredictedCurve:
    """
    Combined calibrated concentration curve for all routes.

    Raises ValueError for an empty event list; the result must have at least one sample.
    """
    if not events:
        raise ValueError("events must not be empty.")
    curves = simulate_by_route(events, body_weight_kg, calibration, dt_h=dt_h, tail_h=tail_h)
    first = next(iter(curves.values()))
    total = np.zeros_like(first.conc_pg_ml)
    for curve in curves.values():
        total = total + curve.conc_pg_ml
    return PredictedCurve(time_h=first.time_h, conc_pg_ml=total)


# --------------------------
# Precondition checks
# --------------------------
def _validate_event(e: DoseEvent) -> None:
    if e.route not in ROUTE_PARAMS:
        raise ValueError(f"Unknown route '{e.route}'.")
    if not np.isfinite(e.time_h):
        raise ValueError(f"time_h must be finite (got {e.time_h}).")
    _validate_positive("dose_mg", e.dose_mg)
    if e.route == "patch":
        _validate_positive("duration_h", e.duration_h)
    elif e.duration_h != 0:
        raise ValueError("duration_h should be 0 unless route is 'patch'.")
    if e.ester is not None and e.route != "injection":
        raise ValueError("ester only applies to route 'injection'.")


def _validate_positive(name: str, x: float) -> None:
    if not (x > 0):
        raise ValueError(f"{name} must be > 0 (got {x}).")
