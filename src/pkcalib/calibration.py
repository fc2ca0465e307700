# src/pkcalib/calibration.py
"""
Per-route calibration factors from blood test results.

The forward simulator predicts one concentration curve per route. Blood tests
are visited in time order; each accepted test nudges the factor of every route
that carries a meaningful share of the predicted level towards the value that
would have matched it, using an exponential moving average.
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Optional

from .config import CalibrationConfig
from .helpers import split_events_by_route
from .sampling import sample_at
from .simulate import simulate_by_route
from .types import CalibrationFactors, DoseEvent, LabMeasurement, PredictedCurve

_LOGGER = logging.getLogger(__name__)

# events, body_weight_kg, calibration -> curve
Simulator = Callable[[Sequence[DoseEvent], float, Mapping[str, float]], PredictedCurve]


class StepOutcome(enum.Enum):
    APPLIED = "applied"
    LOW_SIGNAL = "low_signal"
    OUTLIER = "outlier"


@dataclass(frozen=True)
class CalibrationStep:
    """What happened to one blood test during a calibration run."""
    measurement_id: str
    time_h: float
    measured: float
    total_predicted: float
    global_ratio: Optional[float]
    outcome: StepOutcome
    updated_routes: tuple[str, ...] = ()


@dataclass
class CalibrationReport:
    factors: CalibrationFactors = field(default_factory=CalibrationFactors)
    steps: list[CalibrationStep] = field(default_factory=list)

    @property
    def outliers(self) -> list[CalibrationStep]:
        return [s for s in self.steps if s.outcome is StepOutcome.OUTLIER]


def eligible_measurements(measurements: Sequence[LabMeasurement]) -> list[LabMeasurement]:
    """Non-ignored measurements by time; equal times keep their input order."""
    return sorted((m for m in measurements if not m.ignored), key=lambda m: m.time_h)


def route_curves(events: Sequence[DoseEvent], body_weight_kg: float,
                 simulate: Optional[Simulator] = None) -> dict[str, PredictedCurve]:
    """
    Uncalibrated prediction curve for each route present in events.

    With an explicit simulator, it is called once per route with only that
    route's events, so each curve is the route's isolated contribution.
    Otherwise the built-in simulator returns the per-route split in one call.
    """
    if not events:
        return {}
    if simulate is None:
        return simulate_by_route(events, body_weight_kg, CalibrationFactors())
    return {
        route: simulate(route_events, body_weight_kg, CalibrationFactors())
        for route, route_events in split_events_by_route(events).items()
    }


def calibrate_curves(measurements: Sequence[LabMeasurement],
                     curves: Mapping[str, PredictedCurve],
                     config: Optional[CalibrationConfig] = None) -> CalibrationReport:
    """
    Fold blood tests into per-route factors, given uncalibrated route curves.

    Each test is visited once in time order and sees the factors left by the
    tests before it. Tests are skipped when the combined prediction is below
    the signal floor, or when measured/predicted is further than
    config.outlier_ratio from 1. Only routes that were updated appear in the
    returned factors.
    """
    config = config or CalibrationConfig()
    report = CalibrationReport()
    factors = report.factors
    updated: set[str] = set()

    for m in eligible_measurements(measurements):
        t = m.time_h
        measured = m.conc_pg_ml

        contributions: dict[str, float] = {}
        total_predicted = 0.0
        for route, curve in curves.items():
            conc = sample_at(curve, t) * factors.factor_for(route)
            contributions[route] = conc
            total_predicted += conc

        if total_predicted < config.min_total_predicted_pg_ml:
            _LOGGER.debug("Measurement at %.1fh skipped: predicted %.3f pg/mL is below the signal floor.",
                          t, total_predicted)
            report.steps.append(CalibrationStep(m.id, t, measured, total_predicted, None,
                                                StepOutcome.LOW_SIGNAL))
            continue

        global_ratio = measured / total_predicted

        if not (1.0 / config.outlier_ratio <= global_ratio <= config.outlier_ratio):
            _LOGGER.warning("Measurement at %.1fh ignored. Ratio %.2f is an outlier.", t, global_ratio)
            report.steps.append(CalibrationStep(m.id, t, measured, total_predicted, global_ratio,
                                                StepOutcome.OUTLIER))
            continue

        changed: list[str] = []
        for route, conc in contributions.items():
            if conc == 0:
                continue
            if conc / total_predicted < config.min_contribution_share:
                continue

            old = factors.factor_for(route)
            target = old * global_ratio
            alpha = config.ema_alpha if route in updated else config.first_update_alpha
            new = old * (1 - alpha) + target * alpha

            factors[route] = new
            updated.add(route)
            changed.append(route)
            _LOGGER.debug("Route %s at %.1fh: factor %.4f -> %.4f (alpha %.2f)", route, t, old, new, alpha)

        report.steps.append(CalibrationStep(m.id, t, measured, total_predicted, global_ratio,
                                            StepOutcome.APPLIED, tuple(changed)))

    return report


def calibrate(measurements: Sequence[LabMeasurement], events: Sequence[DoseEvent],
              body_weight_kg: float, *, simulate: Optional[Simulator] = None,
              config: Optional[CalibrationConfig] = None) -> CalibrationFactors:
    """
    Per-route calibration factors for a user's blood tests and dosing history.

    Returns an empty mapping (no correction) when no measurement is eligible.
    Routes absent from the result are uncorrected, i.e. factor 1.0.
    """
    if not eligible_measurements(measurements):
        return CalibrationFactors()
    curves = route_curves(events, body_weight_kg, simulate)
    return calibrate_curves(measurements, curves, config).factors
