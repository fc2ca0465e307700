# src/pkcalib/dosing.py
from __future__ import annotations

from typing import Optional, Sequence, Tuple
import numpy as np

from .types import DoseEvent, Route


def single_dose(dose_mg: float, time_h: float, route: Route = "injection", *,
                ester: Optional[str] = None, duration_h: float = 0.0) -> tuple[DoseEvent, ...]:
    """
    Create a schedule with exactly one dose.
    Examples:
      - 5 mg EV injection at t=0 h
      - 0.35 mg patch applied at t=12 h and worn for 84 hours (duration_h=84)
    """
    _validate_positive("dose_mg", dose_mg)
    _validate_duration(route, duration_h)
    return (DoseEvent(route=route, time_h=float(time_h), dose_mg=float(dose_mg),
                      ester=ester, duration_h=float(duration_h)),)


def every_n_days(dose_mg: float, every_days: float, weeks: int, route: Route = "injection", *,
                 start_offset_h: float = 0.0, ester: Optional[str] = None,
                 duration_h: float = 0.0) -> tuple[DoseEvent, ...]:
    """
    Make a repeated schedule like: 5 mg EV injection every 7 days for 8 weeks.

    dose_mg        : size of each dose, mg
    every_days     : spacing between doses, in days (3.5 for twice-weekly patches)
    weeks          : total schedule length in weeks
    start_offset_h : shift the very first dose by some hours (e.g., 9:00 = 9.0)
    """
    _validate_positive("dose_mg", dose_mg)
    _validate_positive("every_days", every_days)
    _validate_positive_int("weeks", weeks)
    _validate_duration(route, duration_h)

    total_days = weeks * 7
    # Dose times: 0d, every_days, 2*every_days, ... < total_days  (then convert to hours)
    day_starts = np.arange(0, total_days, every_days, dtype=float)
    times_h = day_starts * 24.0 + float(start_offset_h)

    return tuple(
        DoseEvent(route=route, time_h=float(t), dose_mg=float(dose_mg), ester=ester, duration_h=float(duration_h))
        for t in times_h
    )


def from_explicit_schedule(entries: Sequence[Tuple[float, float]], route: Route = "injection", *,
                           ester: Optional[str] = None) -> tuple[DoseEvent, ...]:
    """
    Build a schedule from manual (time_h, dose_mg) entries.
    Example: entries=[(0.0, 5.0), (168.0, 5.0), (336.0, 4.0)]
    """
    doses: list[DoseEvent] = []
    for time_h, dose_mg in entries:
        _validate_positive("dose_mg", dose_mg)
        doses.append(DoseEvent(route=route, time_h=float(time_h), dose_mg=float(dose_mg), ester=ester))
    doses.sort(key=lambda d: d.time_h)
    return tuple(doses)


def combine_schedules(*schedules: Sequence[DoseEvent]) -> tuple[DoseEvent, ...]:
    """
    Merge several schedules into one (e.g., injections + a daily oral top-up).
    """
    all_doses: list[DoseEvent] = []
    for s in schedules:
        all_doses.extend(s)
    return tuple(sorted(all_doses, key=lambda d: (d.time_h, d.route)))


# --------------------------
# Small input validators
# --------------------------
def _validate_positive(name: str, x: float) -> None:
    if not (x > 0):
        raise ValueError(f"{name} must be > 0 (got {x}).")

def _validate_duration(route: str, duration_h: float) -> None:
    if route == "patch":
        _validate_positive("duration_h", duration_h)
    elif duration_h != 0:
        raise ValueError("duration_h should be 0 unless route is 'patch'.")

def _validate_positive_int(name: str, x: int) -> None:
    if not (isinstance(x, int) and x > 0):
        raise ValueError(f"{name} must be a positive integer (got {x}).")
