import math

import numpy as np
import pytest

from pkcalib.config import ENV_DEFAULTS, CalibrationConfig, env_float
from pkcalib.dosing import combine_schedules, every_n_days, from_explicit_schedule, single_dose
from pkcalib.metrics import mean_abs_log_ratio, predicted_at, ratios
from pkcalib.calibration import calibrate_curves
from pkcalib.types import CalibrationFactors, LabMeasurement, PredictedCurve


def test_default_policy_values():
    cfg = CalibrationConfig()
    assert cfg.outlier_ratio == 3.0
    assert cfg.min_contribution_share == 0.1
    assert cfg.ema_alpha == 0.4
    assert cfg.first_update_alpha == 1.0
    assert cfg.min_total_predicted_pg_ml == 1.0


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("PKCALIB_OUTLIER_RATIO", "2.5")
    monkeypatch.setenv("PKCALIB_EMA_ALPHA", "0.25")
    cfg = CalibrationConfig.from_env()
    assert cfg.outlier_ratio == 2.5
    assert cfg.ema_alpha == 0.25
    assert cfg.min_contribution_share == 0.1


def test_env_float_falls_back_to_defaults(monkeypatch):
    for name in ENV_DEFAULTS:
        monkeypatch.delenv(name, raising=False)
    assert env_float("PKCALIB_SIM_TAIL_H") == 720.0
    assert CalibrationConfig.from_env() == CalibrationConfig()
    monkeypatch.setenv("PKCALIB_SIM_DT_H", "0.25")
    assert env_float("PKCALIB_SIM_DT_H") == 0.25


@pytest.mark.parametrize("kwargs", [
    {"outlier_ratio": 1.0},
    {"min_contribution_share": 1.0},
    {"min_contribution_share": -0.1},
    {"ema_alpha": 0.0},
    {"first_update_alpha": 1.5},
    {"min_total_predicted_pg_ml": -1.0},
])
def test_config_rejects_bad_values(kwargs):
    with pytest.raises(ValueError):
        CalibrationConfig(**kwargs)


def test_factor_for_defaults_to_one():
    factors = CalibrationFactors({"oral": 1.0})
    assert factors.factor_for("oral") == 1.0
    assert factors.factor_for("patch") == 1.0
    assert "oral" in factors and "patch" not in factors


def test_every_n_days_schedule():
    events = every_n_days(5.0, 7, 4, "injection", ester="EV", start_offset_h=9.0)
    assert [e.time_h for e in events] == [9.0, 177.0, 345.0, 513.0]
    assert all(e.ester == "EV" and e.dose_mg == 5.0 for e in events)

    patches = every_n_days(0.35, 3.5, 1, "patch", duration_h=84.0)
    assert [e.time_h for e in patches] == [0.0, 84.0]


def test_dosing_validation():
    with pytest.raises(ValueError):
        single_dose(0.0, 0.0, "oral")
    with pytest.raises(ValueError):
        single_dose(0.1, 0.0, "patch")
    with pytest.raises(ValueError):
        single_dose(2.0, 0.0, "oral", duration_h=2.0)
    with pytest.raises(ValueError):
        every_n_days(2.0, 1, 0, "oral")
    with pytest.raises(ValueError):
        from_explicit_schedule([(0.0, 2.0), (24.0, -2.0)], "oral")


def test_explicit_and_combined_schedules():
    oral = from_explicit_schedule([(48.0, 2.0), (0.0, 2.0), (24.0, 4.0)], "oral")
    assert [e.time_h for e in oral] == [0.0, 24.0, 48.0]
    merged = combine_schedules(oral, single_dose(5.0, 24.0, "injection", ester="EV"))
    assert [(e.time_h, e.route) for e in merged] == [
        (0.0, "oral"), (24.0, "injection"), (24.0, "oral"), (48.0, "oral")]


def test_fit_improves_after_calibration():
    curves = {
        "injection": PredictedCurve(time_h=[0.0, 100.0, 200.0], conc_pg_ml=[200.0, 300.0, 100.0]),
        "oral": PredictedCurve(time_h=[0.0, 200.0], conc_pg_ml=[50.0, 50.0]),
    }
    measurements = [
        LabMeasurement("a", 50.0, 400.0),
        LabMeasurement("b", 100.0, 480.0),
        LabMeasurement("c", 150.0, 360.0),
        LabMeasurement("skip", 150.0, 1.0, ignored=True),
    ]
    assert predicted_at(curves, {}, 100.0) == pytest.approx(350.0)
    assert predicted_at(curves, {"oral": 2.0}, 100.0) == pytest.approx(400.0)

    before = mean_abs_log_ratio(measurements, curves, {})
    factors = calibrate_curves(measurements, curves).factors
    after = mean_abs_log_ratio(measurements, curves, factors)
    assert len(ratios(measurements, curves, factors)) == 3
    assert after < before


def test_ratios_with_no_prediction():
    curves = {"oral": PredictedCurve(time_h=[0.0], conc_pg_ml=[0.0])}
    r = ratios([LabMeasurement("a", 1.0, 10.0)], curves, {})
    assert np.isnan(r[0])
    assert math.isnan(mean_abs_log_ratio([LabMeasurement("a", 1.0, 10.0)], curves, {}))
