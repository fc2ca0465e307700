import pytest

from pkcalib.sampling import sample_at
from pkcalib.types import PredictedCurve


CURVE = PredictedCurve(time_h=[0.0, 10.0, 20.0], conc_pg_ml=[0.0, 100.0, 50.0])


def test_missing_curve_contributes_nothing():
    assert sample_at(None, 5.0) == 0.0


def test_clamped_before_first_point():
    assert sample_at(CURVE, -100.0) == 0.0
    assert sample_at(CURVE, 0.0) == 0.0


def test_clamped_after_last_point():
    assert sample_at(CURVE, 20.0) == 50.0
    assert sample_at(CURVE, 1e6) == 50.0


def test_interior_linear_interpolation():
    assert sample_at(CURVE, 5.0) == pytest.approx(50.0)
    assert sample_at(CURVE, 15.0) == pytest.approx(75.0)
    assert sample_at(CURVE, 10.0) == pytest.approx(100.0)
    assert sample_at(CURVE, 12.5) == pytest.approx(87.5)


def test_single_sample_curve_is_constant():
    one = PredictedCurve(time_h=[5.0], conc_pg_ml=[42.0])
    assert sample_at(one, 0.0) == 42.0
    assert sample_at(one, 5.0) == 42.0
    assert sample_at(one, 9.0) == 42.0


def test_repeated_grid_times():
    curve = PredictedCurve(time_h=[0.0, 10.0, 10.0, 20.0], conc_pg_ml=[0.0, 100.0, 200.0, 0.0])
    assert sample_at(curve, 5.0) == pytest.approx(50.0)
    assert sample_at(curve, 15.0) == pytest.approx(100.0)


def test_curve_rejects_malformed_input():
    with pytest.raises(ValueError):
        PredictedCurve(time_h=[], conc_pg_ml=[])
    with pytest.raises(ValueError):
        PredictedCurve(time_h=[0.0, 1.0], conc_pg_ml=[1.0])
    with pytest.raises(ValueError):
        PredictedCurve(time_h=[1.0, 0.0], conc_pg_ml=[1.0, 1.0])
    with pytest.raises(ValueError):
        PredictedCurve(time_h=[0.0, 1.0], conc_pg_ml=[1.0, -1.0])


def test_non_finite_query_time_is_rejected():
    with pytest.raises(ValueError):
        sample_at(CURVE, float("nan"))
    with pytest.raises(ValueError):
        sample_at(None, float("inf"))


def test_scaled_curve_keeps_grid():
    doubled = CURVE.scaled(2.0)
    assert list(doubled.time_h) == list(CURVE.time_h)
    assert sample_at(doubled, 15.0) == pytest.approx(150.0)
    assert sample_at(CURVE, 15.0) == pytest.approx(75.0)
