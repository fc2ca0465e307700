"""
pkcalib configuration.
Policy constants can be overridden via environment variables.
"""

import os
from dataclasses import dataclass, field

# Literal fallbacks for every PKCALIB_* variable
ENV_DEFAULTS: dict[str, str] = {
    "PKCALIB_OUTLIER_RATIO": "3.0",
    "PKCALIB_MIN_CONTRIBUTION_SHARE": "0.1",
    "PKCALIB_EMA_ALPHA": "0.4",
    "PKCALIB_FIRST_UPDATE_ALPHA": "1.0",
    "PKCALIB_MIN_TOTAL_PREDICTED_PG_ML": "1.0",
    "PKCALIB_SIM_DT_H": "1.0",
    "PKCALIB_SIM_TAIL_H": "720",  # 30 days after the last dose
}


def env_float(name: str) -> float:
    """Current value of a PKCALIB_* variable, or its fallback."""
    return float(os.getenv(name, ENV_DEFAULTS[name]))


# --- Calibration policy ---
# Measured/predicted beyond this ratio (or below its inverse) is treated as an outlier.
OUTLIER_RATIO: float = env_float("PKCALIB_OUTLIER_RATIO")
# Routes below this share of the combined prediction are not adjusted.
MIN_CONTRIBUTION_SHARE: float = env_float("PKCALIB_MIN_CONTRIBUTION_SHARE")
# EMA weight for a route that already has a factor in this run.
EMA_ALPHA: float = env_float("PKCALIB_EMA_ALPHA")
# Weight for a route's first update (1.0 = fully trust the first point).
FIRST_UPDATE_ALPHA: float = env_float("PKCALIB_FIRST_UPDATE_ALPHA")
# Combined prediction floor, pg/mL. Below it a measurement carries no usable signal.
MIN_TOTAL_PREDICTED_PG_ML: float = env_float("PKCALIB_MIN_TOTAL_PREDICTED_PG_ML")

# --- Reference simulator ---
SIM_DT_H: float = env_float("PKCALIB_SIM_DT_H")
SIM_TAIL_H: float = env_float("PKCALIB_SIM_TAIL_H")


@dataclass(frozen=True)
class CalibrationConfig:
    """
    Tuning knobs for the calibration engine.

    The defaults are empirical policy values; change them only with evidence.
    """
    outlier_ratio: float = field(default_factory=lambda: OUTLIER_RATIO)
    min_contribution_share: float = field(default_factory=lambda: MIN_CONTRIBUTION_SHARE)
    ema_alpha: float = field(default_factory=lambda: EMA_ALPHA)
    first_update_alpha: float = field(default_factory=lambda: FIRST_UPDATE_ALPHA)
    min_total_predicted_pg_ml: float = field(default_factory=lambda: MIN_TOTAL_PREDICTED_PG_ML)

    def __post_init__(self):
        if not (self.outlier_ratio > 1.0):
            raise ValueError(f"outlier_ratio must be > 1 (got {self.outlier_ratio}).")
        if not (0.0 <= self.min_contribution_share < 1.0):
            raise ValueError(f"min_contribution_share must be in [0, 1) (got {self.min_contribution_share}).")
        for name in ("ema_alpha", "first_update_alpha"):
            value = getattr(self, name)
            if not (0.0 < value <= 1.0):
                raise ValueError(f"{name} must be in (0, 1] (got {value}).")
        if not (self.min_total_predicted_pg_ml >= 0.0):
            raise ValueError(f"min_total_predicted_pg_ml must be >= 0 (got {self.min_total_predicted_pg_ml}).")

    @classmethod
    def from_env(cls) -> "CalibrationConfig":
        """Re-read the PKCALIB_* variables instead of the values seen at import time."""
        return cls(
            outlier_ratio=env_float("PKCALIB_OUTLIER_RATIO"),
            min_contribution_share=env_float("PKCALIB_MIN_CONTRIBUTION_SHARE"),
            ema_alpha=env_float("PKCALIB_EMA_ALPHA"),
            first_update_alpha=env_float("PKCALIB_FIRST_UPDATE_ALPHA"),
            min_total_predicted_pg_ml=env_float("PKCALIB_MIN_TOTAL_PREDICTED_PG_ML"),
        )
