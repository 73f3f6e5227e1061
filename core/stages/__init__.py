from .base import (
    STAGE_REGISTRY,
    Stage,
    StageParameter,
    register_stage,
)
from .butterworth import Butterworth, FilterKind, butterworth_coefficients
from .detectors import EdgeDetect, GyroDetect, PulseCount, Threshold
from .filters import HighPassFilter, MovingAverage, Power

__all__ = [
    "Stage",
    "StageParameter",
    "STAGE_REGISTRY",
    "register_stage",
    "Butterworth",
    "FilterKind",
    "butterworth_coefficients",
    "HighPassFilter",
    "MovingAverage",
    "Power",
    "Threshold",
    "EdgeDetect",
    "PulseCount",
    "GyroDetect",
]
