"""Streaming signal-processing core: stages, pipelines and their configuration."""

from .config import PipelineConfig, StageConfig, WindowConfig
from .pipeline import Pipeline
from .stages import (
    STAGE_REGISTRY,
    Butterworth,
    EdgeDetect,
    FilterKind,
    GyroDetect,
    HighPassFilter,
    MovingAverage,
    Power,
    PulseCount,
    Stage,
    StageParameter,
    Threshold,
    register_stage,
)
from shared.models import Sample
from shared.window import Window

__all__ = [
    "Sample",
    "Window",
    "Pipeline",
    "Stage",
    "StageParameter",
    "STAGE_REGISTRY",
    "register_stage",
    "Butterworth",
    "FilterKind",
    "HighPassFilter",
    "MovingAverage",
    "Power",
    "Threshold",
    "EdgeDetect",
    "PulseCount",
    "GyroDetect",
    "StageConfig",
    "PipelineConfig",
    "WindowConfig",
]
