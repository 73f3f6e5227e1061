"""Reference detector chains for 14-channel EEG headsets sampled at 100 Hz.

Each factory returns a fresh PipelineConfig; call `.build()` for a Pipeline.

- dc_removal:             strip electrode drift before averaging channels.
- alpha_detector:         eye-closure detection from occipital alpha power.
                          Emits +1 when alpha rises above threshold, -1 when
                          it falls back.
- blink_detector:         fires once per burst of five blinks in two seconds.
- head_rotation_detector: integrated gyro position with a dead zone.
"""
from __future__ import annotations

from typing import Callable, Dict

from .config import PipelineConfig, StageConfig

EEG_SAMPLE_PERIOD = 0.01          # s between EEG samples
ALPHA_BAND_HZ = (8.0, 13.0)
ALPHA_POWER_PERIOD = 1.0 / 11.5   # one cycle at the band centre (s)
ALPHA_POWER_THRES = 70.0          # uV^2
ALPHA_SMOOTHING_MS = 1500
BLINK_THRES = 65.0                # uV
BLINK_COUNT = 5
BLINK_WINDOW_SEC = 2.0
GYRO_POSITION_THRES = 2000.0
DRIFT_CUTOFF_HZ = 0.5


def dc_removal(cutoff_hz: float = DRIFT_CUTOFF_HZ) -> PipelineConfig:
    return PipelineConfig(stages=(StageConfig("highpass", {"cutoff_hz": cutoff_hz}),))


def alpha_detector(sample_period: float = EEG_SAMPLE_PERIOD) -> PipelineConfig:
    smoothing = max(1, int(round(ALPHA_SMOOTHING_MS / (sample_period * 1000.0))))
    return PipelineConfig(
        stages=(
            StageConfig(
                "butterworth",
                {
                    "order": 4,
                    "freqs": list(ALPHA_BAND_HZ),
                    "sampling_rate": 1.0 / sample_period,
                    "kind": "bandpass",
                },
            ),
            StageConfig("power", {"period": ALPHA_POWER_PERIOD, "sample_spacing": sample_period}),
            StageConfig("moving_average", {"window_size": smoothing}),
            StageConfig("threshold", {"thres": ALPHA_POWER_THRES}),
            StageConfig("edge_detect"),
        )
    )


def blink_detector() -> PipelineConfig:
    return PipelineConfig(
        stages=(
            StageConfig("threshold", {"thres": BLINK_THRES}),
            StageConfig("edge_detect"),
            StageConfig("pulse_count", {"num_thres": BLINK_COUNT, "time_thres": BLINK_WINDOW_SEC}),
        )
    )


def head_rotation_detector() -> PipelineConfig:
    return PipelineConfig(
        stages=(
            StageConfig(
                "gyro_detect",
                {"thres": GYRO_POSITION_THRES, "velocity_mode": False, "rtz": True},
            ),
        )
    )


PRESETS: Dict[str, Callable[[], PipelineConfig]] = {
    "dc_removal": dc_removal,
    "alpha": alpha_detector,
    "blink": blink_detector,
    "head_rotation": head_rotation_detector,
}


__all__ = [
    "PRESETS",
    "dc_removal",
    "alpha_detector",
    "blink_detector",
    "head_rotation_detector",
]
