from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from shared.models import Sample
from .base import Stage, StageParameter, register_stage

logger = logging.getLogger(__name__)


def _sign_threshold(value: float, thres: float) -> float:
    if value >= thres:
        return 1.0
    if value <= -thres:
        return -1.0
    return 0.0


@register_stage
class Threshold(Stage):
    """Emits 1.0 when the value is strictly above `thres`, else 0.0."""

    name = "threshold"
    display_name = "Level Threshold"
    parameters = {
        "thres": StageParameter(name="thres", default=70.0, help="Level that must be exceeded"),
    }

    def __init__(self, thres: float) -> None:
        super().__init__()
        self._thres = float(thres)

    def _process(self, sample: Sample) -> Sample:
        return sample.with_value(1.0 if sample.v > self._thres else 0.0)

    def reset(self) -> None:
        return

    def _params(self) -> Dict[str, Any]:
        return {"thres": self._thres}


@register_stage
class EdgeDetect(Stage):
    """
    Rising/falling edge detector for a {0, 1} stream: +1 on 0 -> 1, -1 on
    1 -> 0, 0 otherwise. The first sample never produces an edge.
    """

    name = "edge_detect"
    display_name = "Edge Detect"
    parameters: Dict[str, StageParameter] = {}

    def __init__(self) -> None:
        super().__init__()
        self._prev = -1.0

    def _process(self, sample: Sample) -> Sample:
        if self._prev == 0.0 and sample.v == 1.0:
            y = 1.0
        elif self._prev == 1.0 and sample.v == 0.0:
            y = -1.0
        else:
            y = 0.0
        self._prev = sample.v
        return sample.with_value(y)

    def reset(self) -> None:
        self._prev = -1.0

    def _params(self) -> Dict[str, Any]:
        return {}


@register_stage
class PulseCount(Stage):
    """
    Debounced pulse counter. Emits 1.0 on the `num_thres`-th positive input,
    then starts over.

    With `time_thres` > 0 the pulses must all land within `time_thres`
    seconds of the first one; a window that times out is dropped and the
    next positive input opens a new one. Non-positive inputs never touch
    the count or the window.
    """

    name = "pulse_count"
    display_name = "Pulse Count"
    parameters = {
        "num_thres": StageParameter(name="num_thres", default=5, min=1, help="Pulses needed to fire"),
        "time_thres": StageParameter(
            name="time_thres",
            default=2.0,
            min=0.0,
            help="Window (s) the pulses must fall in; 0 disables the window",
        ),
    }

    def __init__(self, num_thres: int, time_thres: float = 0.0) -> None:
        super().__init__()
        if int(num_thres) < 1:
            raise ValueError("num_thres must be at least 1")
        if time_thres < 0:
            raise ValueError("time_thres must be non-negative")
        self._num_thres = int(num_thres)
        self._time_thres = float(time_thres)
        self._count = 0
        self._window_start: Optional[float] = None

    @property
    def count(self) -> int:
        return self._count

    def _process(self, sample: Sample) -> Sample:
        if sample.v <= 0.0:
            return sample.with_value(0.0)

        if self._time_thres > 0 and (
            self._window_start is None or sample.t - self._window_start > self._time_thres
        ):
            self._window_start = sample.t
            self._count = 0

        self._count += 1
        if self._count >= self._num_thres:
            self._count = 0
            self._window_start = None
            return sample.with_value(1.0)
        return sample.with_value(0.0)

    def reset(self) -> None:
        self._count = 0
        self._window_start = None

    def _params(self) -> Dict[str, Any]:
        return {"num_thres": self._num_thres, "time_thres": self._time_thres}


@register_stage
class GyroDetect(Stage):
    """
    Head-motion detector for gyroscope rate data.

    Modes:
        velocity, no rtz: +/-1 while |v| >= thres, matching the sign.
        velocity, rtz:    one detection per out-and-back gesture. A crossing
                          of the opposite threshold after a previous crossing
                          emits the sign of the first movement (the opposite
                          of the new crossing); further detections wait until
                          the rate returns to the dead zone.
        position:         running integral of v. With rtz, values within
                          +/- thres/2 of zero snap to 0.

    `calibrate_center` zeroes the integral so the current head position
    becomes the new reference.
    """

    name = "gyro_detect"
    display_name = "Gyro Detect"
    parameters = {
        "thres": StageParameter(name="thres", default=2000.0, min=0.0, help="Rate or position threshold"),
        "velocity_mode": StageParameter(name="velocity_mode", default=True, help="Detect rate instead of position"),
        "rtz": StageParameter(name="rtz", default=True, help="Return-to-zero hysteresis"),
    }

    def __init__(self, thres: float, velocity_mode: bool = True, rtz: bool = True) -> None:
        super().__init__()
        if thres < 0:
            raise ValueError("thres must be non-negative")
        self._thres = float(thres)
        self._velocity_mode = bool(velocity_mode)
        self._rtz = bool(rtz)

        self._prev_detection = 0.0
        self._triggered = False
        self._integral = 0.0

    @property
    def integral(self) -> float:
        return self._integral

    def calibrate_center(self) -> None:
        self._integral = 0.0
        logger.debug("Gyro position recentred")

    def _process(self, sample: Sample) -> Sample:
        if self._velocity_mode and not self._rtz:
            y = _sign_threshold(sample.v, self._thres)
        elif self._velocity_mode:
            y = self._detect_gesture(_sign_threshold(sample.v, self._thres))
        else:
            self._integral += sample.v
            half = self._thres / 2.0
            y = 0.0 if self._rtz and -half <= self._integral <= half else self._integral
        return sample.with_value(y)

    def _detect_gesture(self, crossing: float) -> float:
        if self._prev_detection == -1.0 and crossing == 1.0:
            y = -1.0
        elif self._prev_detection == 1.0 and crossing == -1.0:
            y = 1.0
        else:
            y = 0.0

        if y != 0.0:
            self._triggered = True
        elif crossing == 0.0:
            self._triggered = False

        if self._triggered:
            self._prev_detection = 0.0
        elif crossing != 0.0:
            self._prev_detection = crossing
        return y

    def reset(self) -> None:
        self._prev_detection = 0.0
        self._triggered = False
        self._integral = 0.0

    def _params(self) -> Dict[str, Any]:
        return {"thres": self._thres, "velocity_mode": self._velocity_mode, "rtz": self._rtz}


__all__ = ["Threshold", "EdgeDetect", "PulseCount", "GyroDetect"]
