from __future__ import annotations

import logging
import math
from collections import deque
from typing import Any, Deque, Dict, Optional

from shared.models import Sample
from .base import Stage, StageParameter, _require_positive, register_stage

logger = logging.getLogger(__name__)


@register_stage
class HighPassFilter(Stage):
    """
    One-pole RC high-pass filter.

    The smoothing factor is recomputed from the actual spacing of every pair
    of samples, so irregular acquisition timing is tolerated:

        alpha = rc / (rc + dt)
        y[n]  = alpha * y[n-1] + alpha * (x[n] - x[n-1])

    The first Sample passes through unchanged and seeds both memories.
    """

    name = "highpass"
    display_name = "High-Pass (RC)"
    parameters = {
        "cutoff_hz": StageParameter(
            name="cutoff_hz",
            default=0.5,
            min=0.0,
            help="Cutoff frequency (Hz); rc = 1 / (2*pi*cutoff)",
        ),
    }

    def __init__(self, cutoff_hz: float) -> None:
        super().__init__()
        self._cutoff_hz = 0.0
        self._rc = 0.0
        self.set_cutoff(cutoff_hz)
        self._prev_filtered: Optional[Sample] = None
        self._prev_raw: Optional[Sample] = None

    @property
    def rc(self) -> float:
        return self._rc

    @property
    def cutoff_hz(self) -> float:
        return self._cutoff_hz

    def set_cutoff(self, cutoff_hz: float) -> None:
        _require_positive("cutoff_hz", cutoff_hz)
        self._cutoff_hz = float(cutoff_hz)
        self._rc = 1.0 / (2.0 * math.pi * self._cutoff_hz)

    def set_rc(self, rc: float) -> None:
        _require_positive("rc", rc)
        self._rc = float(rc)
        self._cutoff_hz = 1.0 / (2.0 * math.pi * self._rc)

    def _process(self, sample: Sample) -> Sample:
        if self._prev_filtered is None or self._prev_raw is None:
            self._prev_filtered = sample
            self._prev_raw = sample
            return sample

        dt = sample.t - self._prev_raw.t
        alpha = self._rc / (self._rc + dt)
        y = alpha * self._prev_filtered.v + alpha * (sample.v - self._prev_raw.v)

        filtered = sample.with_value(y)
        self._prev_filtered = filtered
        self._prev_raw = sample
        return filtered

    def reset(self) -> None:
        self._prev_filtered = None
        self._prev_raw = None

    def _params(self) -> Dict[str, Any]:
        return {"cutoff_hz": self._cutoff_hz}


@register_stage
class MovingAverage(Stage):
    """
    Rolling-mean low-pass over the last `window_size` Samples.

    Output is stamped with the centre of the window, i.e. it lags the input
    by half a window. Until the window is full a zero placeholder is emitted.
    """

    name = "moving_average"
    display_name = "Moving Average"
    parameters = {
        "window_size": StageParameter(
            name="window_size",
            default=150,
            min=1,
            help="Number of samples averaged",
        ),
    }

    def __init__(self, window_size: int) -> None:
        super().__init__()
        if int(window_size) < 1:
            raise ValueError("window_size must be at least 1")
        self._window_size = int(window_size)
        self._buffer: Deque[Sample] = deque()

    @property
    def window_size(self) -> int:
        return self._window_size

    def set_window_size(self, window_size: int) -> None:
        if int(window_size) < 1:
            raise ValueError("window_size must be at least 1")
        self._window_size = int(window_size)
        # Between calls the buffer holds at most window_size - 1 samples.
        while len(self._buffer) > self._window_size - 1:
            self._buffer.popleft()

    def _process(self, sample: Sample) -> Sample:
        self._buffer.append(sample)
        if len(self._buffer) < self._window_size:
            return Sample.placeholder(sample.t)

        total = 0.0
        for point in self._buffer:
            total += point.v
        mean = total / self._window_size

        center = self._buffer[self._window_size // 2]
        self._buffer.popleft()
        return Sample(center.t, mean)

    def reset(self) -> None:
        self._buffer.clear()

    def _params(self) -> Dict[str, Any]:
        return {"window_size": self._window_size}


@register_stage
class Power(Stage):
    """
    Average signal power over one nominal period.

    With N = ceil(period / sample_spacing) buffered samples and
    dt = period / N, the output is sum(v**2 * dt) / period, emitted at the
    timestamp of the oldest sample in the window, which is then evicted.
    """

    name = "power"
    display_name = "Power"
    parameters = {
        "period": StageParameter(
            name="period",
            default=1.0 / 11.5,
            min=0.0,
            help="Averaging period (s)",
        ),
        "sample_spacing": StageParameter(
            name="sample_spacing",
            default=0.01,
            min=0.0,
            help="Nominal time between samples (s)",
        ),
    }

    def __init__(self, period: float, sample_spacing: float) -> None:
        super().__init__()
        _require_positive("period", period)
        _require_positive("sample_spacing", sample_spacing)
        self._period = float(period)
        self._sample_spacing = float(sample_spacing)
        self._buffer_size = int(math.ceil(self._period / self._sample_spacing))
        self._dt = self._period / self._buffer_size
        self._buffer: Deque[Sample] = deque()
        logger.debug("Power window: %d samples, dt=%g s", self._buffer_size, self._dt)

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    def _process(self, sample: Sample) -> Sample:
        self._buffer.append(sample)
        if len(self._buffer) < self._buffer_size:
            return Sample.placeholder(sample.t)

        power = 0.0
        for point in self._buffer:
            power += point.v * point.v * self._dt
        power /= self._period

        oldest = self._buffer.popleft()
        return Sample(oldest.t, power)

    def reset(self) -> None:
        self._buffer.clear()

    def _params(self) -> Dict[str, Any]:
        return {"period": self._period, "sample_spacing": self._sample_spacing}


__all__ = ["HighPassFilter", "MovingAverage", "Power"]
