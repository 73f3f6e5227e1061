"""
End-to-end tests for the reference detector chains.

Each test synthesises a physiologically shaped trace at the headset's
100 Hz rate, pushes it through a preset built from its PipelineConfig and
checks when the decision output fires.
"""
from __future__ import annotations

from typing import List

import numpy as np
import pytest

from core.presets import (
    PRESETS,
    alpha_detector,
    blink_detector,
    dc_removal,
    head_rotation_detector,
)
from core.stages import Butterworth, MovingAverage
from shared.models import Sample
from shared.window import Window

FS = 100.0


def _nonzero(outputs: List[Sample]) -> List[Sample]:
    return [s for s in outputs if s.v != 0.0]


def _eyes_closed_trace(seed: int = 11) -> List[Sample]:
    """10 s eyes open, 10 s strong 10 Hz alpha, 10 s eyes open."""
    rng = np.random.default_rng(seed)
    t = np.arange(int(30 * FS)) / FS
    v = rng.normal(0.0, 1.0, size=t.size)
    closed = (t >= 10.0) & (t < 20.0)
    v[closed] += 20.0 * np.sin(2.0 * np.pi * 10.0 * t[closed])
    return [Sample(ti, vi) for ti, vi in zip(t.tolist(), v.tolist())]


def _blink_trace(starts: List[float], duration: float = 6.0) -> List[Sample]:
    t = np.arange(int(duration * FS)) / FS
    v = np.zeros_like(t)
    for start in starts:
        v[(t >= start) & (t < start + 0.1)] = 100.0
    return [Sample(ti, vi) for ti, vi in zip(t.tolist(), v.tolist())]


class TestAlphaDetector:
    def test_chain_shape(self):
        pipeline = alpha_detector().build()

        assert isinstance(pipeline[0], Butterworth)
        assert pipeline.find(MovingAverage).window_size == 150
        assert [stage.name for stage in pipeline] == [
            "butterworth",
            "power",
            "moving_average",
            "threshold",
            "edge_detect",
        ]

    def test_smoothing_scales_with_sample_period(self):
        assert alpha_detector(0.02).build().find(MovingAverage).window_size == 75

    def test_eye_closure_produces_one_rise_and_one_fall(self):
        pipeline = alpha_detector().build()
        edges = _nonzero([pipeline.push(s) for s in _eyes_closed_trace()])

        assert [s.v for s in edges] == [1.0, -1.0]
        rise, fall = edges
        assert 9.0 < rise.t < 13.0
        assert 19.0 < fall.t < 23.0

    def test_eyes_open_never_fires(self):
        rng = np.random.default_rng(5)
        pipeline = alpha_detector().build()
        noise = rng.normal(0.0, 1.0, size=2000)

        outputs = [pipeline.push(Sample(i / FS, v)) for i, v in enumerate(noise.tolist())]

        assert _nonzero(outputs) == []


class TestBlinkDetector:
    def test_five_quick_blinks_fire_once(self):
        starts = [1.0, 1.3, 1.6, 1.9, 2.2]
        pipeline = blink_detector().build()
        fired = _nonzero([pipeline.push(s) for s in _blink_trace(starts)])

        assert len(fired) == 1
        assert fired[0].t == pytest.approx(2.2)

    def test_slow_blinks_do_not_fire(self):
        pipeline = blink_detector().build()
        fired = _nonzero([pipeline.push(s) for s in _blink_trace([0.5, 1.5, 2.5, 3.5, 4.5])])

        assert fired == []

    def test_ten_quick_blinks_fire_twice(self):
        starts = [0.5 + 0.3 * i for i in range(10)]
        pipeline = blink_detector().build()
        fired = _nonzero([pipeline.push(s) for s in _blink_trace(starts)])

        assert len(fired) == 2


class TestHeadRotation:
    def test_dead_zone_then_position(self):
        pipeline = head_rotation_detector().build()
        outputs = [pipeline.push(Sample(i / FS, 100.0)).v for i in range(30)]

        # dead zone is +/- 1000 around the calibrated centre
        assert outputs[:10] == [0.0] * 10
        assert outputs[10] == 1100.0
        assert outputs[-1] == 3000.0


def test_dc_removal_centres_signal():
    window = Window(500, dc_removal().build())
    t = np.arange(3000) / FS
    for ti, vi in zip(t.tolist(), (4200.0 + 10.0 * np.sin(2 * np.pi * 10.0 * t)).tolist()):
        window.add(Sample(ti, vi))

    assert abs(float(np.mean(window.values()))) < 1.0


@pytest.mark.parametrize("name", sorted(PRESETS))
def test_every_preset_builds_and_validates(name):
    config = PRESETS[name]()
    config.validate()

    assert len(config.build()) == len(config.stages)
