"""
Unit tests for the decision stages: level threshold, edge detection, pulse
counting and gyro gesture detection.
"""
from __future__ import annotations

import pytest

from core.stages import EdgeDetect, GyroDetect, PulseCount, Threshold
from shared.models import Sample
from test.fixtures.signal_generators import make_gyro_sweep, to_samples


def _run(stage, values, times=None):
    return [stage.process(s).v for s in to_samples(values, times)]


class TestThreshold:
    def test_strictly_greater(self):
        assert _run(Threshold(70.0), [69.9, 70.0, 70.0001, 500.0]) == [0.0, 0.0, 1.0, 1.0]

    def test_negative_threshold(self):
        assert _run(Threshold(-1.0), [-2.0, -1.0, -0.5]) == [0.0, 0.0, 1.0]

    def test_keeps_timestamp(self):
        assert Threshold(0.0).process(Sample(3.25, 1.0)) == Sample(3.25, 1.0)


class TestEdgeDetect:
    def test_rising_and_falling(self):
        assert _run(EdgeDetect(), [0.0, 0.0, 1.0, 1.0, 0.0]) == [0.0, 0.0, 1.0, 0.0, -1.0]

    def test_first_sample_is_never_an_edge(self):
        assert _run(EdgeDetect(), [1.0, 0.0]) == [0.0, -1.0]

    def test_ignores_non_binary_values(self):
        assert _run(EdgeDetect(), [0.0, 0.5, 1.0]) == [0.0, 0.0, 0.0]


class TestPulseCount:
    def test_fires_on_nth_pulse_within_window(self):
        counter = PulseCount(3, 2.0)
        out = _run(counter, [1.0, 0.0, 1.0, 0.0, 1.0], [0.0, 0.25, 0.5, 0.75, 1.0])

        assert out == [0.0, 0.0, 0.0, 0.0, 1.0]
        assert counter.count == 0

    def test_timed_out_window_restarts_count(self):
        counter = PulseCount(3, 2.0)
        times = [0.0, 0.5, 3.0, 3.5, 4.0]
        out = _run(counter, [1.0] * 5, times)

        # the pulse at t=3.0 is more than 2 s after t=0.0, so it opens a new window
        assert out == [0.0, 0.0, 0.0, 0.0, 1.0]

    def test_window_boundary_is_inclusive(self):
        counter = PulseCount(2, 1.0)

        assert _run(counter, [1.0, 1.0], [5.0, 6.0]) == [0.0, 1.0]

    def test_no_time_window_counts_forever(self):
        counter = PulseCount(3)
        out = _run(counter, [1.0, -1.0, 1.0, 0.0, 1.0, 1.0], [0.0, 10.0, 100.0, 200.0, 1000.0, 1001.0])

        assert out == [0.0, 0.0, 0.0, 0.0, 1.0, 0.0]
        assert counter.count == 1

    def test_non_positive_inputs_do_not_count(self):
        counter = PulseCount(2, 5.0)
        _run(counter, [0.0, -1.0, 0.0])

        assert counter.count == 0

    def test_single_pulse_threshold_fires_every_time(self):
        assert _run(PulseCount(1, 1.0), [1.0, 0.0, 1.0]) == [1.0, 0.0, 1.0]

    def test_reset(self):
        counter = PulseCount(2)
        counter.process(Sample(0.0, 1.0))
        counter.reset()

        assert counter.process(Sample(1.0, 1.0)).v == 0.0

    @pytest.mark.parametrize("num, window", [(0, 1.0), (2, -1.0)])
    def test_rejects_bad_parameters(self, num, window):
        with pytest.raises(ValueError):
            PulseCount(num, window)


class TestGyroVelocity:
    def test_plain_threshold_follows_sign(self):
        gyro = GyroDetect(100.0, velocity_mode=True, rtz=False)

        assert _run(gyro, [50.0, 100.0, 250.0, -99.0, -100.0, -300.0]) == [
            0.0, 1.0, 1.0, 0.0, -1.0, -1.0,
        ]

    def test_out_and_back_gesture_fires_once(self):
        gyro = GyroDetect(100.0, velocity_mode=True, rtz=True)
        outputs = [gyro.process(s).v for s in make_gyro_sweep(400.0, 10)]

        assert [v for v in outputs if v != 0.0] == [1.0]

    def test_opposite_gesture_reports_its_first_direction(self):
        gyro = GyroDetect(100.0, velocity_mode=True, rtz=True)
        sweep = [s.with_value(-s.v) for s in make_gyro_sweep(400.0, 10)]
        outputs = [gyro.process(s).v for s in sweep]

        assert [v for v in outputs if v != 0.0] == [-1.0]

    def test_rearms_after_returning_to_dead_zone(self):
        gyro = GyroDetect(100.0, velocity_mode=True, rtz=True)
        first = make_gyro_sweep(400.0, 10)
        second = make_gyro_sweep(400.0, 10, start_t=first[-1].t + 0.02)
        outputs = [gyro.process(s).v for s in first + second]

        assert [v for v in outputs if v != 0.0] == [1.0, 1.0]

    def test_one_sided_motion_never_fires(self):
        gyro = GyroDetect(100.0, velocity_mode=True, rtz=True)

        assert _run(gyro, [0.0, 200.0, 300.0, 200.0, 0.0]) == [0.0] * 5


class TestGyroPosition:
    def test_integrates_without_rtz(self):
        gyro = GyroDetect(100.0, velocity_mode=False, rtz=False)

        assert _run(gyro, [10.0, 20.0, -5.0]) == [10.0, 30.0, 25.0]
        assert gyro.integral == 25.0

    def test_dead_zone_snaps_to_zero(self):
        gyro = GyroDetect(100.0, velocity_mode=False, rtz=True)

        # dead zone is +/- 50
        assert _run(gyro, [30.0, 20.0, 10.0, -70.0, -45.0]) == [0.0, 0.0, 60.0, 0.0, -55.0]

    def test_calibrate_center(self):
        gyro = GyroDetect(100.0, velocity_mode=False, rtz=False)
        _run(gyro, [500.0, 250.0])
        gyro.calibrate_center()

        assert gyro.integral == 0.0
        assert gyro.process(Sample(1.0, 5.0)).v == 5.0

    def test_reset_clears_integral(self):
        gyro = GyroDetect(100.0, velocity_mode=False, rtz=False)
        _run(gyro, [500.0])
        gyro.reset()

        assert gyro.integral == 0.0

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            GyroDetect(-1.0)


class TestDocumentedScenarios:
    """Worked scenarios for the headset detectors."""

    def test_five_blinks_then_late_sixth(self):
        counter = PulseCount(5, 2.0)
        out = _run(counter, [1.0] * 6, [0.0, 0.3, 0.6, 0.9, 1.2, 3.5])

        assert out == [0.0, 0.0, 0.0, 0.0, 1.0, 0.0]
        assert counter.count == 1

    def test_head_turn_right_then_left(self):
        gyro = GyroDetect(2000.0, velocity_mode=True, rtz=True)

        # reported direction is the first movement, opposite of the return crossing
        assert _run(gyro, [0.0, 2500.0, 0.0, -2500.0, 0.0]) == [0.0, 0.0, 0.0, 1.0, 0.0]

    def test_recentre_then_position_is_next_value(self):
        gyro = GyroDetect(2000.0, velocity_mode=False, rtz=True)
        _run(gyro, [1500.0, 1500.0, -400.0])
        gyro.calibrate_center()

        assert gyro.process(Sample(1.0, 1500.0)).v == 1500.0


def test_gyro_declared_defaults_match_constructor():
    declared = {name: spec.default for name, spec in GyroDetect.parameters.items() if name != "thres"}

    assert GyroDetect(100.0).describe()["params"] == {"thres": 100.0, **declared}
