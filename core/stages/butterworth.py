"""Butterworth IIR filter stage.

Coefficients are synthesised at construction from the analog prototype's
pole angles mapped through the bilinear transform:

- Numerator: binomial coefficients of (1 + z^-1)^n for low-pass,
  (1 - z^-1)^n for high-pass and (1 - z^-2)^n for band-pass.
- Denominator: the digital poles expanded into a polynomial. Low/high-pass
  multiply n first-order factors; band-pass multiplies n second-order
  factors that carry both the bandwidth and the centre-frequency rotation.
- A scalar gain multiplied into the numerator gives unit gain at DC
  (low-pass), at Nyquist (high-pass) or at the band centre (band-pass).

The result matches ``scipy.signal.butter`` for the same design. Runtime
evaluation is the direct-form difference equation with zero initial state:

    y[n] = sum(b[k] * x[n-k]) - sum(a[k] * y[n-k], k >= 1)

so the first len(b) - 1 outputs are the filter ringing up, not placeholders.
"""
from __future__ import annotations

import logging
import math
from collections import deque
from enum import Enum
from typing import Any, Deque, Dict, List, Sequence, Tuple, Union

import numpy as np
from scipy import signal

from shared.models import Sample
from .base import Stage, StageParameter, _require_positive, register_stage

logger = logging.getLogger(__name__)

# Above this order the direct-form coefficients lose precision quickly.
MAX_STABLE_ORDER = 7


class FilterKind(str, Enum):
    LOWPASS = "lowpass"
    HIGHPASS = "highpass"
    BANDPASS = "bandpass"


# ----------------------------
# Coefficient synthesis
# ----------------------------

def _numerator(order: int, kind: FilterKind) -> List[float]:
    coeffs = [float(math.comb(order, k)) for k in range(order + 1)]
    if kind is not FilterKind.LOWPASS:
        for k in range(1, order + 1, 2):
            coeffs[k] = -coeffs[k]
    if kind is FilterKind.BANDPASS:
        interleaved = [0.0] * (2 * order + 1)
        interleaved[::2] = coeffs
        return interleaved
    return coeffs


def _binomial_mult(poles: Sequence[complex]) -> List[complex]:
    """Expand prod(z + p) and return the coefficients below the leading one."""
    a = [0j] * len(poles)
    for i, p in enumerate(poles):
        for j in range(i, 0, -1):
            a[j] += p * a[j - 1]
        a[0] += p
    return a


def _trinomial_mult(b: Sequence[complex], c: Sequence[complex]) -> List[complex]:
    """Expand prod(z^2 + b*z + c) and return the coefficients below the leading one."""
    n = len(b)
    a = [0j] * (2 * n)
    a[0] = b[0]
    a[1] = c[0]
    for i in range(1, n):
        a[2 * i + 1] += c[i] * a[2 * i - 1]
        for j in range(2 * i, 1, -1):
            a[j] += b[i] * a[j - 1] + c[i] * a[j - 2]
        a[1] += b[i] * a[0] + c[i]
        a[0] += b[i]
    return a


def _pole_angles(order: int) -> List[float]:
    return [math.pi * (2 * k + 1) / (2.0 * order) for k in range(order)]


def _denominator_single(order: int, fnorm: float) -> List[float]:
    theta = math.pi * fnorm
    st = math.sin(theta)
    ct = math.cos(theta)

    poles = []
    for pang in _pole_angles(order):
        a = 1.0 + st * math.sin(pang)
        poles.append(complex(-ct / a, -st * math.cos(pang) / a))

    expanded = _binomial_mult(poles)
    return [1.0] + [coeff.real for coeff in expanded]


def _denominator_band(order: int, f_low: float, f_high: float) -> List[float]:
    cp = math.cos(math.pi * (f_high + f_low) / 2.0)
    theta = math.pi * (f_high - f_low) / 2.0
    st = math.sin(theta)
    ct = math.cos(theta)
    s2t = 2.0 * st * ct
    c2t = 2.0 * ct * ct - 1.0

    linear = []
    quadratic = []
    for pang in _pole_angles(order):
        spang = math.sin(pang)
        cpang = math.cos(pang)
        a = 1.0 + s2t * spang
        quadratic.append(complex(c2t / a, s2t * cpang / a))
        linear.append(complex(-2.0 * cp * (ct + st * spang) / a, -2.0 * cp * st * cpang / a))

    expanded = _trinomial_mult(linear, quadratic)
    return [1.0] + [coeff.real for coeff in expanded]


def _scale_single(order: int, fnorm: float, kind: FilterKind) -> float:
    omega = math.pi * fnorm
    sin_omega = math.sin(omega)
    pi_over_order = math.pi / (2 * order)

    factor = 1.0
    for k in range(order // 2):
        factor *= 1.0 + sin_omega * math.sin((2 * k + 1) * pi_over_order)

    if kind is FilterKind.LOWPASS:
        half, other = math.sin(omega / 2.0), math.cos(omega / 2.0)
    else:
        half, other = math.cos(omega / 2.0), math.sin(omega / 2.0)

    if order % 2 == 1:
        factor *= half + other

    return half ** order / factor


def _scale_band(order: int, f_low: float, f_high: float) -> float:
    cot_theta = 1.0 / math.tan(math.pi * (f_high - f_low) / 2.0)
    scale = 1 + 0j
    for pang in _pole_angles(order):
        scale *= complex(cot_theta + math.sin(pang), -math.cos(pang))
    return 1.0 / scale.real


def butterworth_coefficients(
    order: int,
    freqs: Union[float, Sequence[float]],
    sampling_rate: float,
    kind: Union[FilterKind, str],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Design a digital Butterworth filter.

    Args:
        order: Prototype order (band-pass filters have twice as many poles).
        freqs: Cutoff (Hz) for low/high-pass, (low, high) pair for band-pass.
        sampling_rate: Sampling rate (Hz).
        kind: Filter type.

    Returns:
        (b, a) numerator and denominator, highest power of z first, a[0] == 1.
    """
    kind = FilterKind(kind)
    order, edges = _validate_design(order, freqs, sampling_rate, kind)
    return _design(order, edges, float(sampling_rate), kind)


def _design(
    order: int,
    edges: Tuple[float, ...],
    sampling_rate: float,
    kind: FilterKind,
) -> Tuple[np.ndarray, np.ndarray]:
    nyquist = sampling_rate / 2.0
    fnorms = [f / nyquist for f in edges]

    b = _numerator(order, kind)
    if kind is FilterKind.BANDPASS:
        a = _denominator_band(order, fnorms[0], fnorms[1])
        scale = _scale_band(order, fnorms[0], fnorms[1])
    else:
        a = _denominator_single(order, fnorms[0])
        scale = _scale_single(order, fnorms[0], kind)

    return np.asarray(b, dtype=np.float64) * scale, np.asarray(a, dtype=np.float64)


def _validate_design(
    order: int,
    freqs: Union[float, Sequence[float]],
    sampling_rate: float,
    kind: FilterKind,
) -> Tuple[int, Tuple[float, ...]]:
    """Check a design and return the order as an int plus the band edges."""
    if isinstance(order, bool) or int(order) != order or order < 1:
        raise ValueError("order must be a positive integer")
    order = int(order)
    _require_positive("sampling_rate", sampling_rate)

    if isinstance(freqs, (int, float)):
        edges: Tuple[float, ...] = (float(freqs),)
    else:
        edges = tuple(float(f) for f in freqs)

    expected = 2 if kind is FilterKind.BANDPASS else 1
    if len(edges) != expected:
        raise ValueError(f"{kind.value} filter needs {expected} frequency value(s), got {len(edges)}")

    nyquist = sampling_rate / 2.0
    for f in edges:
        if not 0 < f < nyquist:
            raise ValueError("freqs must be between 0 and Nyquist")
    if kind is FilterKind.BANDPASS and not edges[0] < edges[1]:
        raise ValueError("band-pass freqs must be ordered (low, high)")
    return order, edges


# ----------------------------
# Streaming stage
# ----------------------------

@register_stage
class Butterworth(Stage):
    """Causal Butterworth low-, high- or band-pass filter evaluated sample by sample."""

    name = "butterworth"
    display_name = "Butterworth"
    parameters = {
        "order": StageParameter(name="order", default=4, min=1, max=MAX_STABLE_ORDER, help="Filter order"),
        "freqs": StageParameter(name="freqs", default=(8.0, 13.0), help="Cutoff or (low, high) band edges (Hz)"),
        "sampling_rate": StageParameter(name="sampling_rate", default=100.0, min=0.0, help="Sampling rate (Hz)"),
        "kind": StageParameter(name="kind", default="bandpass", help="lowpass, highpass or bandpass"),
    }

    def __init__(
        self,
        order: int,
        freqs: Union[float, Sequence[float]],
        sampling_rate: float,
        kind: Union[FilterKind, str],
    ) -> None:
        super().__init__()
        self._kind = FilterKind(kind)
        self._order, self._freqs = _validate_design(order, freqs, sampling_rate, self._kind)
        self._sampling_rate = float(sampling_rate)
        b, a = _design(self._order, self._freqs, self._sampling_rate, self._kind)
        if self._order > MAX_STABLE_ORDER:
            logger.warning("Butterworth order %d above %d may be numerically unstable", self._order, MAX_STABLE_ORDER)

        b.setflags(write=False)
        a.setflags(write=False)
        self._b_arr = b
        self._a_arr = a
        self._b = b.tolist()
        self._a = a.tolist()

        # Newest first.
        self._inputs: Deque[float] = deque(maxlen=len(self._b))
        self._outputs: Deque[float] = deque(maxlen=len(self._a) - 1)
        logger.debug("Butterworth %s order=%d freqs=%s b=%s a=%s", self._kind.value, self._order, self._freqs, self._b, self._a)

    @property
    def kind(self) -> FilterKind:
        return self._kind

    @property
    def numerator(self) -> np.ndarray:
        return self._b_arr

    @property
    def denominator(self) -> np.ndarray:
        return self._a_arr

    @property
    def unit_gain_frequency(self) -> float:
        """Frequency (Hz) at which the numerator scaling gives exactly unit gain."""
        if self._kind is FilterKind.LOWPASS:
            return 0.0
        if self._kind is FilterKind.HIGHPASS:
            return self._sampling_rate / 2.0
        w_low, w_high = (2.0 * math.pi * f / self._sampling_rate for f in self._freqs)
        w0 = math.acos(math.cos((w_high + w_low) / 2.0) / math.cos((w_high - w_low) / 2.0))
        return w0 * self._sampling_rate / (2.0 * math.pi)

    def gain_at(self, freq_hz: float) -> float:
        """Magnitude of the frequency response at `freq_hz`."""
        _, h = signal.freqz(self._b_arr, self._a_arr, worN=[float(freq_hz)], fs=self._sampling_rate)
        return float(np.abs(h[0]))

    def _process(self, sample: Sample) -> Sample:
        self._inputs.appendleft(sample.v)

        forward = 0.0
        for k, x in enumerate(self._inputs):
            forward += self._b[k] * x

        feedback = 0.0
        for k, y in enumerate(self._outputs, start=1):
            feedback += self._a[k] * y

        y = forward - feedback
        self._outputs.appendleft(y)
        return sample.with_value(y)

    def reset(self) -> None:
        self._inputs.clear()
        self._outputs.clear()

    def _params(self) -> Dict[str, Any]:
        return {
            "order": self._order,
            "freqs": list(self._freqs),
            "sampling_rate": self._sampling_rate,
            "kind": self._kind.value,
        }


__all__ = ["Butterworth", "FilterKind", "butterworth_coefficients", "MAX_STABLE_ORDER"]
