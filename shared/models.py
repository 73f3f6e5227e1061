from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


# ----------------------------
# Streaming data models
# ----------------------------

@dataclass(frozen=True)
class Sample:
    """Atomic unit of streaming data passed between stages.

    Attributes:
        t: Timestamp in seconds. Non-decreasing within one Window's stream.
        v: Scalar value (raw sensor reading or a stage output).

    Samples are never mutated. Stages build their outputs with
    `with_value` or `placeholder`, and callers that merge channels use
    `average`.
    """

    t: float
    v: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "t", float(self.t))
        object.__setattr__(self, "v", float(self.v))

    def with_value(self, v: float) -> "Sample":
        return Sample(self.t, v)

    @classmethod
    def placeholder(cls, t: float) -> "Sample":
        """Output used while a stage is still filling its buffer."""
        return cls(t, 0.0)

    @classmethod
    def average(cls, samples: Iterable["Sample"]) -> "Sample":
        """Mean value of `samples`, stamped with the last sample's timestamp."""
        items = list(samples)
        if not items:
            raise ValueError("samples must not be empty")
        total = 0.0
        for sample in items:
            total += sample.v
        return cls(items[-1].t, total / len(items))


__all__ = ["Sample"]
