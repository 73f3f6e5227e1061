from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional, Type, TypeVar

from shared.models import Sample
from .stages.base import Stage

S = TypeVar("S", bound=Stage)


class Pipeline:
    """
    Ordered chain of Stages. `push` feeds a Sample through every Stage in
    insertion order and returns the last Stage's output.

    Not synchronised: structural edits (append/remove/swap) must not race a
    `push` on the same Pipeline. Quiesce the producer before editing.
    """

    def __init__(self, stages: Optional[Iterable[Stage]] = None) -> None:
        self._stages: List[Stage] = list(stages) if stages is not None else []

    def push(self, sample: Sample) -> Sample:
        for stage in self._stages:
            sample = stage.process(sample)
        return sample

    # ---- Structure ----

    def append(self, stage: Stage) -> None:
        self._stages.append(stage)

    def remove(self, index: int) -> Stage:
        return self._stages.pop(index)

    def swap(self, index1: int, index2: int) -> None:
        stages = self._stages
        stages[index1], stages[index2] = stages[index2], stages[index1]

    def get(self, index: int) -> Stage:
        return self._stages[index]

    def find(self, stage_type: Type[S]) -> Optional[S]:
        """First Stage that is an instance of `stage_type`, or None."""
        for stage in self._stages:
            if isinstance(stage, stage_type):
                return stage
        return None

    def reset(self) -> None:
        for stage in self._stages:
            stage.reset()

    def describe(self) -> Dict[str, Any]:
        return {"stages": [stage.describe() for stage in self._stages]}

    def __getitem__(self, index: int) -> Stage:
        return self._stages[index]

    def __len__(self) -> int:
        return len(self._stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(list(self._stages))

    def __repr__(self) -> str:
        return f"Pipeline({self._stages!r})"


__all__ = ["Pipeline"]
