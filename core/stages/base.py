from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Type

from shared.models import Sample

if TYPE_CHECKING:
    from shared.window import Window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageParameter:
    name: str
    default: Any
    min: float | None = None
    max: float | None = None
    help: str = ""


class Stage:
    """
    Stateful unary transform over a Sample stream.

    Subclasses implement `_process`, `reset` and `_params`. `process` is the
    public entry point: it runs the transform and mirrors whatever it returns
    to the tap Window, so the tap always sees exactly the primary stream
    (buffering placeholders included).
    """

    name: str = ""
    display_name: str = ""
    parameters: Mapping[str, StageParameter] = {}

    def __init__(self) -> None:
        self._tap: Optional[weakref.ReferenceType] = None

    def process(self, sample: Sample) -> Sample:
        out = self._process(sample)
        if self._tap is not None:
            tap = self._tap()
            if tap is None:
                logger.debug("Tap window for %s was collected; detaching", self.name)
                self._tap = None
            else:
                tap.add(out)
        return out

    def _process(self, sample: Sample) -> Sample:
        raise NotImplementedError

    def reset(self) -> None:
        """Return to the freshly constructed state."""
        raise NotImplementedError

    # ---- Tap ----

    def add_tap(self, window: "Window") -> None:
        """Mirror every output to `window`. The Stage does not keep it alive."""
        self._tap = weakref.ref(window)

    def remove_tap(self) -> None:
        self._tap = None

    @property
    def tap(self) -> Optional["Window"]:
        return self._tap() if self._tap is not None else None

    # ---- Introspection ----

    def _params(self) -> Dict[str, Any]:
        raise NotImplementedError

    def describe(self) -> Dict[str, Any]:
        return {"kind": self.name, "params": self._params()}

    def __repr__(self) -> str:
        args = ", ".join(f"{key}={value!r}" for key, value in self._params().items())
        return f"{type(self).__name__}({args})"


STAGE_REGISTRY: Dict[str, Type[Stage]] = {}


def register_stage(cls: Type[Stage]) -> Type[Stage]:
    if not getattr(cls, "name", ""):
        raise ValueError(f"Stage {cls} must have a 'name' attribute")
    STAGE_REGISTRY[cls.name] = cls
    return cls


def _require_positive(name: str, value: float) -> None:
    if not value > 0:
        raise ValueError(f"{name} must be positive")


__all__ = ["Stage", "StageParameter", "STAGE_REGISTRY", "register_stage"]
