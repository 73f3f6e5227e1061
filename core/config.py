from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from shared.window import Window
from .pipeline import Pipeline
from .stages.base import STAGE_REGISTRY, Stage


@dataclass(frozen=True)
class StageConfig:
    """Declarative description of one Stage: registry kind plus constructor params."""

    kind: str
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.params, Mapping):
            raise TypeError("params must be a mapping type")
        object.__setattr__(self, "params", dict(self.params))

    def validate(self) -> None:
        cls = STAGE_REGISTRY.get(self.kind)
        if cls is None:
            known = ", ".join(sorted(STAGE_REGISTRY))
            raise ValueError(f"unknown stage kind {self.kind!r} (known: {known})")
        unknown = set(self.params) - set(cls.parameters)
        if unknown:
            raise ValueError(f"unknown parameter(s) for {self.kind}: {', '.join(sorted(unknown))}")
        try:
            inspect.signature(cls).bind(**self.params)
        except TypeError as exc:
            raise ValueError(f"bad parameters for {self.kind}: {exc}") from exc

    def build(self) -> Stage:
        self.validate()
        return STAGE_REGISTRY[self.kind](**self.params)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StageConfig":
        if "kind" not in data:
            raise ValueError("stage entry needs a 'kind'")
        return cls(kind=str(data["kind"]), params=data.get("params") or {})


@dataclass(frozen=True)
class PipelineConfig:
    """Ordered Stage configurations; order is processing order."""

    stages: Tuple[StageConfig, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "stages", tuple(self.stages))

    def validate(self) -> None:
        for stage in self.stages:
            stage.validate()

    def build(self) -> Pipeline:
        self.validate()
        return Pipeline(stage.build() for stage in self.stages)

    def to_dict(self) -> Dict[str, Any]:
        return {"stages": [stage.to_dict() for stage in self.stages]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PipelineConfig":
        entries: Sequence[Mapping[str, Any]] = data.get("stages", ())
        return cls(stages=tuple(StageConfig.from_dict(entry) for entry in entries))


@dataclass(frozen=True)
class WindowConfig:
    size: int = 0
    labels: Tuple[str, str] = ("X", "Y")
    pipeline: Optional[PipelineConfig] = None

    def validate(self) -> None:
        if self.size < 0:
            raise ValueError("size must be non-negative")
        if len(self.labels) != 2:
            raise ValueError("labels must be an (x, y) pair")
        if self.pipeline is not None:
            self.pipeline.validate()

    def build(self) -> Window:
        self.validate()
        pipeline = self.pipeline.build() if self.pipeline is not None else None
        return Window(self.size, pipeline, labels=(self.labels[0], self.labels[1]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "labels": list(self.labels),
            "pipeline": None if self.pipeline is None else self.pipeline.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WindowConfig":
        pipeline = data.get("pipeline")
        labels = data.get("labels", ("X", "Y"))
        return cls(
            size=int(data.get("size", 0)),
            labels=(str(labels[0]), str(labels[1])),
            pipeline=None if pipeline is None else PipelineConfig.from_dict(pipeline),
        )


__all__ = ["StageConfig", "PipelineConfig", "WindowConfig"]
