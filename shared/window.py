from __future__ import annotations

import csv
import io
import logging
from collections import deque
from pathlib import Path
from threading import Lock
from typing import TYPE_CHECKING, Deque, List, Optional, Tuple, Union

import numpy as np

from .models import Sample

if TYPE_CHECKING:
    from core.pipeline import Pipeline

logger = logging.getLogger(__name__)


class Window:
    """
    Thread-safe, bounded buffer of Samples with an optional processing Pipeline.

    A single producer calls `add`; any number of readers take snapshots.
    When the buffer is full each insert evicts the oldest Sample and the
    evicted timestamp becomes the new `time_offset`, which plotting code
    uses as the left edge of the visible span.

    A Window starts with size 0 and stores nothing until `set_size` is
    called.
    """

    def __init__(
        self,
        size: int = 0,
        pipeline: Optional["Pipeline"] = None,
        *,
        labels: Tuple[str, str] = ("X", "Y"),
    ) -> None:
        if size < 0:
            raise ValueError("size must be non-negative")
        self._size = int(size)
        self._pipeline = pipeline
        self._data: Deque[Sample] = deque()
        self._lock = Lock()
        self._paused = False
        self._time_offset = 0.0
        self._needs_offset = False
        self._x_label, self._y_label = labels

    # ---- Configuration ----

    @property
    def size(self) -> int:
        return self._size

    def set_size(self, size: int) -> None:
        """Set the capacity. Shrinking evicts the oldest Samples."""
        if size < 0:
            raise ValueError("size must be non-negative")
        with self._lock:
            self._size = int(size)
            while len(self._data) > self._size:
                self._time_offset = self._data.popleft().t
        logger.debug("Window resized to %d", size)

    @property
    def pipeline(self) -> Optional["Pipeline"]:
        return self._pipeline

    def set_pipeline(self, pipeline: Optional["Pipeline"]) -> None:
        """Attach a pipeline; None stores incoming Samples unprocessed."""
        self._pipeline = pipeline

    @property
    def labels(self) -> Tuple[str, str]:
        return self._x_label, self._y_label

    def set_labels(self, x_label: str, y_label: str) -> None:
        self._x_label = str(x_label)
        self._y_label = str(y_label)

    # ---- Pause / resume ----

    @property
    def paused(self) -> bool:
        return self._paused

    def set_paused(self, paused: bool) -> None:
        """
        Pause or resume. Resuming flushes the buffer and re-synchronises the
        time offset to the next Sample added.
        """
        self._paused = bool(paused)
        if not self._paused:
            with self._lock:
                self._data.clear()
                self._needs_offset = True
        logger.debug("Window %s", "paused" if self._paused else "resumed")

    def pause(self) -> None:
        self.set_paused(True)

    def resume(self) -> None:
        self.set_paused(False)

    # ---- Producer ----

    def add(self, sample: Optional[Sample]) -> None:
        """Process `sample` through the pipeline (if any) and store the result."""
        if self._paused or sample is None:
            return

        pipeline = self._pipeline
        processed = pipeline.push(sample) if pipeline is not None else sample

        with self._lock:
            if self._size <= 0:
                return
            if len(self._data) >= self._size:
                self._time_offset = self._data.popleft().t
            elif self._needs_offset:
                self._time_offset = sample.t
                self._needs_offset = False
            self._data.append(processed)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    # ---- Readers ----

    def snapshot(self) -> List[Sample]:
        """Return the stored Samples, oldest first, without clearing them."""
        with self._lock:
            return list(self._data)

    def latest(self) -> Optional[Sample]:
        with self._lock:
            return self._data[-1] if self._data else None

    def times(self) -> np.ndarray:
        return np.array([s.t for s in self.snapshot()], dtype=np.float64)

    def values(self) -> np.ndarray:
        return np.array([s.v for s in self.snapshot()], dtype=np.float64)

    @property
    def time_offset(self) -> float:
        with self._lock:
            return self._time_offset

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    # ---- Text format ----

    def to_csv(self) -> str:
        """Serialize to two-column text: a label row, then one `t,v` row per Sample."""
        out = io.StringIO()
        writer = csv.writer(out, lineterminator="\n")
        writer.writerow([self._x_label, self._y_label])
        for sample in self.snapshot():
            writer.writerow([repr(sample.t), repr(sample.v)])
        return out.getvalue()

    def from_csv(self, text: str) -> int:
        """
        Take labels from the first row and replay every following row through
        `add`. Returns the number of rows replayed.
        """
        rows = [
            (lineno, row)
            for lineno, row in enumerate(csv.reader(io.StringIO(text)), start=1)
            if row and any(cell.strip() for cell in row)
        ]
        if not rows:
            return 0

        lineno, header = rows[0]
        if len(header) != 2:
            raise ValueError(f"line {lineno}: expected 2 label columns, got {len(header)}")
        self.set_labels(header[0].strip(), header[1].strip())

        count = 0
        for lineno, row in rows[1:]:
            if len(row) != 2:
                raise ValueError(f"line {lineno}: expected 2 columns, got {len(row)}")
            try:
                t, v = float(row[0]), float(row[1])
            except ValueError as exc:
                raise ValueError(f"line {lineno}: {exc}") from exc
            self.add(Sample(t, v))
            count += 1
        logger.debug("Replayed %d rows into window %r", count, self.labels)
        return count

    def save(self, path: Union[str, Path]) -> None:
        Path(path).write_text(self.to_csv(), encoding="utf-8")

    def load(self, path: Union[str, Path]) -> int:
        return self.from_csv(Path(path).read_text(encoding="utf-8"))


__all__ = ["Window"]
