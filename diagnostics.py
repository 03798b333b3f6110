"""
Checkpoint recording for Glauber runs, plain-text checkpoint sinks, and console logging helpers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

import numpy as np
from jaxtyping import ArrayLike

from errors import FormatError, ParameterError

WARNING_PREFIX = "!!! WARNING"

STAT_PERCENTILES: tuple[float, ...] = (0.0, 0.001, 0.01, 0.05, 0.10, 0.50, 0.90, 0.95, 0.99, 0.99, 1.0)


def emit_log(message: str, log_fn: Callable[[str], None] | None) -> None:
    """
    Dispatch a status message to the provided logger or stdout.
    """

    if log_fn is not None:
        log_fn(message)
    else:
        print(message)


def emit_warning(message: str, log_fn: Callable[[str], None] | None) -> None:
    """
    Emit a warning-prefixed log message for higher visibility.
    """

    emit_log(f"{WARNING_PREFIX}: {message}", log_fn)


@dataclass(frozen=True)
class Snapshot:
    """
    Chain state captured at a checkpoint.

    ``step`` counts chain steps since the chain was created, ``elapsed_seconds`` counts time
    spent sampling (checkpoint I/O excluded), and ``colors`` is a read-only copy of the
    coloring or ``None`` when colors were not captured.
    """

    step: int
    elapsed_seconds: float
    colors: np.ndarray | None = None


class DiagnosticsRecorder:
    """
    Capture ``(step, elapsed time, coloring copy)`` records at a fixed step cadence.

    The driver brackets each sampling burst with ``resume()`` / ``pause()`` so that only
    sampling time accumulates, then calls ``on_step`` at every checkpoint.
    """

    def __init__(
        self,
        frequency: int,
        *,
        capture_colors: bool = True,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        if int(frequency) < 1:
            raise ParameterError(f"frequency must be at least 1; received {frequency}")
        self.frequency = int(frequency)
        self.capture_colors = capture_colors
        self._clock = clock
        self._elapsed_seconds = 0.0
        self._started_at: float | None = None
        self.steps_history: list[int] = []
        self.times_history: list[float] = []

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return self._elapsed_seconds
        return self._elapsed_seconds + (self._clock() - self._started_at)

    def resume(self) -> None:
        if self._started_at is not None:
            raise RuntimeError("recorder clock is already running.")
        self._started_at = self._clock()

    def pause(self) -> None:
        if self._started_at is None:
            raise RuntimeError("recorder clock is not running.")
        self._elapsed_seconds += self._clock() - self._started_at
        self._started_at = None

    def on_step(
        self,
        step_index: int,
        coloring_snapshot_fn: Callable[[], ArrayLike] | None = None,
    ) -> Snapshot:
        """
        Record a checkpoint. ``coloring_snapshot_fn`` is only called when colors are captured.
        """

        colors: np.ndarray | None = None
        if self.capture_colors and coloring_snapshot_fn is not None:
            colors = np.array(coloring_snapshot_fn(), dtype=np.int64, copy=True)
            colors.setflags(write=False)

        snapshot = Snapshot(step=int(step_index), elapsed_seconds=self.elapsed_seconds, colors=colors)
        self.steps_history.append(snapshot.step)
        self.times_history.append(snapshot.elapsed_seconds)
        return snapshot


class SnapshotWriter:
    """
    Sink that writes checkpoints as two plain-text series.

    The colors file gets one row per checkpoint, the step count followed by every vertex
    color (``"100 3 2 1 3 4"``); the times file gets the matching elapsed seconds, one per line.
    """

    def __init__(self, colors_path: str | Path, times_path: str | Path) -> None:
        self.colors_path = Path(colors_path)
        self.times_path = Path(times_path)
        self.colors_path.parent.mkdir(parents=True, exist_ok=True)
        self.times_path.parent.mkdir(parents=True, exist_ok=True)
        self._colors_file = self.colors_path.open("w", encoding="utf-8")
        self._times_file = self.times_path.open("w", encoding="utf-8")
        self.count = 0

    def __call__(self, snapshot: Snapshot) -> None:
        row = [str(snapshot.step)]
        if snapshot.colors is not None:
            row.extend(str(int(color)) for color in snapshot.colors)
        self._colors_file.write(" ".join(row))
        self._colors_file.write("\n")
        self._times_file.write(f"{snapshot.elapsed_seconds!r}\n")
        self.count += 1

    def close(self) -> None:
        self._colors_file.close()
        self._times_file.close()

    def __enter__(self) -> "SnapshotWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _parse_colors_row(line: str, source: Path, lineno: int) -> tuple[int, np.ndarray]:
    tokens = line.split()
    if not tokens:
        raise FormatError(f"{source}:{lineno}: empty checkpoint row")
    for token in tokens:
        if not (token.isascii() and token.isdigit()):
            raise FormatError(f"{source}:{lineno}: expected non-negative integers, got {token!r}")
    values = [int(token) for token in tokens]
    colors = np.asarray(values[1:], dtype=np.int64)
    colors.setflags(write=False)
    return values[0], colors


def read_snapshots(
    colors_path: str | Path,
    times_path: str | Path | None = None,
) -> Iterator[Snapshot]:
    """
    Lazily read checkpoints written by ``SnapshotWriter``.

    Without ``times_path`` every snapshot reports ``elapsed_seconds = 0.0``.
    """

    colors_file = Path(colors_path)
    if not colors_file.exists():
        raise FileNotFoundError(f"Checkpoint file not found: {colors_file}")
    times_file = Path(times_path) if times_path is not None else None
    if times_file is not None and not times_file.exists():
        raise FileNotFoundError(f"Checkpoint times file not found: {times_file}")

    with colors_file.open("r", encoding="utf-8") as colors_handle:
        times_handle = times_file.open("r", encoding="utf-8") if times_file is not None else None
        try:
            for lineno, line in enumerate(colors_handle, start=1):
                step, colors = _parse_colors_row(line, colors_file, lineno)
                elapsed = 0.0
                if times_handle is not None:
                    time_line = times_handle.readline()
                    if not time_line:
                        raise FormatError(f"{times_file}: fewer rows than {colors_file}")
                    try:
                        elapsed = float(time_line)
                    except ValueError as exc:
                        raise FormatError(f"{times_file}:{lineno}: expected seconds, got {time_line.strip()!r}") from exc
                yield Snapshot(step=step, elapsed_seconds=elapsed, colors=colors)
        finally:
            if times_handle is not None:
                times_handle.close()


@dataclass(frozen=True)
class SummaryStats:
    """
    Mean plus a fixed percentile grid over a set of values.
    """

    mean: float
    percentiles: tuple[float, ...]

    @classmethod
    def from_values(cls, values: Iterable[float]) -> "SummaryStats":
        ordered = np.sort(np.asarray(list(values), dtype=np.float64))
        if ordered.size == 0:
            raise ParameterError("summary statistics need at least one value.")
        if not np.all(np.isfinite(ordered)):
            raise ParameterError("summary statistics need finite values.")
        last = ordered.size - 1
        percentiles = tuple(float(ordered[int(last * fraction)]) for fraction in STAT_PERCENTILES)
        return cls(mean=float(ordered.mean()), percentiles=percentiles)

    def to_dict(self) -> dict[str, float]:
        stats = {f"p{fraction:.3f}": value for fraction, value in zip(STAT_PERCENTILES, self.percentiles)}
        stats["mean"] = self.mean
        return stats
