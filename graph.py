"""
Utilities for parsing plain-text adjacency lists into a compact, immutable graph.

The text format is one line per source vertex::

    <source> <dest0> <dest1> ...

Every token is an unsigned 32-bit decimal integer. Edges are declared in one
direction but neighbor queries are undirected, and the vertex count is one more
than the largest id referenced anywhere in the input.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Callable, Iterable, Sequence

import numpy as np
from jaxtyping import ArrayLike

from diagnostics import emit_log
from errors import FormatError, OutOfRangeError

MAX_VERTEX_ID = 2**32 - 1


def _parse_vertex_id(token: str, source: str, lineno: int) -> int:
    if not (token.isascii() and token.isdigit()):
        raise FormatError(f"{source}:{lineno}: expected a non-negative integer vertex id, got {token!r}")
    value = int(token)
    if value > MAX_VERTEX_ID:
        raise FormatError(f"{source}:{lineno}: vertex id {value} does not fit in 32 bits")
    return value


def parse_adjacency_lines(
    lines: Iterable[str],
    *,
    source: str = "<lines>",
) -> tuple[np.ndarray, int]:
    """
    Parse adjacency-list lines into directed ``(source, dest)`` pairs.

    Parameters
    ----------
    lines:
        Text lines, each holding a source id followed by zero or more destination ids.
    source:
        Label used in error messages (typically the file name).

    Returns
    -------
    tuple
        ``(pairs, max_id)`` where ``pairs`` has shape ``(E, 2)`` and ``max_id`` is the largest
        id referenced on any line, or ``-1`` when ``lines`` is empty.
    """

    sources: list[int] = []
    targets: list[int] = []
    max_id = -1

    for lineno, line in enumerate(lines, start=1):
        tokens = line.split()
        if not tokens:
            raise FormatError(f"{source}:{lineno}: line has no vertex ids")

        ids = [_parse_vertex_id(token, source, lineno) for token in tokens]
        max_id = max(max_id, max(ids))
        head = ids[0]
        for dest in ids[1:]:
            sources.append(head)
            targets.append(dest)

    pairs = np.column_stack(
        (np.asarray(sources, dtype=np.int64), np.asarray(targets, dtype=np.int64))
    )
    return pairs, max_id


class Graph:
    """
    Compact undirected adjacency structure over the vertex range ``[0, n)``.

    ``neighbors[offsets[v]:offsets[v + 1]]`` holds the distinct neighbors of ``v`` in ascending
    order. Both directions of every edge are stored, self-loops are dropped, and the arrays are
    read-only, so one instance can be shared by any number of chains.
    """

    def __init__(self, offsets: ArrayLike, neighbors: ArrayLike) -> None:
        offsets_arr = np.array(offsets, dtype=np.int64)
        neighbors_arr = np.array(neighbors, dtype=np.int64)
        if offsets_arr.ndim != 1 or offsets_arr.shape[0] < 1:
            raise ValueError("offsets must be a one-dimensional array with at least one entry.")
        if offsets_arr[0] != 0 or offsets_arr[-1] != neighbors_arr.shape[0]:
            raise ValueError("offsets must start at 0 and end at len(neighbors).")
        if np.any(np.diff(offsets_arr) < 0):
            raise ValueError("offsets must be non-decreasing.")

        offsets_arr.setflags(write=False)
        neighbors_arr.setflags(write=False)
        self._offsets = offsets_arr
        self._neighbors = neighbors_arr
        self._degrees = np.diff(offsets_arr)
        self._degrees.setflags(write=False)

    @classmethod
    def from_edges(cls, n: int, pairs: ArrayLike) -> "Graph":
        """
        Build a graph on ``n`` vertices from directed ``(u, v)`` pairs, symmetrizing and deduplicating.
        """

        if n < 0:
            raise ValueError("n must be non-negative.")
        edges = np.asarray(pairs, dtype=np.int64).reshape(-1, 2)
        if edges.size and (edges.min() < 0 or edges.max() >= n):
            raise OutOfRangeError(f"edge endpoints must lie in [0, {n}).")

        edges = edges[edges[:, 0] != edges[:, 1]]
        both = np.concatenate([edges, edges[:, ::-1]], axis=0)
        both = both[np.lexsort((both[:, 1], both[:, 0]))]
        if both.shape[0] > 1:
            keep = np.ones(both.shape[0], dtype=bool)
            keep[1:] = np.any(both[1:] != both[:-1], axis=1)
            both = both[keep]

        counts = np.bincount(both[:, 0], minlength=n)
        offsets = np.zeros(n + 1, dtype=np.int64)
        np.cumsum(counts, out=offsets[1:])
        return cls(offsets, both[:, 1])

    @classmethod
    def build(cls, edge_lines: Iterable[str], *, source: str = "<lines>") -> "Graph":
        """
        Parse adjacency-list text and build the graph it describes.
        """

        pairs, max_id = parse_adjacency_lines(edge_lines, source=source)
        return cls.from_edges(max_id + 1, pairs)

    def _check_vertex(self, v: int) -> int:
        index = int(v)
        if index < 0 or index >= self.vertex_count():
            raise OutOfRangeError(f"vertex {index} outside [0, {self.vertex_count()}).")
        return index

    def neighbors(self, v: int) -> np.ndarray:
        """
        Distinct neighbors of ``v`` (ascending, never including ``v``).
        """

        index = self._check_vertex(v)
        return self._neighbors[self._offsets[index] : self._offsets[index + 1]]

    def degree(self, v: int) -> int:
        index = self._check_vertex(v)
        return int(self._degrees[index])

    def degrees(self) -> np.ndarray:
        return self._degrees

    def vertex_count(self) -> int:
        return int(self._offsets.shape[0] - 1)

    def edge_count(self) -> int:
        return int(self._neighbors.shape[0] // 2)

    def max_degree(self) -> int:
        if self._degrees.size == 0:
            return 0
        return int(self._degrees.max())

    def edges(self) -> np.ndarray:
        """
        Undirected edges as an ``(m, 2)`` array with ``u < v`` on each row.
        """

        heads = np.repeat(np.arange(self.vertex_count(), dtype=np.int64), self._degrees)
        mask = heads < self._neighbors
        return np.column_stack((heads[mask], self._neighbors[mask]))

    def __repr__(self) -> str:
        return f"Graph(nvertices={self.vertex_count()}, nedges={self.edge_count()})"


def _as_paths(paths: str | Path | Sequence[str | Path]) -> list[Path]:
    if isinstance(paths, (str, Path)):
        return [Path(paths)]
    return [Path(path) for path in paths]


def load_graph(
    paths: str | Path | Sequence[str | Path],
    *,
    log_fn: Callable[[str], None] | None = None,
) -> Graph:
    """
    Read one or more adjacency-list shards into a single graph.

    Shards are split externally; each is parsed independently and the union of their edges
    forms the graph. Line numbers in ``FormatError`` messages are per shard.
    """

    path_list = _as_paths(paths)
    start = time.perf_counter()

    all_pairs: list[np.ndarray] = []
    max_id = -1
    for path in path_list:
        if not path.exists():
            raise FileNotFoundError(f"Graph file not found: {path}")
        with path.open("r", encoding="utf-8") as handle:
            pairs, shard_max = parse_adjacency_lines(handle, source=str(path))
        all_pairs.append(pairs)
        max_id = max(max_id, shard_max)

    if all_pairs:
        pairs = np.concatenate(all_pairs, axis=0)
    else:
        pairs = np.zeros((0, 2), dtype=np.int64)
    graph = Graph.from_edges(max_id + 1, pairs)

    emit_log(
        json.dumps(
            {
                "load_graph_seconds": round(time.perf_counter() - start, 6),
                "nfiles": len(path_list),
            }
        ),
        log_fn,
    )
    return graph


def write_graph_shards(
    out: str | Path,
    adjacency: Sequence[Sequence[int]],
    *,
    lines_per_file: int = 10000,
) -> list[Path]:
    """
    Write ``adjacency[v]`` as line ``v`` across shard files ``<out>.0``, ``<out>.1``, ...

    Returns the list of shard paths written.
    """

    if lines_per_file < 1:
        raise ValueError("lines_per_file must be positive.")

    out_path = Path(out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    n = len(adjacency)
    nfiles = (n + lines_per_file - 1) // lines_per_file

    written: list[Path] = []
    for file_ix in range(nfiles):
        lo = file_ix * n // nfiles
        hi = min((file_ix + 1) * n // nfiles, n)
        shard = out_path.with_name(f"{out_path.name}.{file_ix}")
        with shard.open("w", encoding="utf-8") as handle:
            for v in range(lo, hi):
                handle.write(" ".join(str(int(x)) for x in (v, *adjacency[v])))
                handle.write("\n")
        written.append(shard)
    return written
