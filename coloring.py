"""
Coloring state owned by a Glauber chain, plus properness checks and the greedy seed coloring.
"""

from __future__ import annotations

import json
import time
from typing import Callable

import numpy as np
from jaxtyping import ArrayLike

from diagnostics import emit_log
from errors import InvalidInitialStateError, ParameterError
from graph import Graph


def _as_color_array(colors: ArrayLike) -> np.ndarray:
    raw = np.asarray(colors)
    if raw.ndim != 1:
        raise InvalidInitialStateError(f"colors must be one-dimensional; received shape {raw.shape}")
    if raw.size and not np.issubdtype(raw.dtype, np.integer):
        raise InvalidInitialStateError(f"colors must be integers; received dtype {raw.dtype}")
    return np.array(raw, dtype=np.int64, copy=True)


def monochromatic_edges(graph: Graph, colors: ArrayLike) -> np.ndarray:
    """
    Edges ``(u, v)`` with ``u < v`` whose endpoints share a color.
    """

    colors_arr = np.asarray(colors)
    edges = graph.edges()
    if edges.shape[0] == 0:
        return edges
    mask = colors_arr[edges[:, 0]] == colors_arr[edges[:, 1]]
    return edges[mask]


def conflict_count(graph: Graph, colors: ArrayLike) -> int:
    """
    Count how many edges are monochromatic under ``colors``.
    """

    return int(monochromatic_edges(graph, colors).shape[0])


def is_proper(graph: Graph, colors: ArrayLike) -> bool:
    colors_arr = np.asarray(colors)
    if colors_arr.shape != (graph.vertex_count(),):
        return False
    return conflict_count(graph, colors_arr) == 0


class Coloring:
    """
    Exclusively owned buffer mapping each vertex to a color index in ``[0, ncolors)``.

    Readers get a read-only view through ``colors``; only the chain that owns the instance
    writes to it, one vertex at a time, through ``_assign``.
    """

    def __init__(self, colors: ArrayLike, ncolors: int) -> None:
        if int(ncolors) < 1:
            raise ParameterError(f"ncolors must be at least 1; received {ncolors}")
        self._buffer = _as_color_array(colors)
        self.ncolors = int(ncolors)

    @property
    def colors(self) -> np.ndarray:
        view = self._buffer.view()
        view.setflags(write=False)
        return view

    def copy(self) -> "Coloring":
        return Coloring(self._buffer, self.ncolors)

    def __len__(self) -> int:
        return int(self._buffer.shape[0])

    def __getitem__(self, vertex: int) -> int:
        return int(self._buffer[vertex])

    def __repr__(self) -> str:
        return f"Coloring(nvertices={len(self)}, ncolors={self.ncolors})"

    def validate(self, graph: Graph) -> None:
        """
        Raise ``InvalidInitialStateError`` unless this is a proper coloring of ``graph``.
        """

        n = graph.vertex_count()
        if len(self) != n:
            raise InvalidInitialStateError(f"coloring has {len(self)} entries; graph has {n} vertices")
        if n and (self._buffer.min() < 0 or self._buffer.max() >= self.ncolors):
            bad = int(np.flatnonzero((self._buffer < 0) | (self._buffer >= self.ncolors))[0])
            raise InvalidInitialStateError(
                f"vertex {bad} has color {self._buffer[bad]} outside [0, {self.ncolors})"
            )
        conflicts = monochromatic_edges(graph, self._buffer)
        if conflicts.shape[0]:
            u, v = (int(x) for x in conflicts[0])
            raise InvalidInitialStateError(
                f"coloring is improper: {conflicts.shape[0]} monochromatic edges, first ({u}, {v}) "
                f"with color {self._buffer[u]}"
            )

    def is_proper(self, graph: Graph) -> bool:
        return is_proper(graph, self._buffer)

    def _assign(self, vertex: int, color: int) -> None:
        self._buffer[vertex] = color


def greedy_coloring(
    graph: Graph,
    *,
    log_fn: Callable[[str], None] | None = None,
) -> tuple[int, np.ndarray]:
    """
    Color vertices greedily in descending-degree order with the smallest free color.

    Ties in degree are visited from the highest vertex id down. The result is proper and
    uses at most ``max_degree + 1`` colors.

    Returns
    -------
    tuple
        ``(ncolors_used, colors)``.
    """

    n = graph.vertex_count()

    sort_start = time.perf_counter()
    order = np.argsort(graph.degrees(), kind="stable")[::-1]
    sort_seconds = time.perf_counter() - sort_start

    greedy_start = time.perf_counter()
    colors = np.full(n, -1, dtype=np.int64)
    ncolors = 0
    for vertex in order.tolist():
        neighbor_colors = colors[graph.neighbors(vertex)]
        neighbor_colors = neighbor_colors[neighbor_colors >= 0]
        # a vertex with d colored neighbors always finds a free color in [0, d]
        taken = np.zeros(neighbor_colors.shape[0] + 1, dtype=bool)
        taken[neighbor_colors[neighbor_colors < taken.shape[0]]] = True
        chosen = int(np.argmin(taken))
        colors[vertex] = chosen
        ncolors = max(ncolors, chosen + 1)
    greedy_seconds = time.perf_counter() - greedy_start

    emit_log(
        json.dumps(
            {
                "vertex_sort_seconds": round(sort_seconds, 6),
                "greedy_color_seconds": round(greedy_seconds, 6),
                "greedy_ncolors": ncolors,
            }
        ),
        log_fn,
    )
    return ncolors, colors


def remap(colors: ArrayLike, ncolors: int) -> np.ndarray:
    """
    Rank of each vertex among the vertices sharing its color, 1-based, in vertex order.

    The lowest-numbered vertex of every color gets 1, the next one 2, and so on.
    """

    colors_arr = np.asarray(colors, dtype=np.int64)
    if colors_arr.size and (colors_arr.min() < 0 or colors_arr.max() >= ncolors):
        raise ParameterError(f"colors must lie in [0, {ncolors}).")

    order = np.argsort(colors_arr, kind="stable")
    sorted_colors = colors_arr[order]
    group_start = np.searchsorted(sorted_colors, sorted_colors, side="left")
    ranks = np.empty_like(colors_arr)
    ranks[order] = np.arange(colors_arr.shape[0], dtype=np.int64) - group_start + 1
    return ranks
