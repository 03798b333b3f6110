"""
Permutation-invariant distance between two colorings of the same graph.

The distance is the number of vertices whose color differs after the best global relabeling
of the second coloring's palette. With ``overlap[i, j]`` counting vertices colored ``i`` in
``a`` and ``j`` in ``b`` and ``n_i`` the size of color class ``i`` in ``a``, the cost matrix
``cost[i, j] = n_i - overlap[i, j]`` is ``k x k`` no matter how many vertices there are, and
its minimum assignment is exactly that count.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np
from jaxtyping import ArrayLike

from assignment import solve
from diagnostics import Snapshot
from errors import DimensionError, ParameterError


def _prepare(a: ArrayLike, b: ArrayLike, k: int | None) -> tuple[np.ndarray, np.ndarray, int]:
    a_arr = np.asarray(a)
    b_arr = np.asarray(b)
    if a_arr.ndim != 1 or b_arr.ndim != 1:
        raise DimensionError("colorings must be one-dimensional.")
    if a_arr.shape[0] != b_arr.shape[0]:
        raise DimensionError(f"colorings cover {a_arr.shape[0]} and {b_arr.shape[0]} vertices")
    for arr in (a_arr, b_arr):
        if arr.size and not np.issubdtype(arr.dtype, np.integer):
            raise ParameterError(f"colorings must hold integers; received dtype {arr.dtype}")
    a_arr = a_arr.astype(np.int64, copy=False)
    b_arr = b_arr.astype(np.int64, copy=False)

    if k is None:
        largest = max(int(a_arr.max(initial=-1)), int(b_arr.max(initial=-1)))
        k = max(largest + 1, 1)
    k = int(k)
    if k < 1:
        raise ParameterError(f"k must be at least 1; received {k}")
    for name, arr in (("a", a_arr), ("b", b_arr)):
        if arr.size and (arr.min() < 0 or arr.max() >= k):
            raise ParameterError(f"coloring {name} uses colors outside [0, {k})")
    return a_arr, b_arr, k


def overlap_matrix(a: ArrayLike, b: ArrayLike, k: int | None = None) -> np.ndarray:
    """
    ``overlap[i, j]`` = number of vertices colored ``i`` in ``a`` and ``j`` in ``b``.
    """

    a_arr, b_arr, k = _prepare(a, b, k)
    counts = np.bincount(a_arr * k + b_arr, minlength=k * k)
    return counts.reshape(k, k)


def cost_matrix(a: ArrayLike, b: ArrayLike, k: int | None = None) -> np.ndarray:
    overlap = overlap_matrix(a, b, k)
    class_sizes = overlap.sum(axis=1)
    return class_sizes[:, None] - overlap


def best_relabeling(a: ArrayLike, b: ArrayLike, k: int | None = None) -> np.ndarray:
    """
    ``relabel[i]`` is the color of ``b`` matched to color ``i`` of ``a`` under the optimum.
    """

    permutation, _ = solve(cost_matrix(a, b, k))
    return permutation


def distance(a: ArrayLike, b: ArrayLike, k: int | None = None) -> int:
    """
    Minimum number of vertices that must change color once ``b``'s palette is optimally permuted.

    ``k`` defaults to one more than the largest color in either coloring; colors missing from
    one side simply form empty classes.
    """

    _, total = solve(cost_matrix(a, b, k))
    return int(total)


def normalized_distance(a: ArrayLike, b: ArrayLike, k: int | None = None) -> float:
    """
    ``distance`` divided by the vertex count, in ``[0, 1]``.
    """

    dist = distance(a, b, k)
    n = np.asarray(a).shape[0]
    return dist / n if n else 0.0


def distance_trace(
    series_a: Iterable[Snapshot],
    series_b: Iterable[Snapshot],
    k: int | None = None,
) -> list[tuple[int, int]]:
    """
    Pair two checkpoint series step by step and measure the distance at each checkpoint.

    Both series must checkpoint at the same steps and carry colors.
    """

    trace: list[tuple[int, int]] = []
    left = list(series_a)
    right = list(series_b)
    if len(left) != len(right):
        raise DimensionError(f"checkpoint series have {len(left)} and {len(right)} entries")
    for snap_a, snap_b in zip(left, right):
        if snap_a.step != snap_b.step:
            raise DimensionError(f"checkpoint steps differ: {snap_a.step} vs {snap_b.step}")
        if snap_a.colors is None or snap_b.colors is None:
            raise ParameterError(f"checkpoint at step {snap_a.step} carries no colors")
        trace.append((snap_a.step, distance(snap_a.colors, snap_b.colors, k)))
    return trace
