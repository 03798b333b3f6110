"""
Exact minimum-cost assignment (Hungarian method with potentials).

``solve`` finds a permutation ``pi`` of ``range(k)`` minimizing ``sum(cost[i, pi[i]])`` in
``O(k^3)`` time. Rows are inserted one at a time in increasing index order, and each insertion
grows a shortest augmenting path over reduced costs ``cost[i, j] - u[i] - v[j]``. When several
columns share the minimal slack, the lowest column index is taken, which makes the returned
permutation a deterministic function of the matrix.
"""

from __future__ import annotations

import numpy as np
from jaxtyping import ArrayLike

from errors import DimensionError, ParameterError


def _validate_cost(cost: ArrayLike) -> np.ndarray:
    matrix = np.asarray(cost)
    if matrix.ndim != 2:
        raise DimensionError(f"cost matrix must be two-dimensional; received shape {matrix.shape}")
    rows, cols = matrix.shape
    if rows != cols:
        raise DimensionError(f"cost matrix must be square; received shape {matrix.shape}")
    if rows == 0:
        raise DimensionError("cost matrix must have at least one row.")
    if not (np.issubdtype(matrix.dtype, np.integer) or np.issubdtype(matrix.dtype, np.floating)):
        raise ParameterError(f"cost matrix must be numeric; received dtype {matrix.dtype}")
    if not np.all(np.isfinite(matrix)):
        raise ParameterError("cost matrix entries must be finite.")
    return matrix


def assignment_cost(cost: ArrayLike, permutation: ArrayLike) -> int | float:
    """
    Total cost ``sum(cost[i, permutation[i]])``, as ``int`` for integer matrices.
    """

    matrix = np.asarray(cost)
    perm = np.asarray(permutation, dtype=np.int64)
    total = matrix[np.arange(perm.shape[0]), perm].sum()
    if np.issubdtype(matrix.dtype, np.integer):
        return int(total)
    return float(total)


def solve(cost: ArrayLike) -> tuple[np.ndarray, int | float]:
    """
    Minimum-cost perfect matching of rows to columns.

    Returns
    -------
    tuple
        ``(permutation, total_cost)`` with ``permutation[i]`` the column matched to row ``i``.
    """

    matrix = _validate_cost(cost)
    work = matrix.astype(np.float64)
    k = work.shape[0]

    # Index 0 is a sentinel column/row; real rows and columns are 1-based below.
    u = np.zeros(k + 1, dtype=np.float64)
    v = np.zeros(k + 1, dtype=np.float64)
    row_for_col = np.zeros(k + 1, dtype=np.int64)
    way = np.zeros(k + 1, dtype=np.int64)
    columns = np.arange(1, k + 1, dtype=np.int64)

    for row in range(1, k + 1):
        row_for_col[0] = row
        col0 = 0
        min_slack = np.full(k + 1, np.inf, dtype=np.float64)
        used = np.zeros(k + 1, dtype=bool)

        while True:
            used[col0] = True
            row0 = row_for_col[col0]
            free = columns[~used[1:]]

            reduced = work[row0 - 1, free - 1] - u[row0] - v[free]
            improved = reduced < min_slack[free]
            min_slack[free[improved]] = reduced[improved]
            way[free[improved]] = col0

            col1 = int(free[np.argmin(min_slack[free])])
            delta = min_slack[col1]

            u[row_for_col[used]] += delta
            v[used] -= delta
            min_slack[free] -= delta

            col0 = col1
            if row_for_col[col0] == 0:
                break

        while col0 != 0:
            col1 = way[col0]
            row_for_col[col0] = row_for_col[col1]
            col0 = col1

    permutation = np.empty(k, dtype=np.int64)
    permutation[row_for_col[1:] - 1] = columns - 1
    return permutation, assignment_cost(matrix, permutation)
