"""
Tests for the permutation-invariant coloring distance.
"""

from __future__ import annotations

import numpy as np
import pytest

from diagnostics import Snapshot
from errors import DimensionError, ParameterError
from evaluator import (
    best_relabeling,
    cost_matrix,
    distance,
    distance_trace,
    normalized_distance,
    overlap_matrix,
)

A = [0, 0, 0, 0, 1, 2]


def test_distance_to_itself_is_zero() -> None:
    assert distance(A, A, 4) == 0

    rng = np.random.default_rng(3)
    colors = rng.integers(0, 5, size=40)
    assert distance(colors, colors, 5) == 0


def test_globally_relabeled_coloring_is_at_distance_zero() -> None:
    assert distance(A, [1, 1, 1, 1, 2, 0], 4) == 0


def test_single_forced_mismatch_costs_one() -> None:
    assert distance(A, [3, 0, 0, 0, 2, 1], 4) == 1


def test_unmatchable_colorings_are_positive() -> None:
    assert distance([0, 0, 1, 1], [0, 1, 0, 1], 2) == 2
    assert distance([0, 1, 2], [0, 0, 0], 3) == 2


def test_relabeling_recovers_the_palette_permutation() -> None:
    assert best_relabeling(A, [1, 1, 1, 1, 2, 0], 4).tolist() == [1, 2, 0, 3]


def test_permutation_invariance_and_symmetry() -> None:
    rng = np.random.default_rng(11)
    k = 5
    for _ in range(20):
        a = rng.integers(0, k, size=30)
        b = rng.integers(0, k, size=30)
        sigma = rng.permutation(k)

        base = distance(a, b, k)
        assert distance(a, sigma[b], k) == base
        assert distance(sigma[a], b, k) == base
        assert distance(b, a, k) == base
        assert 0 <= base <= 30


def test_cost_matrix_from_overlap() -> None:
    a = [0, 0, 1]
    b = [1, 1, 0]

    assert overlap_matrix(a, b, 2).tolist() == [[0, 2], [1, 0]]
    assert cost_matrix(a, b, 2).tolist() == [[2, 0], [0, 1]]


def test_palette_is_padded_when_k_is_inferred() -> None:
    assert distance([0, 0, 1], [5, 5, 1]) == 0
    assert overlap_matrix([0, 0, 1], [5, 5, 1]).shape == (6, 6)


def test_normalized_distance() -> None:
    assert normalized_distance(A, [3, 0, 0, 0, 2, 1], 4) == pytest.approx(1 / 6)
    assert normalized_distance([], [], 3) == 0.0


def test_empty_colorings_are_at_distance_zero() -> None:
    assert distance([], []) == 0


def test_length_mismatch_is_a_dimension_error() -> None:
    with pytest.raises(DimensionError):
        distance([0, 1], [0, 1, 2], 3)


def test_colors_outside_palette_are_rejected() -> None:
    with pytest.raises(ParameterError):
        distance([0, 4], [0, 1], 4)
    with pytest.raises(ParameterError):
        distance([0, -1], [0, 1], 4)
    with pytest.raises(ParameterError):
        distance([0, 1], [0, 1], 0)


def test_distance_trace_pairs_checkpoints() -> None:
    left = [
        Snapshot(step=0, elapsed_seconds=0.0, colors=np.array(A)),
        Snapshot(step=10, elapsed_seconds=0.1, colors=np.array(A)),
    ]
    right = [
        Snapshot(step=0, elapsed_seconds=0.0, colors=np.array(A)),
        Snapshot(step=10, elapsed_seconds=0.2, colors=np.array([3, 0, 0, 0, 2, 1])),
    ]

    assert distance_trace(left, right, 4) == [(0, 0), (10, 1)]


def test_distance_trace_requires_aligned_steps() -> None:
    left = [Snapshot(step=0, elapsed_seconds=0.0, colors=np.array(A))]
    right = [Snapshot(step=5, elapsed_seconds=0.0, colors=np.array(A))]

    with pytest.raises(DimensionError):
        distance_trace(left, right, 4)
    with pytest.raises(DimensionError):
        distance_trace(left, left + left, 4)
    with pytest.raises(ParameterError):
        distance_trace([Snapshot(step=0, elapsed_seconds=0.0)], [Snapshot(step=0, elapsed_seconds=0.0)], 4)
