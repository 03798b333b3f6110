"""
Tests for the coloring buffer, properness checks, and the greedy seed coloring.
"""

from __future__ import annotations

import json

import numpy as np
import pytest

from coloring import Coloring, conflict_count, greedy_coloring, is_proper, remap
from errors import InvalidInitialStateError, ParameterError
from graph import Graph


def _complete_graph(n: int) -> Graph:
    return Graph.build([" ".join(str(v) for v in range(u, n)) for u in range(n)])


def test_colors_view_is_read_only_and_tracks_buffer() -> None:
    coloring = Coloring([0, 1, 2], 3)
    view = coloring.colors

    with pytest.raises(ValueError):
        view[0] = 2

    coloring._assign(0, 2)
    assert view.tolist() == [2, 1, 2]


def test_coloring_copies_its_input() -> None:
    source = np.array([0, 1, 0])
    coloring = Coloring(source, 2)
    source[0] = 1

    assert coloring[0] == 0
    duplicate = coloring.copy()
    duplicate._assign(0, 1)
    assert coloring[0] == 0
    assert duplicate.ncolors == 2


def test_validate_accepts_proper_coloring() -> None:
    graph = Graph.build(["3 4 5", "5 4"])
    Coloring([0, 0, 0, 0, 1, 2], 4).validate(graph)


@pytest.mark.parametrize(
    "colors",
    [
        [0, 0, 0, 0, 1],
        [0, 0, 0, 0, 1, 4],
        [0, 0, 0, 0, 1, -1],
        [0, 0, 0, 1, 1, 2],
    ],
)
def test_validate_rejects_bad_seed(colors: list[int]) -> None:
    graph = Graph.build(["3 4 5", "5 4"])
    with pytest.raises(InvalidInitialStateError):
        Coloring(colors, 4).validate(graph)


def test_non_integer_colors_are_rejected() -> None:
    with pytest.raises(InvalidInitialStateError):
        Coloring([0.0, 1.5], 3)


def test_zero_colors_is_a_parameter_error() -> None:
    with pytest.raises(ParameterError):
        Coloring([0], 0)


def test_conflict_count_and_is_proper() -> None:
    graph = Graph.build(["0 1 2", "1 2"])

    assert conflict_count(graph, [0, 1, 2]) == 0
    assert is_proper(graph, [0, 1, 2])
    assert conflict_count(graph, [0, 0, 0]) == 3
    assert not is_proper(graph, [0, 0, 1])
    assert not is_proper(graph, [0, 1])


def test_greedy_on_star_uses_two_colors() -> None:
    graph = Graph.build(["0 1 2 3 4"])
    messages: list[str] = []

    ncolors, colors = greedy_coloring(graph, log_fn=messages.append)

    assert ncolors == 2
    assert colors[0] == 0
    assert colors[1:].tolist() == [1, 1, 1, 1]
    assert json.loads(messages[-1])["greedy_ncolors"] == 2


def test_greedy_on_complete_graph_uses_every_color() -> None:
    graph = _complete_graph(5)
    ncolors, colors = greedy_coloring(graph, log_fn=lambda message: None)

    assert ncolors == 5
    assert sorted(colors.tolist()) == [0, 1, 2, 3, 4]


def test_greedy_stays_within_max_degree_plus_one() -> None:
    rng = np.random.default_rng(7)
    lines = []
    for u in range(60):
        partners = rng.choice(60, size=4, replace=False)
        lines.append(" ".join(str(v) for v in (u, *partners.tolist())))
    graph = Graph.build(lines)

    ncolors, colors = greedy_coloring(graph, log_fn=lambda message: None)

    assert ncolors <= graph.max_degree() + 1
    assert is_proper(graph, colors)
    assert colors.min() >= 0


def test_remap_ranks_vertices_within_color_class() -> None:
    assert remap([1, 0, 1, 1, 0], 2).tolist() == [1, 1, 2, 3, 2]


def test_remap_rejects_colors_outside_palette() -> None:
    with pytest.raises(ParameterError):
        remap([0, 3], 2)
