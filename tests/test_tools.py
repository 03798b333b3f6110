"""
End-to-end tests for the command-line entry points and the graph sampler.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

pytest.importorskip("jax")

import graph_stats
import solver
from coloring import is_proper
from diagnostics import read_snapshots
from errors import ParameterError
from graph import Graph, load_graph
from tools import mixing_distance, sample_graph


def _write_lines(path: Path, lines: list[str]) -> Path:
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_edge_index_round_trips_through_edge_pair() -> None:
    for high in range(1, 40):
        for low in range(high):
            index = sample_graph.edge_index(low, high)
            assert sample_graph.edge_index(high, low) == index
            assert sample_graph.edge_pair(index) == (low, high)

    assert sample_graph.edge_index(0, 1) == 0
    assert sample_graph.edge_index(1, 2) == 2


def test_sampled_graph_is_connected_with_expected_edge_count() -> None:
    nvertices, degree = 30, 2

    adjacency = sample_graph.sample_connected_graph(nvertices, degree, seed=6)
    graph = Graph.from_edges(
        nvertices,
        [(u, v) for u, row in enumerate(adjacency) for v in row],
    )

    assert graph.edge_count() == nvertices - 1 + nvertices * degree
    for v in range(1, nvertices):
        assert v in graph.neighbors(v - 1).tolist()
    for u, row in enumerate(adjacency):
        assert all(v > u for v in row)


def test_sampling_is_reproducible_per_seed() -> None:
    first = sample_graph.sample_connected_graph(20, 1, seed=3)
    second = sample_graph.sample_connected_graph(20, 1, seed=3)

    assert first == second


def test_sampling_rejects_impossible_density() -> None:
    with pytest.raises(ParameterError):
        sample_graph.sample_connected_graph(4, 2)
    with pytest.raises(ParameterError):
        sample_graph.sample_connected_graph(0, 1)


def test_sample_graph_cli_writes_loadable_shards(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    out = tmp_path / "g.txt"

    code = sample_graph.main(
        ["--out", str(out), "--degree", "1", "--nvertices", "25", "--lines-per-file", "10"]
    )

    assert code == 0
    shards = sorted(tmp_path.glob("g.txt.*"))
    assert len(shards) == 3
    graph = load_graph(shards, log_fn=lambda message: None)
    assert graph.vertex_count() == 25
    assert graph.edge_count() == 24 + 25
    assert json.loads(capsys.readouterr().out.splitlines()[0])["nvertices"] == 25


def test_solver_cli_writes_proper_checkpoints(tmp_path: Path) -> None:
    graph_path = _write_lines(tmp_path / "graph.txt", ["0 1 2", "1 3", "2 3 4", "3 5", "4 5"])
    out = tmp_path / "colors.txt"
    out_times = tmp_path / "times.txt"

    code = solver.main(
        [
            "--graph", str(graph_path),
            "--nsamples", "50",
            "--frequency", "10",
            "--out", str(out),
            "--out-times", str(out_times),
            "--seed", "9",
        ]
    )

    assert code == 0
    graph = load_graph(graph_path, log_fn=lambda message: None)
    snapshots = list(read_snapshots(out, out_times))
    assert [snapshot.step for snapshot in snapshots] == [0, 10, 20, 30, 40, 50]
    for snapshot in snapshots:
        assert snapshot.colors.shape == (6,)
        assert is_proper(graph, snapshot.colors)
        assert snapshot.colors.max() < 2 * graph.max_degree() + 1


def test_solver_cli_warns_on_tight_palette(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    graph_path = _write_lines(tmp_path / "graph.txt", ["0 1 2 3"])

    code = solver.main(
        [
            "--graph", str(graph_path),
            "--nsamples", "5",
            "--frequency", "5",
            "--out", str(tmp_path / "colors.txt"),
            "--out-times", str(tmp_path / "times.txt"),
            "--ncolors", "3",
        ]
    )

    assert code == 0
    assert "!!! WARNING" in capsys.readouterr().out


def test_mixing_distance_cli_reports_each_checkpoint(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    left = _write_lines(tmp_path / "left.txt", ["0 0 0 0 0 1 2", "10 0 0 0 0 1 2"])
    right = _write_lines(tmp_path / "right.txt", ["0 1 1 1 1 2 0", "10 3 0 0 0 2 1"])

    code = mixing_distance.main([str(left), str(right), "--ncolors", "4"])

    assert code == 0
    records = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [(record["step"], record["distance"]) for record in records] == [(0, 0), (10, 1)]
    assert records[1]["normalized_distance"] == pytest.approx(1 / 6)


def test_graph_stats_summary() -> None:
    graph = Graph.build(["0 1 2 3", "4"])

    stats = graph_stats.compute_graph_stats(graph)

    assert stats["vertex_count"] == 5
    assert stats["edge_count"] == 3
    assert stats["degree_max"] == 3
    assert stats["isolated_count"] == 1
    assert stats["top_by_degree"][0] == (0, 3)


def test_color_cardinalities_summarise_class_sizes() -> None:
    table = graph_stats.color_cardinalities([0, 0, 1], 2)

    assert table["mean"] == pytest.approx(1.5)
    assert table["p0.000"] == 1.0
    assert table["p1.000"] == 2.0


def test_graph_stats_cli(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    graph_path = _write_lines(tmp_path / "graph.txt", ["0 1 2", "1 2"])

    assert graph_stats.main([str(graph_path), "--top", "2"]) == 0
    assert "Vertices             : 3" in capsys.readouterr().out
