#!/usr/bin/env python3
"""
Inspect adjacency-list graphs and summarise coloring class sizes.
"""

from __future__ import annotations

import argparse
from collections import Counter
from pathlib import Path
from typing import Callable

import numpy as np
from jaxtyping import ArrayLike

from coloring import remap
from diagnostics import SummaryStats, emit_log
from graph import Graph, load_graph


def compute_graph_stats(graph: Graph) -> dict[str, object]:
    """
    Calculate descriptive statistics for a graph.
    """
    vertex_count = graph.vertex_count()
    degrees = graph.degrees()

    degree_histogram = Counter(int(d) for d in degrees.tolist())
    top_by_degree = sorted(
        [(vertex, int(degree)) for vertex, degree in enumerate(degrees.tolist())],
        key=lambda item: (-item[1], item[0]),
    )

    return {
        "vertex_count": vertex_count,
        "edge_count": graph.edge_count(),
        "degree_avg": float(degrees.mean()) if vertex_count else 0.0,
        "degree_min": int(degrees.min()) if vertex_count else 0,
        "degree_max": graph.max_degree(),
        "isolated_count": int(np.count_nonzero(degrees == 0)),
        "degree_histogram": degree_histogram,
        "top_by_degree": top_by_degree,
    }


def color_cardinalities(colors: ArrayLike, ncolors: int) -> dict[str, float]:
    """
    Summary statistics over the size of every non-empty color class.
    """
    ranks = remap(colors, ncolors)
    colors_arr = np.asarray(colors, dtype=np.int64)
    largest_rank: dict[int, int] = {}
    for color, rank in zip(colors_arr.tolist(), ranks.tolist()):
        largest_rank[color] = max(largest_rank.get(color, 0), rank)
    return SummaryStats.from_values(largest_rank.values()).to_dict()


def render_stats(
    stats: dict[str, object],
    *,
    top_k: int,
    log_fn: Callable[[str], None] | None = None,
) -> None:
    """
    Print formatted graph statistics.
    """
    emit_log("Graph Statistics", log_fn)
    emit_log("================", log_fn)
    emit_log(f"Vertices             : {stats['vertex_count']:,}", log_fn)
    emit_log(f"Edges                : {stats['edge_count']:,}", log_fn)
    emit_log(
        f"Degree (avg/min/max) : {stats['degree_avg']:.2f} / {stats['degree_min']} / {stats['degree_max']}",
        log_fn,
    )
    emit_log(f"Isolated vertices    : {stats['isolated_count']:,}", log_fn)
    emit_log(f"Safe color budget    : {stats['degree_max'] + 1} (max degree + 1)", log_fn)

    histogram: Counter[int] = stats["degree_histogram"]  # type: ignore[assignment]
    if histogram:
        emit_log("\nDegree histogram:", log_fn)
        for degree, count in sorted(histogram.items()):
            emit_log(f"  {degree:<8} {count:,}", log_fn)

    if top_k > 0:
        emit_log(f"\nTop {top_k} vertices by degree:", log_fn)
        for vertex, degree in stats["top_by_degree"][:top_k]:  # type: ignore[index]
            emit_log(f"  {vertex:<8} {degree:>8}", log_fn)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarise adjacency-list graph files.",
    )
    parser.add_argument(
        "graph",
        type=Path,
        nargs="+",
        help="Graph shard files in adjacency-list form (one source vertex and its destinations per line).",
    )
    parser.add_argument(
        "-t", "--top",
        type=int,
        default=10,
        help="Number of vertices to display in the top-degree listing.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    graph = load_graph(args.graph)
    render_stats(compute_graph_stats(graph), top_k=args.top)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
