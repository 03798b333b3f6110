#!/usr/bin/env python3
"""
Sample a near-uniform proper coloring of an adjacency-list graph with Glauber dynamics.

The colorings captured every ``--frequency`` steps are written to ``--out`` as rows of
integers whose first entry is the step count::

    0 0 1 2 3 4
    100 3 2 1 3 4
    200 3 2 2 2 4

and ``--out-times`` receives the elapsed sampling seconds for each row, one per line.
"""

from __future__ import annotations

import argparse
import json
import time
from pathlib import Path

from coloring import is_proper
from diagnostics import SnapshotWriter, emit_log, emit_warning
from glauber import ChainConfig, sample_coloring
from graph import load_graph
from graph_stats import color_cardinalities, compute_graph_stats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sample a uniform graph coloring.",
    )
    parser.add_argument(
        "--graph",
        type=Path,
        action="append",
        required=True,
        help="Graph file in deduplicated adjacency-list form; repeat the flag for sharded inputs.",
    )
    parser.add_argument(
        "--nsamples",
        type=int,
        required=True,
        help="Total number of Glauber steps to run.",
    )
    parser.add_argument(
        "--frequency",
        type=int,
        required=True,
        help="Number of steps between coloring checkpoints.",
    )
    parser.add_argument(
        "--out",
        type=Path,
        required=True,
        help="Output file for the captured colorings (step count followed by one color per vertex).",
    )
    parser.add_argument(
        "--out-times",
        type=Path,
        required=True,
        help="Output file for the elapsed sampling seconds at each checkpoint.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed controlling vertex and color selection; set for reproducible runs.",
    )
    parser.add_argument(
        "--ncolors",
        type=int,
        default=None,
        help="Number of colors; defaults to 2 * max_degree + 1.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    graph = load_graph(args.graph)
    stats = compute_graph_stats(graph)
    emit_log(
        json.dumps(
            {
                "nvertices": stats["vertex_count"],
                "nedges": stats["edge_count"],
                "max_degree": stats["degree_max"],
            }
        ),
        None,
    )

    config = ChainConfig(
        nsamples=args.nsamples,
        frequency=args.frequency,
        seed=args.seed,
        ncolors=args.ncolors,
    )
    ncolors = config.resolve_ncolors(graph)
    if ncolors <= graph.max_degree():
        emit_warning(
            f"{ncolors} colors do not exceed the max degree {graph.max_degree()}; some vertices may never recolor.",
            None,
        )

    colors_start = time.perf_counter()
    with SnapshotWriter(args.out, args.out_times) as writer:
        coloring = sample_coloring(graph, config, sink=writer)

    emit_log(
        json.dumps(
            {
                "ncolors": ncolors,
                "color_cardinalities": color_cardinalities(coloring.colors, ncolors),
                "colors_seconds": round(time.perf_counter() - colors_start, 6),
            }
        ),
        None,
    )

    if not is_proper(graph, coloring.colors):
        emit_warning("final coloring is not proper.", None)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
