#!/usr/bin/env python3
"""
Sample a connected simple graph and write it as adjacency-list shards.

The graph starts from the path ``0 - 1 - ... - (n-1)`` so that it is connected, then adds
``n * degree`` further distinct edges drawn uniformly without replacement from the remaining
vertex pairs. Pairs are identified with the triangular index ``j * (j - 1) / 2 + i`` for
``i < j`` so that sampling never materialises all ``n choose 2`` candidates.
"""

from __future__ import annotations

import argparse
import json
import math
import time
from pathlib import Path

from diagnostics import emit_log
from errors import ParameterError
from glauber import RandomSource
from graph import write_graph_shards


def pair_count(n: int) -> int:
    return n * (n - 1) // 2


def edge_index(i: int, j: int) -> int:
    """
    Triangular index of the pair ``{i, j}``.
    """
    if i == j:
        raise ValueError("an edge needs two distinct endpoints.")
    low, high = (i, j) if i < j else (j, i)
    return pair_count(high) + low


def edge_pair(index: int) -> tuple[int, int]:
    """
    Inverse of ``edge_index``: the pair ``(i, j)`` with ``i < j``.
    """
    high = (1 + math.isqrt(1 + 8 * index)) // 2
    while pair_count(high) > index:
        high -= 1
    while pair_count(high + 1) <= index:
        high += 1
    return index - pair_count(high), high


def sample_without_replacement(
    rng: RandomSource,
    universe: int,
    exclude: set[int],
    count: int,
) -> set[int]:
    """
    Draw ``count`` distinct integers from ``[0, universe)`` minus ``exclude`` (Floyd's algorithm).
    """
    available = universe - sum(1 for item in exclude if 0 <= item < universe)
    if count > available:
        raise ParameterError(
            f"cannot draw {count} distinct items; only {available} remain outside the excluded set"
        )

    start = universe
    for _ in range(count):
        start -= 1
        while start in exclude:
            start -= 1

    chosen: set[int] = set()
    for upper in range(start, universe):
        if upper in exclude:
            continue
        pick = rng.randrange(upper + 1)
        while pick in exclude:
            pick = rng.randrange(upper + 1)
        chosen.add(upper if pick in chosen else pick)
    return chosen


def sample_connected_graph(
    nvertices: int,
    degree: int,
    *,
    seed: int = 0,
) -> list[list[int]]:
    """
    Out-neighbor lists (each edge listed once, from its lower endpoint) of a connected graph.
    """
    if nvertices < 1:
        raise ParameterError(f"nvertices must be positive; received {nvertices}")
    if degree < 0:
        raise ParameterError(f"degree must be non-negative; received {degree}")

    backbone = {edge_index(v - 1, v) for v in range(1, nvertices)}
    extra = sample_without_replacement(
        RandomSource(seed),
        pair_count(nvertices),
        backbone,
        nvertices * degree,
    )

    adjacency: list[list[int]] = [[] for _ in range(nvertices)]
    for index in sorted(backbone | extra):
        low, high = edge_pair(index)
        adjacency[low].append(high)
    return adjacency


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sample a connected graph and write it as adjacency-list shards.",
    )
    parser.add_argument(
        "--out",
        type=Path,
        required=True,
        help="Output path prefix; shards are written to <out>.0, <out>.1, ...",
    )
    parser.add_argument(
        "--degree",
        type=int,
        required=True,
        help="Average degree less two; the backbone path adds roughly two more.",
    )
    parser.add_argument(
        "--nvertices",
        type=int,
        required=True,
        help="Number of vertices.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random sampling seed.",
    )
    parser.add_argument(
        "--lines-per-file",
        type=int,
        default=10000,
        help="Maximum number of adjacency lines per shard.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    sample_start = time.perf_counter()
    adjacency = sample_connected_graph(args.nvertices, args.degree, seed=args.seed)
    emit_log(
        json.dumps(
            {
                "nvertices": args.nvertices,
                "nedges": sum(len(row) for row in adjacency),
                "sample_seconds": round(time.perf_counter() - sample_start, 6),
            }
        ),
        None,
    )

    write_start = time.perf_counter()
    shards = write_graph_shards(args.out, adjacency, lines_per_file=args.lines_per_file)
    emit_log(
        json.dumps(
            {
                "nfiles": len(shards),
                "write_seconds": round(time.perf_counter() - write_start, 6),
            }
        ),
        None,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
