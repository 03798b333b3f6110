#!/usr/bin/env python3
"""
Compare two checkpoint files produced from the same starting coloring.

Each row pair is reduced to the permutation-invariant distance between the two colorings,
which tracks how far two chains have drifted apart as they mix.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from diagnostics import emit_log, read_snapshots
from evaluator import distance_trace


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Report the relabeling distance between two Glauber checkpoint files, step by step.",
    )
    parser.add_argument("left", type=Path, help="First checkpoint file (rows of: step color color ...).")
    parser.add_argument("right", type=Path, help="Second checkpoint file with the same checkpoint steps.")
    parser.add_argument(
        "--ncolors",
        type=int,
        default=None,
        help="Palette size; defaults to one more than the largest color seen at each checkpoint.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    left = list(read_snapshots(args.left))
    right = list(read_snapshots(args.right))
    trace = distance_trace(left, right, args.ncolors)

    for (step, dist), snapshot in zip(trace, left):
        nvertices = 0 if snapshot.colors is None else int(snapshot.colors.shape[0])
        emit_log(
            json.dumps(
                {
                    "step": step,
                    "distance": dist,
                    "normalized_distance": dist / nvertices if nvertices else 0.0,
                }
            ),
            None,
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
