"""
Glauber dynamics over proper colorings of a fixed graph.

Each step picks a vertex uniformly at random and resamples its color uniformly from the
colors not used by any of its neighbors, so a chain that starts proper stays proper at
every step boundary. Randomness comes from a seedable ``jax.random`` key stream; a given
seed reproduces the same sequence of steps no matter how the run is split into bursts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, Iterator, Protocol

import jax
import jax.numpy as jnp
import numpy as np
from jaxtyping import ArrayLike

from coloring import Coloring, greedy_coloring
from diagnostics import DiagnosticsRecorder, Snapshot, emit_log
from errors import ParameterError
from graph import Graph

WORD_BITS = 32
DEFAULT_BLOCK_SIZE = 4096
MAX_SEED = 2**63 - 1


class RandomSource:
    """
    Uniform integer draws backed by a ``jax.random`` key.

    Words are generated in blocks of ``block_size`` 32-bit values with ``jax.random.bits`` and
    consumed one at a time, so the draw sequence depends only on the seed and the block size,
    never on how many draws each caller takes at once. ``randrange`` is
    exactly uniform (rejection sampling over whole words).
    """

    def __init__(
        self,
        seed: int = 0,
        *,
        block_size: int = DEFAULT_BLOCK_SIZE,
        key: jax.Array | None = None,
    ) -> None:
        if int(seed) < 0 or int(seed) > MAX_SEED:
            raise ParameterError(f"seed must lie in [0, {MAX_SEED}]; received {seed}")
        if int(block_size) < 1:
            raise ParameterError(f"block_size must be positive; received {block_size}")

        self.seed = int(seed)
        self.block_size = int(block_size)
        self._root_key = key if key is not None else jax.random.PRNGKey(self.seed)
        self._key = self._root_key
        self._words = np.zeros(0, dtype=np.uint32)
        self._position = 0

    def spawn(self, index: int) -> "RandomSource":
        """
        Independent stream derived from this source's root key and ``index``.
        """

        if int(index) < 0:
            raise ParameterError(f"stream index must be non-negative; received {index}")
        child_key = jax.random.fold_in(self._root_key, int(index))
        return RandomSource(self.seed, block_size=self.block_size, key=child_key)

    def _refill(self) -> None:
        self._key, subkey = jax.random.split(self._key)
        self._words = np.asarray(jax.random.bits(subkey, (self.block_size,), dtype=jnp.uint32))
        self._position = 0

    def next_word(self) -> int:
        if self._position >= self._words.shape[0]:
            self._refill()
        word = int(self._words[self._position])
        self._position += 1
        return word

    def randrange(self, upper: int) -> int:
        """
        Uniform integer in ``[0, upper)``.
        """

        upper = int(upper)
        if upper < 1:
            raise ParameterError(f"randrange needs a positive bound; received {upper}")
        if upper == 1:
            return 0

        nwords = ((upper - 1).bit_length() + WORD_BITS - 1) // WORD_BITS
        span = 1 << (WORD_BITS * nwords)
        limit = span - span % upper
        while True:
            value = 0
            for _ in range(nwords):
                value = (value << WORD_BITS) | self.next_word()
            if value < limit:
                return value % upper


class UniformSource(Protocol):
    def randrange(self, upper: int) -> int: ...


def available_colors(graph: Graph, colors: ArrayLike, vertex: int, ncolors: int) -> np.ndarray:
    """
    Colors in ``[0, ncolors)`` not used by any neighbor of ``vertex``, ascending.
    """

    forbidden = np.asarray(colors)[graph.neighbors(vertex)]
    allowed = np.ones(ncolors, dtype=bool)
    allowed[forbidden[(forbidden >= 0) & (forbidden < ncolors)]] = False
    return np.flatnonzero(allowed)


class GlauberChain:
    """
    A single Glauber chain: one graph, one exclusively owned coloring, one random stream.

    Construct chains with ``new_chain``, which validates the seed coloring; the constructor
    itself trusts its arguments.
    """

    def __init__(self, graph: Graph, coloring: Coloring, rng: UniformSource) -> None:
        self.graph = graph
        self.coloring = coloring
        self.rng = rng
        self.steps = 0
        self.pinned_steps = 0
        self._colors = coloring.colors

    @property
    def ncolors(self) -> int:
        return self.coloring.ncolors

    def step(self) -> None:
        """
        Resample the color of one uniformly chosen vertex.

        When the vertex has no legal color the step leaves it unchanged.
        """

        vertex = self.rng.randrange(self.graph.vertex_count())
        available = available_colors(self.graph, self._colors, vertex, self.ncolors)
        if available.shape[0] <= 1:
            self.pinned_steps += 1
        if available.shape[0] > 0:
            chosen = int(available[self.rng.randrange(available.shape[0])])
            self.coloring._assign(vertex, chosen)
        self.steps += 1

    def __repr__(self) -> str:
        return (
            f"GlauberChain(nvertices={self.graph.vertex_count()}, ncolors={self.ncolors}, "
            f"steps={self.steps})"
        )


def new_chain(
    graph: Graph,
    k: int,
    initial_coloring: Coloring | ArrayLike | None = None,
    *,
    seed: int = 0,
    rng: UniformSource | None = None,
    log_fn: Callable[[str], None] | None = None,
) -> GlauberChain:
    """
    Create a chain over ``graph`` with ``k`` colors.

    Parameters
    ----------
    graph:
        Immutable graph; may be shared with other chains.
    k:
        Number of colors, at least 1.
    initial_coloring:
        Proper seed coloring with colors in ``[0, k)``. It is copied, never repaired; an improper
        seed raises ``InvalidInitialStateError``. When omitted the greedy coloring is used.
    seed:
        Seed for the chain's ``RandomSource`` when ``rng`` is not given.
    rng:
        Explicit random source, e.g. ``RandomSource(seed).spawn(i)``.
    """

    if int(k) < 1:
        raise ParameterError(f"k must be at least 1; received {k}")
    if graph.vertex_count() == 0:
        raise ParameterError("cannot run a chain on a graph with no vertices.")

    if initial_coloring is None:
        used, colors = greedy_coloring(graph, log_fn=log_fn)
        if used > int(k):
            raise ParameterError(f"greedy coloring needs {used} colors; budget is {k}")
        coloring = Coloring(colors, int(k))
    else:
        if isinstance(initial_coloring, Coloring):
            initial_coloring = initial_coloring.colors
        coloring = Coloring(initial_coloring, int(k))
        coloring.validate(graph)

    return GlauberChain(graph, coloring, rng if rng is not None else RandomSource(seed))


def step(chain: GlauberChain) -> None:
    chain.step()


def current_coloring(chain: GlauberChain) -> np.ndarray:
    """
    Read-only view of the chain's coloring; it tracks later steps.
    """

    return chain.coloring.colors


def iter_checkpoints(
    chain: GlauberChain,
    n_steps: int,
    frequency: int,
    *,
    recorder: DiagnosticsRecorder | None = None,
) -> Iterator[Snapshot]:
    """
    Advance ``chain`` by ``n_steps`` steps, yielding a snapshot before the first step and after
    every ``frequency`` steps.

    The final burst may be shorter than ``frequency``; a checkpoint always follows it. The
    generator is single-use, and abandoning it leaves the chain at the last checkpoint.
    """

    if int(n_steps) < 0:
        raise ParameterError(f"n_steps must be non-negative; received {n_steps}")
    if int(frequency) < 1:
        raise ParameterError(f"frequency must be at least 1; received {frequency}")
    if recorder is None:
        recorder = DiagnosticsRecorder(frequency)
    elif recorder.frequency != int(frequency):
        raise ParameterError(
            f"recorder frequency {recorder.frequency} does not match run frequency {frequency}"
        )

    def snapshot_fn() -> np.ndarray:
        return chain.coloring.colors

    yield recorder.on_step(chain.steps, snapshot_fn)

    done = 0
    while done < int(n_steps):
        burst = min(int(frequency), int(n_steps) - done)
        recorder.resume()
        try:
            for _ in range(burst):
                chain.step()
        finally:
            recorder.pause()
        done += burst
        yield recorder.on_step(chain.steps, snapshot_fn)


def run(
    chain: GlauberChain,
    n_steps: int,
    frequency: int,
    sink: Callable[[Snapshot], None] | None = None,
    *,
    recorder: DiagnosticsRecorder | None = None,
) -> Coloring:
    """
    Run ``n_steps`` steps, handing each checkpoint snapshot to ``sink``.
    """

    for snapshot in iter_checkpoints(chain, n_steps, frequency, recorder=recorder):
        if sink is not None:
            sink(snapshot)
    return chain.coloring


def spawn_chains(
    graph: Graph,
    k: int,
    initial_coloring: Coloring | ArrayLike | None = None,
    *,
    seed: int = 0,
    count: int = 1,
    log_fn: Callable[[str], None] | None = None,
) -> list[GlauberChain]:
    """
    Independent chains from one shared start, each with its own buffer and random stream.
    """

    if int(count) < 1:
        raise ParameterError(f"count must be at least 1; received {count}")
    if initial_coloring is None:
        initial_coloring = new_chain(graph, k, log_fn=log_fn).coloring

    base = RandomSource(seed)
    return [new_chain(graph, k, initial_coloring, rng=base.spawn(index)) for index in range(int(count))]


@dataclass(frozen=True)
class ChainConfig:
    """
    Parameters of one sampling run. ``ncolors=None`` selects ``2 * max_degree + 1``.
    """

    nsamples: int
    frequency: int
    seed: int = 0
    ncolors: int | None = None
    capture_colors: bool = True

    def resolve_ncolors(self, graph: Graph) -> int:
        if self.ncolors is not None:
            return int(self.ncolors)
        return 2 * graph.max_degree() + 1


def sample_coloring(
    graph: Graph,
    config: ChainConfig,
    *,
    sink: Callable[[Snapshot], None] | None = None,
    log_fn: Callable[[str], None] | None = None,
) -> Coloring:
    """
    Seed a chain with the greedy coloring, run it, and log a JSON summary of the run.
    """

    ncolors = config.resolve_ncolors(graph)
    greedy_ncolors, greedy_colors = greedy_coloring(graph, log_fn=log_fn)
    if greedy_ncolors > ncolors:
        raise ParameterError(f"greedy coloring needs {greedy_ncolors} colors; budget is {ncolors}")

    chain = new_chain(graph, ncolors, greedy_colors, seed=config.seed)
    recorder = DiagnosticsRecorder(config.frequency, capture_colors=config.capture_colors)
    coloring = run(chain, config.nsamples, config.frequency, sink, recorder=recorder)

    emit_log(
        json.dumps(
            {
                "greedy_ncolors": greedy_ncolors,
                "glauber_ncolors": ncolors,
                "nsamples": config.nsamples,
                "pinned_steps": chain.pinned_steps,
                "pinned_percent": 100.0 * chain.pinned_steps / config.nsamples if config.nsamples else 0.0,
                "steps": recorder.steps_history,
                "times": recorder.times_history,
            }
        ),
        log_fn,
    )
    return coloring
