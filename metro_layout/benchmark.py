"""Timing comparison of the naive and spatial-hash overlap predicates."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from .geometry import Point
from .graph import MetroGraph, StationId
from .overlap import overlaps_accelerated, overlaps_naive
from .spatial_hash import SpatialHash, default_cell_size

logger = logging.getLogger(__name__)


class BenchmarkMismatch(AssertionError):
    """The overlap paths disagreed on the number of conflicting probes."""


@dataclass
class BenchmarkTiming:
    label: str
    seconds: float
    overlaps: int
    probes: int = 0

    @property
    def per_query_us(self) -> float:
        return 1e6 * self.seconds / max(self.probes, 1)


@dataclass
class BenchmarkReport:
    station_id: StationId
    probes: int
    cell_size: float
    timings: List[BenchmarkTiming]

    def format(self) -> str:
        lines = [
            f"Overlap benchmark: station {self.station_id}, {self.probes} probe(s), "
            f"cell size {self.cell_size:.3f}"
        ]
        for timing in self.timings:
            lines.append(
                f"  {timing.label:<24} {timing.seconds * 1e3:10.3f} ms "
                f"({timing.per_query_us:8.2f} us/query, overlaps={timing.overlaps})"
            )
        return "\n".join(lines)


def busiest_station(graph: MetroGraph) -> StationId:
    return max(graph.station_ids(), key=lambda sid: (graph.degree(sid), -sid))


def random_probes(graph: MetroGraph, count: int, seed: Optional[int] = None) -> List[Point]:
    rng = np.random.default_rng(seed)
    min_x, max_x, min_y, max_y = graph.coordinate_range()
    xs = rng.uniform(min_x, max_x, size=count)
    ys = rng.uniform(min_y, max_y, size=count)
    return [(float(x), float(y)) for x, y in zip(xs, ys)]


def _time(label: str, probes: List[Point], check: Callable[[Point], bool]) -> BenchmarkTiming:
    start = time.perf_counter()
    hits = sum(1 for p in probes if check(p))
    elapsed = time.perf_counter() - start
    logger.info("%s: %.6fs, %d overlap(s)", label, elapsed, hits)
    return BenchmarkTiming(label, elapsed, hits, len(probes))


def run_benchmark(
    graph: MetroGraph,
    probes: int = 1000,
    *,
    seed: Optional[int] = None,
    cell_size: Optional[float] = None,
) -> BenchmarkReport:
    """Probe random positions for the highest-degree station three ways.

    Raises :class:`BenchmarkMismatch` when the overlap counts differ.
    """

    if not graph.num_stations:
        raise ValueError("cannot benchmark an empty graph")
    sid = busiest_station(graph)
    size = cell_size or default_cell_size(graph)
    points = random_probes(graph, probes, seed)
    logger.info("Benchmarking %d probe(s) for station %d with cell size %.3f", probes, sid, size)

    shared = SpatialHash.from_graph(graph, size)
    timings = [
        _time("naive", points, lambda p: overlaps_naive(sid, p, graph)),
        _time("accelerated (fresh hash)", points, lambda p: overlaps_accelerated(sid, p, graph)),
        _time("accelerated (reused hash)", points, lambda p: overlaps_accelerated(sid, p, graph, shared)),
    ]

    counts = {timing.overlaps for timing in timings}
    if len(counts) != 1:
        raise BenchmarkMismatch(
            "overlap counts differ: "
            + ", ".join(f"{timing.label}={timing.overlaps}" for timing in timings)
        )
    return BenchmarkReport(sid, probes, size, timings)


__all__ = ["BenchmarkMismatch", "BenchmarkReport", "BenchmarkTiming", "run_benchmark"]
