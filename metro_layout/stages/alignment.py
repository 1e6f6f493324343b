"""Vertex alignment: discover guide lines by 1-D k-means and snap stations onto them."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from itertools import groupby
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..geometry import HORIZONTAL, VERTICAL
from ..graph import MetroGraph, StationId
from ..overlap import OverlapChecker
from ..solver import SolverOptions
from .base import SUCCESS, displacement_model, finish

logger = logging.getLogger(__name__)


@dataclass
class AlignmentOptions:
    alignment_tolerance: float = 20.0
    min_cluster_size: int = 3
    max_iterations: int = 50
    convergence: float = 1e-6
    cluster_penalty: float = 50.0


@dataclass
class AlignmentCandidate:
    station_id: StationId
    axis: str
    line_index: int
    line_position: float
    distance: float


def _initial_centroids(values: np.ndarray, k: int) -> np.ndarray:
    n = values.size
    if k == 1:
        return np.array([values[n // 2]], dtype=float)
    return np.array([values[i * (n - 1) // (k - 1)] for i in range(k)], dtype=float)


def _nearest(values: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    # argmin keeps the first centroid on ties.
    return np.argmin(np.abs(values[:, None] - centroids[None, :]), axis=1)


def kmeans_1d(
    values: Sequence[float], k: int, max_iterations: int = 50, convergence: float = 1e-6
) -> Tuple[np.ndarray, float]:
    """Lloyd's algorithm on sorted unique ``values``; returns ``(centroids, wcss)``.

    Empty clusters keep their previous centroid.
    """

    data = np.asarray(values, dtype=float)
    centroids = _initial_centroids(data, k)
    for _ in range(max_iterations):
        labels = _nearest(data, centroids)
        converged = True
        for i in range(k):
            members = data[labels == i]
            if members.size == 0:
                continue
            updated = float(members.mean())
            if abs(updated - centroids[i]) > convergence:
                converged = False
            centroids[i] = updated
        if converged:
            break
    distances = np.min(np.abs(data[:, None] - centroids[None, :]), axis=1)
    return centroids, float(np.sum(distances**2))


def cluster_coordinates(values: Iterable[float], options: Optional[AlignmentOptions] = None) -> List[float]:
    """Sorted guide-line positions for one axis, or ``[]`` when too few distinct values."""

    options = options or AlignmentOptions()
    data = np.unique(np.asarray(list(values), dtype=float))
    n = int(data.size)
    if n < options.min_cluster_size:
        return []

    k_max = min(n // options.min_cluster_size, int(math.ceil(math.sqrt(n))) + 2)
    best_score = math.inf
    best: Optional[np.ndarray] = None
    for k in range(1, k_max + 1):
        centroids, wcss = kmeans_1d(data, k, options.max_iterations, options.convergence)
        score = wcss + options.cluster_penalty * k
        logger.debug("k-means k=%d wcss=%.6g score=%.6g", k, wcss, score)
        if score < best_score:
            best_score = score
            best = centroids
    if best is None:
        return []
    return sorted(float(c) for c in best)


def _closest_line(value: float, lines: Sequence[float], tolerance: float) -> Optional[Tuple[int, float]]:
    found: Optional[Tuple[int, float]] = None
    for index, position in enumerate(lines):
        dist = abs(value - position)
        if dist <= tolerance and (found is None or dist < found[1]):
            found = (index, dist)
    return found


def select_candidates(
    graph: MetroGraph,
    h_lines: Sequence[float],
    v_lines: Sequence[float],
    tolerance: float = 20.0,
) -> List[AlignmentCandidate]:
    candidates: List[AlignmentCandidate] = []
    for station in graph.stations():
        hit = _closest_line(station.y, h_lines, tolerance)
        if hit is not None:
            candidates.append(AlignmentCandidate(station.id, HORIZONTAL, hit[0], h_lines[hit[0]], hit[1]))
        hit = _closest_line(station.x, v_lines, tolerance)
        if hit is not None:
            candidates.append(AlignmentCandidate(station.id, VERTICAL, hit[0], v_lines[hit[0]], hit[1]))
    return candidates


def _group_key(candidate: AlignmentCandidate) -> Tuple[int, float]:
    return (0 if candidate.axis == HORIZONTAL else 1, candidate.line_position)


def filter_candidates(
    graph: MetroGraph, candidates: Sequence[AlignmentCandidate], checker: OverlapChecker
) -> List[AlignmentCandidate]:
    """Greedily commit overlap-free snaps, nearest first within each line group."""

    accepted: List[AlignmentCandidate] = []
    ordered = sorted(candidates, key=_group_key)
    for _, group in groupby(ordered, key=_group_key):
        for candidate in sorted(group, key=lambda c: (c.distance, c.station_id)):
            station = graph.station(candidate.station_id)
            if candidate.axis == HORIZONTAL:
                target = (station.x, candidate.line_position)
            else:
                target = (candidate.line_position, station.y)
            conflict = checker.find(candidate.station_id, target)
            if conflict is not None:
                logger.debug("Dropping %s snap of station %d: %s", candidate.axis, candidate.station_id, conflict)
                continue
            graph.move_station(candidate.station_id, *target)
            checker.invalidate()
            accepted.append(candidate)
    return accepted


def align_vertices(
    graph: MetroGraph,
    options: Optional[AlignmentOptions] = None,
    solver_options: Optional[SolverOptions] = None,
    checker: Optional[OverlapChecker] = None,
) -> int:
    """Snap stations onto discovered guide lines; returns ``0`` or a negative code."""

    options = options or AlignmentOptions()
    if graph.num_stations < options.min_cluster_size:
        return SUCCESS

    stations = graph.stations()
    h_lines = cluster_coordinates((s.y for s in stations), options)
    v_lines = cluster_coordinates((s.x for s in stations), options)
    logger.info("Detected %d horizontal and %d vertical guide line(s)", len(h_lines), len(v_lines))
    if not h_lines and not v_lines:
        return SUCCESS

    candidates = select_candidates(graph, h_lines, v_lines, options.alignment_tolerance)
    checker = checker or OverlapChecker(graph)
    accepted = filter_candidates(graph, candidates, checker)
    logger.info("Accepted %d of %d alignment candidate(s)", len(accepted), len(candidates))
    if not accepted:
        return SUCCESS

    built = displacement_model(graph, "vertex-alignment", solver_options)
    for candidate in accepted:
        if candidate.axis == HORIZONTAL:
            var = built.ys[candidate.station_id]
        else:
            var = built.xs[candidate.station_id]
        built.model.add_equality_constraint(
            {var: 1.0}, candidate.line_position, name=f"force_{candidate.axis}_{candidate.station_id}"
        )

    status = built.model.solve()
    code = finish(built.model, status, "vertex-alignment")
    if code != SUCCESS:
        return code
    built.apply(graph)
    return SUCCESS


__all__ = [
    "AlignmentCandidate",
    "AlignmentOptions",
    "align_vertices",
    "cluster_coordinates",
    "filter_candidates",
    "kmeans_1d",
    "select_candidates",
]
