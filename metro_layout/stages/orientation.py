"""Edge orientation: force near-axis tracks onto the axis with minimal displacement.

Pre-selection walks stations by descending degree (ties by ID) and lets each
station claim at most one track per axis, the one closest to that axis. A
station never hosts two aligned tracks on the same axis. The claimed tracks
become gated constraints of a displacement-minimizing QP.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..geometry import ANGLE_THRESHOLD_DEG, HORIZONTAL, VERTICAL, offset_to_axis
from ..graph import MetroGraph, StationId, Track, TrackId
from ..solver import SolverOptions
from .base import INTERNAL_ERROR, SUCCESS, displacement_model, finish

logger = logging.getLogger(__name__)


@dataclass
class OrientationOptions:
    angle_threshold_deg: float = ANGLE_THRESHOLD_DEG
    tolerance: float = 0.0
    big_m: Optional[float] = None


def processing_order(graph: MetroGraph) -> List[StationId]:
    return sorted(graph.station_ids(), key=lambda sid: (-graph.degree(sid), sid))


def _set_flag(track: Track, axis: str) -> None:
    if axis == HORIZONTAL:
        track.oriented_h = True
    else:
        track.oriented_v = True


def _flag(track: Track, axis: str) -> bool:
    return track.oriented_h if axis == HORIZONTAL else track.oriented_v


def select_axis(graph: MetroGraph, axis: str, threshold_deg: float) -> List[TrackId]:
    """Claim aligned tracks for one axis; returns the IDs marked, in claim order."""

    threshold = math.radians(threshold_deg)
    other_axis = VERTICAL if axis == HORIZONTAL else HORIZONTAL
    host: Dict[StationId, TrackId] = {}
    marked: List[TrackId] = []

    for sid in processing_order(graph):
        best: Optional[Tuple[float, Track]] = None
        for track in graph.incident_tracks(sid):
            if _flag(track, axis) or _flag(track, other_axis):
                continue
            offset = offset_to_axis(track.angle, axis)
            if offset > threshold:
                continue
            other = track.other(sid).id
            if host.get(other, track.id) != track.id or host.get(sid, track.id) != track.id:
                logger.debug(
                    "Track %d skipped for %s: an endpoint already hosts an aligned track",
                    track.id,
                    axis,
                )
                continue
            if best is None or offset < best[0]:
                best = (offset, track)
        if best is None:
            continue
        offset, track = best
        _set_flag(track, axis)
        host[track.source.id] = track.id
        host[track.target.id] = track.id
        marked.append(track.id)
        logger.debug(
            "Station %d claims track %d for %s (offset %.3f deg)", sid, track.id, axis, math.degrees(offset)
        )
    return marked


def preselect(graph: MetroGraph, options: Optional[OrientationOptions] = None) -> Tuple[List[TrackId], List[TrackId]]:
    """Reset and recompute orientation flags; returns ``(horizontal_ids, vertical_ids)``."""

    options = options or OrientationOptions()
    for track in graph.tracks():
        track.oriented_h = False
        track.oriented_v = False
    vertical = select_axis(graph, VERTICAL, options.angle_threshold_deg)
    horizontal = select_axis(graph, HORIZONTAL, options.angle_threshold_deg)
    logger.info(
        "Orientation pre-selection: %d horizontal, %d vertical track(s)", len(horizontal), len(vertical)
    )
    return sorted(horizontal), sorted(vertical)


def orient_edges(
    graph: MetroGraph,
    options: Optional[OrientationOptions] = None,
    solver_options: Optional[SolverOptions] = None,
) -> int:
    """Run pre-selection and the orientation QP; returns ``0`` or a negative code."""

    options = options or OrientationOptions()
    if not graph.num_stations:
        return SUCCESS
    preselect(graph, options)

    conflicting = [t.id for t in graph.tracks() if t.oriented_h and t.oriented_v]
    if conflicting:
        logger.error("Tracks flagged for both axes: %s", conflicting)
        return INTERNAL_ERROR

    built = displacement_model(graph, "edge-orientation", solver_options)
    min_x, max_x, min_y, max_y = built.bounds
    big_m = options.big_m if options.big_m is not None else max(max_x - min_x, max_y - min_y) + 1.0
    eps = options.tolerance

    for track in graph.tracks():
        i, j = track.source.id, track.target.id
        slack_v = eps + big_m * (1 - int(track.oriented_v))
        slack_h = eps + big_m * (1 - int(track.oriented_h))
        built.model.add_linear_constraint(
            {built.xs[i]: 1.0, built.xs[j]: -1.0}, -slack_v, slack_v, name=f"enforce_v_{track.id}"
        )
        built.model.add_linear_constraint(
            {built.ys[i]: 1.0, built.ys[j]: -1.0}, -slack_h, slack_h, name=f"enforce_h_{track.id}"
        )

    status = built.model.solve()
    code = finish(built.model, status, "edge-orientation")
    if code != SUCCESS:
        return code
    built.apply(graph)
    logger.info("Edge orientation done: displacement objective %.6g", built.model.objective_value)
    return SUCCESS


__all__ = ["OrientationOptions", "orient_edges", "preselect", "processing_order", "select_axis"]
