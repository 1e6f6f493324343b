"""Overlap predicate for tentative single-station moves.

``overlaps(station_id, new_pos, graph)`` answers whether moving one station to
``new_pos`` would create a vertex-vertex coincidence, a vertex lying inside an
edge, or two collinear edges sharing an open interval. The graph is never
mutated: the moved station's tracks are checked through shadow copies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set

from .geometry import EPSILON, Point, point_in_segment_interior, points_coincide, segments_overlap
from .graph import MetroGraph, Station, StationId, Track, TrackId
from .spatial_hash import SpatialHash, default_cell_size

logger = logging.getLogger(__name__)

VV = "VV"
VE_MOVED_VERTEX = "VE(a)"
VE_MOVED_EDGE = "VE(b)"
EE_FOREIGN = "EE(a)"
EE_INCIDENT = "EE(b)"


@dataclass(frozen=True)
class ShadowTrack:
    """Value copy of a track with the moved station's endpoint replaced."""

    id: TrackId
    source: Point
    target: Point


@dataclass(frozen=True)
class OverlapConflict:
    kind: str
    station_id: StationId
    detail: str

    def __str__(self) -> str:
        return f"{self.kind} for station {self.station_id}: {self.detail}"


def shadow_tracks(graph: MetroGraph, station_id: StationId, new_pos: Point) -> List[ShadowTrack]:
    shadows: List[ShadowTrack] = []
    for track in graph.incident_tracks(station_id):
        source = new_pos if track.source.id == station_id else track.source.coord
        target = new_pos if track.target.id == station_id else track.target.coord
        shadows.append(ShadowTrack(track.id, source, target))
    return shadows


class _MoveContext:
    def __init__(self, graph: MetroGraph, station_id: StationId, new_pos: Point, eps: float):
        self.graph = graph
        self.station_id = station_id
        self.new_pos = (float(new_pos[0]), float(new_pos[1]))
        self.eps = eps
        self.incident_ids: Set[TrackId] = {t.id for t in graph.incident_tracks(station_id)}
        self.neighbor_ids: Set[StationId] = set(graph.neighbors(station_id))
        self.shadows = shadow_tracks(graph, station_id, self.new_pos)

    def conflict(self, kind: str, detail: str) -> OverlapConflict:
        found = OverlapConflict(kind, self.station_id, detail)
        logger.debug("Overlap detected: %s", found)
        return found

    def check_vv(self, stations: Iterable[Station]) -> Optional[OverlapConflict]:
        for other in stations:
            if other.id != self.station_id and points_coincide(self.new_pos, other.coord, self.eps):
                return self.conflict(VV, f"coincides with station {other.id}")
        return None

    def check_ve_moved_vertex(self, tracks: Iterable[Track]) -> Optional[OverlapConflict]:
        for track in tracks:
            if track.id in self.incident_ids:
                continue
            if point_in_segment_interior(self.new_pos, track.source.coord, track.target.coord, self.eps):
                return self.conflict(VE_MOVED_VERTEX, f"lies inside track {track.id}")
        return None

    def check_ve_moved_edge(
        self, shadow: ShadowTrack, stations: Iterable[Station]
    ) -> Optional[OverlapConflict]:
        for other in stations:
            if other.id == self.station_id or other.id in self.neighbor_ids:
                continue
            if point_in_segment_interior(other.coord, shadow.source, shadow.target, self.eps):
                return self.conflict(
                    VE_MOVED_EDGE, f"station {other.id} lies inside moved track {shadow.id}"
                )
        return None

    def check_ee_foreign(
        self, shadow: ShadowTrack, tracks: Iterable[Track]
    ) -> Optional[OverlapConflict]:
        for track in tracks:
            if track.id in self.incident_ids:
                continue
            if segments_overlap(
                track.source.coord, track.target.coord, shadow.source, shadow.target, self.eps
            ):
                return self.conflict(EE_FOREIGN, f"moved track {shadow.id} overlaps track {track.id}")
        return None

    def check_ee_incident(self) -> Optional[OverlapConflict]:
        for first in self.shadows:
            for second in self.shadows:
                if first.id == second.id:
                    continue
                if segments_overlap(first.source, first.target, second.source, second.target, self.eps):
                    return self.conflict(
                        EE_INCIDENT, f"moved tracks {first.id} and {second.id} overlap"
                    )
        return None


def find_overlap_naive(
    station_id: StationId, new_pos: Point, graph: MetroGraph, eps: float = EPSILON
) -> Optional[OverlapConflict]:
    """Full scan over every station and track; O(|V| + |E|) per shadow track."""

    ctx = _MoveContext(graph, station_id, new_pos, eps)
    stations = graph.stations()
    tracks = graph.tracks()

    found = ctx.check_vv(stations) or ctx.check_ve_moved_vertex(tracks)
    if found:
        return found
    for shadow in ctx.shadows:
        found = ctx.check_ve_moved_edge(shadow, stations)
        if found:
            return found
    for shadow in ctx.shadows:
        found = ctx.check_ee_foreign(shadow, tracks)
        if found:
            return found
    return ctx.check_ee_incident()


def _stations_by_id(graph: MetroGraph, ids: Iterable[StationId]) -> List[Station]:
    return [graph.station(sid) for sid in sorted(ids)]


def _tracks_by_id(graph: MetroGraph, ids: Iterable[TrackId]) -> List[Track]:
    return [graph.track(tid) for tid in sorted(ids)]


def find_overlap_accelerated(
    station_id: StationId,
    new_pos: Point,
    graph: MetroGraph,
    spatial_hash: Optional[SpatialHash] = None,
    eps: float = EPSILON,
) -> Optional[OverlapConflict]:
    """Same answer as :func:`find_overlap_naive`, restricted to hash neighbourhoods.

    ``spatial_hash`` must describe ``graph`` as it is now (with the station still
    at its old position); when omitted a fresh one is built.
    """

    if spatial_hash is None:
        spatial_hash = SpatialHash.from_graph(graph, default_cell_size(graph))

    ctx = _MoveContext(graph, station_id, new_pos, eps)
    p = ctx.new_pos

    found = ctx.check_vv(_stations_by_id(graph, spatial_hash.stations_near(p, 1)))
    if found:
        return found
    found = ctx.check_ve_moved_vertex(_tracks_by_id(graph, spatial_hash.tracks_near(p, 2)))
    if found:
        return found
    for shadow in ctx.shadows:
        nearby = spatial_hash.stations_along_segment(shadow.source, shadow.target)
        found = ctx.check_ve_moved_edge(shadow, _stations_by_id(graph, nearby))
        if found:
            return found
    for shadow in ctx.shadows:
        nearby = spatial_hash.tracks_along_segment(shadow.source, shadow.target)
        found = ctx.check_ee_foreign(shadow, _tracks_by_id(graph, nearby))
        if found:
            return found
    return ctx.check_ee_incident()


def find_overlap(
    station_id: StationId,
    new_pos: Point,
    graph: MetroGraph,
    spatial_hash: Optional[SpatialHash] = None,
    eps: float = EPSILON,
) -> Optional[OverlapConflict]:
    if spatial_hash is None:
        return find_overlap_naive(station_id, new_pos, graph, eps)
    return find_overlap_accelerated(station_id, new_pos, graph, spatial_hash, eps)


def overlaps(
    station_id: StationId,
    new_pos: Point,
    graph: MetroGraph,
    spatial_hash: Optional[SpatialHash] = None,
    eps: float = EPSILON,
) -> bool:
    """Return ``True`` iff moving ``station_id`` to ``new_pos`` creates a conflict.

    Without ``spatial_hash`` the naive scan runs; with one, the accelerated path.
    """

    return find_overlap(station_id, new_pos, graph, spatial_hash, eps) is not None


def overlaps_naive(
    station_id: StationId, new_pos: Point, graph: MetroGraph, eps: float = EPSILON
) -> bool:
    return find_overlap_naive(station_id, new_pos, graph, eps) is not None


def overlaps_accelerated(
    station_id: StationId,
    new_pos: Point,
    graph: MetroGraph,
    spatial_hash: Optional[SpatialHash] = None,
    eps: float = EPSILON,
) -> bool:
    return find_overlap_accelerated(station_id, new_pos, graph, spatial_hash, eps) is not None


class OverlapChecker:
    """Overlap predicate bound to one graph, with a lazily rebuilt spatial hash.

    Stages call :meth:`invalidate` after committing a move; the hash is rebuilt
    on the next query. With ``use_spatial_hash=False`` every query is naive.
    """

    def __init__(
        self,
        graph: MetroGraph,
        *,
        use_spatial_hash: bool = True,
        cell_size: Optional[float] = None,
        eps: float = EPSILON,
    ) -> None:
        self.graph = graph
        self.use_spatial_hash = use_spatial_hash
        self.cell_size = cell_size
        self.eps = eps
        self._hash: Optional[SpatialHash] = None
        self.queries = 0
        self.rebuilds = 0

    def invalidate(self) -> None:
        self._hash = None

    @property
    def spatial_hash(self) -> Optional[SpatialHash]:
        if not self.use_spatial_hash:
            return None
        if self._hash is None:
            size = self.cell_size if self.cell_size else default_cell_size(self.graph)
            self._hash = SpatialHash.from_graph(self.graph, size)
            self.rebuilds += 1
        return self._hash

    def find(self, station_id: StationId, new_pos: Point) -> Optional[OverlapConflict]:
        self.queries += 1
        return find_overlap(station_id, new_pos, self.graph, self.spatial_hash, self.eps)

    def __call__(self, station_id: StationId, new_pos: Point) -> bool:
        return self.find(station_id, new_pos) is not None


def graph_has_overlaps(graph: MetroGraph, station_ids: Optional[Sequence[StationId]] = None) -> bool:
    """``True`` when some station already conflicts at its current position."""

    ids = graph.station_ids() if station_ids is None else station_ids
    return any(overlaps_naive(sid, graph.station(sid).coord, graph) for sid in ids)


__all__ = [
    "EE_FOREIGN",
    "EE_INCIDENT",
    "OverlapChecker",
    "OverlapConflict",
    "ShadowTrack",
    "VE_MOVED_EDGE",
    "VE_MOVED_VERTEX",
    "VV",
    "find_overlap",
    "find_overlap_accelerated",
    "find_overlap_naive",
    "graph_has_overlaps",
    "overlaps",
    "overlaps_accelerated",
    "overlaps_naive",
    "shadow_tracks",
]
