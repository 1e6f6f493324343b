"""Uniform grid hash over stations and tracks for local overlap queries."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set, Tuple

from .geometry import Point
from .graph import MetroGraph, StationId, TrackId

logger = logging.getLogger(__name__)

CellKey = Tuple[int, int]

# Segment queries widen their touched cells by this many rings: one for the
# sampling step of the stored segment, one for the sampling step of the query.
SEGMENT_QUERY_RADIUS = 2


@dataclass
class _Cell:
    stations: Set[StationId] = field(default_factory=set)
    tracks: Set[TrackId] = field(default_factory=set)


class SpatialHash:
    """Cells of side ``cell_size`` keyed by ``(floor(x / s), floor(y / s))``.

    Each cell stores the station IDs inside it and the IDs of every track whose
    segment touches it. The hash is a snapshot: rebuild it after geometry changes.
    """

    def __init__(self, cell_size: float = 1.0) -> None:
        self.cell_size = cell_size if cell_size > 0 else 1.0
        self._cells: Dict[CellKey, _Cell] = defaultdict(_Cell)

    @classmethod
    def from_graph(cls, graph: MetroGraph, cell_size: float = 1.0) -> "SpatialHash":
        index = cls(cell_size)
        index.build(graph)
        return index

    def build(self, graph: MetroGraph) -> None:
        self.clear()
        for station in graph.stations():
            self.insert_station(station.id, station.coord)
        for track in graph.tracks():
            self.insert_track(track.id, track.source.coord, track.target.coord)
        logger.debug(
            "Built spatial hash: cell_size=%.4g cells=%d stations=%d tracks=%d",
            self.cell_size,
            len(self._cells),
            graph.num_stations,
            graph.num_tracks,
        )

    def clear(self) -> None:
        self._cells.clear()

    def __len__(self) -> int:
        return len(self._cells)

    # ------------------------------------------------------------------
    # cells
    # ------------------------------------------------------------------
    def cell_of(self, p: Point) -> CellKey:
        return (int(math.floor(p[0] / self.cell_size)), int(math.floor(p[1] / self.cell_size)))

    def _neighborhood(self, center: CellKey, radius: int) -> List[CellKey]:
        cx, cy = center
        return [
            (cx + dx, cy + dy)
            for dx in range(-radius, radius + 1)
            for dy in range(-radius, radius + 1)
        ]

    def cells_along_segment(self, a: Point, b: Point) -> Set[CellKey]:
        """Cells touched by segment ``a-b``.

        Parametric sampling at ``max(|dx|, |dy|) + 1`` steps (in cells), plus the
        3x3 rings around both endpoint cells that fall inside the segment's
        bounding box padded by one cell.
        """

        start = self.cell_of(a)
        end = self.cell_of(b)
        steps = max(abs(end[0] - start[0]), abs(end[1] - start[1])) + 1

        cells: Set[CellKey] = set()
        for i in range(steps + 1):
            t = i / steps
            cells.add(self.cell_of((a[0] + t * (b[0] - a[0]), a[1] + t * (b[1] - a[1]))))

        s = self.cell_size
        min_x = min(a[0], b[0]) - s
        max_x = max(a[0], b[0]) + s
        min_y = min(a[1], b[1]) - s
        max_y = max(a[1], b[1]) + s
        for endpoint in (start, end):
            for cx, cy in self._neighborhood(endpoint, 1):
                if (
                    (cx + 1) * s >= min_x
                    and cx * s <= max_x
                    and (cy + 1) * s >= min_y
                    and cy * s <= max_y
                ):
                    cells.add((cx, cy))
        return cells

    def _dilate(self, cells: Iterable[CellKey], radius: int) -> Set[CellKey]:
        out: Set[CellKey] = set()
        for cell in cells:
            out.update(self._neighborhood(cell, radius))
        return out

    # ------------------------------------------------------------------
    # insertion
    # ------------------------------------------------------------------
    def insert_station(self, station_id: StationId, p: Point) -> None:
        self._cells[self.cell_of(p)].stations.add(station_id)

    def insert_track(self, track_id: TrackId, a: Point, b: Point) -> None:
        for cell in self.cells_along_segment(a, b):
            self._cells[cell].tracks.add(track_id)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def _collect(self, cells: Iterable[CellKey], attr: str) -> Set[int]:
        found: Set[int] = set()
        for cell in cells:
            entry = self._cells.get(cell)
            if entry is not None:
                found.update(getattr(entry, attr))
        return found

    def stations_near(self, p: Point, radius: int = 1) -> Set[StationId]:
        return self._collect(self._neighborhood(self.cell_of(p), radius), "stations")

    def tracks_near(self, p: Point, radius: int = 1) -> Set[TrackId]:
        return self._collect(self._neighborhood(self.cell_of(p), radius), "tracks")

    def stations_along_segment(
        self, a: Point, b: Point, radius: int = SEGMENT_QUERY_RADIUS
    ) -> Set[StationId]:
        cells = self._dilate(self.cells_along_segment(a, b), radius)
        return self._collect(cells, "stations")

    def tracks_along_segment(
        self, a: Point, b: Point, radius: int = SEGMENT_QUERY_RADIUS
    ) -> Set[TrackId]:
        cells = self._dilate(self.cells_along_segment(a, b), radius)
        return self._collect(cells, "tracks")


def default_cell_size(graph: MetroGraph, factor: float = 1.5) -> float:
    """Cell size of ``factor`` times the average track length, at least 1."""

    return max(graph.average_edge_length() * factor, 1.0)


__all__ = ["CellKey", "SEGMENT_QUERY_RADIUS", "SpatialHash", "default_cell_size"]
