"""Station graph model backed by :mod:`networkx`."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import networkx as nx

from .geometry import (
    ANGLE_THRESHOLD_DEG,
    Point,
    angular_distance,
    edge_angle,
    is_close_to_horizontal,
    is_close_to_vertical,
)

logger = logging.getLogger(__name__)

StationId = int
TrackId = int

UP, DOWN, LEFT, RIGHT = range(4)

# Screen convention: y grows downward, so "up" points towards -y.
_CARDINAL_ANGLES = (
    (UP, -math.pi / 2.0),
    (DOWN, math.pi / 2.0),
    (LEFT, math.pi),
    (RIGHT, 0.0),
)


@dataclass(eq=False)
class Station:
    """A vertex of the transit network."""

    id: StationId
    x: float
    y: float
    name: str = ""
    valid: bool = True
    weight: float = 1.0
    name_width: float = 0.0
    name_height: float = 0.0
    dir_mask: List[bool] = field(default_factory=lambda: [False, False, False, False])

    @property
    def coord(self) -> Point:
        return (self.x, self.y)

    def set_coord(self, x: float, y: float) -> None:
        self.x = float(x)
        self.y = float(y)

    def reset_dir_mask(self) -> None:
        self.dir_mask = [False, False, False, False]

    def __repr__(self) -> str:
        return f"Station({self.id}, {self.name!r}, ({self.x:.6g}, {self.y:.6g}))"


@dataclass(eq=False)
class Track:
    """An undirected track segment; ``source``/``target`` only fix the angle sign."""

    id: TrackId
    source: Station
    target: Station
    angle: float = 0.0
    weight: float = 1.0
    close_to_h: bool = False
    close_to_v: bool = False
    oriented_h: bool = False
    oriented_v: bool = False

    def update_angle(self) -> float:
        self.angle = edge_angle(self.source.coord, self.target.coord)
        return self.angle

    def other(self, station_id: StationId) -> Station:
        if self.source.id == station_id:
            return self.target
        if self.target.id == station_id:
            return self.source
        raise KeyError(f"station {station_id} is not an endpoint of track {self.id}")

    def touches(self, station_id: StationId) -> bool:
        return self.source.id == station_id or self.target.id == station_id

    @property
    def endpoints(self) -> Tuple[Point, Point]:
        return self.source.coord, self.target.coord

    @property
    def length(self) -> float:
        return math.hypot(self.target.x - self.source.x, self.target.y - self.source.y)

    def __repr__(self) -> str:
        return f"Track({self.id}, {self.source.id}-{self.target.id}, angle={self.angle:.4f})"


class MetroGraph:
    """Undirected station graph with stable integer IDs.

    Stations live in the node attributes of a :class:`networkx.Graph` keyed by
    station ID; tracks live in the edge attributes and in an ID index. Writing a
    coordinate does not refresh incident track angles: callers do that through
    :meth:`update_angles` before reading them again.
    """

    def __init__(self, angle_threshold_deg: float = ANGLE_THRESHOLD_DEG) -> None:
        self._g = nx.Graph()
        self._tracks: Dict[TrackId, Track] = {}
        self.angle_threshold_deg = angle_threshold_deg

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------
    def add_station(
        self, station_id: StationId, x: float, y: float, name: str = ""
    ) -> Station:
        if station_id in self._g:
            raise ValueError(f"duplicate station id {station_id}")
        station = Station(int(station_id), float(x), float(y), name.strip())
        self._g.add_node(station.id, station=station)
        return station

    def add_track(
        self,
        source_id: StationId,
        target_id: StationId,
        track_id: Optional[TrackId] = None,
        weight: float = 1.0,
    ) -> Track:
        source = self.station(source_id)
        target = self.station(target_id)
        if source_id == target_id:
            raise ValueError(f"self-loop on station {source_id} is not supported")
        if self._g.has_edge(source_id, target_id):
            raise ValueError(f"duplicate track {source_id} - {target_id}")
        if track_id is None:
            track_id = len(self._tracks)
        if track_id in self._tracks:
            raise ValueError(f"duplicate track id {track_id}")
        track = Track(
            id=int(track_id),
            source=source,
            target=target,
            weight=weight,
            close_to_h=is_close_to_horizontal(source.coord, target.coord, self.angle_threshold_deg),
            close_to_v=is_close_to_vertical(source.coord, target.coord, self.angle_threshold_deg),
        )
        track.update_angle()
        self._g.add_edge(source.id, target.id, track=track)
        self._tracks[track.id] = track
        return track

    # ------------------------------------------------------------------
    # lookup
    # ------------------------------------------------------------------
    def station(self, station_id: StationId) -> Station:
        try:
            return self._g.nodes[station_id]["station"]
        except KeyError as exc:
            raise KeyError(f"unknown station id {station_id}") from exc

    def track(self, track_id: TrackId) -> Track:
        try:
            return self._tracks[track_id]
        except KeyError as exc:
            raise KeyError(f"unknown track id {track_id}") from exc

    def has_station(self, station_id: StationId) -> bool:
        return station_id in self._g

    def stations(self) -> List[Station]:
        return [self._g.nodes[n]["station"] for n in sorted(self._g.nodes)]

    def station_ids(self) -> List[StationId]:
        return sorted(self._g.nodes)

    def tracks(self) -> List[Track]:
        return [self._tracks[tid] for tid in sorted(self._tracks)]

    def incident_tracks(self, station_id: StationId) -> List[Track]:
        if station_id not in self._g:
            raise KeyError(f"unknown station id {station_id}")
        found = [data["track"] for _, _, data in self._g.edges(station_id, data=True)]
        return sorted(found, key=lambda track: track.id)

    def neighbors(self, station_id: StationId) -> List[StationId]:
        return sorted(self._g.neighbors(station_id))

    def degree(self, station_id: StationId) -> int:
        return int(self._g.degree(station_id))

    @property
    def num_stations(self) -> int:
        return self._g.number_of_nodes()

    @property
    def num_tracks(self) -> int:
        return len(self._tracks)

    def __iter__(self) -> Iterator[Station]:
        return iter(self.stations())

    def __len__(self) -> int:
        return self.num_stations

    # ------------------------------------------------------------------
    # mutation
    # ------------------------------------------------------------------
    def set_coord(self, station_id: StationId, x: float, y: float) -> None:
        self.station(station_id).set_coord(x, y)

    def update_angles(self, station_id: Optional[StationId] = None) -> None:
        """Recompute cached angles of ``station_id``'s tracks, or of every track."""

        tracks = self._tracks.values() if station_id is None else self.incident_tracks(station_id)
        for track in tracks:
            track.update_angle()

    def move_station(self, station_id: StationId, x: float, y: float) -> None:
        self.set_coord(station_id, x, y)
        self.update_angles(station_id)

    def coords(self) -> Dict[StationId, Point]:
        return {station.id: station.coord for station in self.stations()}

    def apply_coords(self, coords: Dict[StationId, Point]) -> None:
        for station_id, (x, y) in coords.items():
            self.set_coord(station_id, x, y)
        self.update_angles()

    def update_direction_masks(self) -> None:
        """Mark the cardinal direction each incident track leaves its station in."""

        for station in self.stations():
            station.reset_dir_mask()
            for track in self.incident_tracks(station.id):
                other = track.other(station.id)
                if other.coord == station.coord:
                    continue
                outward = edge_angle(station.coord, other.coord)
                slot = min(_CARDINAL_ANGLES, key=lambda item: angular_distance(outward, item[1]))[0]
                station.dir_mask[slot] = True

    # ------------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------------
    def coordinate_range(self) -> Tuple[float, float, float, float]:
        """Return ``(min_x, max_x, min_y, max_y)``."""

        if not self.num_stations:
            raise ValueError("coordinate range of an empty graph")
        xs = [station.x for station in self.stations()]
        ys = [station.y for station in self.stations()]
        return min(xs), max(xs), min(ys), max(ys)

    def average_edge_length(self) -> float:
        if not self._tracks:
            return 1.0
        return sum(track.length for track in self._tracks.values()) / len(self._tracks)

    def describe(self) -> str:
        lines = [f"stations={self.num_stations} tracks={self.num_tracks}"]
        if self.num_stations:
            min_x, max_x, min_y, max_y = self.coordinate_range()
            lines.append(f"coordinate range: X[{min_x:g}, {max_x:g}], Y[{min_y:g}, {max_y:g}]")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"MetroGraph(stations={self.num_stations}, tracks={self.num_tracks})"


__all__ = [
    "DOWN",
    "LEFT",
    "MetroGraph",
    "RIGHT",
    "Station",
    "StationId",
    "Track",
    "TrackId",
    "UP",
]
