"""Horizontal and vertical guide lines with station memberships."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .geometry import HORIZONTAL, VERTICAL
from .graph import MetroGraph, StationId

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 2.315
DEFAULT_MIN_VOTES = 2
MEMBERSHIP_EPSILON = 1e-2
DUPLICATE_LINE_EPSILON = 1e-9


@dataclass
class AuxiliaryLine:
    """A guide line: ``position`` is a y for horizontal lines and an x for vertical."""

    position: float
    orientation: str
    votes: int = 1
    station_ids: List[StationId] = field(default_factory=list)

    @property
    def is_horizontal(self) -> bool:
        return self.orientation == HORIZONTAL


@dataclass
class GridOptions:
    tolerance: float = DEFAULT_TOLERANCE
    min_votes: int = DEFAULT_MIN_VOTES


@dataclass
class _Bucket:
    votes: int = 0
    station_ids: List[StationId] = field(default_factory=list)


def _vote(buckets: Dict[float, _Bucket], value: float, station_id: StationId, tolerance: float) -> None:
    for key in sorted(buckets):
        if abs(key - value) <= tolerance:
            bucket = buckets[key]
            break
    else:
        bucket = buckets[value] = _Bucket()
    bucket.votes += 1
    bucket.station_ids.append(station_id)


class AuxLineGrid:
    """Two ascending lists of guide lines built by coordinate voting.

    A coordinate bucket becomes a line once ``min_votes`` stations fall within
    ``tolerance`` of the bucket's first coordinate.
    """

    def __init__(self, options: Optional[GridOptions] = None) -> None:
        self.options = options or GridOptions()
        self.horizontal: List[AuxiliaryLine] = []
        self.vertical: List[AuxiliaryLine] = []

    @property
    def tolerance(self) -> float:
        return self.options.tolerance

    @property
    def min_votes(self) -> int:
        return self.options.min_votes

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------
    def build(self, graph: MetroGraph) -> None:
        x_buckets: Dict[float, _Bucket] = {}
        y_buckets: Dict[float, _Bucket] = {}
        for station in graph.stations():
            _vote(x_buckets, station.x, station.id, self.tolerance)
            _vote(y_buckets, station.y, station.id, self.tolerance)

        self.horizontal = self._emit(y_buckets, HORIZONTAL)
        self.vertical = self._emit(x_buckets, VERTICAL)
        logger.info("Built guide-line grid: %s", self.describe())

    def _emit(self, buckets: Dict[float, _Bucket], orientation: str) -> List[AuxiliaryLine]:
        lines = [
            AuxiliaryLine(key, orientation, bucket.votes, list(bucket.station_ids))
            for key, bucket in buckets.items()
            if bucket.votes >= self.min_votes
        ]
        lines.sort(key=lambda line: line.position)
        return lines

    def lines(self, orientation: str) -> List[AuxiliaryLine]:
        if orientation == HORIZONTAL:
            return self.horizontal
        if orientation == VERTICAL:
            return self.vertical
        raise ValueError(f"unknown orientation '{orientation}'")

    # ------------------------------------------------------------------
    # dynamic edits
    # ------------------------------------------------------------------
    def _add(self, orientation: str, position: float) -> bool:
        lines = self.lines(orientation)
        if any(abs(line.position - position) < DUPLICATE_LINE_EPSILON for line in lines):
            return False
        lines.append(AuxiliaryLine(float(position), orientation))
        lines.sort(key=lambda line: line.position)
        logger.debug("Added %s guide line at %.6g", orientation, position)
        return True

    def add_horizontal(self, y: float) -> bool:
        """Add a horizontal line at ``y`` unless one already exists there."""

        return self._add(HORIZONTAL, y)

    def add_vertical(self, x: float) -> bool:
        return self._add(VERTICAL, x)

    def _reposition(self, orientation: str, positions: Sequence[float]) -> bool:
        lines = self.lines(orientation)
        if len(positions) != len(lines):
            logger.warning(
                "Ignoring %s reposition: got %d position(s) for %d line(s)",
                orientation,
                len(positions),
                len(lines),
            )
            return False
        for line, position in zip(lines, positions):
            line.position = float(position)
        lines.sort(key=lambda line: line.position)
        return True

    def reposition_horizontal(self, positions: Sequence[float]) -> bool:
        return self._reposition(HORIZONTAL, positions)

    def reposition_vertical(self, positions: Sequence[float]) -> bool:
        return self._reposition(VERTICAL, positions)

    def rebuild_membership(self, graph: MetroGraph, eps: float = MEMBERSHIP_EPSILON) -> None:
        """Reassign every station to the first line of each orientation within ``eps``."""

        for line in self.horizontal + self.vertical:
            line.station_ids = []
        for station in graph.stations():
            for line in self.horizontal:
                if abs(station.y - line.position) < eps:
                    line.station_ids.append(station.id)
                    break
            for line in self.vertical:
                if abs(station.x - line.position) < eps:
                    line.station_ids.append(station.id)
                    break

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def positions(self, orientation: str) -> List[float]:
        return [line.position for line in self.lines(orientation)]

    def on_line(self, orientation: str, value: float, eps: float = MEMBERSHIP_EPSILON) -> bool:
        return any(abs(line.position - value) < eps for line in self.lines(orientation))

    @property
    def key_line_count(self) -> int:
        """Total number of guide lines; lines added for dangling stations count too."""

        return len(self.horizontal) + len(self.vertical)

    def describe(self) -> str:
        def _fmt(lines: List[AuxiliaryLine]) -> str:
            return "[" + ", ".join(f"{line.position:g}" for line in lines) + "]"

        return (
            f"horizontal={len(self.horizontal)} {_fmt(self.horizontal)} "
            f"vertical={len(self.vertical)} {_fmt(self.vertical)} "
            f"key_lines={self.key_line_count}"
        )


__all__ = [
    "AuxLineGrid",
    "AuxiliaryLine",
    "DEFAULT_MIN_VOTES",
    "DEFAULT_TOLERANCE",
    "GridOptions",
    "MEMBERSHIP_EPSILON",
]
