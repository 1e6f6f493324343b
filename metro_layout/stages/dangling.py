"""Dangling-station positioning.

A station is dangling when it does not sit on the crossing of a horizontal and
a vertical guide line. Partially dangling stations (on exactly one line) are
snapped along that line to the nearest safe crossing; fully dangling stations
first snap horizontally onto a vertical line, then vertically onto a
horizontal one. Whenever no adjacent line is safe, a new line is created at
the station's current coordinate instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..geometry import HORIZONTAL, VERTICAL, Point
from ..graph import MetroGraph, Station, StationId
from ..gridlines import MEMBERSHIP_EPSILON, AuxiliaryLine, AuxLineGrid
from ..overlap import OverlapChecker
from .base import SUCCESS

logger = logging.getLogger(__name__)

_SAME_LINE_EPS = 1e-6


@dataclass
class DanglingOptions:
    epsilon: float = MEMBERSHIP_EPSILON


@dataclass
class DanglingReport:
    partial: int = 0
    full: int = 0
    moved: int = 0
    lines_added: int = 0


def is_on_line(grid: AuxLineGrid, station: Station, orientation: str, eps: float = MEMBERSHIP_EPSILON) -> bool:
    value = station.y if orientation == HORIZONTAL else station.x
    return grid.on_line(orientation, value, eps)


def find_dangling(graph: MetroGraph, grid: AuxLineGrid, eps: float = MEMBERSHIP_EPSILON) -> List[StationId]:
    """IDs of stations off every line crossing, ascending."""

    return [
        station.id
        for station in graph.stations()
        if not (is_on_line(grid, station, HORIZONTAL, eps) and is_on_line(grid, station, VERTICAL, eps))
    ]


def _along(point: Point, orientation: str) -> float:
    # Coordinate a line of ``orientation`` is positioned by.
    return point[1] if orientation == HORIZONTAL else point[0]


def _across(point: Point, orientation: str) -> float:
    return point[0] if orientation == HORIZONTAL else point[1]


def _blocked(
    graph: MetroGraph,
    station: Station,
    line: AuxiliaryLine,
    dangling: Sequence[StationId],
) -> bool:
    """``True`` when another dangling station lies strictly between ``station`` and ``line``."""

    here = _along(station.coord, line.orientation)
    lo, hi = sorted((here, line.position))
    for other_id in dangling:
        if other_id == station.id:
            continue
        other = graph.station(other_id).coord
        if abs(_across(other, line.orientation) - _across(station.coord, line.orientation)) >= _SAME_LINE_EPS:
            continue
        if lo < _along(other, line.orientation) < hi:
            return True
    return False


def adjacent_lines(
    graph: MetroGraph,
    grid: AuxLineGrid,
    station_id: StationId,
    orientation: str,
    eps: float = MEMBERSHIP_EPSILON,
) -> List[AuxiliaryLine]:
    """Lines of ``orientation`` a station may snap to.

    Beyond the outermost line only that line qualifies; otherwise the two
    bracketing lines do. A line is dropped when another dangling station on the
    same perpendicular sits between it and the station.
    """

    lines = grid.lines(orientation)
    if not lines:
        return []
    station = graph.station(station_id)
    value = _along(station.coord, orientation)
    dangling = find_dangling(graph, grid, eps)

    if all(value <= line.position for line in lines):
        candidates = [lines[0]]
    elif all(value >= line.position for line in lines):
        candidates = [lines[-1]]
    else:
        upper = next(i for i, line in enumerate(lines) if value < line.position)
        candidates = [lines[upper - 1], lines[upper]]
    return [line for line in candidates if not _blocked(graph, station, line, dangling)]


class DanglingPositioner:
    """Runs the snap-or-extend procedure for every dangling station of a graph."""

    def __init__(
        self,
        graph: MetroGraph,
        grid: AuxLineGrid,
        options: Optional[DanglingOptions] = None,
        checker: Optional[OverlapChecker] = None,
    ) -> None:
        self.graph = graph
        self.grid = grid
        self.options = options or DanglingOptions()
        self.checker = checker or OverlapChecker(graph)
        self.report = DanglingReport()

    @property
    def eps(self) -> float:
        return self.options.epsilon

    def snap(self, station_id: StationId, orientation: str) -> bool:
        """Move the station onto the nearest safe line of ``orientation``.

        Returns ``True`` if it moved; otherwise a new line is added at its
        current coordinate and ``False`` is returned.
        """

        station = self.graph.station(station_id)
        current = _along(station.coord, orientation)
        best: Optional[Point] = None
        best_distance = float("inf")
        for line in adjacent_lines(self.graph, self.grid, station_id, orientation, self.eps):
            if orientation == VERTICAL:
                target = (line.position, station.y)
            else:
                target = (station.x, line.position)
            conflict = self.checker.find(station_id, target)
            if conflict is not None:
                logger.debug("Station %d cannot snap to %s line %.6g: %s", station_id, orientation, line.position, conflict)
                continue
            dist = abs(current - line.position)
            if dist < best_distance:
                best_distance = dist
                best = target

        if best is None:
            if orientation == VERTICAL:
                added = self.grid.add_vertical(current)
            else:
                added = self.grid.add_horizontal(current)
            if added:
                self.report.lines_added += 1
            logger.debug("Station %d keeps its place; %s line added at %.6g", station_id, orientation, current)
            return False

        self.graph.move_station(station_id, *best)
        self.checker.invalidate()
        self.report.moved += 1
        logger.debug("Station %d snapped to (%.6g, %.6g)", station_id, best[0], best[1])
        return True

    def process_partial(self, station_id: StationId) -> None:
        station = self.graph.station(station_id)
        if is_on_line(self.grid, station, HORIZONTAL, self.eps):
            self.snap(station_id, VERTICAL)
        elif is_on_line(self.grid, station, VERTICAL, self.eps):
            self.snap(station_id, HORIZONTAL)

    def process_full(self, station_id: StationId) -> None:
        self.snap(station_id, VERTICAL)
        self.snap(station_id, HORIZONTAL)

    def run(self) -> DanglingReport:
        dangling = find_dangling(self.graph, self.grid, self.eps)
        logger.info("Found %d dangling station(s)", len(dangling))

        for station_id in dangling:
            station = self.graph.station(station_id)
            on_h = is_on_line(self.grid, station, HORIZONTAL, self.eps)
            on_v = is_on_line(self.grid, station, VERTICAL, self.eps)
            if on_h != on_v:
                self.report.partial += 1
                self.process_partial(station_id)

        for station_id in dangling:
            station = self.graph.station(station_id)
            if not is_on_line(self.grid, station, HORIZONTAL, self.eps) and not is_on_line(
                self.grid, station, VERTICAL, self.eps
            ):
                self.report.full += 1
                self.process_full(station_id)

        self.graph.update_angles()
        self.grid.rebuild_membership(self.graph, self.eps)
        return self.report


def position_dangling_vertices(
    graph: MetroGraph,
    grid: AuxLineGrid,
    options: Optional[DanglingOptions] = None,
    checker: Optional[OverlapChecker] = None,
) -> int:
    """Snap dangling stations onto the grid; always returns ``0``."""

    report = DanglingPositioner(graph, grid, options, checker).run()
    logger.info(
        "Dangling stations: %d partial, %d full, %d moved, %d line(s) added; grid %s",
        report.partial,
        report.full,
        report.moved,
        report.lines_added,
        grid.describe(),
    )
    return SUCCESS


__all__ = [
    "DanglingOptions",
    "DanglingPositioner",
    "DanglingReport",
    "adjacent_lines",
    "find_dangling",
    "is_on_line",
    "position_dangling_vertices",
]
