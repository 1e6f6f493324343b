"""Reader for the line-oriented station map format.

::

    # Vertices
    57. Tanglang (617, 966)
    # Edges
    57 - 58
    # End
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set, Tuple, Union

from .graph import MetroGraph

logger = logging.getLogger(__name__)

_NUM = r"[-+]?\d+(?:\.\d*)?"
_STATION_RE = re.compile(rf"^(\d+)\.\s*([^(]+?)\s*\(\s*({_NUM})\s*,\s*({_NUM})\s*\)$")
_TRACK_RE = re.compile(r"^(\d+)\s*-\s*(\d+)$")

_SECTION_VERTICES = "vertices"
_SECTION_EDGES = "edges"
_SECTION_END = "end"


class MapParseError(ValueError):
    """A line of the map file could not be parsed."""

    def __init__(self, line_no: int, line: str, reason: str):
        super().__init__(f"[line {line_no}] {reason}: {line!r}")
        self.line_no = line_no
        self.line = line


class MapStructureError(ValueError):
    """The parsed map is not a simple graph over known station IDs."""


@dataclass
class StationRecord:
    id: int
    name: str
    x: float
    y: float
    line_no: int = 0


@dataclass
class TrackRecord:
    source: int
    target: int
    line_no: int = 0


@dataclass
class MapData:
    stations: List[StationRecord] = field(default_factory=list)
    tracks: List[TrackRecord] = field(default_factory=list)


def _section_of(header: str) -> Optional[str]:
    word = header.lstrip("#").strip().lower()
    if word.startswith(_SECTION_VERTICES):
        return _SECTION_VERTICES
    if word.startswith(_SECTION_EDGES):
        return _SECTION_EDGES
    if word.startswith(_SECTION_END):
        return _SECTION_END
    return None


def parse_map_data(text: str) -> MapData:
    """Parse ``text`` into raw station and track records without validation."""

    data = MapData()
    section: Optional[str] = None
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        if line.startswith("#"):
            kind = _section_of(line)
            if kind == _SECTION_END:
                logger.debug("Reached end marker at line %d", line_no)
                break
            if kind is not None:
                section = kind
                logger.debug("Entering %s section at line %d", kind, line_no)
            continue

        if section == _SECTION_VERTICES:
            m = _STATION_RE.match(line)
            if not m:
                raise MapParseError(line_no, line, "malformed station line")
            data.stations.append(
                StationRecord(
                    id=int(m.group(1)),
                    name=m.group(2).strip(),
                    x=float(m.group(3)),
                    y=float(m.group(4)),
                    line_no=line_no,
                )
            )
        elif section == _SECTION_EDGES:
            m = _TRACK_RE.match(line)
            if not m:
                raise MapParseError(line_no, line, "malformed edge line")
            data.tracks.append(TrackRecord(int(m.group(1)), int(m.group(2)), line_no))
        else:
            raise MapParseError(line_no, line, "data line outside of a section")

    logger.info("Parsed %d station(s) and %d track(s)", len(data.stations), len(data.tracks))
    return data


def validate_tracks(data: MapData) -> None:
    """Raise :class:`MapStructureError` listing every structural problem in ``data``."""

    problems: List[str] = []
    known: Set[int] = set()
    for record in data.stations:
        if record.id in known:
            problems.append(f"[line {record.line_no}] duplicate station id {record.id}")
        known.add(record.id)

    seen_pairs: Set[Tuple[int, int]] = set()
    for record in data.tracks:
        where = f"[line {record.line_no}] edge {record.source} - {record.target}"
        for endpoint in (record.source, record.target):
            if endpoint not in known:
                problems.append(f"{where}: unknown station id {endpoint}")
        if record.source == record.target:
            problems.append(f"{where}: self-loop")
            continue
        key = (min(record.source, record.target), max(record.source, record.target))
        if key in seen_pairs:
            problems.append(f"{where}: duplicate edge")
        seen_pairs.add(key)

    if problems:
        for problem in problems:
            logger.error("%s", problem)
        raise MapStructureError("; ".join(problems))


def build_graph(data: MapData) -> MetroGraph:
    graph = MetroGraph()
    for record in data.stations:
        graph.add_station(record.id, record.x, record.y, record.name)
    for track_id, record in enumerate(data.tracks):
        graph.add_track(record.source, record.target, track_id=track_id)
    graph.update_direction_masks()
    logger.info("Built graph: %s", graph.describe().replace("\n", "; "))
    return graph


def parse_map(text: str) -> MetroGraph:
    data = parse_map_data(text)
    validate_tracks(data)
    return build_graph(data)


def read_map(path: Union[str, Path]) -> MetroGraph:
    """Read, validate and build the station graph stored at ``path``."""

    path = Path(path)
    logger.info("Reading map from %s", path)
    return parse_map(path.read_text(encoding="utf-8-sig"))


__all__ = [
    "MapData",
    "MapParseError",
    "MapStructureError",
    "StationRecord",
    "TrackRecord",
    "build_graph",
    "parse_map",
    "parse_map_data",
    "read_map",
    "validate_tracks",
]
