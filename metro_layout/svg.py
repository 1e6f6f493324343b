"""SVG snapshots of a station graph."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import svgwrite

from .graph import MetroGraph

logger = logging.getLogger(__name__)

PADDING = 50.0
STATION_RADIUS = 15

STYLE = (
    ".station { fill: #2563eb; stroke: #1e40af; stroke-width: 2; }\n"
    ".station-id { font-family: Arial, sans-serif; font-size: 12px; "
    "fill: white; text-anchor: middle; dominant-baseline: central; }\n"
    ".edge { stroke: #6b7280; stroke-width: 2; }\n"
    ".background { fill: #f8fafc; }\n"
)
TITLE = "Metro Map Visualization"
TITLE_STYLE = (
    "font-family: Arial, sans-serif; font-size: 18px; font-weight: bold; "
    "text-anchor: middle; fill: #1f2937;"
)
FOOTER_STYLE = "font-family: Arial, sans-serif; font-size: 10px; fill: #6b7280;"


def snapshot_path(output_dir: Union[str, Path], testcase: str, stage_index: int) -> Path:
    return Path(output_dir) / f"{testcase}_{stage_index}.svg"


def build_drawing(graph: MetroGraph, path: Union[str, Path]) -> svgwrite.Drawing:
    """Lay out tracks, then stations with their IDs, a title and a coordinate footer.

    Coordinates are shifted so the bounding box starts at ``PADDING``; y is not flipped.
    """

    min_x, max_x, min_y, max_y = graph.coordinate_range()
    width = (max_x - min_x) + 2 * PADDING
    height = (max_y - min_y) + 2 * PADDING

    def shift(x: float, y: float):
        return (x - min_x + PADDING, y - min_y + PADDING)

    dwg = svgwrite.Drawing(str(path), profile="full", size=(width, height))
    dwg.attribs["viewBox"] = f"0 0 {width:g} {height:g}"
    dwg.defs.add(dwg.style(STYLE))
    dwg.add(dwg.rect(insert=(0, 0), size=(width, height), class_="background"))

    edges = dwg.g(id="edges")
    for track in graph.tracks():
        edges.add(dwg.line(start=shift(*track.source.coord), end=shift(*track.target.coord), class_="edge"))
    dwg.add(edges)

    stations = dwg.g(id="stations")
    for station in graph.stations():
        center = shift(station.x, station.y)
        stations.add(dwg.circle(center=center, r=STATION_RADIUS, class_="station"))
        stations.add(dwg.text(str(station.id), insert=center, class_="station-id"))
    dwg.add(stations)

    dwg.add(dwg.text(TITLE, insert=(width / 2, 25), style=TITLE_STYLE))
    dwg.add(
        dwg.text(
            f"Coordinate range: X[{min_x:g}, {max_x:g}], Y[{min_y:g}, {max_y:g}]",
            insert=(10, height - 10),
            style=FOOTER_STYLE,
        )
    )
    return dwg


def write_svg(graph: MetroGraph, path: Union[str, Path]) -> Optional[Path]:
    """Write ``graph`` to ``path``; returns ``None`` for an empty graph."""

    if not graph.num_stations:
        logger.warning("No stations to draw; skipping %s", path)
        return None
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    build_drawing(graph, path).save()
    logger.info("SVG snapshot written to %s", path)
    return path


def write_snapshot(
    graph: MetroGraph, output_dir: Union[str, Path], testcase: str, stage_index: int
) -> Optional[Path]:
    return write_svg(graph, snapshot_path(output_dir, testcase, stage_index))


__all__ = ["PADDING", "STATION_RADIUS", "build_drawing", "snapshot_path", "write_snapshot", "write_svg"]
