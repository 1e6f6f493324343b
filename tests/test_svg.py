import xml.etree.ElementTree as ET
from pathlib import Path

from metro_layout.graph import MetroGraph
from metro_layout.svg import PADDING, build_drawing, snapshot_path, write_snapshot, write_svg


def _small_graph():
    graph = MetroGraph()
    graph.add_station(1, 10.0, 20.0, "Alpha")
    graph.add_station(2, 110.0, 20.0, "Beta")
    graph.add_station(3, 110.0, 80.0, "Gamma")
    graph.add_track(1, 2)
    graph.add_track(2, 3)
    return graph


def test_snapshot_path_naming():
    assert snapshot_path("output", "test0", 3) == Path("output") / "test0_3.svg"


def test_drawing_is_padded_and_translated():
    drawing = build_drawing(_small_graph(), "unused.svg")

    assert drawing.attribs["viewBox"] == f"0 0 {100 + 2 * PADDING:g} {60 + 2 * PADDING:g}"
    markup = drawing.tostring()
    root = ET.fromstring(markup)
    centers = sorted(
        (float(el.get("cx")), float(el.get("cy"))) for el in root.iter() if el.tag.endswith("circle")
    )
    # station 1 sits at the padded origin
    assert centers == [(50.0, 50.0), (150.0, 50.0), (150.0, 110.0)]
    assert markup.count("<circle") == 3
    assert markup.count("<line") == 2
    assert "Metro Map Visualization" in markup
    assert "Coordinate range: X[10, 110], Y[20, 80]" in markup


def test_tracks_are_drawn_behind_stations():
    markup = build_drawing(_small_graph(), "unused.svg").tostring()

    assert markup.index('id="edges"') < markup.index('id="stations"')


def test_write_snapshot_creates_directories(tmp_path):
    path = write_snapshot(_small_graph(), tmp_path / "nested", "case", 0)

    assert path == tmp_path / "nested" / "case_0.svg"
    text = path.read_text(encoding="utf-8")
    assert text.lstrip().startswith("<?xml")
    assert ">2</text>" in text


def test_empty_graph_writes_nothing(tmp_path, caplog):
    with caplog.at_level("WARNING"):
        assert write_svg(MetroGraph(), tmp_path / "empty.svg") is None

    assert not (tmp_path / "empty.svg").exists()
    assert "No stations to draw" in caplog.text
