import math

import numpy as np
import pytest

from metro_layout.graph import MetroGraph
from metro_layout.pipeline import PipelineOptions, StageError, run_file, run_pipeline, summarize


def _jittered_grid(seed=3, size=3, spacing=100.0, jitter=3.0):
    rng = np.random.default_rng(seed)
    graph = MetroGraph()
    for i in range(size):
        for j in range(size):
            graph.add_station(
                i * size + j + 1,
                j * spacing + float(rng.uniform(-jitter, jitter)),
                i * spacing + float(rng.uniform(-jitter, jitter)),
                f"S{i}{j}",
            )
    for i in range(size):
        for j in range(size):
            sid = i * size + j + 1
            if j + 1 < size:
                graph.add_track(sid, sid + 1)
            if i + 1 < size:
                graph.add_track(sid, sid + size)
    return graph


def _map_text(graph):
    lines = ["# Vertices"]
    for station in graph.stations():
        lines.append(f"{station.id}. {station.name} ({station.x:.4f}, {station.y:.4f})")
    lines.append("# Edges")
    for track in graph.tracks():
        lines.append(f"{track.source.id} - {track.target.id}")
    lines.append("# End")
    return "\n".join(lines) + "\n"


def test_pipeline_produces_uniform_grid(tmp_path):
    graph = _jittered_grid()
    track_ids = [(t.id, t.source.id, t.target.id) for t in graph.tracks()]

    result = run_pipeline(graph, PipelineOptions(output_dir=tmp_path, testcase="grid"))

    assert result.completed == [
        "edge-orientation",
        "vertex-alignment",
        "grid-construction",
        "dangling-positioning",
        "line-spacing",
    ]
    assert [p.name for p in result.snapshots] == [f"grid_{i}.svg" for i in (0, 2, 3, 4, 5)]
    assert all(p.exists() for p in result.snapshots)

    # identities survive every stage
    assert graph.station_ids() == list(range(1, 10))
    assert [(t.id, t.source.id, t.target.id) for t in graph.tracks()] == track_ids

    for track in graph.tracks():
        expected = math.atan2(track.target.y - track.source.y, track.target.x - track.source.x)
        assert abs(track.angle - expected) <= 1e-9

    grid = result.grid
    assert len(grid.horizontal) >= 2
    assert len(grid.vertical) >= 2
    for positions in (grid.positions("horizontal"), grid.positions("vertical")):
        gaps = np.diff(positions)
        assert np.all(gaps >= 10.0 - 1e-6)
        assert gaps == pytest.approx([gaps[0]] * len(gaps), abs=1e-6)
    for station in graph.stations():
        assert grid.on_line("horizontal", station.y)
        assert grid.on_line("vertical", station.x)

    summary = summarize(result)
    assert summary["stations"] == 9
    assert summary["horizontal_lines"] == len(grid.horizontal)


def test_run_file_defaults_testcase_to_file_stem(tmp_path, monkeypatch):
    path = tmp_path / "line7.txt"
    path.write_text(_map_text(_jittered_grid()), encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    result = run_file(path)

    assert sorted(p.name for p in (tmp_path / "output").iterdir()) == [
        f"line7_{i}.svg" for i in (0, 2, 3, 4, 5)
    ]
    assert result.graph.num_stations == 9


def test_failed_stage_raises_with_step_number(tmp_path, monkeypatch):
    graph = _jittered_grid()
    monkeypatch.setattr("metro_layout.pipeline.align_vertices", lambda *args, **kwargs: -3)

    with pytest.raises(StageError) as excinfo:
        run_pipeline(graph, PipelineOptions(output_dir=tmp_path, testcase="broken"))

    assert excinfo.value.step == 2
    assert excinfo.value.code == -3
    assert excinfo.value.stage == "vertex-alignment"
    # snapshots stop at the last successful stage
    assert sorted(p.name for p in tmp_path.iterdir()) == ["broken_0.svg", "broken_2.svg"]


def test_naive_overlap_checks_give_the_same_layout(tmp_path):
    fast = _jittered_grid(seed=5)
    slow = _jittered_grid(seed=5)

    run_pipeline(fast, PipelineOptions(write_svg=False))
    run_pipeline(slow, PipelineOptions(write_svg=False, use_spatial_hash=False))

    for a, b in zip(fast.stations(), slow.stations()):
        assert a.coord == pytest.approx(b.coord, abs=1e-9)


def test_empty_graph_is_rejected():
    with pytest.raises(ValueError):
        run_pipeline(MetroGraph(), PipelineOptions(write_svg=False))
