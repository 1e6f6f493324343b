import math

import pytest

from metro_layout.graph import MetroGraph
from metro_layout.stages import INTERNAL_ERROR, SUCCESS, OrientationOptions, orient_edges, preselect
from metro_layout.stages.orientation import processing_order


def _graph(coords, edges):
    graph = MetroGraph()
    for sid, (x, y) in coords.items():
        graph.add_station(sid, x, y)
    for a, b in edges:
        graph.add_track(a, b)
    return graph


def _triangle():
    return _graph({1: (0.0, 0.0), 2: (10.0, 0.0), 3: (5.0, 9.0)}, [(1, 2), (2, 3), (3, 1)])


def _track(graph, a, b):
    return next(t for t in graph.tracks() if {t.source.id, t.target.id} == {a, b})


def _assert_oriented(graph, eps=1e-6):
    for track in graph.tracks():
        if track.oriented_h:
            assert abs(track.source.y - track.target.y) <= eps
        if track.oriented_v:
            assert abs(track.source.x - track.target.x) <= eps


def _assert_angles_cached(graph):
    for track in graph.tracks():
        expected = math.atan2(track.target.y - track.source.y, track.target.x - track.source.x)
        assert abs(track.angle - expected) <= 1e-9


def test_triangle_with_narrow_threshold_keeps_coordinates():
    graph = _triangle()

    code = orient_edges(graph, OrientationOptions(angle_threshold_deg=25.0))

    assert code == SUCCESS
    assert _track(graph, 1, 2).oriented_h
    assert not _track(graph, 2, 3).oriented_h and not _track(graph, 2, 3).oriented_v
    assert not _track(graph, 3, 1).oriented_h and not _track(graph, 3, 1).oriented_v
    for sid, expected in {1: (0.0, 0.0), 2: (10.0, 0.0), 3: (5.0, 9.0)}.items():
        assert graph.station(sid).coord == pytest.approx(expected, abs=1e-6)


def test_triangle_with_default_threshold_also_straightens_steep_side():
    graph = _triangle()

    code = orient_edges(graph)

    # 3-1 is atan(5/9) ~ 29 deg off vertical, inside the 30 deg window
    assert code == SUCCESS
    assert _track(graph, 1, 2).oriented_h
    assert _track(graph, 3, 1).oriented_v
    assert not _track(graph, 2, 3).oriented_v
    assert graph.station(1).x == pytest.approx(2.5, abs=1e-6)
    assert graph.station(3).x == pytest.approx(2.5, abs=1e-6)
    assert graph.station(2).coord == pytest.approx((10.0, 0.0), abs=1e-6)
    _assert_oriented(graph)
    _assert_angles_cached(graph)


def test_near_horizontal_pair_meets_halfway():
    graph = _graph({1: (0.0, 0.0), 2: (10.0, 1.0)}, [(1, 2)])
    track = graph.track(0)
    assert track.close_to_h

    assert orient_edges(graph) == SUCCESS

    assert track.oriented_h
    assert graph.station(1).y == pytest.approx(0.5, abs=1e-6)
    assert graph.station(2).y == pytest.approx(0.5, abs=1e-6)
    assert graph.station(1).x == pytest.approx(0.0, abs=1e-6)
    assert graph.station(2).x == pytest.approx(10.0, abs=1e-6)
    assert track.angle == pytest.approx(0.0, abs=1e-6)


def test_station_hosts_one_track_per_axis():
    graph = _graph(
        {1: (0.0, 0.0), 2: (-10.0, 1.0), 3: (10.0, 2.0), 4: (20.0, 2.5)},
        [(1, 2), (1, 3), (3, 4)],
    )

    horizontal, vertical = preselect(graph)

    assert vertical == []
    # station 1 picks 1-2 (closer to the axis), which blocks 1-3 at station 1;
    # station 3 still hosts nothing and claims 3-4
    assert horizontal == [_track(graph, 1, 2).id, _track(graph, 3, 4).id]
    assert not _track(graph, 1, 3).oriented_h


def test_processing_order_breaks_degree_ties_by_id():
    graph = _graph(
        {5: (0.0, 0.0), 2: (10.0, 0.0), 7: (20.0, 0.0), 1: (30.0, 0.0)},
        [(5, 2), (2, 7), (7, 1)],
    )

    assert processing_order(graph) == [2, 7, 1, 5]


def test_conflicting_flags_are_an_internal_error(monkeypatch):
    graph = _triangle()

    def _flag_everything(graph, options=None):
        for track in graph.tracks():
            track.oriented_h = True
            track.oriented_v = True
        return [], []

    monkeypatch.setattr("metro_layout.stages.orientation.preselect", _flag_everything)

    assert orient_edges(graph) == INTERNAL_ERROR
