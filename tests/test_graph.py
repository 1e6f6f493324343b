import math

import pytest

from metro_layout.graph import DOWN, LEFT, RIGHT, UP, MetroGraph


def _plus_graph():
    graph = MetroGraph()
    graph.add_station(1, 0.0, 0.0, "Hub")
    graph.add_station(2, 0.0, -10.0, "North")
    graph.add_station(3, 0.0, 10.0, "South")
    graph.add_station(4, -10.0, 0.0, "West")
    graph.add_station(5, 10.0, 0.0, "East")
    for other in (2, 3, 4, 5):
        graph.add_track(1, other)
    return graph


def _assert_angles_cached(graph):
    for track in graph.tracks():
        expected = math.atan2(track.target.y - track.source.y, track.target.x - track.source.x)
        assert abs(track.angle - expected) <= 1e-9


def test_construction_and_lookup():
    graph = _plus_graph()

    assert graph.num_stations == 5
    assert graph.num_tracks == 4
    assert graph.station_ids() == [1, 2, 3, 4, 5]
    assert [t.id for t in graph.tracks()] == [0, 1, 2, 3]
    assert graph.degree(1) == 4
    assert graph.neighbors(1) == [2, 3, 4, 5]
    assert [t.id for t in graph.incident_tracks(3)] == [1]
    assert graph.station(4).name == "West"


def test_rejects_duplicates_and_unknown_ids():
    graph = _plus_graph()

    with pytest.raises(ValueError):
        graph.add_station(1, 3.0, 3.0)
    with pytest.raises(ValueError):
        graph.add_track(2, 1)
    with pytest.raises(ValueError):
        graph.add_track(2, 2)
    with pytest.raises(KeyError):
        graph.add_track(1, 42)
    with pytest.raises(KeyError):
        graph.track(99)


def test_move_station_refreshes_incident_angles():
    graph = _plus_graph()
    graph.move_station(5, 10.0, 10.0)

    _assert_angles_cached(graph)
    assert graph.track(3).angle == pytest.approx(math.pi / 4)


def test_apply_coords_refreshes_every_angle():
    graph = _plus_graph()
    graph.apply_coords({2: (1.0, -10.0), 4: (-10.0, 2.0)})

    _assert_angles_cached(graph)


def test_direction_masks_follow_screen_coordinates():
    graph = _plus_graph()
    graph.update_direction_masks()

    hub = graph.station(1)
    assert hub.dir_mask == [True, True, True, True]
    north = graph.station(2)
    assert north.dir_mask[DOWN]
    assert not (north.dir_mask[UP] or north.dir_mask[LEFT] or north.dir_mask[RIGHT])
    assert graph.station(5).dir_mask[LEFT]


def test_statistics():
    graph = _plus_graph()

    assert graph.coordinate_range() == (-10.0, 10.0, -10.0, 10.0)
    assert graph.average_edge_length() == pytest.approx(10.0)
    assert "stations=5 tracks=4" in graph.describe()
    with pytest.raises(ValueError):
        MetroGraph().coordinate_range()
