import math

import pytest

from metro_layout.geometry import HORIZONTAL, VERTICAL
from metro_layout.graph import MetroGraph
from metro_layout.overlap import OverlapChecker
from metro_layout.stages import SUCCESS, AlignmentOptions, align_vertices, cluster_coordinates, kmeans_1d
from metro_layout.stages.alignment import filter_candidates, select_candidates

_YS = [0.0, 0.1, 0.2, 10.0, 10.1, 10.2, 20.0, 20.1, 20.2, 20.3]


def _column_graph():
    graph = MetroGraph()
    for index, y in enumerate(_YS):
        graph.add_station(index + 1, 100.0 * index, y)
    return graph


def test_kmeans_converges_on_separated_groups():
    centroids, wcss = kmeans_1d(_YS, 3)

    assert sorted(centroids) == pytest.approx([0.1, 10.1, 20.15])
    assert wcss == pytest.approx(0.09)


def test_cluster_discovery_picks_three_lines():
    assert cluster_coordinates(_YS) == pytest.approx([0.1, 10.1, 20.15])


def test_cluster_discovery_needs_enough_distinct_values():
    assert cluster_coordinates([1.0, 1.0, 2.0, 2.0]) == []
    assert cluster_coordinates([]) == []


def test_candidates_respect_tolerance():
    graph = MetroGraph()
    graph.add_station(1, 0.0, 5.0)
    graph.add_station(2, 0.0, 40.0)

    candidates = select_candidates(graph, [0.0, 100.0], [3.0], tolerance=20.0)

    assert [(c.station_id, c.axis, c.line_position) for c in candidates] == [
        (1, HORIZONTAL, 0.0),
        (1, VERTICAL, 3.0),
        (2, VERTICAL, 3.0),
    ]


def test_filter_prefers_nearest_candidate_on_a_line():
    graph = MetroGraph()
    graph.add_station(1, 0.0, 4.0)
    graph.add_station(2, 0.0, 1.0)

    candidates = select_candidates(graph, [0.0], [], tolerance=20.0)
    accepted = filter_candidates(graph, candidates, OverlapChecker(graph))

    # both would land on (0, 0); the nearer station 2 wins
    assert [c.station_id for c in accepted] == [2]
    assert graph.station(2).coord == (0.0, 0.0)
    assert graph.station(1).coord == (0.0, 4.0)


def test_alignment_snaps_exactly_onto_lines():
    graph = _column_graph()

    assert align_vertices(graph) == SUCCESS

    lines = cluster_coordinates(_YS)
    for station in graph.stations():
        assert station.y in lines


def test_alignment_keeps_angles_cached():
    graph = _column_graph()
    for sid in range(1, len(_YS)):
        graph.add_track(sid, sid + 1)

    assert align_vertices(graph, AlignmentOptions(alignment_tolerance=1.0)) == SUCCESS

    for track in graph.tracks():
        expected = math.atan2(track.target.y - track.source.y, track.target.x - track.source.x)
        assert abs(track.angle - expected) <= 1e-9


def test_tiny_graph_is_left_alone():
    graph = MetroGraph()
    graph.add_station(1, 0.0, 0.0)
    graph.add_station(2, 3.0, 4.0)

    assert align_vertices(graph) == SUCCESS
    assert graph.coords() == {1: (0.0, 0.0), 2: (3.0, 4.0)}
