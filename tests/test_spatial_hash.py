from metro_layout.graph import MetroGraph
from metro_layout.spatial_hash import SpatialHash, default_cell_size


def _line_graph():
    graph = MetroGraph()
    graph.add_station(1, 0.0, 0.0)
    graph.add_station(2, 40.0, 0.0)
    graph.add_station(3, 40.0, 25.0)
    graph.add_track(1, 2)
    graph.add_track(2, 3)
    return graph


def test_cell_of_floors_negative_coordinates():
    index = SpatialHash(10.0)

    assert index.cell_of((0.0, 0.0)) == (0, 0)
    assert index.cell_of((9.99, 19.0)) == (0, 1)
    assert index.cell_of((-0.5, -10.0)) == (-1, -1)


def test_segment_covers_every_crossed_cell():
    index = SpatialHash(10.0)
    cells = index.cells_along_segment((1.0, 1.0), (38.0, 1.0))

    for cx in range(0, 4):
        assert (cx, 0) in cells


def test_diagonal_segment_covers_clipped_cells():
    index = SpatialHash(10.0)
    cells = index.cells_along_segment((9.0, 1.0), (11.0, 19.0))

    assert (0, 0) in cells
    assert (1, 1) in cells
    # the segment crosses x = 10 inside row 0 or row 1; both neighbours are kept
    assert (1, 0) in cells
    assert (0, 1) in cells


def test_queries_return_stored_ids():
    graph = _line_graph()
    index = SpatialHash.from_graph(graph, 10.0)

    assert index.stations_near((1.0, 1.0)) == {1}
    assert index.stations_near((39.0, 24.0)) == {3}
    assert 0 in index.tracks_near((20.0, 0.0))
    assert index.tracks_along_segment((30.0, 10.0), (50.0, 10.0)) == {0, 1}
    assert 3 in index.stations_along_segment((40.0, 5.0), (40.0, 20.0))


def test_rebuild_after_clear():
    graph = _line_graph()
    index = SpatialHash.from_graph(graph, 10.0)
    index.clear()

    assert len(index) == 0
    index.build(graph)
    assert index.stations_near((0.0, 0.0)) == {1}


def test_default_cell_size_policy():
    graph = _line_graph()

    assert default_cell_size(graph) == 1.5 * (40.0 + 25.0) / 2
    tiny = MetroGraph()
    tiny.add_station(1, 0.0, 0.0)
    tiny.add_station(2, 0.1, 0.0)
    tiny.add_track(1, 2)
    assert default_cell_size(tiny) == 1.0
