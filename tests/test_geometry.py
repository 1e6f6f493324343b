import math

import pytest

from metro_layout.geometry import (
    HORIZONTAL,
    VERTICAL,
    angular_distance,
    edge_angle,
    is_close_to_horizontal,
    is_close_to_vertical,
    is_collinear,
    normalize_angle,
    offset_to_axis,
    point_in_segment_interior,
    points_coincide,
    segments_overlap,
)


def test_collinearity_uses_cross_product_threshold():
    assert is_collinear((5.0, 0.0), (0.0, 0.0), (10.0, 0.0))
    assert is_collinear((20.0, 0.0), (0.0, 0.0), (10.0, 0.0))
    assert not is_collinear((5.0, 0.01), (0.0, 0.0), (10.0, 0.0))


def test_points_coincide_needs_both_deltas_below_eps():
    assert points_coincide((1.0, 1.0), (1.0005, 0.9995))
    assert not points_coincide((1.0, 1.0), (1.0, 1.002))


def test_segment_interior_excludes_endpoints():
    a, b = (0.0, 0.0), (10.0, 0.0)
    assert point_in_segment_interior((5.0, 0.0), a, b)
    assert not point_in_segment_interior((0.0, 0.0), a, b)
    assert not point_in_segment_interior((10.0, 0.0), a, b)
    assert not point_in_segment_interior((12.0, 0.0), a, b)


def test_segment_interior_compares_y_on_vertical_segments():
    a, b = (3.0, 0.0), (3.0, 10.0)
    assert point_in_segment_interior((3.0, 4.0), a, b)
    assert not point_in_segment_interior((3.0, 10.0), a, b)
    assert not point_in_segment_interior((3.0, -1.0), a, b)


def test_segments_overlap_requires_open_interval():
    a, b = (0.0, 0.0), (10.0, 0.0)
    assert segments_overlap(a, b, (5.0, 0.0), (15.0, 0.0))
    assert segments_overlap(a, b, (2.0, 0.0), (3.0, 0.0))
    # touching at one endpoint is allowed
    assert not segments_overlap(a, b, (10.0, 0.0), (20.0, 0.0))
    assert not segments_overlap(a, b, (5.0, 1.0), (15.0, 1.0))


def test_segments_overlap_on_vertical_line():
    a, b = (0.0, 0.0), (0.0, 10.0)
    assert segments_overlap(a, b, (0.0, 9.0), (0.0, 12.0))
    assert not segments_overlap(a, b, (0.0, 10.0), (0.0, 12.0))


def test_zero_length_segment_overlaps_nothing():
    point = (0.0, 0.0)
    assert not segments_overlap(point, point, (1000.0, -50.0), (1000.0, 50.0))
    assert not segments_overlap((0.0, -5.0), (0.0, 5.0), point, point)
    assert not segments_overlap(point, point, point, point)


def test_angle_helpers():
    assert edge_angle((0.0, 0.0), (0.0, 1.0)) == pytest.approx(math.pi / 2)
    assert normalize_angle(-math.pi / 2) == pytest.approx(3 * math.pi / 2)
    assert angular_distance(0.1, 2 * math.pi - 0.1) == pytest.approx(0.2)
    assert offset_to_axis(math.pi - 0.2, HORIZONTAL) == pytest.approx(0.2)
    assert offset_to_axis(-math.pi / 2 + 0.1, VERTICAL) == pytest.approx(0.1)
    with pytest.raises(ValueError):
        offset_to_axis(0.0, "diagonal")


def test_close_to_axis_flags():
    assert is_close_to_horizontal((0.0, 0.0), (10.0, 1.0))
    assert not is_close_to_vertical((0.0, 0.0), (10.0, 1.0))
    assert is_close_to_vertical((0.0, 0.0), (5.0, 9.0))
    assert not is_close_to_horizontal((0.0, 0.0), (5.0, 9.0))
