"""The four coordinate-rewriting stages of the layout pipeline."""

from __future__ import annotations

from .alignment import AlignmentOptions, align_vertices, cluster_coordinates, kmeans_1d
from .base import INTERNAL_ERROR, SUCCESS
from .dangling import DanglingOptions, find_dangling, position_dangling_vertices
from .orientation import OrientationOptions, orient_edges, preselect
from .spacing import SpacingOptions, optimize_line_spacing, uniform_spacing

__all__ = [
    "AlignmentOptions",
    "DanglingOptions",
    "INTERNAL_ERROR",
    "OrientationOptions",
    "SUCCESS",
    "SpacingOptions",
    "align_vertices",
    "cluster_coordinates",
    "find_dangling",
    "kmeans_1d",
    "optimize_line_spacing",
    "orient_edges",
    "position_dangling_vertices",
    "preselect",
    "uniform_spacing",
]
