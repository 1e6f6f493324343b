from .reader import parse_map, read_map, validate_tracks, MapParseError, MapStructureError
from .graph import MetroGraph, Station, Track
from .gridlines import AuxLineGrid, AuxiliaryLine, GridOptions
from .spatial_hash import SpatialHash, default_cell_size
from .overlap import overlaps, overlaps_naive, overlaps_accelerated, OverlapChecker
from .solver import (
    QuadraticModel,
    SolveStatus,
    SolverError,
    SolverOptions,
    get_solver_options,
    set_solver_options,
)
from .stages import (
    AlignmentOptions,
    DanglingOptions,
    OrientationOptions,
    SpacingOptions,
    align_vertices,
    orient_edges,
    position_dangling_vertices,
    uniform_spacing,
)
from .pipeline import PipelineOptions, PipelineResult, StageError, run_file, run_pipeline, summarize
from .svg import write_svg, write_snapshot
from .benchmark import run_benchmark

__all__ = [
    'parse_map',
    'read_map',
    'validate_tracks',
    'MapParseError',
    'MapStructureError',
    'MetroGraph',
    'Station',
    'Track',
    'AuxLineGrid',
    'AuxiliaryLine',
    'GridOptions',
    'SpatialHash',
    'default_cell_size',
    'overlaps',
    'overlaps_naive',
    'overlaps_accelerated',
    'OverlapChecker',
    'QuadraticModel',
    'SolveStatus',
    'SolverError',
    'SolverOptions',
    'get_solver_options',
    'set_solver_options',
    'AlignmentOptions',
    'DanglingOptions',
    'OrientationOptions',
    'SpacingOptions',
    'align_vertices',
    'orient_edges',
    'position_dangling_vertices',
    'uniform_spacing',
    'PipelineOptions',
    'PipelineResult',
    'StageError',
    'run_file',
    'run_pipeline',
    'summarize',
    'write_svg',
    'write_snapshot',
    'run_benchmark',
]
