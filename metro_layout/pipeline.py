"""Fixed-order layout pipeline with SVG snapshots between stages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .graph import MetroGraph
from .gridlines import AuxLineGrid, GridOptions
from .logging_utils import apply_debug_logging
from .overlap import OverlapChecker
from .reader import read_map
from .solver import SolverOptions
from .spatial_hash import default_cell_size
from .stages import (
    SUCCESS,
    AlignmentOptions,
    DanglingOptions,
    OrientationOptions,
    SpacingOptions,
    align_vertices,
    orient_edges,
    position_dangling_vertices,
    uniform_spacing,
)
from .svg import write_snapshot

logger = logging.getLogger(__name__)

STEP_ORIENTATION = 1
STEP_ALIGNMENT = 2
STEP_GRID = 3
STEP_DANGLING = 4
STEP_SPACING = 5

STEP_NAMES = {
    STEP_ORIENTATION: "edge-orientation",
    STEP_ALIGNMENT: "vertex-alignment",
    STEP_GRID: "grid-construction",
    STEP_DANGLING: "dangling-positioning",
    STEP_SPACING: "line-spacing",
}

# Snapshot index written after each step; the input is snapshot 0.
SNAPSHOT_AFTER = {
    STEP_ORIENTATION: 2,
    STEP_ALIGNMENT: 3,
    STEP_DANGLING: 4,
    STEP_SPACING: 5,
}


class StageError(RuntimeError):
    """A pipeline stage returned a negative code."""

    def __init__(self, step: int, code: int):
        self.step = step
        self.stage = STEP_NAMES.get(step, str(step))
        self.code = code
        super().__init__(f"stage {step} ({self.stage}) failed with code {code}")


@dataclass
class PipelineOptions:
    orientation: OrientationOptions = field(default_factory=OrientationOptions)
    alignment: AlignmentOptions = field(default_factory=AlignmentOptions)
    grid: GridOptions = field(default_factory=GridOptions)
    dangling: DanglingOptions = field(default_factory=DanglingOptions)
    spacing: SpacingOptions = field(default_factory=SpacingOptions)
    solver: Optional[SolverOptions] = None
    output_dir: Union[str, Path] = "output"
    testcase: str = "test0"
    write_svg: bool = True
    use_spatial_hash: bool = True
    cell_size: Optional[float] = None


@dataclass
class PipelineResult:
    graph: MetroGraph
    grid: AuxLineGrid
    snapshots: List[Path] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    overlap_queries: int = 0


class _Run:
    def __init__(self, graph: MetroGraph, options: PipelineOptions) -> None:
        self.graph = graph
        self.options = options
        self.grid = AuxLineGrid(options.grid)
        cell_size = options.cell_size or default_cell_size(graph)
        self.checker = OverlapChecker(
            graph, use_spatial_hash=options.use_spatial_hash, cell_size=cell_size
        )
        self.result = PipelineResult(graph, self.grid)

    def snapshot(self, index: int) -> None:
        if not self.options.write_svg:
            return
        path = write_snapshot(self.graph, self.options.output_dir, self.options.testcase, index)
        if path is not None:
            self.result.snapshots.append(path)

    def step(self, step: int, action: Callable[[], int]) -> None:
        name = STEP_NAMES[step]
        logger.info("=== Step %d: %s ===", step, name)
        code = action()
        if code != SUCCESS:
            logger.error("Step %d (%s) failed with code %d", step, name, code)
            raise StageError(step, code)
        self.checker.invalidate()
        self.graph.update_direction_masks()
        self.result.completed.append(name)
        if step in SNAPSHOT_AFTER:
            self.snapshot(SNAPSHOT_AFTER[step])

    def build_grid(self) -> int:
        self.grid.build(self.graph)
        self.grid.rebuild_membership(self.graph)
        return SUCCESS

    def position_dangling(self) -> int:
        code = position_dangling_vertices(self.graph, self.grid, self.options.dangling, self.checker)
        self.grid.rebuild_membership(self.graph)
        return code

    def run(self) -> PipelineResult:
        opts = self.options
        self.snapshot(0)
        self.step(STEP_ORIENTATION, lambda: orient_edges(self.graph, opts.orientation, opts.solver))
        self.step(
            STEP_ALIGNMENT,
            lambda: align_vertices(self.graph, opts.alignment, opts.solver, self.checker),
        )
        self.step(STEP_GRID, self.build_grid)
        self.step(STEP_DANGLING, self.position_dangling)
        self.step(STEP_SPACING, lambda: uniform_spacing(self.graph, self.grid, opts.spacing, opts.solver))
        self.result.overlap_queries = self.checker.queries
        return self.result


def run_pipeline(graph: MetroGraph, options: Optional[PipelineOptions] = None) -> PipelineResult:
    """Run all layout stages on ``graph`` in place; raises :class:`StageError` on failure."""

    options = options or PipelineOptions()
    if not graph.num_stations:
        raise ValueError("cannot lay out an empty graph")
    logger.info("Running layout pipeline on %s", graph)
    result = _Run(graph, options).run()
    logger.info("Pipeline finished: %s", result.grid.describe())
    return result


def run_file(path: Union[str, Path], options: Optional[PipelineOptions] = None) -> PipelineResult:
    options = options or PipelineOptions(testcase=Path(path).stem)
    return run_pipeline(read_map(path), options)


def summarize(result: PipelineResult) -> Dict[str, object]:
    graph = result.graph
    return {
        "stations": graph.num_stations,
        "tracks": graph.num_tracks,
        "horizontal_lines": len(result.grid.horizontal),
        "vertical_lines": len(result.grid.vertical),
        "key_lines": result.grid.key_line_count,
        "snapshots": [str(p) for p in result.snapshots],
    }


apply_debug_logging(globals(), logger=logger)


__all__ = [
    "PipelineOptions",
    "PipelineResult",
    "STEP_NAMES",
    "StageError",
    "run_file",
    "run_pipeline",
    "summarize",
]
