"""Uniform guide-line spacing.

For each orientation with at least two lines, solve for new positions that keep
the outermost lines fixed, preserve order with a minimum gap, and pull every
gap towards the target pitch ``(last - first) / (n - 1)``. Stations on a line
move with it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..geometry import HORIZONTAL, VERTICAL
from ..graph import MetroGraph
from ..gridlines import MEMBERSHIP_EPSILON, AuxLineGrid
from ..solver import QuadraticModel, SolverOptions, resolve_solver_options
from .base import SUCCESS, finish

logger = logging.getLogger(__name__)


@dataclass
class SpacingOptions:
    min_spacing: float = 10.0
    time_limit: Optional[float] = 300.0


def target_pitch(positions: List[float], min_spacing: float) -> float:
    pitch = (positions[-1] - positions[0]) / (len(positions) - 1)
    if pitch < min_spacing:
        logger.warning(
            "Target spacing %.6g is below the minimum spacing %.6g; using the minimum", pitch, min_spacing
        )
        pitch = min_spacing
    return pitch


def optimize_line_spacing(
    positions: List[float],
    min_spacing: float = 10.0,
    solver_options: Optional[SolverOptions] = None,
) -> Tuple[int, List[float]]:
    """Return ``(code, new_positions)`` for ascending ``positions``.

    Fewer than two lines is a no-op that returns the input unchanged.
    """

    if len(positions) < 2:
        return SUCCESS, list(positions)

    first, last = positions[0], positions[-1]
    pitch = target_pitch(positions, min_spacing)

    model = QuadraticModel(name="line-spacing", options=solver_options)
    variables = [
        model.add_real_var(first, last, p, name=f"P_{i}") for i, p in enumerate(positions)
    ]
    model.add_equality_constraint({variables[0]: 1.0}, first, name="fix_first")
    model.add_equality_constraint({variables[-1]: 1.0}, last, name="fix_last")
    for i in range(len(variables) - 1):
        model.add_linear_constraint(
            {variables[i + 1]: 1.0, variables[i]: -1.0}, lo=min_spacing, name=f"order_{i}"
        )
        model.add_squared_term({variables[i + 1]: 1.0, variables[i]: -1.0}, -pitch)

    status = model.solve()
    code = finish(model, status, "line-spacing")
    if code != SUCCESS:
        return code, list(positions)
    return SUCCESS, [model.value(var) for var in variables]


def _shift_stations(graph: MetroGraph, mapping: Dict[float, float], orientation: str) -> int:
    moved = 0
    for station in graph.stations():
        current = station.y if orientation == HORIZONTAL else station.x
        for old in sorted(mapping):
            if abs(current - old) < MEMBERSHIP_EPSILON:
                if orientation == HORIZONTAL:
                    graph.set_coord(station.id, station.x, mapping[old])
                else:
                    graph.set_coord(station.id, mapping[old], station.y)
                moved += 1
                break
    return moved


def uniform_spacing(
    graph: MetroGraph,
    grid: AuxLineGrid,
    options: Optional[SpacingOptions] = None,
    solver_options: Optional[SolverOptions] = None,
) -> int:
    """Equalize line pitch per orientation and drag member stations along."""

    options = options or SpacingOptions()
    solver_options = resolve_solver_options(solver_options, time_limit=options.time_limit)
    grid.rebuild_membership(graph)

    updates: Dict[str, List[float]] = {}
    for orientation in (HORIZONTAL, VERTICAL):
        positions = grid.positions(orientation)
        if len(positions) < 2:
            logger.info("Skipping %s spacing: %d line(s)", orientation, len(positions))
            continue
        code, new_positions = optimize_line_spacing(positions, options.min_spacing, solver_options)
        if code != SUCCESS:
            logger.error("Failed to optimize %s line spacing", orientation)
            return code
        # The old-to-new map is taken before any re-sorting of the grid.
        mapping = dict(zip(positions, new_positions))
        moved = _shift_stations(graph, mapping, orientation)
        logger.info(
            "Respaced %d %s line(s); %d station(s) moved", len(positions), orientation, moved
        )
        updates[orientation] = new_positions

    graph.update_angles()
    if HORIZONTAL in updates:
        grid.reposition_horizontal(updates[HORIZONTAL])
    if VERTICAL in updates:
        grid.reposition_vertical(updates[VERTICAL])
    grid.rebuild_membership(graph)
    logger.info("Spacing done: %s", grid.describe())
    return SUCCESS


__all__ = ["SpacingOptions", "optimize_line_spacing", "target_pitch", "uniform_spacing"]
