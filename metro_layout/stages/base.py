"""Helpers shared by the QP-driven layout stages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..graph import MetroGraph, StationId
from ..solver import QuadraticModel, SolveStatus, SolverOptions, Variable, status_code

logger = logging.getLogger(__name__)

SUCCESS = 0
INTERNAL_ERROR = -5


@dataclass
class CoordinateModel:
    """X/Y variables per station, boxed to the current bounding box."""

    model: QuadraticModel
    xs: Dict[StationId, Variable] = field(default_factory=dict)
    ys: Dict[StationId, Variable] = field(default_factory=dict)
    bounds: tuple = (0.0, 0.0, 0.0, 0.0)

    def apply(self, graph: MetroGraph) -> None:
        coords = {
            sid: (self.model.value(self.xs[sid]), self.model.value(self.ys[sid])) for sid in self.xs
        }
        graph.apply_coords(coords)


def displacement_model(graph: MetroGraph, name: str, options: Optional[SolverOptions] = None) -> CoordinateModel:
    """Build ``min sum w * ((X - x0)^2 + (Y - y0)^2)`` over every station."""

    min_x, max_x, min_y, max_y = graph.coordinate_range()
    model = QuadraticModel(name=name, options=options)
    built = CoordinateModel(model, bounds=(min_x, max_x, min_y, max_y))
    for station in graph.stations():
        x = model.add_real_var(min_x, max_x, station.x, name=f"X_{station.id}")
        y = model.add_real_var(min_y, max_y, station.y, name=f"Y_{station.id}")
        built.xs[station.id] = x
        built.ys[station.id] = y
        model.add_squared_term({x: 1.0}, -station.x, weight=station.weight)
        model.add_squared_term({y: 1.0}, -station.y, weight=station.weight)
    return built


def finish(model: QuadraticModel, status: SolveStatus, stage: str) -> int:
    """Translate a solve status into a stage return code, logging failures."""

    if status == SolveStatus.OPTIMAL:
        return SUCCESS
    if status == SolveStatus.TIMEOUT and model.has_solution:
        logger.warning("%s: solver timed out; accepting feasible incumbent", stage)
        return SUCCESS
    logger.error("%s: solver finished with status '%s'", stage, status.value)
    return status_code(status)


__all__ = ["CoordinateModel", "INTERNAL_ERROR", "SUCCESS", "displacement_model", "finish"]
