"""Quadratic-program façade used by the layout stages.

The stages only need "minimize a convex quadratic over real (and optionally
binary) variables subject to linear constraints"; :class:`QuadraticModel`
exposes exactly that on top of :func:`scipy.optimize.minimize`.
"""

from __future__ import annotations

from .config import SolverOptions, get_solver_options, resolve_solver_options, set_solver_options
from .model import (
    QuadraticModel,
    QuadraticProblem,
    SolveResult,
    SolveStatus,
    SolverError,
    Variable,
)

STATUS_CODES = {
    SolveStatus.OPTIMAL: 0,
    SolveStatus.INFEASIBLE: -1,
    SolveStatus.UNBOUNDED: -2,
    SolveStatus.TIMEOUT: -3,
    SolveStatus.OTHER: -4,
}


def status_code(status: SolveStatus) -> int:
    """Map a solver status onto the stage return-code convention."""

    return STATUS_CODES.get(status, -4)


__all__ = [
    "QuadraticModel",
    "QuadraticProblem",
    "STATUS_CODES",
    "SolveResult",
    "SolveStatus",
    "SolverError",
    "SolverOptions",
    "Variable",
    "get_solver_options",
    "resolve_solver_options",
    "set_solver_options",
    "status_code",
]
