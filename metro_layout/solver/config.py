"""Solver options and the process-wide defaults the layout stages fall back to.

Stages receive an optional :class:`SolverOptions`; when it is ``None`` they
use :func:`get_solver_options`. Per-stage limits (e.g. the spacing stage's
time limit) are layered on top with :func:`resolve_solver_options`, which
never aliases the caller's object.
"""

from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class SolverOptions:
    """Knobs for the SLSQP backend and the branch-and-bound over binaries."""

    max_iterations: int = 1000
    ftol: float = 1e-12
    time_limit: Optional[float] = None
    max_nodes: int = 10000
    feasibility_tol: float = 1e-6

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be positive, got {self.max_iterations}")
        if self.max_nodes < 1:
            raise ValueError(f"max_nodes must be positive, got {self.max_nodes}")
        if self.ftol <= 0 or self.feasibility_tol <= 0:
            raise ValueError("solver tolerances must be positive")
        if self.time_limit is not None and self.time_limit < 0:
            raise ValueError(f"time_limit must be non-negative, got {self.time_limit}")


_DEFAULT_OPTIONS = SolverOptions()


def get_solver_options() -> SolverOptions:
    return copy.deepcopy(_DEFAULT_OPTIONS)


def set_solver_options(options: Optional[SolverOptions] = None) -> None:
    """Replace the process default; ``None`` restores the built-in values."""

    global _DEFAULT_OPTIONS
    _DEFAULT_OPTIONS = copy.deepcopy(options) if options is not None else SolverOptions()


def resolve_solver_options(options: Optional[SolverOptions] = None, **overrides: Any) -> SolverOptions:
    base = options if options is not None else _DEFAULT_OPTIONS
    unknown = set(overrides) - {f.name for f in dataclasses.fields(SolverOptions)}
    if unknown:
        raise ValueError(f"unknown solver option(s): {', '.join(sorted(unknown))}")
    return dataclasses.replace(base, **overrides)


__all__ = ["SolverOptions", "get_solver_options", "resolve_solver_options", "set_solver_options"]
