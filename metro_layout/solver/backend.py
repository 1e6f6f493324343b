"""SLSQP backend for :class:`~metro_layout.solver.model.QuadraticModel`.

Equality rows that pin a single variable are presolved exactly, so a snapped
coordinate comes back bit-identical to its target. Binary variables are
handled by depth-first branch-and-bound over the continuous relaxation.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, minimize

from ..logging_utils import apply_debug_logging
from .config import SolverOptions
from .model import QuadraticProblem, SolveResult, SolveStatus

logger = logging.getLogger(__name__)

_INTEGRALITY_TOL = 1e-6
_UNBOUNDED_MAGNITUDE = 1e12
# SLSQP exit modes: 4 = incompatible inequality constraints, 8 = positive
# directional derivative in linesearch (reached at a numerically flat optimum).
_SLSQP_INCOMPATIBLE = 4
_SLSQP_FLAT = 8


class _Deadline:
    def __init__(self, time_limit: Optional[float]) -> None:
        self.expires = None if time_limit is None else time.monotonic() + time_limit

    @property
    def expired(self) -> bool:
        return self.expires is not None and time.monotonic() >= self.expires

    def remaining(self) -> Optional[float]:
        if self.expires is None:
            return None
        return max(0.0, self.expires - time.monotonic())


@dataclass
class _Presolved:
    fixed: np.ndarray
    values: np.ndarray
    infeasible: str = ""


def _presolve(problem: QuadraticProblem, lower: np.ndarray, upper: np.ndarray, tol: float) -> _Presolved:
    """Fix variables with collapsed bounds or a single-variable equality row."""

    fixed = lower == upper
    values = np.where(fixed, lower, 0.0)
    equality_rows = [r for r in range(problem.row_lo.size) if problem.row_lo[r] == problem.row_hi[r]]

    changed = True
    while changed:
        changed = False
        for r in equality_rows:
            row = problem.matrix[r]
            free = [j for j in np.flatnonzero(row) if not fixed[j]]
            if len(free) != 1:
                continue
            j = free[0]
            rest = float(row[fixed] @ values[fixed])
            value = (problem.row_lo[r] - rest) / row[j]
            if value < lower[j] - tol or value > upper[j] + tol:
                return _Presolved(fixed, values, f"row {r} pins x{j}={value:.6g} outside [{lower[j]:.6g}, {upper[j]:.6g}]")
            fixed[j] = True
            values[j] = value
            changed = True

    for r in range(problem.row_lo.size):
        row = problem.matrix[r]
        if np.any(row[~fixed] != 0.0):
            continue
        total = float(row[fixed] @ values[fixed])
        if total < problem.row_lo[r] - tol or total > problem.row_hi[r] + tol:
            return _Presolved(fixed, values, f"row {r} evaluates to {total:.6g} outside its range")
    return _Presolved(fixed, values)


def _solve_relaxation(
    problem: QuadraticProblem,
    lower: np.ndarray,
    upper: np.ndarray,
    options: SolverOptions,
    deadline: _Deadline,
) -> SolveResult:
    tol = options.feasibility_tol
    pre = _presolve(problem, lower, upper, tol)
    if pre.infeasible:
        logger.debug("Presolve proved infeasibility: %s", pre.infeasible)
        return SolveResult(SolveStatus.INFEASIBLE, message=pre.infeasible)

    free = ~pre.fixed
    x = pre.values.copy()
    if not free.any():
        return SolveResult(SolveStatus.OPTIMAL, x, problem.objective(x), "all variables fixed in presolve")

    fixed_part = pre.values * pre.fixed
    h_ff = problem.hessian[np.ix_(free, free)]
    g_f = problem.gradient[free] + problem.hessian[np.ix_(free, pre.fixed)] @ pre.values[pre.fixed]
    lo_f = lower[free]
    hi_f = upper[free]
    start = np.clip(problem.start[free], lo_f, hi_f)

    constraints: List[LinearConstraint] = []
    if problem.matrix.size:
        shift = problem.matrix @ fixed_part
        a_f = problem.matrix[:, free]
        keep = np.any(a_f != 0.0, axis=1) & (
            np.isfinite(problem.row_lo) | np.isfinite(problem.row_hi)
        )
        lo_rows = problem.row_lo - shift
        hi_rows = problem.row_hi - shift
        # equality rows and inequality rows go to SLSQP as separate constraints
        equal = keep & (problem.row_lo == problem.row_hi)
        for rows in (equal, keep & ~equal):
            if rows.any():
                constraints.append(LinearConstraint(a_f[rows], lo_rows[rows], hi_rows[rows]))

    def fun(v: np.ndarray) -> float:
        return float(0.5 * v @ h_ff @ v + g_f @ v)

    def jac(v: np.ndarray) -> np.ndarray:
        return h_ff @ v + g_f

    last = {"x": start.copy()}
    timed_out = {"flag": False}

    def callback(*args) -> None:
        intermediate = args[0]
        last["x"] = np.array(getattr(intermediate, "x", intermediate), dtype=float)
        if deadline.expired:
            timed_out["flag"] = True
            raise StopIteration

    try:
        result = minimize(
            fun,
            start,
            jac=jac,
            method="SLSQP",
            bounds=Bounds(lo_f, hi_f),
            constraints=constraints,
            callback=callback,
            options={"maxiter": options.max_iterations, "ftol": options.ftol},
        )
        x_f = np.asarray(result.x, dtype=float)
        status_code = int(getattr(result, "status", 0))
        success = bool(result.success)
        message = str(result.message)
    except StopIteration:
        x_f = last["x"]
        status_code = -1
        success = False
        message = "time limit reached"

    x[free] = x_f
    if not np.all(np.isfinite(x)) or np.max(np.abs(x), initial=0.0) > _UNBOUNDED_MAGNITUDE:
        return SolveResult(SolveStatus.UNBOUNDED, message=message)

    violation = problem.violation(x)
    objective = problem.objective(x)
    feasible = violation <= tol
    if timed_out["flag"] or (deadline.expired and not success):
        if feasible:
            return SolveResult(SolveStatus.TIMEOUT, x, objective, message)
        return SolveResult(SolveStatus.TIMEOUT, message=message)
    if success and feasible:
        return SolveResult(SolveStatus.OPTIMAL, x, objective, message)
    if feasible and status_code == _SLSQP_FLAT:
        logger.debug("Accepting flat SLSQP exit at a feasible point: %s", message)
        return SolveResult(SolveStatus.OPTIMAL, x, objective, message)
    if status_code == _SLSQP_INCOMPATIBLE or not feasible:
        logger.debug("Relaxation infeasible (violation=%.3g): %s", violation, message)
        return SolveResult(SolveStatus.INFEASIBLE, message=message)
    return SolveResult(SolveStatus.OTHER, message=message)


def _most_fractional(problem: QuadraticProblem, x: np.ndarray) -> Optional[int]:
    best: Optional[Tuple[float, int]] = None
    for j in np.flatnonzero(problem.binary):
        frac = abs(x[j] - round(x[j]))
        if frac > _INTEGRALITY_TOL and (best is None or frac > best[0]):
            best = (frac, int(j))
    return None if best is None else best[1]


def _branch_and_bound(
    problem: QuadraticProblem, options: SolverOptions, deadline: _Deadline
) -> SolveResult:
    incumbent: Optional[SolveResult] = None
    stack = [(problem.lower.copy(), problem.upper.copy())]
    nodes = 0
    saw_unbounded = False
    limit_hit = False

    while stack:
        if nodes >= options.max_nodes or deadline.expired:
            limit_hit = True
            break
        lower, upper = stack.pop()
        nodes += 1
        relaxed = _solve_relaxation(problem, lower, upper, options, deadline)
        if relaxed.status == SolveStatus.UNBOUNDED:
            saw_unbounded = True
            continue
        if relaxed.x is None or relaxed.status not in (SolveStatus.OPTIMAL, SolveStatus.TIMEOUT):
            continue
        if incumbent is not None and relaxed.objective >= incumbent.objective - 1e-9:
            continue

        j = _most_fractional(problem, relaxed.x)
        if j is None:
            x = relaxed.x.copy()
            x[problem.binary] = np.round(x[problem.binary])
            if problem.violation(x) <= options.feasibility_tol:
                incumbent = SolveResult(SolveStatus.OPTIMAL, x, problem.objective(x))
                logger.debug("New incumbent at node %d: objective=%.6g", nodes, incumbent.objective)
            continue

        value = relaxed.x[j]
        down = (lower.copy(), upper.copy())
        down[1][j] = 0.0
        up = (lower.copy(), upper.copy())
        up[0][j] = 1.0
        # Depth-first; the branch nearer the relaxed value is explored first.
        if value >= 0.5:
            stack.extend([down, up])
        else:
            stack.extend([up, down])

    if incumbent is not None:
        incumbent.nodes = nodes
        if limit_hit:
            incumbent.status = SolveStatus.TIMEOUT
            incumbent.message = "node or time limit reached"
        return incumbent
    if limit_hit:
        return SolveResult(SolveStatus.TIMEOUT, message="node or time limit reached", nodes=nodes)
    if saw_unbounded:
        return SolveResult(SolveStatus.UNBOUNDED, nodes=nodes)
    return SolveResult(SolveStatus.INFEASIBLE, message="no integral solution", nodes=nodes)


def solve_problem(problem: QuadraticProblem, options: SolverOptions) -> SolveResult:
    """Minimize ``problem`` and report status, solution and objective."""

    deadline = _Deadline(options.time_limit)
    if problem.size == 0:
        return SolveResult(SolveStatus.OPTIMAL, np.zeros(0), problem.constant)
    if problem.binary.any():
        return _branch_and_bound(problem, options, deadline)
    result = _solve_relaxation(problem, problem.lower, problem.upper, options, deadline)
    result.nodes = 1
    return result


apply_debug_logging(globals(), logger=logger)


__all__ = ["solve_problem"]
