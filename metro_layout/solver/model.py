"""Core data structures for the quadratic-program solver."""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from .config import SolverOptions, resolve_solver_options

logger = logging.getLogger(__name__)

INF = math.inf


class SolveStatus(enum.Enum):
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    TIMEOUT = "timeout"
    OTHER = "other"


class SolverError(RuntimeError):
    """Raised when a solution value is requested from a model without one."""

    def __init__(self, status: SolveStatus, message: str = ""):
        super().__init__(message or f"solver finished with status '{status.value}'")
        self.status = status


@dataclass(frozen=True)
class Variable:
    index: int
    name: str

    def __repr__(self) -> str:
        return f"Variable({self.name or self.index})"


LinearExpr = Mapping[Variable, float]


@dataclass
class LinearRow:
    coeffs: Dict[int, float]
    lo: float
    hi: float
    name: str = ""


@dataclass
class QuadraticProblem:
    """Dense matrix form: minimize ``0.5 x'Hx + g'x + constant`` s.t. rows and bounds."""

    hessian: np.ndarray
    gradient: np.ndarray
    constant: float
    matrix: np.ndarray
    row_lo: np.ndarray
    row_hi: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    start: np.ndarray
    binary: np.ndarray

    @property
    def size(self) -> int:
        return int(self.lower.size)

    def objective(self, x: np.ndarray) -> float:
        return float(0.5 * x @ self.hessian @ x + self.gradient @ x + self.constant)

    def violation(self, x: np.ndarray) -> float:
        """Largest bound or row violation at ``x`` (zero when feasible)."""

        worst = 0.0
        if x.size:
            worst = max(worst, float(np.max(self.lower - x, initial=0.0)))
            worst = max(worst, float(np.max(x - self.upper, initial=0.0)))
        if self.matrix.size:
            values = self.matrix @ x
            worst = max(worst, float(np.max(self.row_lo - values, initial=0.0)))
            worst = max(worst, float(np.max(values - self.row_hi, initial=0.0)))
        return worst


@dataclass
class SolveResult:
    status: SolveStatus
    x: Optional[np.ndarray] = None
    objective: Optional[float] = None
    message: str = ""
    nodes: int = 0


@dataclass
class QuadraticModel:
    """Incrementally built convex QP over real and binary variables.

    The objective is always minimized. Quadratic terms are keyed by variable
    index pairs with coefficient ``c`` standing for ``c * x_i * x_j``.
    """

    name: str = "qp"
    options: Optional[SolverOptions] = None
    _lower: List[float] = field(default_factory=list, init=False, repr=False)
    _upper: List[float] = field(default_factory=list, init=False, repr=False)
    _start: List[float] = field(default_factory=list, init=False, repr=False)
    _binary: List[bool] = field(default_factory=list, init=False, repr=False)
    _names: List[str] = field(default_factory=list, init=False, repr=False)
    _rows: List[LinearRow] = field(default_factory=list, init=False, repr=False)
    _quadratic: Dict[Tuple[int, int], float] = field(default_factory=dict, init=False, repr=False)
    _linear: Dict[int, float] = field(default_factory=dict, init=False, repr=False)
    _constant: float = field(default=0.0, init=False, repr=False)
    _result: Optional[SolveResult] = field(default=None, init=False, repr=False)

    # ------------------------------------------------------------------
    # variables
    # ------------------------------------------------------------------
    def _add_var(self, lo: float, hi: float, start: Optional[float], binary: bool, name: str) -> Variable:
        if lo > hi:
            raise ValueError(f"variable '{name}' has empty domain [{lo}, {hi}]")
        index = len(self._lower)
        if start is None:
            start = min(max(0.0, lo), hi)
        self._lower.append(float(lo))
        self._upper.append(float(hi))
        self._start.append(float(start))
        self._binary.append(binary)
        self._names.append(name or f"x{index}")
        return Variable(index, self._names[-1])

    def add_real_var(
        self, lo: float = -INF, hi: float = INF, start: Optional[float] = None, name: str = ""
    ) -> Variable:
        return self._add_var(lo, hi, start, False, name)

    def add_binary_var(self, name: str = "", start: Optional[float] = None) -> Variable:
        return self._add_var(0.0, 1.0, start, True, name)

    @property
    def num_vars(self) -> int:
        return len(self._lower)

    @property
    def num_constraints(self) -> int:
        return len(self._rows)

    # ------------------------------------------------------------------
    # constraints
    # ------------------------------------------------------------------
    def add_linear_constraint(
        self, coeffs: LinearExpr, lo: float = -INF, hi: float = INF, name: str = ""
    ) -> None:
        """Add ``lo <= sum(coeffs[v] * v) <= hi``."""

        if lo > hi:
            raise ValueError(f"constraint '{name}' has empty range [{lo}, {hi}]")
        row = {var.index: float(c) for var, c in coeffs.items() if c != 0.0}
        self._rows.append(LinearRow(row, float(lo), float(hi), name))

    def add_equality_constraint(self, coeffs: LinearExpr, rhs: float, name: str = "") -> None:
        self.add_linear_constraint(coeffs, rhs, rhs, name)

    # ------------------------------------------------------------------
    # objective
    # ------------------------------------------------------------------
    def set_quadratic_objective(
        self,
        quadratic: Mapping[Tuple[Variable, Variable], float],
        linear: Optional[LinearExpr] = None,
        constant: float = 0.0,
    ) -> None:
        self._quadratic = {}
        self._linear = {}
        self._constant = float(constant)
        for (a, b), c in quadratic.items():
            key = (min(a.index, b.index), max(a.index, b.index))
            self._quadratic[key] = self._quadratic.get(key, 0.0) + float(c)
        for var, c in (linear or {}).items():
            self._linear[var.index] = self._linear.get(var.index, 0.0) + float(c)

    def add_squared_term(self, coeffs: LinearExpr, constant: float = 0.0, weight: float = 1.0) -> None:
        """Accumulate ``weight * (sum(coeffs[v] * v) + constant) ** 2`` into the objective."""

        items = [(var.index, float(c)) for var, c in coeffs.items()]
        for i, (a, ca) in enumerate(items):
            for b, cb in items[i:]:
                key = (min(a, b), max(a, b))
                factor = 1.0 if a == b else 2.0
                self._quadratic[key] = self._quadratic.get(key, 0.0) + weight * factor * ca * cb
            self._linear[a] = self._linear.get(a, 0.0) + weight * 2.0 * ca * constant
        self._constant += weight * constant * constant

    # ------------------------------------------------------------------
    # solving
    # ------------------------------------------------------------------
    def to_problem(self) -> QuadraticProblem:
        n = self.num_vars
        hessian = np.zeros((n, n), dtype=float)
        for (a, b), c in self._quadratic.items():
            if a == b:
                hessian[a, a] += 2.0 * c
            else:
                hessian[a, b] += c
                hessian[b, a] += c
        gradient = np.zeros(n, dtype=float)
        for a, c in self._linear.items():
            gradient[a] += c

        matrix = np.zeros((len(self._rows), n), dtype=float)
        for r, row in enumerate(self._rows):
            for index, c in row.coeffs.items():
                matrix[r, index] = c
        return QuadraticProblem(
            hessian=hessian,
            gradient=gradient,
            constant=self._constant,
            matrix=matrix,
            row_lo=np.array([row.lo for row in self._rows], dtype=float),
            row_hi=np.array([row.hi for row in self._rows], dtype=float),
            lower=np.array(self._lower, dtype=float),
            upper=np.array(self._upper, dtype=float),
            start=np.array(self._start, dtype=float),
            binary=np.array(self._binary, dtype=bool),
        )

    def solve(self, options: Optional[SolverOptions] = None) -> SolveStatus:
        from .backend import solve_problem

        opts = resolve_solver_options(options or self.options)
        logger.debug(
            "Solving %s: vars=%d (binary=%d) constraints=%d",
            self.name,
            self.num_vars,
            sum(self._binary),
            self.num_constraints,
        )
        self._result = solve_problem(self.to_problem(), opts)
        logger.info(
            "Solved %s: status=%s objective=%s",
            self.name,
            self._result.status.value,
            "n/a" if self._result.objective is None else f"{self._result.objective:.6g}",
        )
        return self._result.status

    @property
    def status(self) -> Optional[SolveStatus]:
        return None if self._result is None else self._result.status

    @property
    def has_solution(self) -> bool:
        return self._result is not None and self._result.x is not None

    @property
    def objective_value(self) -> float:
        if not self.has_solution or self._result.objective is None:
            raise SolverError(self.status or SolveStatus.OTHER, f"model '{self.name}' has no solution")
        return self._result.objective

    def value(self, var: Variable) -> float:
        if not self.has_solution:
            raise SolverError(self.status or SolveStatus.OTHER, f"model '{self.name}' has no solution")
        return float(self._result.x[var.index])


__all__ = [
    "LinearRow",
    "QuadraticModel",
    "QuadraticProblem",
    "SolveResult",
    "SolveStatus",
    "SolverError",
    "Variable",
]
