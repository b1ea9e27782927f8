from __future__ import annotations

import logging
import math
import time
from typing import Any, Dict, Optional

import pyomo.environ as pyo
from pyomo.opt import TerminationCondition

from ..bridge.backend import Backend, ConstraintIndex, VariableIndex
from ..bridge.functions import (
    SCALAR_FUNCTIONS,
    NonlinearFunction,
    ScalarAffine,
    ScalarQuadratic,
    SingleVariable,
)
from ..model.sets import EqualTo, GreaterThan, Integer, Interval, LessThan, ZeroOne
from ..model.types import ObjectiveSense, ResultStatus, TerminationStatus

log = logging.getLogger(__name__)


_TERMINATION_MAP: Dict[Any, TerminationStatus] = {
    TerminationCondition.optimal: TerminationStatus.OPTIMAL,
    TerminationCondition.globallyOptimal: TerminationStatus.OPTIMAL,
    TerminationCondition.locallyOptimal: TerminationStatus.LOCALLY_SOLVED,
    TerminationCondition.feasible: TerminationStatus.OTHER_LIMIT,
    TerminationCondition.infeasible: TerminationStatus.INFEASIBLE,
    TerminationCondition.unbounded: TerminationStatus.DUAL_INFEASIBLE,
    TerminationCondition.infeasibleOrUnbounded: TerminationStatus.INFEASIBLE_OR_UNBOUNDED,
    TerminationCondition.maxIterations: TerminationStatus.ITERATION_LIMIT,
    TerminationCondition.maxTimeLimit: TerminationStatus.TIME_LIMIT,
    TerminationCondition.maxEvaluations: TerminationStatus.OTHER_LIMIT,
    TerminationCondition.userInterrupt: TerminationStatus.INTERRUPTED,
    TerminationCondition.invalidProblem: TerminationStatus.INVALID_MODEL,
    TerminationCondition.error: TerminationStatus.OTHER_ERROR,
    TerminationCondition.solverFailure: TerminationStatus.OTHER_ERROR,
    TerminationCondition.internalSolverError: TerminationStatus.OTHER_ERROR,
}

# Conditions after which a (possibly suboptimal) point can be loaded
_LOADABLE = {
    TerminationCondition.optimal,
    TerminationCondition.globallyOptimal,
    TerminationCondition.locallyOptimal,
    TerminationCondition.feasible,
    TerminationCondition.maxIterations,
    TerminationCondition.maxTimeLimit,
}

_BOUND_SETS = (LessThan, GreaterThan, EqualTo, Interval)

_NL_OPS = {
    "+": lambda *a: sum(a),
    "-": lambda a, b=None: -a if b is None else a - b,
    "*": lambda *a: math.prod(a),
    "/": lambda a, b: a / b,
    "^": lambda a, b: a**b,
    "sin": pyo.sin,
    "cos": pyo.cos,
    "exp": pyo.exp,
    "log": pyo.log,
    "sqrt": pyo.sqrt,
    "abs": abs,
}


def _number(x: Any) -> Optional[float]:
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


class PyomoBackend(Backend):
    """Backend building a `pyomo.environ.ConcreteModel` and solving it via SolverFactory.

    Variables live in a `VarList` (handles are its 1-based indices), scalar
    constraints in a `ConstraintList`; Integer/ZeroOne constraints become
    variable domains. Duals of continuous problems are read from an import
    `Suffix`. Cones are not supported.
    """

    name = "pyomo"
    supports_nonlinear = True

    def __init__(
        self,
        solver: str = "glpk",
        *,
        executable: str | None = None,
        options: dict[str, Any] | None = None,
        tee: bool = False,
    ):
        self.solver = solver
        self.executable = executable
        self.options = dict(options or {})
        self.tee = tee
        self.empty()

    def supports_constraint(self, function_type: type, set_type: type) -> bool:
        if set_type in (Integer, ZeroOne):
            return function_type is SingleVariable
        return function_type in SCALAR_FUNCTIONS and set_type in _BOUND_SETS

    def supports_objective(self, function_type: type) -> bool:
        return function_type in (ScalarAffine, ScalarQuadratic)

    # --- writes ---

    def empty(self) -> None:
        m = pyo.ConcreteModel()
        m.x = pyo.VarList()
        m.cons = pyo.ConstraintList()
        self.m = m
        self._names: list[Optional[str]] = []
        # None marks a domain constraint (Integer/ZeroOne) with no pyomo component
        self._constraints: Dict[ConstraintIndex, Any] = {}
        self._next_constraint = 1
        self._termination = TerminationStatus.OPTIMIZE_NOT_CALLED
        self._raw: Optional[str] = None
        self._loaded = False
        self._statistics: Dict[str, Optional[float]] = {}

    def is_empty(self) -> bool:
        return not self._names and not self._constraints

    def add_variable(self, name: Optional[str] = None) -> VariableIndex:
        self.m.x.add()
        self._names.append(name)
        return VariableIndex(len(self._names))

    def _expr(self, f: Any) -> Any:
        x = self.m.x
        if isinstance(f, float):
            return f
        if isinstance(f, SingleVariable):
            return x[f.variable]
        if isinstance(f, ScalarAffine):
            return sum(c * x[v] for v, c in f.terms) + f.constant
        if isinstance(f, ScalarQuadratic):
            return (
                sum(c * x[i] * x[j] for i, j, c in f.quadratic_terms)
                + sum(c * x[v] for v, c in f.affine_terms)
                + f.constant
            )
        if isinstance(f, NonlinearFunction):
            return _NL_OPS[f.head](*(self._expr(a) for a in f.args))
        raise TypeError(f"pyomo backend cannot express {type(f).__name__}")

    def add_constraint(self, function: Any, set: Any, name: Optional[str] = None) -> ConstraintIndex:
        ci = ConstraintIndex(self._next_constraint, type(function), type(set))
        self._next_constraint += 1
        if isinstance(set, (Integer, ZeroOne)):
            self.m.x[function.variable].domain = pyo.Integers if isinstance(set, Integer) else pyo.Binary
            self._constraints[ci] = None
            return ci
        expr = self._expr(function)
        if isinstance(set, LessThan):
            con = self.m.cons.add(expr <= set.upper)
        elif isinstance(set, GreaterThan):
            con = self.m.cons.add(expr >= set.lower)
        elif isinstance(set, EqualTo):
            con = self.m.cons.add(expr == set.value)
        elif isinstance(set, Interval):
            con = self.m.cons.add(pyo.inequality(set.lower, expr, set.upper))
        else:
            raise TypeError(f"pyomo backend cannot express set {type(set).__name__}")
        self._constraints[ci] = con
        return ci

    def set_objective(self, sense: ObjectiveSense, function: Any) -> None:
        if self.m.component("obj") is not None:
            self.m.del_component("obj")
        pyo_sense = pyo.maximize if sense is ObjectiveSense.MAX else pyo.minimize
        self.m.obj = pyo.Objective(expr=self._expr(function), sense=pyo_sense)

    # --- solve ---

    def solve(self) -> None:
        solver = pyo.SolverFactory(self.solver)
        if self.executable:
            try:
                solver.executable = self.executable  # type: ignore[attr-defined]
            except AttributeError:
                log.warning("solver %s does not take an executable path; ignoring %s", self.solver, self.executable)
        for k, v in self.options.items():
            solver.options[k] = v
        # Duals only exist for continuous problems
        has_integers = any(v.is_integer() or v.is_binary() for v in self.m.x.values())
        if not has_integers and self.m.component("dual") is None:
            self.m.dual = pyo.Suffix(direction=pyo.Suffix.IMPORT)
        t0 = time.time()
        results = solver.solve(self.m, tee=self.tee, load_solutions=False)
        elapsed = time.time() - t0

        tc = results.solver.termination_condition
        self._termination = _TERMINATION_MAP.get(tc, TerminationStatus.OTHER_ERROR)
        message = getattr(results.solver, "message", None)
        self._raw = message if isinstance(message, str) and message else str(tc)
        self._loaded = False
        if tc in _LOADABLE and len(results.solution) > 0:
            self.m.solutions.load_from(results)
            self._loaded = True

        lb = _number(getattr(results.problem, "lower_bound", None))
        ub = _number(getattr(results.problem, "upper_bound", None))
        gap = None
        if lb is not None and ub is not None:
            gap = abs(ub - lb) / max(abs(ub), 1e-10)
        self._statistics = {"solve_time": elapsed, "relative_gap": gap}
        log.info("pyomo %s finished: %s (%.3fs)", self.solver, tc, elapsed)

    # --- reads ---

    def termination_status(self) -> TerminationStatus:
        return self._termination

    def raw_status(self) -> Optional[str]:
        return self._raw

    def result_count(self) -> int:
        return 1 if self._loaded else 0

    def primal_status(self, result: int = 1) -> ResultStatus:
        if self._loaded and result == 1:
            return ResultStatus.FEASIBLE_POINT
        return ResultStatus.NO_SOLUTION

    def dual_status(self, result: int = 1) -> ResultStatus:
        dual = self.m.component("dual")
        if self._loaded and result == 1 and dual is not None and len(dual) > 0:
            return ResultStatus.FEASIBLE_POINT
        return ResultStatus.NO_SOLUTION

    def objective_value(self, result: int = 1) -> Optional[float]:
        if not self._loaded or result != 1 or self.m.component("obj") is None:
            return None
        return float(pyo.value(self.m.obj))

    def variable_primal(self, vi: VariableIndex, result: int = 1) -> Optional[float]:
        if not self._loaded or result != 1:
            return None
        v = self.m.x[vi.value].value
        return None if v is None else float(v)

    def constraint_dual(self, ci: ConstraintIndex, result: int = 1) -> Any:
        con = self._constraints.get(ci)
        dual = self.m.component("dual")
        if con is None or dual is None or not self._loaded or result != 1:
            return None
        d = dual.get(con)
        return None if d is None else float(d)

    def statistic(self, name: str) -> Optional[float]:
        return self._statistics.get(name)


__all__ = ["PyomoBackend"]
