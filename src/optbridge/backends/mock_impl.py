from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..bridge.backend import STATISTICS, Backend, ConstraintIndex, VariableIndex
from ..bridge.cache import BackendRepresentation, ConstraintEntry
from ..bridge.functions import ScalarAffine, ScalarQuadratic
from ..model.sets import EqualTo, GreaterThan, Integer, Interval, LessThan, SetKind, ZeroOne
from ..model.types import ObjectiveSense, ResultStatus, TerminationStatus

log = logging.getLogger(__name__)


def _set_constant(s: Any, dual: float) -> float:
    if isinstance(s, LessThan):
        return s.upper
    if isinstance(s, GreaterThan):
        return s.lower
    if isinstance(s, EqualTo):
        return s.value
    if isinstance(s, Interval):
        return s.lower if dual > 0 else s.upper
    return 0.0


def _set_dot(s: Any, a: Iterable[float], b: Iterable[float]) -> float:
    a, b = list(a), list(b)
    if s.kind is not SetKind.PSD_TRIANGLE:
        return float(np.dot(a, b))
    total, k = 0.0, 0
    for j in range(s.side):
        for i in range(j + 1):
            total += (1.0 if i == j else 2.0) * a[k] * b[k]
            k += 1
    return total


class MockBackend(Backend):
    """In-memory backend whose solution data is injected by the caller.

    Solving does nothing except call the optional `on_solve(backend)` hook, so
    every status, value and dual read afterwards is whatever was set through
    the `set_*` methods. Two fallbacks fill gaps the caller left:
    `eval_objective_value` computes the objective from injected primals and
    `eval_dual_objective_value` computes the dual objective from injected
    duals and the constraint set constants.
    """

    name = "mock"

    def __init__(
        self,
        *,
        supports_nonlinear: bool = False,
        supported_constraints: Optional[Iterable[Tuple[type, type]]] = None,
        supported_objectives: Iterable[type] = (ScalarAffine, ScalarQuadratic),
        eval_objective_value: bool = True,
        eval_dual_objective_value: bool = True,
        on_solve: Optional[Callable[["MockBackend"], None]] = None,
    ):
        self.supports_nonlinear = supports_nonlinear
        self._supported_constraints = None if supported_constraints is None else set(supported_constraints)
        self._supported_objectives = set(supported_objectives)
        self.eval_objective_value = eval_objective_value
        self.eval_dual_objective_value = eval_dual_objective_value
        self.on_solve = on_solve
        self.solve_count = 0
        self.empty()

    # --- capabilities ---

    def supports_constraint(self, function_type: type, set_type: type) -> bool:
        if self._supported_constraints is None:
            return True
        return (function_type, set_type) in self._supported_constraints

    def supports_objective(self, function_type: type) -> bool:
        return function_type in self._supported_objectives

    # --- writes ---

    def empty(self) -> None:
        self.variable_names: List[Optional[str]] = []
        self.constraints: Dict[ConstraintIndex, Tuple[Any, Any, Optional[str]]] = {}
        self.objective_sense = ObjectiveSense.FEASIBILITY
        self.objective: Any = ScalarAffine()
        self._next_constraint = 1
        self._termination = TerminationStatus.OPTIMIZE_NOT_CALLED
        self._raw: Optional[str] = None
        self._result_count = 0
        self._primal_status: Dict[int, ResultStatus] = {}
        self._dual_status: Dict[int, ResultStatus] = {}
        self._objective_value: Dict[int, float] = {}
        self._dual_objective_value: Dict[int, float] = {}
        self._primal: Dict[Tuple[int, int], float] = {}
        self._dual: Dict[Tuple[int, ConstraintIndex], Any] = {}
        self._statistics: Dict[str, float] = {}

    def is_empty(self) -> bool:
        return not self.variable_names and not self.constraints

    def add_variable(self, name: Optional[str] = None) -> VariableIndex:
        self.variable_names.append(name)
        return VariableIndex(len(self.variable_names))

    def add_constraint(self, function: Any, set: Any, name: Optional[str] = None) -> ConstraintIndex:
        ci = ConstraintIndex(self._next_constraint, type(function), type(set))
        self._next_constraint += 1
        self.constraints[ci] = (function, set, name)
        return ci

    def set_objective(self, sense: ObjectiveSense, function: Any) -> None:
        self.objective_sense = sense
        self.objective = function

    def solve(self) -> None:
        self.solve_count += 1
        log.debug("mock solve #%d", self.solve_count)
        if self.on_solve is not None:
            self.on_solve(self)

    # --- injection ---

    def set_termination_status(self, status: TerminationStatus) -> None:
        self._termination = TerminationStatus(status)

    def set_raw_status(self, raw: Optional[str]) -> None:
        self._raw = raw

    def set_result_count(self, count: int) -> None:
        self._result_count = int(count)

    def set_primal_status(self, status: ResultStatus, result: int = 1) -> None:
        self._primal_status[result] = ResultStatus(status)

    def set_dual_status(self, status: ResultStatus, result: int = 1) -> None:
        self._dual_status[result] = ResultStatus(status)

    def set_objective_value(self, value: float, result: int = 1) -> None:
        self._objective_value[result] = float(value)

    def set_dual_objective_value(self, value: float, result: int = 1) -> None:
        self._dual_objective_value[result] = float(value)

    def set_variable_primal(self, vi: VariableIndex, value: float, result: int = 1) -> None:
        self._primal[(result, vi.value)] = float(value)

    def set_constraint_dual(self, ci: ConstraintIndex, value: Any, result: int = 1) -> None:
        if ci not in self.constraints:
            raise KeyError(f"unknown constraint index {ci}")
        self._dual[(result, ci)] = value if np.ndim(value) == 0 else [float(v) for v in value]

    def set_statistic(self, name: str, value: float) -> None:
        if name not in STATISTICS:
            raise ValueError(f"unknown statistic '{name}'; expected one of {STATISTICS}")
        self._statistics[name] = value

    # --- reads ---

    def termination_status(self) -> TerminationStatus:
        return self._termination

    def raw_status(self) -> Optional[str]:
        return self._raw

    def result_count(self) -> int:
        return self._result_count

    def primal_status(self, result: int = 1) -> ResultStatus:
        return self._primal_status.get(result, ResultStatus.NO_SOLUTION)

    def dual_status(self, result: int = 1) -> ResultStatus:
        return self._dual_status.get(result, ResultStatus.NO_SOLUTION)

    def variable_primal(self, vi: VariableIndex, result: int = 1) -> Optional[float]:
        return self._primal.get((result, vi.value))

    def constraint_dual(self, ci: ConstraintIndex, result: int = 1) -> Any:
        return self._dual.get((result, ci))

    def statistic(self, name: str) -> Optional[float]:
        return self._statistics.get(name)

    def objective_value(self, result: int = 1) -> Optional[float]:
        if result in self._objective_value:
            return self._objective_value[result]
        if not self.eval_objective_value:
            return None
        if any((result, v) not in self._primal for v in range(1, len(self.variable_names) + 1)):
            return None
        return float(self.objective.evaluate(lambda v: self._primal[(result, v)]))

    def dual_objective_value(self, result: int = 1) -> Optional[float]:
        """Injected value, or sum over constraints of the dual times the set constant.

        Sign convention: for a minimisation the value is
        sum(dual * (rhs - function constant)); it is negated for maximisation.
        Integrality constraints carry no dual and are skipped.
        """
        if result in self._dual_objective_value:
            return self._dual_objective_value[result]
        if not self.eval_dual_objective_value:
            return None
        total = 0.0
        for ci, (f, s, _) in self.constraints.items():
            if isinstance(s, (Integer, ZeroOne)):
                continue
            d = self._dual.get((result, ci))
            if d is None:
                return None
            if s.kind is SetKind.SCALAR:
                total += float(d) * (_set_constant(s, float(d)) - f.constants()[0])
            else:
                total -= _set_dot(s, f.constants(), d)
        if self.objective_sense is ObjectiveSense.MAX:
            total = -total
        return total + float(getattr(self.objective, "constant", 0.0))

    # --- inspection ---

    def model_representation(self) -> BackendRepresentation:
        """Snapshot of what was loaded, with variables renumbered by position."""
        pos = {i + 1: i for i in range(len(self.variable_names))}
        return BackendRepresentation(
            variable_names=list(self.variable_names),
            objective_sense=self.objective_sense,
            objective=self.objective.map_variables(pos.__getitem__),
            constraints=[
                ConstraintEntry(name, f.map_variables(pos.__getitem__), s)
                for f, s, name in self.constraints.values()
            ],
        )


__all__ = ["MockBackend"]
