"""Result Cache: per-solve snapshot of everything the backend reported.

Status reads are total over result indices (anything outside
`[1, result_count()]` is NO_SOLUTION); value and dual reads are partial and
raise `ResultIndexOutOfRange` there. The snapshot is tied to the model
revision it was taken at: once the model changes, the cache reports
OPTIMIZE_NOT_CALLED and zero results until the next solve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from ..errors import InvalidReferenceError, ResultIndexOutOfRange, ResultUnavailableError
from ..model.expressions import AffExpr, NonlinearExpr, QuadExpr, VariableRef, _is_number, evaluate
from ..model.model import ConstraintRef, Model
from ..model.sets import reshape_value
from ..model.types import ResultStatus, TerminationStatus
from .backend import STATISTICS, Backend
from .resolver import ReferenceResolver

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ResultSlot:
    primal_status: ResultStatus = ResultStatus.NO_SOLUTION
    dual_status: ResultStatus = ResultStatus.NO_SOLUTION
    objective_value: Optional[float] = None
    dual_objective_value: Optional[float] = None
    # keyed by model variable / constraint index
    primal: Dict[int, float] = field(default_factory=dict)
    duals: Dict[int, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ResultCache:
    model: Model
    revision: Optional[int] = None
    status: TerminationStatus = TerminationStatus.OPTIMIZE_NOT_CALLED
    raw: Optional[str] = None
    slots: List[ResultSlot] = field(default_factory=list)
    statistics: Dict[str, Optional[float]] = field(default_factory=dict)

    def is_current(self) -> bool:
        return self.revision is not None and self.revision == self.model.revision

    # --- model-wide ---

    def termination_status(self) -> TerminationStatus:
        return self.status if self.is_current() else TerminationStatus.OPTIMIZE_NOT_CALLED

    def raw_status(self) -> Optional[str]:
        return self.raw if self.is_current() else None

    def result_count(self) -> int:
        return len(self.slots) if self.is_current() else 0

    def _statistic(self, name: str) -> Optional[float]:
        return self.statistics.get(name) if self.is_current() else None

    def simplex_iterations(self) -> Optional[int]:
        v = self._statistic("simplex_iterations")
        return None if v is None else int(v)

    def barrier_iterations(self) -> Optional[int]:
        v = self._statistic("barrier_iterations")
        return None if v is None else int(v)

    def node_count(self) -> Optional[int]:
        v = self._statistic("node_count")
        return None if v is None else int(v)

    def relative_gap(self) -> Optional[float]:
        return self._statistic("relative_gap")

    def solve_time(self) -> Optional[float]:
        return self._statistic("solve_time")

    # --- per result ---

    def _in_range(self, result: int) -> bool:
        return 1 <= result <= self.result_count()

    def _slot(self, attribute: str, result: int) -> ResultSlot:
        if not self._in_range(result):
            raise ResultIndexOutOfRange(attribute, result, self.result_count())
        return self.slots[result - 1]

    def primal_status(self, result: int = 1) -> ResultStatus:
        if not self._in_range(result):
            return ResultStatus.NO_SOLUTION
        return self.slots[result - 1].primal_status

    def dual_status(self, result: int = 1) -> ResultStatus:
        if not self._in_range(result):
            return ResultStatus.NO_SOLUTION
        return self.slots[result - 1].dual_status

    def has_values(self, result: int = 1) -> bool:
        return self.primal_status(result) is not ResultStatus.NO_SOLUTION

    def has_duals(self, result: int = 1) -> bool:
        return self.dual_status(result) is not ResultStatus.NO_SOLUTION

    def objective_value(self, result: int = 1) -> float:
        slot = self._slot("ObjectiveValue", result)
        if slot.objective_value is None:
            raise ResultUnavailableError(f"the backend did not report an objective value for result {result}")
        return slot.objective_value

    def dual_objective_value(self, result: int = 1) -> float:
        slot = self._slot("DualObjectiveValue", result)
        if slot.dual_objective_value is None:
            raise ResultUnavailableError(f"the backend did not report a dual objective value for result {result}")
        return slot.dual_objective_value

    def value(self, ref: Any, result: int = 1) -> Any:
        """Primal value of a variable, expression or constraint at `result`.

        Expressions are evaluated by substituting variable values; constraints
        evaluate their function and reshape it per their set. numpy arrays are
        evaluated element-wise.
        """
        slot = self._slot("VariablePrimal", result)
        if isinstance(ref, np.ndarray):
            return np.vectorize(lambda e: self.value(e, result), otypes=[float])(ref)

        def _primal(v: VariableRef) -> float:
            if v.model is not self.model:
                raise InvalidReferenceError(f"{v!r} does not belong to this model")
            x = slot.primal.get(v.index)
            if x is None:
                raise ResultUnavailableError(
                    f"no primal value for {v!r} in result {result} (primal status {slot.primal_status.value})"
                )
            return x

        if isinstance(ref, ConstraintRef):
            data = self.model.constraint_data(ref)
            if isinstance(data.function, tuple):
                flat = [evaluate(e, _primal) for e in data.function]
                return reshape_value(flat, data.set)
            return reshape_value(evaluate(data.function, _primal), data.set)
        if isinstance(ref, (VariableRef, AffExpr, QuadExpr, NonlinearExpr)) or _is_number(ref):
            return evaluate(ref, _primal)
        raise TypeError(f"cannot take the value of {type(ref).__name__}")

    def dual(self, ref: ConstraintRef, result: int = 1) -> Any:
        slot = self._slot("ConstraintDual", result)
        if not isinstance(ref, ConstraintRef):
            raise TypeError(f"duals are defined for constraints, got {type(ref).__name__}")
        data = self.model.constraint_data(ref)
        d = slot.duals.get(ref.index)
        if d is None:
            raise ResultUnavailableError(
                f"no dual value for {ref!r} in result {result} (dual status {slot.dual_status.value})"
            )
        return reshape_value(d, data.set)


def _as_dual(d: Any) -> Any:
    if np.ndim(d) == 0:
        return float(d)
    return tuple(float(x) for x in d)


def collect_results(model: Model, backend: Backend, resolver: ReferenceResolver) -> ResultCache:
    """Read a full snapshot from `backend` right after a solve."""
    count = int(backend.result_count() or 0)
    cache = ResultCache(
        model=model,
        revision=model.revision,
        status=TerminationStatus(backend.termination_status()),
        raw=backend.raw_status(),
        statistics={name: backend.statistic(name) for name in STATISTICS},
    )
    for r in range(1, count + 1):
        slot = ResultSlot(
            primal_status=ResultStatus(backend.primal_status(r)),
            dual_status=ResultStatus(backend.dual_status(r)),
            objective_value=backend.objective_value(r),
            dual_objective_value=backend.dual_objective_value(r),
        )
        if slot.primal_status is not ResultStatus.NO_SOLUTION:
            for idx, vi in resolver.variables():
                x = backend.variable_primal(vi, r)
                if x is not None:
                    slot.primal[idx] = float(x)
        if slot.dual_status is not ResultStatus.NO_SOLUTION:
            for idx, ci in resolver.constraints():
                d = backend.constraint_dual(ci, r)
                if d is not None:
                    slot.duals[idx] = _as_dual(d)
        cache.slots.append(slot)
    log.info(
        "collected %d result(s): termination=%s primal=%s dual=%s",
        count,
        cache.status.value,
        cache.slots[0].primal_status.value if cache.slots else ResultStatus.NO_SOLUTION.value,
        cache.slots[0].dual_status.value if cache.slots else ResultStatus.NO_SOLUTION.value,
    )
    return cache


__all__ = ["ResultSlot", "ResultCache", "collect_results"]
