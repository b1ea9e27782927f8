from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..model.types import ObjectiveSense, ResultStatus, TerminationStatus


@dataclass(frozen=True, slots=True)
class VariableIndex:
    """Backend-local variable handle."""

    value: int


@dataclass(frozen=True, slots=True)
class ConstraintIndex:
    """Backend-local constraint handle, tagged with its (function, set) family."""

    value: int
    function_type: type
    set_type: type


# Names accepted by `Backend.statistic`
STATISTICS = ("simplex_iterations", "barrier_iterations", "node_count", "relative_gap", "solve_time")


class Backend(ABC):
    """Capability contract between the bridge and a solver.

    Implementations translate canonical functions (see
    `optbridge.bridge.functions`) into the solver's own representation. All
    optional reads return None when the solver did not report the value;
    result indices are 1-based and callers only ask for indices within
    `[1, result_count()]`.
    """

    name: str = "backend"
    supports_nonlinear: bool = False

    # --- capabilities ---

    @abstractmethod
    def supports_constraint(self, function_type: type, set_type: type) -> bool:
        """Whether `function_type`-in-`set_type` constraints can be added."""

    @abstractmethod
    def supports_objective(self, function_type: type) -> bool:
        """Whether objectives of `function_type` can be set."""

    # --- writes ---

    @abstractmethod
    def empty(self) -> None:
        """Drop every variable, constraint and result."""

    @abstractmethod
    def is_empty(self) -> bool: ...

    @abstractmethod
    def add_variable(self, name: Optional[str] = None) -> VariableIndex: ...

    @abstractmethod
    def add_constraint(self, function: Any, set: Any, name: Optional[str] = None) -> ConstraintIndex: ...

    @abstractmethod
    def set_objective(self, sense: ObjectiveSense, function: Any) -> None: ...

    # --- solve ---

    @abstractmethod
    def solve(self) -> None:
        """Blocking solve. Failures should be reported through termination_status()."""

    # --- reads ---

    @abstractmethod
    def termination_status(self) -> TerminationStatus: ...

    def raw_status(self) -> Optional[str]:
        return None

    @abstractmethod
    def result_count(self) -> int: ...

    @abstractmethod
    def primal_status(self, result: int = 1) -> ResultStatus: ...

    @abstractmethod
    def dual_status(self, result: int = 1) -> ResultStatus: ...

    def objective_value(self, result: int = 1) -> Optional[float]:
        return None

    def dual_objective_value(self, result: int = 1) -> Optional[float]:
        return None

    @abstractmethod
    def variable_primal(self, vi: VariableIndex, result: int = 1) -> Optional[float]: ...

    def constraint_dual(self, ci: ConstraintIndex, result: int = 1) -> Any:
        return None

    def statistic(self, name: str) -> Optional[float]:
        return None


BackendFactory = Callable[[], Backend]


__all__ = ["VariableIndex", "ConstraintIndex", "Backend", "BackendFactory", "STATISTICS"]
