from __future__ import annotations

from enum import Enum


class ObjectiveSense(str, Enum):
    MIN = "MIN"
    MAX = "MAX"
    FEASIBILITY = "FEASIBILITY"


class TerminationStatus(str, Enum):
    OPTIMIZE_NOT_CALLED = "OPTIMIZE_NOT_CALLED"
    OPTIMAL = "OPTIMAL"
    INFEASIBLE = "INFEASIBLE"
    DUAL_INFEASIBLE = "DUAL_INFEASIBLE"
    LOCALLY_SOLVED = "LOCALLY_SOLVED"
    LOCALLY_INFEASIBLE = "LOCALLY_INFEASIBLE"
    INFEASIBLE_OR_UNBOUNDED = "INFEASIBLE_OR_UNBOUNDED"
    ALMOST_OPTIMAL = "ALMOST_OPTIMAL"
    ITERATION_LIMIT = "ITERATION_LIMIT"
    TIME_LIMIT = "TIME_LIMIT"
    NODE_LIMIT = "NODE_LIMIT"
    SOLUTION_LIMIT = "SOLUTION_LIMIT"
    OTHER_LIMIT = "OTHER_LIMIT"
    INTERRUPTED = "INTERRUPTED"
    NUMERICAL_ERROR = "NUMERICAL_ERROR"
    INVALID_MODEL = "INVALID_MODEL"
    OTHER_ERROR = "OTHER_ERROR"


class ResultStatus(str, Enum):
    """Per-result classification of a primal or dual solution."""

    NO_SOLUTION = "NO_SOLUTION"
    FEASIBLE_POINT = "FEASIBLE_POINT"
    NEARLY_FEASIBLE_POINT = "NEARLY_FEASIBLE_POINT"
    INFEASIBLE_POINT = "INFEASIBLE_POINT"
    INFEASIBILITY_CERTIFICATE = "INFEASIBILITY_CERTIFICATE"
    NEARLY_INFEASIBILITY_CERTIFICATE = "NEARLY_INFEASIBILITY_CERTIFICATE"
    UNKNOWN_RESULT_STATUS = "UNKNOWN_RESULT_STATUS"
    OTHER_RESULT_STATUS = "OTHER_RESULT_STATUS"


__all__ = ["ObjectiveSense", "TerminationStatus", "ResultStatus"]
