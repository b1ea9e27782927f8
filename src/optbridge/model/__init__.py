from .types import ObjectiveSense, TerminationStatus, ResultStatus
from .expressions import AffExpr, QuadExpr, NonlinearExpr, VariableRef, sin, cos, exp, log, sqrt
from .sets import (
    SetKind,
    LessThan,
    GreaterThan,
    EqualTo,
    Interval,
    Integer,
    ZeroOne,
    Zeros,
    Nonnegatives,
    Nonpositives,
    SecondOrderCone,
    RotatedSecondOrderCone,
    PositiveSemidefiniteConeTriangle,
    PositiveSemidefiniteConeSquare,
)
from .model import Model, ConstraintRef

__all__ = [
    "ObjectiveSense",
    "TerminationStatus",
    "ResultStatus",
    "AffExpr",
    "QuadExpr",
    "NonlinearExpr",
    "VariableRef",
    "sin",
    "cos",
    "exp",
    "log",
    "sqrt",
    "SetKind",
    "LessThan",
    "GreaterThan",
    "EqualTo",
    "Interval",
    "Integer",
    "ZeroOne",
    "Zeros",
    "Nonnegatives",
    "Nonpositives",
    "SecondOrderCone",
    "RotatedSecondOrderCone",
    "PositiveSemidefiniteConeTriangle",
    "PositiveSemidefiniteConeSquare",
    "Model",
    "ConstraintRef",
]
