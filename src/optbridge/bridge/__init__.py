from .backend import Backend, BackendFactory, ConstraintIndex, VariableIndex
from .cache import BackendRepresentation, ConstraintEntry, translate
from .functions import (
    NonlinearFunction,
    ScalarAffine,
    ScalarQuadratic,
    SingleVariable,
    VectorAffine,
    VectorOfVariables,
)
from .optimizer import BridgeState, OptimizerBridge
from .resolver import ReferenceResolver
from .results import ResultCache, ResultSlot
from .text_format import parse_model_string

__all__ = [
    "Backend",
    "BackendFactory",
    "ConstraintIndex",
    "VariableIndex",
    "BackendRepresentation",
    "ConstraintEntry",
    "translate",
    "NonlinearFunction",
    "ScalarAffine",
    "ScalarQuadratic",
    "SingleVariable",
    "VectorAffine",
    "VectorOfVariables",
    "BridgeState",
    "OptimizerBridge",
    "ReferenceResolver",
    "ResultCache",
    "ResultSlot",
    "parse_model_string",
]
