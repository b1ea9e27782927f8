from __future__ import annotations


class BridgeError(Exception):
    """Base class for errors raised by optbridge."""


class DimensionMismatch(BridgeError, ValueError):
    """Function output dimension does not match the set dimension."""


class UnsupportedBackendError(BridgeError):
    """The backend cannot hold one of the model's constraint families."""


class UnsupportedProblemError(BridgeError):
    """The backend cannot express the model's objective (or nonlinear data)."""


class InvalidReferenceError(BridgeError):
    """A reference was used outside its valid backend-attachment window."""


class ResultIndexOutOfRange(BridgeError, IndexError):
    """A value/dual query asked for a result index outside [1, result_count]."""

    def __init__(self, attribute: str, result: int, result_count: int):
        self.attribute = attribute
        self.result = result
        self.result_count = result_count
        super().__init__(
            f"Result index of attribute {attribute} out of bounds. There are "
            f"currently {result_count} solution(s) in the model (requested {result})."
        )


class ResultUnavailableError(BridgeError):
    """The result slot exists but the backend did not report the requested data."""


class NoOptimizerError(BridgeError):
    """No backend is attached and no factory is available to build one."""


__all__ = [
    "BridgeError",
    "DimensionMismatch",
    "UnsupportedBackendError",
    "UnsupportedProblemError",
    "InvalidReferenceError",
    "ResultIndexOutOfRange",
    "ResultUnavailableError",
    "NoOptimizerError",
]
