"""Constraint sets.

Every set carries a `kind` drawn from the closed `SetKind` enum. Turning a
flat backend vector into a user-facing value (and a user matrix into a flat
function) is dispatched on that kind through `_RESHAPERS` / `_VECTORIZERS`,
so adding a new set only means picking its kind.

Matrix layouts:
  - PSD_TRIANGLE: upper triangle, column by column
    (a11, a12, a22, a13, a23, a33, ...)
  - PSD_SQUARE: every entry, column-major
    (a11, a21, a12, a22 for a 2x2 matrix)
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Sequence

import numpy as np

from ..errors import DimensionMismatch


class SetKind(str, Enum):
    SCALAR = "SCALAR"
    VECTOR = "VECTOR"
    PSD_TRIANGLE = "PSD_TRIANGLE"
    PSD_SQUARE = "PSD_SQUARE"


# --- scalar sets ---


@dataclass(frozen=True, slots=True)
class LessThan:
    upper: float
    kind: ClassVar[SetKind] = SetKind.SCALAR
    dimension: ClassVar[int] = 1

    def shifted(self, c: float) -> "LessThan":
        return LessThan(self.upper - c)


@dataclass(frozen=True, slots=True)
class GreaterThan:
    lower: float
    kind: ClassVar[SetKind] = SetKind.SCALAR
    dimension: ClassVar[int] = 1

    def shifted(self, c: float) -> "GreaterThan":
        return GreaterThan(self.lower - c)


@dataclass(frozen=True, slots=True)
class EqualTo:
    value: float
    kind: ClassVar[SetKind] = SetKind.SCALAR
    dimension: ClassVar[int] = 1

    def shifted(self, c: float) -> "EqualTo":
        return EqualTo(self.value - c)


@dataclass(frozen=True, slots=True)
class Interval:
    lower: float
    upper: float
    kind: ClassVar[SetKind] = SetKind.SCALAR
    dimension: ClassVar[int] = 1

    def shifted(self, c: float) -> "Interval":
        return Interval(self.lower - c, self.upper - c)


@dataclass(frozen=True, slots=True)
class Integer:
    kind: ClassVar[SetKind] = SetKind.SCALAR
    dimension: ClassVar[int] = 1


@dataclass(frozen=True, slots=True)
class ZeroOne:
    kind: ClassVar[SetKind] = SetKind.SCALAR
    dimension: ClassVar[int] = 1


# --- vector sets ---


@dataclass(frozen=True, slots=True)
class Zeros:
    dimension: int | None = None
    kind: ClassVar[SetKind] = SetKind.VECTOR


@dataclass(frozen=True, slots=True)
class Nonnegatives:
    dimension: int | None = None
    kind: ClassVar[SetKind] = SetKind.VECTOR


@dataclass(frozen=True, slots=True)
class Nonpositives:
    dimension: int | None = None
    kind: ClassVar[SetKind] = SetKind.VECTOR


@dataclass(frozen=True, slots=True)
class SecondOrderCone:
    """{(t, x) : t >= ||x||_2}"""

    dimension: int | None = None
    kind: ClassVar[SetKind] = SetKind.VECTOR


@dataclass(frozen=True, slots=True)
class RotatedSecondOrderCone:
    """{(t, u, x) : 2tu >= ||x||_2^2, t, u >= 0}"""

    dimension: int | None = None
    kind: ClassVar[SetKind] = SetKind.VECTOR


@dataclass(frozen=True, slots=True)
class PositiveSemidefiniteConeTriangle:
    side: int | None = None
    kind: ClassVar[SetKind] = SetKind.PSD_TRIANGLE

    @property
    def dimension(self) -> int | None:
        return None if self.side is None else self.side * (self.side + 1) // 2


@dataclass(frozen=True, slots=True)
class PositiveSemidefiniteConeSquare:
    side: int | None = None
    kind: ClassVar[SetKind] = SetKind.PSD_SQUARE

    @property
    def dimension(self) -> int | None:
        return None if self.side is None else self.side * self.side


SET_TYPES: Dict[str, type] = {
    cls.__name__: cls
    for cls in (
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
}


def is_set(x: Any) -> bool:
    return type(x) in SET_TYPES.values()


def _side_from_triangle(n: int) -> int | None:
    side = int(math.isqrt(2 * n))
    return side if side * (side + 1) // 2 == n else None


def with_dimension(s: Any, n: int) -> Any:
    """Return `s` with its dimension filled in from a function of length `n`.

    Raises DimensionMismatch when `s` already has a different dimension or
    when `n` is not a valid size for the set.
    """
    if s.kind is SetKind.SCALAR:
        if n != 1:
            raise DimensionMismatch(f"scalar set {type(s).__name__} cannot hold a function of dimension {n}")
        return s
    if s.dimension is not None:
        if s.dimension != n:
            raise DimensionMismatch(
                f"function of dimension {n} does not match {type(s).__name__} of dimension {s.dimension}"
            )
        return s
    if s.kind is SetKind.PSD_TRIANGLE:
        side = _side_from_triangle(n)
        if side is None:
            raise DimensionMismatch(f"{n} is not the length of a triangular matrix vectorization")
        return dataclasses.replace(s, side=side)
    if s.kind is SetKind.PSD_SQUARE:
        side = int(math.isqrt(n))
        if side * side != n:
            raise DimensionMismatch(f"{n} is not the length of a square matrix vectorization")
        return dataclasses.replace(s, side=side)
    return dataclasses.replace(s, dimension=n)


# --- reshaping ---


def _reshape_scalar(values: Any, s: Any) -> float:
    return float(values)


def _reshape_vector(values: Any, s: Any) -> list[float]:
    return [float(v) for v in values]


def _reshape_triangle(values: Any, s: Any) -> np.ndarray:
    n = s.side
    out = np.zeros((n, n))
    k = 0
    for j in range(n):
        for i in range(j + 1):
            out[i, j] = values[k]
            out[j, i] = values[k]
            k += 1
    return out


def _reshape_square(values: Any, s: Any) -> np.ndarray:
    n = s.side
    return np.asarray([float(v) for v in values]).reshape((n, n), order="F")


_RESHAPERS: Dict[SetKind, Callable[[Any, Any], Any]] = {
    SetKind.SCALAR: _reshape_scalar,
    SetKind.VECTOR: _reshape_vector,
    SetKind.PSD_TRIANGLE: _reshape_triangle,
    SetKind.PSD_SQUARE: _reshape_square,
}


def reshape_value(values: Any, s: Any) -> Any:
    """Turn a flat backend value (primal or dual) for set `s` into its user-facing shape."""
    return _RESHAPERS[s.kind](values, s)


def _vectorize_triangle(matrix: Sequence[Sequence[Any]]) -> list[Any]:
    n = len(matrix)
    return [matrix[i][j] for j in range(n) for i in range(j + 1)]


def _vectorize_square(matrix: Sequence[Sequence[Any]]) -> list[Any]:
    n = len(matrix)
    return [matrix[i][j] for j in range(n) for i in range(n)]


_VECTORIZERS: Dict[SetKind, Callable[[Sequence[Sequence[Any]]], list[Any]]] = {
    SetKind.PSD_TRIANGLE: _vectorize_triangle,
    SetKind.PSD_SQUARE: _vectorize_square,
}


def vectorize_matrix(matrix: Any, s: Any) -> list[Any]:
    """Flatten a square matrix of expressions in the layout expected by `s`."""
    if s.kind not in _VECTORIZERS:
        raise DimensionMismatch(f"set {type(s).__name__} does not take a matrix function")
    rows = [list(r) for r in matrix]
    n = len(rows)
    if any(len(r) != n for r in rows):
        raise DimensionMismatch("matrix function must be square")
    if s.side is not None and s.side != n:
        raise DimensionMismatch(f"matrix of side {n} does not match {type(s).__name__} of side {s.side}")
    return _VECTORIZERS[s.kind](rows)


__all__ = [
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
    "SET_TYPES",
    "is_set",
    "with_dimension",
    "reshape_value",
    "vectorize_matrix",
]
