"""Canonical backend-side functions.

These are the functions a backend receives and the Backend Cache compares.
Variables are plain integers: positions in creation order inside a
`BackendRepresentation`, backend-local variable indices once loaded. Terms
are merged, zero coefficients dropped and entries sorted, so two functions
built in a different order compare equal with exact float equality.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Iterable, Sequence, Tuple

from ..model.expressions import apply_operator

VarMap = Callable[[int], int]
VarValue = Callable[[int], float]


def _fmt_coef(c: float) -> str:
    return repr(float(c))


def _canonical_terms(terms: Iterable[Tuple[int, float]]) -> Tuple[Tuple[int, float], ...]:
    acc: Dict[int, float] = {}
    for v, c in terms:
        acc[v] = acc.get(v, 0.0) + float(c)
    return tuple(sorted((v, c) for v, c in acc.items() if c != 0.0))


def _canonical_quad(terms: Iterable[Tuple[int, int, float]]) -> Tuple[Tuple[int, int, float], ...]:
    acc: Dict[Tuple[int, int], float] = {}
    for i, j, c in terms:
        key = (i, j) if i <= j else (j, i)
        acc[key] = acc.get(key, 0.0) + float(c)
    return tuple(sorted((i, j, c) for (i, j), c in acc.items() if c != 0.0))


@dataclass(frozen=True, slots=True)
class SingleVariable:
    variable: int
    output_dimension: ClassVar[int] = 1

    def map_variables(self, f: VarMap) -> "SingleVariable":
        return SingleVariable(f(self.variable))

    def evaluate(self, value: VarValue) -> float:
        return float(value(self.variable))

    def constants(self) -> Tuple[float, ...]:
        return (0.0,)

    def to_string(self, names: Sequence[str]) -> str:
        return names[self.variable]


@dataclass(frozen=True, slots=True)
class ScalarAffine:
    terms: Tuple[Tuple[int, float], ...] = ()
    constant: float = 0.0
    output_dimension: ClassVar[int] = 1

    @classmethod
    def canonical(cls, terms: Iterable[Tuple[int, float]], constant: float = 0.0) -> "ScalarAffine":
        return cls(_canonical_terms(terms), float(constant))

    def map_variables(self, f: VarMap) -> "ScalarAffine":
        return ScalarAffine.canonical(((f(v), c) for v, c in self.terms), self.constant)

    def evaluate(self, value: VarValue) -> float:
        return self.constant + sum(c * value(v) for v, c in self.terms)

    def constants(self) -> Tuple[float, ...]:
        return (self.constant,)

    def to_string(self, names: Sequence[str]) -> str:
        parts = [f"{_fmt_coef(c)}*{names[v]}" for v, c in self.terms]
        if self.constant != 0.0 or not parts:
            parts.append(_fmt_coef(self.constant))
        return " + ".join(parts)


@dataclass(frozen=True, slots=True)
class ScalarQuadratic:
    quadratic_terms: Tuple[Tuple[int, int, float], ...] = ()
    affine_terms: Tuple[Tuple[int, float], ...] = ()
    constant: float = 0.0
    output_dimension: ClassVar[int] = 1

    @classmethod
    def canonical(
        cls,
        quadratic_terms: Iterable[Tuple[int, int, float]],
        affine_terms: Iterable[Tuple[int, float]] = (),
        constant: float = 0.0,
    ) -> "ScalarQuadratic | ScalarAffine":
        """Build a canonical quadratic; degrades to ScalarAffine when no quadratic term survives."""
        quad = _canonical_quad(quadratic_terms)
        aff = _canonical_terms(affine_terms)
        if not quad:
            return ScalarAffine(aff, float(constant))
        return cls(quad, aff, float(constant))

    def map_variables(self, f: VarMap) -> "ScalarQuadratic | ScalarAffine":
        return ScalarQuadratic.canonical(
            ((f(i), f(j), c) for i, j, c in self.quadratic_terms),
            ((f(v), c) for v, c in self.affine_terms),
            self.constant,
        )

    def evaluate(self, value: VarValue) -> float:
        total = self.constant + sum(c * value(v) for v, c in self.affine_terms)
        return total + sum(c * value(i) * value(j) for i, j, c in self.quadratic_terms)

    def constants(self) -> Tuple[float, ...]:
        return (self.constant,)

    def to_string(self, names: Sequence[str]) -> str:
        parts = [f"{_fmt_coef(c)}*{names[i]}*{names[j]}" for i, j, c in self.quadratic_terms]
        parts += [f"{_fmt_coef(c)}*{names[v]}" for v, c in self.affine_terms]
        if self.constant != 0.0:
            parts.append(_fmt_coef(self.constant))
        return " + ".join(parts)


@dataclass(frozen=True, slots=True)
class VectorOfVariables:
    variables: Tuple[int, ...]

    @property
    def output_dimension(self) -> int:
        return len(self.variables)

    def map_variables(self, f: VarMap) -> "VectorOfVariables":
        return VectorOfVariables(tuple(f(v) for v in self.variables))

    def evaluate(self, value: VarValue) -> list[float]:
        return [float(value(v)) for v in self.variables]

    def constants(self) -> Tuple[float, ...]:
        return tuple(0.0 for _ in self.variables)

    def to_string(self, names: Sequence[str]) -> str:
        return "[" + ", ".join(names[v] for v in self.variables) + "]"


@dataclass(frozen=True, slots=True)
class VectorAffine:
    rows: Tuple[ScalarAffine, ...]

    @property
    def output_dimension(self) -> int:
        return len(self.rows)

    def map_variables(self, f: VarMap) -> "VectorAffine":
        return VectorAffine(tuple(r.map_variables(f) for r in self.rows))

    def evaluate(self, value: VarValue) -> list[float]:
        return [r.evaluate(value) for r in self.rows]

    def constants(self) -> Tuple[float, ...]:
        return tuple(r.constant for r in self.rows)

    def to_string(self, names: Sequence[str]) -> str:
        return "[" + ", ".join(r.to_string(names) for r in self.rows) + "]"


@dataclass(frozen=True, slots=True)
class NonlinearFunction:
    """Nonlinear expression tree; args are floats or other canonical functions."""

    head: str
    args: Tuple[Any, ...]
    output_dimension: ClassVar[int] = 1

    def map_variables(self, f: VarMap) -> "NonlinearFunction":
        return NonlinearFunction(
            self.head,
            tuple(a if isinstance(a, float) else a.map_variables(f) for a in self.args),
        )

    def evaluate(self, value: VarValue) -> float:
        vals = [a if isinstance(a, float) else a.evaluate(value) for a in self.args]
        return apply_operator(self.head, vals)

    def constants(self) -> Tuple[float, ...]:
        return (0.0,)

    def to_string(self, names: Sequence[str]) -> str:
        inner = ", ".join(repr(a) if isinstance(a, float) else a.to_string(names) for a in self.args)
        return f"{self.head}({inner})"


SCALAR_FUNCTIONS = (SingleVariable, ScalarAffine, ScalarQuadratic)


__all__ = [
    "SingleVariable",
    "ScalarAffine",
    "ScalarQuadratic",
    "VectorOfVariables",
    "VectorAffine",
    "NonlinearFunction",
    "SCALAR_FUNCTIONS",
]
