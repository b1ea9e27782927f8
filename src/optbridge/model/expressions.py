from __future__ import annotations

import numbers
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Sequence, Tuple

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from .model import Model


Number = numbers.Real
ValueFn = Callable[["VariableRef"], float]


def _is_number(x: Any) -> bool:
    return isinstance(x, numbers.Real) and not isinstance(x, bool)


class VariableRef:
    """Long-lived handle to a variable of a `Model`.

    Identity is the pair (owning model, creation index); the handle stays valid
    for the whole life of the model, whatever happens to backends.
    """

    __slots__ = ("model", "index")

    def __init__(self, model: "Model", index: int):
        self.model = model
        self.index = index

    @property
    def name(self) -> str | None:
        return self.model.variable_name(self)

    def __hash__(self) -> int:
        return hash((id(self.model), self.index))

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, VariableRef)
            and other.model is self.model
            and other.index == self.index
        )

    def __repr__(self) -> str:
        return self.name or f"_[{self.index + 1}]"

    # Arithmetic goes through AffExpr
    def __add__(self, other: Any) -> Any:
        return AffExpr.of(self) + other

    def __radd__(self, other: Any) -> Any:
        return other + AffExpr.of(self)

    def __sub__(self, other: Any) -> Any:
        return AffExpr.of(self) - other

    def __rsub__(self, other: Any) -> Any:
        return AffExpr.of(other) - AffExpr.of(self)

    def __neg__(self) -> "AffExpr":
        return -AffExpr.of(self)

    def __mul__(self, other: Any) -> Any:
        return AffExpr.of(self) * other

    def __rmul__(self, other: Any) -> Any:
        return AffExpr.of(self) * other

    def __truediv__(self, other: Any) -> Any:
        return AffExpr.of(self) / other

    def __pow__(self, other: Any) -> Any:
        return AffExpr.of(self) ** other


class AffExpr:
    """Affine expression: sum(coef * var) + constant."""

    __slots__ = ("terms", "constant")

    def __init__(self, terms: Mapping[VariableRef, float] | None = None, constant: float = 0.0):
        self.terms: Dict[VariableRef, float] = {}
        for v, c in (terms or {}).items():
            self.terms[v] = self.terms.get(v, 0.0) + float(c)
        self.constant = float(constant)

    @classmethod
    def of(cls, x: Any) -> "AffExpr":
        if isinstance(x, AffExpr):
            return cls(x.terms, x.constant)
        if isinstance(x, VariableRef):
            return cls({x: 1.0})
        if _is_number(x):
            return cls(constant=float(x))
        raise TypeError(f"cannot convert {type(x).__name__} to an affine expression")

    def variables(self) -> list[VariableRef]:
        return list(self.terms)

    def evaluate(self, value: ValueFn) -> float:
        total = self.constant
        for v, c in self.terms.items():
            total += c * value(v)
        return total

    def _add_term(self, v: VariableRef, c: float) -> None:
        self.terms[v] = self.terms.get(v, 0.0) + c

    def __add__(self, other: Any) -> Any:
        if isinstance(other, (QuadExpr, NonlinearExpr)):
            return NotImplemented
        if isinstance(other, VariableRef):
            other = AffExpr.of(other)
        if isinstance(other, AffExpr):
            out = AffExpr(self.terms, self.constant + other.constant)
            for v, c in other.terms.items():
                out._add_term(v, c)
            return out
        if _is_number(other):
            return AffExpr(self.terms, self.constant + float(other))
        return NotImplemented

    def __radd__(self, other: Any) -> Any:
        return self.__add__(other)

    def __neg__(self) -> "AffExpr":
        return AffExpr({v: -c for v, c in self.terms.items()}, -self.constant)

    def __sub__(self, other: Any) -> Any:
        if isinstance(other, (QuadExpr, NonlinearExpr)):
            return NotImplemented
        if isinstance(other, (VariableRef, AffExpr)) or _is_number(other):
            return self + (-AffExpr.of(other))
        return NotImplemented

    def __rsub__(self, other: Any) -> Any:
        return (-self) + other

    def __mul__(self, other: Any) -> Any:
        if _is_number(other):
            k = float(other)
            return AffExpr({v: k * c for v, c in self.terms.items()}, k * self.constant)
        if isinstance(other, VariableRef):
            other = AffExpr.of(other)
        if isinstance(other, AffExpr):
            out = QuadExpr()
            for v1, c1 in self.terms.items():
                for v2, c2 in other.terms.items():
                    out._add_quad(v1, v2, c1 * c2)
            aff = AffExpr(constant=self.constant * other.constant)
            for v, c in other.terms.items():
                aff._add_term(v, self.constant * c)
            for v, c in self.terms.items():
                aff._add_term(v, other.constant * c)
            out.aff = aff
            return out
        if isinstance(other, QuadExpr):
            if not self.terms:
                return other * self.constant
            raise TypeError("products of degree greater than two are not supported")
        return NotImplemented

    def __rmul__(self, other: Any) -> Any:
        return self.__mul__(other)

    def __truediv__(self, other: Any) -> Any:
        if _is_number(other):
            return self * (1.0 / float(other))
        return NotImplemented

    def __pow__(self, other: Any) -> Any:
        if _is_number(other):
            if other == 2:
                return self * self
            if other == 1:
                return AffExpr.of(self)
            return NonlinearExpr("^", self, other)
        return NotImplemented

    def __repr__(self) -> str:
        parts = [f"{c:g} {v!r}" for v, c in self.terms.items()]
        if self.constant or not parts:
            parts.append(f"{self.constant:g}")
        return " + ".join(parts)


def _quad_key(v1: VariableRef, v2: VariableRef) -> Tuple[VariableRef, VariableRef]:
    return (v1, v2) if v1.index <= v2.index else (v2, v1)


class QuadExpr:
    """Quadratic expression: sum(coef * vi * vj) + affine part.

    Coefficients are stored as written, i.e. `3*x*y` keeps 3.0 on the
    unordered pair {x, y}.
    """

    __slots__ = ("quad", "aff")

    def __init__(self, quad: Mapping[Tuple[VariableRef, VariableRef], float] | None = None, aff: AffExpr | None = None):
        self.quad: Dict[Tuple[VariableRef, VariableRef], float] = {}
        for (v1, v2), c in (quad or {}).items():
            self._add_quad(v1, v2, float(c))
        self.aff = AffExpr.of(aff) if aff is not None else AffExpr()

    @classmethod
    def of(cls, x: Any) -> "QuadExpr":
        if isinstance(x, QuadExpr):
            return cls(x.quad, x.aff)
        return cls(aff=AffExpr.of(x))

    def _add_quad(self, v1: VariableRef, v2: VariableRef, c: float) -> None:
        key = _quad_key(v1, v2)
        self.quad[key] = self.quad.get(key, 0.0) + c

    def variables(self) -> list[VariableRef]:
        seen: Dict[VariableRef, None] = {}
        for v1, v2 in self.quad:
            seen.setdefault(v1)
            seen.setdefault(v2)
        for v in self.aff.terms:
            seen.setdefault(v)
        return list(seen)

    def evaluate(self, value: ValueFn) -> float:
        total = self.aff.evaluate(value)
        for (v1, v2), c in self.quad.items():
            total += c * value(v1) * value(v2)
        return total

    def __add__(self, other: Any) -> Any:
        if isinstance(other, NonlinearExpr):
            return NotImplemented
        if isinstance(other, QuadExpr):
            out = QuadExpr(self.quad, self.aff + other.aff)
            for (v1, v2), c in other.quad.items():
                out._add_quad(v1, v2, c)
            return out
        if isinstance(other, (VariableRef, AffExpr)) or _is_number(other):
            return QuadExpr(self.quad, self.aff + other)
        return NotImplemented

    def __radd__(self, other: Any) -> Any:
        return self.__add__(other)

    def __neg__(self) -> "QuadExpr":
        return self * -1.0

    def __sub__(self, other: Any) -> Any:
        if isinstance(other, NonlinearExpr):
            return NotImplemented
        return self + (-QuadExpr.of(other))

    def __rsub__(self, other: Any) -> Any:
        return (-self) + other

    def __mul__(self, other: Any) -> Any:
        if _is_number(other):
            k = float(other)
            return QuadExpr({key: k * c for key, c in self.quad.items()}, self.aff * k)
        if isinstance(other, AffExpr) and not other.terms:
            return self * other.constant
        if isinstance(other, (VariableRef, AffExpr, QuadExpr)):
            raise TypeError("products of degree greater than two are not supported")
        return NotImplemented

    def __rmul__(self, other: Any) -> Any:
        return self.__mul__(other)

    def __truediv__(self, other: Any) -> Any:
        if _is_number(other):
            return self * (1.0 / float(other))
        return NotImplemented

    def __repr__(self) -> str:
        parts = [f"{c:g} {v1!r}*{v2!r}" for (v1, v2), c in self.quad.items()]
        return " + ".join(parts + [repr(self.aff)])


# head -> (arity or None for variadic, evaluator); numpy keeps IEEE semantics
# at domain edges, e.g. log(0) == -inf and sqrt(-1) is nan
_NL_OPERATORS: Dict[str, Tuple[int | None, Callable[..., float]]] = {
    "+": (None, lambda *a: np.sum(a)),
    "-": (None, lambda a, b=None: np.negative(a) if b is None else np.subtract(a, b)),
    "*": (None, lambda *a: np.prod(a)),
    "/": (2, np.divide),
    "^": (2, np.power),
    "sin": (1, np.sin),
    "cos": (1, np.cos),
    "exp": (1, np.exp),
    "log": (1, np.log),
    "sqrt": (1, np.sqrt),
    "abs": (1, np.abs),
}


def apply_operator(head: str, vals: Sequence[float]) -> float:
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        return float(_NL_OPERATORS[head][1](*(np.float64(v) for v in vals)))


class NonlinearExpr:
    """Expression tree node `head(args...)` for nonlinear objectives."""

    __slots__ = ("head", "args")

    def __init__(self, head: str, *args: Any):
        if head not in _NL_OPERATORS:
            raise ValueError(f"unsupported nonlinear operator '{head}'")
        arity = _NL_OPERATORS[head][0]
        if arity is not None and len(args) != arity:
            raise ValueError(f"operator '{head}' expects {arity} argument(s), got {len(args)}")
        for a in args:
            if not (_is_number(a) or isinstance(a, (VariableRef, AffExpr, QuadExpr, NonlinearExpr))):
                raise TypeError(f"unsupported nonlinear argument of type {type(a).__name__}")
        self.head = head
        self.args: Tuple[Any, ...] = tuple(args)

    def variables(self) -> list[VariableRef]:
        seen: Dict[VariableRef, None] = {}
        for a in self.args:
            if isinstance(a, VariableRef):
                seen.setdefault(a)
            elif not _is_number(a):
                for v in a.variables():
                    seen.setdefault(v)
        return list(seen)

    def evaluate(self, value: ValueFn) -> float:
        vals = [evaluate(a, value) for a in self.args]
        return apply_operator(self.head, vals)

    def __add__(self, other: Any) -> "NonlinearExpr":
        return NonlinearExpr("+", self, other)

    def __radd__(self, other: Any) -> "NonlinearExpr":
        return NonlinearExpr("+", other, self)

    def __sub__(self, other: Any) -> "NonlinearExpr":
        return NonlinearExpr("-", self, other)

    def __rsub__(self, other: Any) -> "NonlinearExpr":
        return NonlinearExpr("-", other, self)

    def __neg__(self) -> "NonlinearExpr":
        return NonlinearExpr("-", self)

    def __mul__(self, other: Any) -> "NonlinearExpr":
        return NonlinearExpr("*", self, other)

    def __rmul__(self, other: Any) -> "NonlinearExpr":
        return NonlinearExpr("*", other, self)

    def __truediv__(self, other: Any) -> "NonlinearExpr":
        return NonlinearExpr("/", self, other)

    def __pow__(self, other: Any) -> "NonlinearExpr":
        return NonlinearExpr("^", self, other)

    def __repr__(self) -> str:
        return f"{self.head}({', '.join(repr(a) for a in self.args)})"


def sin(x: Any) -> NonlinearExpr:
    return NonlinearExpr("sin", x)


def cos(x: Any) -> NonlinearExpr:
    return NonlinearExpr("cos", x)


def exp(x: Any) -> NonlinearExpr:
    return NonlinearExpr("exp", x)


def log(x: Any) -> NonlinearExpr:
    return NonlinearExpr("log", x)


def sqrt(x: Any) -> NonlinearExpr:
    return NonlinearExpr("sqrt", x)


def evaluate(expr: Any, value: ValueFn) -> float:
    """Evaluate a scalar expression by substituting `value(v)` for every variable."""
    if _is_number(expr):
        return float(expr)
    if isinstance(expr, VariableRef):
        return float(value(expr))
    if isinstance(expr, (AffExpr, QuadExpr, NonlinearExpr)):
        return expr.evaluate(value)
    raise TypeError(f"cannot evaluate object of type {type(expr).__name__}")


def is_scalar_function(x: Any) -> bool:
    return isinstance(x, (VariableRef, AffExpr, QuadExpr))


__all__ = [
    "VariableRef",
    "AffExpr",
    "QuadExpr",
    "NonlinearExpr",
    "sin",
    "cos",
    "exp",
    "log",
    "sqrt",
    "evaluate",
    "is_scalar_function",
    "apply_operator",
]
