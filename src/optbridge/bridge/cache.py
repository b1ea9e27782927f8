"""Backend Cache: solver-agnostic snapshot of a translated model.

`translate(model)` is pure. The resulting `BackendRepresentation` is both the
staging area loaded into a real backend on attach and the object compared in
structural tests (see `text_format.parse_model_string`).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..model.expressions import AffExpr, NonlinearExpr, QuadExpr, VariableRef, _is_number
from ..model.model import Model
from ..model.types import ObjectiveSense
from .functions import (
    NonlinearFunction,
    ScalarAffine,
    ScalarQuadratic,
    SingleVariable,
    VectorAffine,
    VectorOfVariables,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConstraintEntry:
    name: Optional[str]
    function: Any
    set: Any


@dataclass(slots=True)
class BackendRepresentation:
    variable_names: List[Optional[str]] = field(default_factory=list)
    objective_sense: ObjectiveSense = ObjectiveSense.FEASIBILITY
    objective: Any = field(default_factory=ScalarAffine)
    constraints: List[ConstraintEntry] = field(default_factory=list)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BackendRepresentation):
            return NotImplemented
        return not self.diff(other)

    def _names(self) -> list[str]:
        return [n if n else f"_[{i + 1}]" for i, n in enumerate(self.variable_names)]

    def diff(self, other: "BackendRepresentation") -> list[str]:
        """Human-readable differences; empty when the two are structurally equal.

        Variables compare in order, constraints as a multiset, coefficients
        with exact float equality.
        """
        out: list[str] = []
        if self.variable_names != other.variable_names:
            out.append(f"variables differ: {self.variable_names} != {other.variable_names}")
        if self.objective_sense != other.objective_sense:
            out.append(f"objective sense differs: {self.objective_sense.value} != {other.objective_sense.value}")
        if self.objective != other.objective:
            out.append(
                "objective differs: "
                f"{self.objective.to_string(self._names())} != {other.objective.to_string(other._names())}"
            )
        mine = Counter(self.constraints)
        theirs = Counter(other.constraints)
        for entry in (mine - theirs).elements():
            out.append(f"constraint only on left: {self.render_constraint(entry)}")
        for entry in (theirs - mine).elements():
            out.append(f"constraint only on right: {other.render_constraint(entry)}")
        return out

    def render_constraint(self, entry: ConstraintEntry) -> str:
        prefix = f"{entry.name}: " if entry.name else ""
        return f"{prefix}{entry.function.to_string(self._names())} in {entry.set!r}"

    def to_string(self) -> str:
        """Render in the diagnostic text format, one declaration per line."""
        names = self._names()
        lines = ["variables: " + ", ".join(names)]
        if self.objective_sense is ObjectiveSense.MIN:
            lines.append("minobjective: " + self.objective.to_string(names))
        elif self.objective_sense is ObjectiveSense.MAX:
            lines.append("maxobjective: " + self.objective.to_string(names))
        lines += [self.render_constraint(c) for c in self.constraints]
        return "\n".join(lines)


def _scalar(expr: Any) -> Any:
    if isinstance(expr, VariableRef):
        return SingleVariable(expr.index)
    if isinstance(expr, AffExpr):
        return ScalarAffine.canonical(((v.index, c) for v, c in expr.terms.items()), expr.constant)
    if isinstance(expr, QuadExpr):
        return ScalarQuadratic.canonical(
            ((v1.index, v2.index, c) for (v1, v2), c in expr.quad.items()),
            ((v.index, c) for v, c in expr.aff.terms.items()),
            expr.aff.constant,
        )
    raise TypeError(f"cannot translate {type(expr).__name__}")


def _affine(expr: Any) -> ScalarAffine:
    return _scalar(AffExpr.of(expr))


def _vector(items: tuple) -> Any:
    if all(isinstance(e, VariableRef) for e in items):
        return VectorOfVariables(tuple(e.index for e in items))
    return VectorAffine(tuple(_affine(e) for e in items))


def _nonlinear(expr: Any) -> Any:
    if _is_number(expr):
        return float(expr)
    if isinstance(expr, NonlinearExpr):
        return NonlinearFunction(expr.head, tuple(_nonlinear(a) for a in expr.args))
    return _scalar(expr)


def translate_function(function: Any) -> Any:
    """Translate a stored constraint function to its canonical position-indexed form."""
    if isinstance(function, tuple):
        return _vector(function)
    return _scalar(function)


def translate_objective(model: Model) -> Any:
    if model.nonlinear_objective is not None:
        return _nonlinear(model.nonlinear_objective)
    f = model.objective_function
    return _affine(f) if isinstance(f, (AffExpr, VariableRef)) else _scalar(f)


def translate(model: Model) -> BackendRepresentation:
    rep = BackendRepresentation(
        variable_names=[v.name for v in model.variables()],
        objective_sense=model.objective_sense,
        objective=translate_objective(model),
        constraints=[
            ConstraintEntry(data.name, translate_function(data.function), data.set)
            for _, data in model.iter_constraints()
        ],
    )
    log.debug(
        "translated model: %d variable(s), %d constraint(s)",
        len(rep.variable_names),
        len(rep.constraints),
    )
    return rep


__all__ = [
    "ConstraintEntry",
    "BackendRepresentation",
    "translate",
    "translate_function",
    "translate_objective",
]
