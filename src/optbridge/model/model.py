from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

import numpy as np

from ..errors import DimensionMismatch, InvalidReferenceError
from .expressions import (
    AffExpr,
    NonlinearExpr,
    QuadExpr,
    VariableRef,
    is_scalar_function,
    _is_number,
)
from .sets import (
    EqualTo,
    GreaterThan,
    Integer,
    LessThan,
    SetKind,
    ZeroOne,
    is_set,
    vectorize_matrix,
    with_dimension,
)
from .types import ObjectiveSense

log = logging.getLogger(__name__)


class ConstraintRef:
    """Long-lived handle to a constraint of a `Model`."""

    __slots__ = ("model", "index")

    def __init__(self, model: "Model", index: int):
        self.model = model
        self.index = index

    @property
    def name(self) -> str | None:
        return self.model.constraint_data(self).name

    @property
    def set(self) -> Any:
        return self.model.constraint_data(self).set

    @property
    def function(self) -> Any:
        return self.model.constraint_data(self).function

    def __hash__(self) -> int:
        return hash((id(self.model), "con", self.index))

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, ConstraintRef)
            and other.model is self.model
            and other.index == self.index
        )

    def __repr__(self) -> str:
        return self.name or f"ConstraintRef({self.index})"


@dataclass(slots=True)
class ConstraintData:
    """A constraint `function in set`.

    `function` is a VariableRef, AffExpr or QuadExpr for scalar sets and a
    tuple of those for vector sets (matrices are vectorised on entry).
    """

    function: Any
    set: Any
    name: Optional[str] = None


@dataclass(slots=True)
class _VariableData:
    name: Optional[str] = None
    lower: Optional[ConstraintRef] = None
    upper: Optional[ConstraintRef] = None
    fixed: Optional[ConstraintRef] = None
    integer: Optional[ConstraintRef] = None
    binary: Optional[ConstraintRef] = None


def _normalize_function(function: Any, s: Any) -> Tuple[Any, Any]:
    """Check `function` against `s`; return the stored (function, set) pair."""
    if s.kind is SetKind.SCALAR:
        if _is_number(function):
            function = AffExpr.of(function)
        if not is_scalar_function(function):
            raise DimensionMismatch(
                f"scalar set {type(s).__name__} needs a scalar function, got {type(function).__name__}"
            )
        # Move the constant into the set: `x + y + 1 <= 3` is stored as `x + y in LessThan(2)`
        if hasattr(s, "shifted"):
            const = function.aff.constant if isinstance(function, QuadExpr) else (
                function.constant if isinstance(function, AffExpr) else 0.0
            )
            if const != 0.0:
                function = function - const
                s = s.shifted(const)
        return function, s
    if is_scalar_function(function) or _is_number(function):
        raise DimensionMismatch(f"vector set {type(s).__name__} needs a vector function")
    if isinstance(function, np.ndarray) and function.ndim == 2:
        rows = function.tolist()
        items = vectorize_matrix(rows, s)
    else:
        items = list(function)
        if items and all(isinstance(r, (list, tuple, np.ndarray)) for r in items):
            items = vectorize_matrix(items, s)
    elems = []
    for e in items:
        if _is_number(e):
            e = AffExpr.of(e)
        if not isinstance(e, (VariableRef, AffExpr)):
            raise TypeError(f"vector functions hold variables or affine expressions, got {type(e).__name__}")
        elems.append(e)
    return tuple(elems), with_dimension(s, len(elems))


class Model:
    """Symbolic optimization model.

    Pure data: variables, constraints and one objective. Variables and
    constraints are append-only. Every structural edit bumps `revision`, which
    is how attached bridges notice they are out of date.
    """

    def __init__(self, name: str | None = None):
        self.name = name
        self.revision = 0
        self._variables: List[_VariableData] = []
        self._constraints: List[ConstraintData] = []
        self.objective_sense: ObjectiveSense = ObjectiveSense.FEASIBILITY
        self.objective_function: Any = AffExpr()
        self.nonlinear_objective: Optional[NonlinearExpr] = None

    def _touch(self) -> None:
        self.revision += 1

    # --- variables ---

    def add_variable(
        self,
        name: str | None = None,
        *,
        lower: float | None = None,
        upper: float | None = None,
        fix: float | None = None,
        integer: bool = False,
        binary: bool = False,
    ) -> VariableRef:
        ref = VariableRef(self, len(self._variables))
        data = _VariableData(name=name)
        self._variables.append(data)
        self._touch()
        if fix is not None:
            data.fixed = self.add_constraint(ref, EqualTo(float(fix)))
        if lower is not None:
            data.lower = self.add_constraint(ref, GreaterThan(float(lower)))
        if upper is not None:
            data.upper = self.add_constraint(ref, LessThan(float(upper)))
        if integer:
            data.integer = self.add_constraint(ref, Integer())
        if binary:
            data.binary = self.add_constraint(ref, ZeroOne())
        return ref

    def add_symmetric_matrix(self, side: int, name: str | None = None) -> np.ndarray:
        """Create one variable per upper-triangle entry and return the symmetric matrix."""
        out = np.empty((side, side), dtype=object)
        for j in range(side):
            for i in range(j + 1):
                vname = f"{name}[{i + 1},{j + 1}]" if name else None
                v = self.add_variable(vname)
                out[i, j] = v
                out[j, i] = v
        return out

    def num_variables(self) -> int:
        return len(self._variables)

    def variables(self) -> list[VariableRef]:
        return [VariableRef(self, i) for i in range(len(self._variables))]

    def _check_variable(self, ref: VariableRef) -> _VariableData:
        if not isinstance(ref, VariableRef) or ref.model is not self or not (0 <= ref.index < len(self._variables)):
            raise InvalidReferenceError(f"variable {ref!r} does not belong to this model")
        return self._variables[ref.index]

    def variable_name(self, ref: VariableRef) -> str | None:
        return self._check_variable(ref).name

    def variable_by_name(self, name: str) -> VariableRef | None:
        for i, d in enumerate(self._variables):
            if d.name == name:
                return VariableRef(self, i)
        return None

    def _bound_ref(self, ref: VariableRef, attr: str, label: str) -> ConstraintRef:
        c = getattr(self._check_variable(ref), attr)
        if c is None:
            raise InvalidReferenceError(f"variable {ref!r} has no {label}")
        return c

    def lower_bound_ref(self, ref: VariableRef) -> ConstraintRef:
        return self._bound_ref(ref, "lower", "lower bound")

    def upper_bound_ref(self, ref: VariableRef) -> ConstraintRef:
        return self._bound_ref(ref, "upper", "upper bound")

    def fix_ref(self, ref: VariableRef) -> ConstraintRef:
        return self._bound_ref(ref, "fixed", "fixing constraint")

    def integer_ref(self, ref: VariableRef) -> ConstraintRef:
        return self._bound_ref(ref, "integer", "integrality constraint")

    def binary_ref(self, ref: VariableRef) -> ConstraintRef:
        return self._bound_ref(ref, "binary", "binary constraint")

    # --- constraints ---

    def add_constraint(self, function: Any, set: Any, name: str | None = None) -> ConstraintRef:
        if not is_set(set):
            raise TypeError(f"{set!r} is not a constraint set")
        func, s = _normalize_function(function, set)
        for v in (func if isinstance(func, tuple) else (func,)):
            for var in ([v] if isinstance(v, VariableRef) else v.variables()):
                self._check_variable(var)
        ref = ConstraintRef(self, len(self._constraints))
        self._constraints.append(ConstraintData(func, s, name))
        self._touch()
        log.debug("added constraint %s: %s in %s", name or ref.index, func, s)
        return ref

    def num_constraints(self) -> int:
        return len(self._constraints)

    def constraints(self) -> list[ConstraintRef]:
        return [ConstraintRef(self, i) for i in range(len(self._constraints))]

    def constraint_data(self, ref: ConstraintRef) -> ConstraintData:
        if not isinstance(ref, ConstraintRef) or ref.model is not self or not (0 <= ref.index < len(self._constraints)):
            raise InvalidReferenceError(f"constraint {ref!r} does not belong to this model")
        return self._constraints[ref.index]

    def constraint_by_name(self, name: str) -> ConstraintRef | None:
        for i, d in enumerate(self._constraints):
            if d.name == name:
                return ConstraintRef(self, i)
        return None

    def iter_constraints(self) -> Iterator[Tuple[ConstraintRef, ConstraintData]]:
        for i, d in enumerate(self._constraints):
            yield ConstraintRef(self, i), d

    # --- names ---

    def set_name(self, ref: VariableRef | ConstraintRef, name: str | None) -> None:
        if isinstance(ref, VariableRef):
            self._check_variable(ref).name = name
        else:
            self.constraint_data(ref).name = name
        self._touch()

    # --- objective ---

    def set_objective(self, sense: ObjectiveSense | str, function: Any) -> None:
        sense = ObjectiveSense(sense)
        if _is_number(function) or isinstance(function, VariableRef):
            function = AffExpr.of(function)
        if not isinstance(function, (AffExpr, QuadExpr)):
            raise TypeError(f"objective must be affine or quadratic, got {type(function).__name__}")
        for v in function.variables():
            self._check_variable(v)
        self.objective_sense = sense
        self.objective_function = function
        self.nonlinear_objective = None
        self._touch()

    def set_nonlinear_objective(self, sense: ObjectiveSense | str, expr: NonlinearExpr) -> None:
        if not isinstance(expr, NonlinearExpr):
            raise TypeError(f"nonlinear objective must be a NonlinearExpr, got {type(expr).__name__}")
        for v in expr.variables():
            self._check_variable(v)
        self.objective_sense = ObjectiveSense(sense)
        self.objective_function = AffExpr()
        self.nonlinear_objective = expr
        self._touch()

    def has_nonlinear_objective(self) -> bool:
        return self.nonlinear_objective is not None

    def __repr__(self) -> str:
        return (
            f"Model(name={self.name!r}, variables={len(self._variables)}, "
            f"constraints={len(self._constraints)}, sense={self.objective_sense.value})"
        )


__all__ = ["Model", "ConstraintRef", "ConstraintData"]
