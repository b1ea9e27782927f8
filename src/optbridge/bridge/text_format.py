"""Diagnostic text format for structural comparisons.

Example::

    variables: x, y
    minobjective: -1.0*x
    x <= 2.0
    y >= 0.0
    c: x + y <= 1.0
    soc: [x, y, 1.0] in SecondOrderCone(3)

Expressions are parsed with `ast` and only a whitelist of nodes is accepted:
numeric literals, declared variable names, `+ - *`, unary +/- and list
displays. `2x` is read as `2*x`. Variable names must be Python identifiers,
except the `_[i]` placeholder `to_string()` writes for the unnamed variable at
position i; it parses back to an unnamed variable.
"""

from __future__ import annotations

import ast
import re
from typing import Any, Dict, Mapping, Tuple

from ..model.sets import SET_TYPES, SetKind, with_dimension
from ..model.types import ObjectiveSense
from .cache import BackendRepresentation, ConstraintEntry
from .functions import ScalarAffine, ScalarQuadratic, SingleVariable, VectorAffine, VectorOfVariables

# monomial (sorted tuple of variable positions, length 0..2) -> coefficient
Poly = Dict[Tuple[int, ...], float]

_IMPLICIT_MUL = re.compile(r"(?<![\w.])(\d+(?:\.\d*)?(?:[eE][-+]?\d+)?)\s*([A-Za-z_])")
_NAMED = re.compile(r"^([A-Za-z_]\w*)\s*:\s*(.+)$")
_UNNAMED = re.compile(r"_\[(\d+)\]")
_UNNAMED_ID = re.compile(r"^_unnamed_(\d+)$")
_COMPARATORS = (("<=", "LessThan"), (">=", "GreaterThan"), ("==", "EqualTo"))


def _poly_add(a: Poly, b: Poly, sign: float = 1.0) -> Poly:
    out = dict(a)
    for k, c in b.items():
        out[k] = out.get(k, 0.0) + sign * c
    return out


def _poly_mul(a: Poly, b: Poly) -> Poly:
    out: Poly = {}
    for ka, ca in a.items():
        for kb, cb in b.items():
            key = tuple(sorted(ka + kb))
            if len(key) > 2:
                raise ValueError("products of degree greater than two are not supported")
            out[key] = out.get(key, 0.0) + ca * cb
    return out


def _to_poly(node: ast.AST, positions: Mapping[str, int]) -> Poly:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
            return {(): float(node.value)}
        raise ValueError("non-numeric constant in expression")
    if isinstance(node, ast.Name):
        if node.id not in positions:
            raise NameError(f"unknown variable '{node.id}' in expression")
        return {(positions[node.id],): 1.0}
    if isinstance(node, ast.BinOp):
        left = _to_poly(node.left, positions)
        right = _to_poly(node.right, positions)
        if isinstance(node.op, ast.Add):
            return _poly_add(left, right)
        if isinstance(node.op, ast.Sub):
            return _poly_add(left, right, -1.0)
        if isinstance(node.op, ast.Mult):
            return _poly_mul(left, right)
        raise ValueError("operator not allowed in expression")
    if isinstance(node, ast.UnaryOp):
        inner = _to_poly(node.operand, positions)
        if isinstance(node.op, ast.USub):
            return {k: -c for k, c in inner.items()}
        if isinstance(node.op, ast.UAdd):
            return inner
        raise ValueError("unary operator not allowed in expression")
    raise ValueError("unsupported syntax in expression")


def _poly_function(p: Poly) -> Any:
    const = p.get((), 0.0)
    aff = [(k[0], c) for k, c in p.items() if len(k) == 1]
    quad = [(k[0], k[1], c) for k, c in p.items() if len(k) == 2]
    if quad:
        return ScalarQuadratic.canonical(quad, aff, const)
    return ScalarAffine.canonical(aff, const)


def _parse_expr(text: str) -> ast.AST:
    text = _IMPLICIT_MUL.sub(r"\1*\2", text.strip())
    return ast.parse(text, mode="eval").body


def _position(name: str, positions: Mapping[str, int]) -> int:
    if name not in positions:
        raise NameError(f"unknown variable '{name}' in expression")
    return positions[name]


def _scalar_function(node: ast.AST, positions: Mapping[str, int]) -> Any:
    if isinstance(node, ast.Name):
        return SingleVariable(_position(node.id, positions))
    return _poly_function(_to_poly(node, positions))


def _vector_function(node: ast.List, positions: Mapping[str, int]) -> Any:
    if all(isinstance(e, ast.Name) for e in node.elts):
        return VectorOfVariables(tuple(_position(e.id, positions) for e in node.elts))
    rows = []
    for e in node.elts:
        f = _poly_function(_to_poly(e, positions))
        if not isinstance(f, ScalarAffine):
            raise ValueError("vector functions must be affine")
        rows.append(f)
    return VectorAffine(tuple(rows))


def _parse_set(text: str) -> Any:
    node = _parse_expr(text)
    if not (isinstance(node, ast.Call) and isinstance(node.func, ast.Name)):
        raise ValueError(f"cannot parse set '{text}'")
    cls = SET_TYPES.get(node.func.id)
    if cls is None:
        raise ValueError(f"unknown set '{node.func.id}'")
    args = [_to_poly(a, {}).get((), 0.0) for a in node.args]
    # keyword form is what `repr` of a set produces, e.g. LessThan(upper=1.0)
    kwargs = {kw.arg: _to_poly(kw.value, {}).get((), 0.0) for kw in node.keywords}
    if cls.kind is not SetKind.SCALAR:
        args = [int(a) for a in args]
        kwargs = {k: int(v) for k, v in kwargs.items()}
    try:
        return cls(*args, **kwargs)
    except TypeError as exc:
        raise ValueError(f"bad arguments for set '{node.func.id}': {exc}") from exc


def _shift_scalar(f: Any, s: Any) -> Tuple[Any, Any]:
    if isinstance(f, (ScalarAffine, ScalarQuadratic)) and f.constant != 0.0 and hasattr(s, "shifted"):
        s = s.shifted(f.constant)
        if isinstance(f, ScalarAffine):
            f = ScalarAffine(f.terms, 0.0)
        else:
            f = ScalarQuadratic(f.quadratic_terms, f.affine_terms, 0.0)
    return f, s


def _parse_constraint(body: str, positions: Mapping[str, int]) -> Tuple[Any, Any]:
    if " in " in body:
        ftext, stext = body.rsplit(" in ", 1)
        s = _parse_set(stext)
        node = _parse_expr(ftext)
        if isinstance(node, ast.List):
            f = _vector_function(node, positions)
            return f, with_dimension(s, f.output_dimension)
        return _shift_scalar(_scalar_function(node, positions), s)
    for op, set_name in _COMPARATORS:
        if op in body:
            lhs, rhs = body.split(op, 1)
            rhs_value = _to_poly(_parse_expr(rhs), {}).get((), 0.0)
            s = SET_TYPES[set_name](rhs_value)
            return _shift_scalar(_scalar_function(_parse_expr(lhs), positions), s)
    raise ValueError(f"cannot parse constraint '{body}'")


def _variable_name(name: str, position: int) -> str | None:
    m = _UNNAMED_ID.match(name)
    if m is None:
        return name
    if int(m.group(1)) != position + 1:
        raise ValueError(f"placeholder _[{m.group(1)}] declared at position {position + 1}")
    return None


def parse_model_string(text: str) -> BackendRepresentation:
    """Parse the diagnostic text format into a `BackendRepresentation`."""
    rep = BackendRepresentation()
    positions: Dict[str, int] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = _UNNAMED.sub(r"_unnamed_\1", raw.split("#", 1)[0].strip())
        if not line:
            continue
        try:
            if line.startswith("variables:"):
                names = [n.strip() for n in line[len("variables:"):].split(",") if n.strip()]
                rep.variable_names = [_variable_name(n, i) for i, n in enumerate(names)]
                positions = {n: i for i, n in enumerate(names)}
                continue
            if line.startswith(("minobjective:", "maxobjective:")):
                head, expr = line.split(":", 1)
                rep.objective_sense = ObjectiveSense.MIN if head == "minobjective" else ObjectiveSense.MAX
                rep.objective = _poly_function(_to_poly(_parse_expr(expr), positions))
                continue
            name = None
            m = _NAMED.match(line)
            if m:
                name, line = m.group(1), m.group(2)
            f, s = _parse_constraint(line, positions)
            rep.constraints.append(ConstraintEntry(name, f, s))
        except (SyntaxError, ValueError, NameError) as exc:
            raise ValueError(f"line {lineno}: {exc}") from exc
    return rep


__all__ = ["parse_model_string"]
