from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping
import ast
import logging
import operator as _op

import yaml

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RunConfig:
    log_level: str = "INFO"


@dataclass(slots=True)
class BackendConfig:
    impl: str = "mock"
    # Pyomo solver name passed to SolverFactory (e.g. "glpk", "highs", "ipopt")
    solver: str = "glpk"
    executable: str | None = None
    tee: bool = False
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class BridgeConfig:
    run: RunConfig = field(default_factory=RunConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)


def _as_dict(m: Mapping[str, Any] | None) -> dict[str, Any]:
    return dict(m) if m else {}


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


_BIN_OPS = {
    ast.Add: _op.add,
    ast.Sub: _op.sub,
    ast.Mult: _op.mul,
    ast.Div: _op.truediv,
    ast.FloorDiv: _op.floordiv,
    ast.Mod: _op.mod,
    ast.Pow: _op.pow,
}
_UNARY_OPS = {ast.UAdd: _op.pos, ast.USub: _op.neg}


def _eval_expr(expr: str, names: Mapping[str, Any]) -> float | int:
    """Safely evaluate a simple arithmetic expression with provided names.

    Allowed:
      - literals: ints and floats
      - names: other numeric options in 'names'
      - operators: +, -, *, /, //, %, **
      - parentheses and unary +/-

    Disallowed: function calls, attribute access, subscripting, etc.
    """
    node = ast.parse(expr, mode="eval")

    def _eval(n: ast.AST) -> float | int:
        if isinstance(n, ast.Expression):
            return _eval(n.body)
        if isinstance(n, ast.Constant):
            if _is_number(n.value):
                return n.value
            raise ValueError("non-numeric constant in expression")
        if isinstance(n, ast.Name):
            if n.id not in names:
                raise NameError(f"unknown name '{n.id}' in expression")
            v = names[n.id]
            if not _is_number(v):
                raise ValueError(f"name '{n.id}' is not numeric: {v}")
            return v
        if isinstance(n, ast.BinOp):
            if type(n.op) not in _BIN_OPS:
                raise ValueError("operator not allowed in expression")
            return _BIN_OPS[type(n.op)](_eval(n.left), _eval(n.right))
        if isinstance(n, ast.UnaryOp):
            if type(n.op) not in _UNARY_OPS:
                raise ValueError("unary operator not allowed in expression")
            return _UNARY_OPS[type(n.op)](_eval(n.operand))
        raise ValueError("unsupported syntax in expression")

    return _eval(node)


def _resolve_option_expressions(options: dict[str, Any]) -> dict[str, Any]:
    """Resolve arithmetic string values (e.g. ``"5 * 60"``) within solver options.

    Only strings containing one of '+-*/()' are tried; anything that fails to
    evaluate is kept verbatim, since solver options are often plain strings.
    Names may reference numeric options defined earlier in the same dict.
    """
    if not options:
        return options
    out: dict[str, Any] = dict(options)
    for k, v in options.items():
        if isinstance(v, str):
            s = v.strip()
            if any(ch in s for ch in "+-*/()"):
                try:
                    out[k] = _eval_expr(s, out)
                except (ValueError, NameError, SyntaxError, ZeroDivisionError):
                    log.debug("option %s=%r kept as a string", k, v)
    return out


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError("Top-level YAML document must be a mapping")
        return data


def load_config(path: str | Path | None) -> BridgeConfig:
    """Load configuration from a YAML file or return defaults.

    The schema is minimal and forgiving; unknown keys are ignored. Only YAML is supported.
    """
    if path is None:
        return BridgeConfig()
    p = Path(path)
    if not p.exists():
        log.debug("config %s not found; using defaults", p)
        return BridgeConfig()

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError(f"Unsupported config format '{p.suffix}'. Please provide a YAML file.")
    raw = _load_yaml(p)
    run = _as_dict(raw.get("run"))
    backend = _as_dict(raw.get("backend"))

    run_cfg = RunConfig(log_level=str(run.get("log_level", "INFO")))
    executable = backend.get("executable")
    backend_cfg = BackendConfig(
        impl=str(backend.get("impl", "mock")).lower(),
        solver=str(backend.get("solver", "glpk")),
        executable=str(executable) if executable else None,
        tee=bool(backend.get("tee", False)),
        options=_resolve_option_expressions(_as_dict(backend.get("options"))),
    )
    return BridgeConfig(run=run_cfg, backend=backend_cfg)


def make_backend_factory(cfg: BackendConfig) -> Callable[[], Any]:
    """Zero-argument factory building the backend named by `cfg.impl`."""
    if cfg.impl == "mock":
        from .backends.mock_impl import MockBackend

        return MockBackend
    if cfg.impl == "pyomo":
        from .backends.pyomo_impl import PyomoBackend

        def _factory() -> PyomoBackend:
            return PyomoBackend(
                cfg.solver,
                executable=cfg.executable,
                options=dict(cfg.options),
                tee=cfg.tee,
            )

        return _factory
    raise ValueError(f"Unknown backend impl '{cfg.impl}'; expected 'mock' or 'pyomo'")


__all__ = ["RunConfig", "BackendConfig", "BridgeConfig", "load_config", "make_backend_factory"]
