#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure `src/` is on sys.path for direct script execution
SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from optbridge import Model, ObjectiveSense, run
from optbridge.model import LessThan


def build_model() -> Model:
    """max x + 2y  s.t.  x + y <= 4,  x + 3y <= 6,  0 <= x <= 3,  y >= 0"""
    m = Model("small_lp")
    x = m.add_variable("x", lower=0, upper=3)
    y = m.add_variable("y", lower=0)
    m.add_constraint(x + y, LessThan(4.0), "cap")
    m.add_constraint(x + 3 * y, LessThan(6.0), "mix")
    m.set_objective(ObjectiveSense.MAX, x + 2 * y)
    return m


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser()
    p.add_argument("--config", type=Path, default=Path("configs/pyomo_glpk.yaml"))
    args = p.parse_args(argv)

    m = build_model()
    bridge = run(m, args.config)
    print(f"status={bridge.termination_status().value} results={bridge.result_count()}")
    if bridge.has_values():
        for v in m.variables():
            print(f"  {v.name} = {bridge.value(v):.6g}")
        print(f"  objective = {bridge.objective_value():.6g}")
    if bridge.has_duals():
        for c in m.constraints():
            if c.name:
                print(f"  dual[{c.name}] = {bridge.dual(c):.6g}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
