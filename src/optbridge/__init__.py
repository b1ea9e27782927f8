"""optbridge

A small symbolic optimization layer that keeps a user-facing model in sync
with an interchangeable solver backend. The package provides:

- A pure-data `Model` (variables, constraints in sets, one objective)
- An `OptimizerBridge` that loads the model into a backend, resyncs it after
  edits and snapshots solve results
- A mock backend for tests and a Pyomo backend for real solvers
- YAML-based configuration and a one-call `run(model, config_path)`
"""

from .bridge import OptimizerBridge, BridgeState, parse_model_string
from .model import Model, ObjectiveSense, TerminationStatus, ResultStatus
from .runner import run

__all__ = [
    "__version__",
    "Model",
    "ObjectiveSense",
    "TerminationStatus",
    "ResultStatus",
    "OptimizerBridge",
    "BridgeState",
    "parse_model_string",
    "run",
]

__version__ = "0.1.0"
