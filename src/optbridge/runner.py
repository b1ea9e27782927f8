from __future__ import annotations

import logging
from pathlib import Path

from .bridge.optimizer import OptimizerBridge
from .config import load_config, make_backend_factory
from .logging_config import setup_logging
from .model.model import Model

log = logging.getLogger(__name__)


def run(model: Model, config_path: str | Path | None = None) -> OptimizerBridge:
    """Solve `model` with the backend described in a YAML config.

    Without a config (or when the file is missing) the defaults apply: INFO
    logging and the in-memory mock backend.
    """
    cfg = load_config(config_path)
    setup_logging(cfg.run.log_level)
    log.info("running model %r with backend %s", model.name, cfg.backend.impl)

    bridge = OptimizerBridge(model, make_backend_factory(cfg.backend))
    bridge.attach()
    bridge.solve()
    return bridge


__all__ = ["run"]
