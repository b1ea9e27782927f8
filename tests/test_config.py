import logging

import pytest

from optbridge.backends.mock_impl import MockBackend
from optbridge.backends.pyomo_impl import PyomoBackend
from optbridge.config import BackendConfig, BridgeConfig, load_config, make_backend_factory
from optbridge.logging_config import setup_logging


def test_defaults_without_file(tmp_path):
    assert load_config(None) == BridgeConfig()
    cfg = load_config(tmp_path / "missing.yaml")
    assert cfg.run.log_level == "INFO"
    assert cfg.backend.impl == "mock"


def test_load_yaml(tmp_path):
    p = tmp_path / "bridge.yaml"
    p.write_text(
        """
run:
  log_level: WARNING
  unknown_key: 1
backend:
  impl: Pyomo
  solver: highs
  tee: true
  options:
    time_limit: "5 * 60"
    threads: 2
    per_thread: "time_limit / threads"
    method: "dual-simplex"
""",
        encoding="utf-8",
    )
    cfg = load_config(p)
    assert cfg.run.log_level == "WARNING"
    assert cfg.backend.impl == "pyomo"
    assert cfg.backend.solver == "highs"
    assert cfg.backend.tee is True
    assert cfg.backend.executable is None
    assert cfg.backend.options["time_limit"] == 300
    assert cfg.backend.options["threads"] == 2
    assert cfg.backend.options["per_thread"] == 150.0
    # strings that are not arithmetic stay strings
    assert cfg.backend.options["method"] == "dual-simplex"


def test_rejects_non_yaml(tmp_path):
    p = tmp_path / "bridge.json"
    p.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError, match="YAML"):
        load_config(p)


def test_rejects_non_mapping(tmp_path):
    p = tmp_path / "bridge.yml"
    p.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_config(p)


def test_backend_factories():
    assert isinstance(make_backend_factory(BackendConfig(impl="mock"))(), MockBackend)
    backend = make_backend_factory(BackendConfig(impl="pyomo", solver="ipopt", options={"tol": 1e-8}))()
    assert isinstance(backend, PyomoBackend)
    assert backend.solver == "ipopt"
    assert backend.options == {"tol": 1e-8}
    with pytest.raises(ValueError):
        make_backend_factory(BackendConfig(impl="gurobi"))


def test_debug_logging_writes_report(tmp_path):
    root = logging.getLogger()
    before = list(root.handlers)
    try:
        path = setup_logging("DEBUG", report_dir=tmp_path / "Report")
        assert path is not None and path.parent == tmp_path / "Report"
        logging.getLogger("optbridge.test").debug("hello report")
        for h in root.handlers:
            h.flush()
        assert "hello report" in path.read_text(encoding="utf-8")
    finally:
        for h in root.handlers[:]:
            if h not in before:
                root.removeHandler(h)
                h.close()
    assert setup_logging("INFO") is None
