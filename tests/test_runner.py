from optbridge import BridgeState, Model, ObjectiveSense, run
from optbridge.backends.mock_impl import MockBackend
from optbridge.model import LessThan


def _model():
    m = Model("small")
    x = m.add_variable("x", lower=0)
    m.add_constraint(2 * x, LessThan(1.0))
    m.set_objective(ObjectiveSense.MAX, x)
    return m


def test_run_with_defaults():
    bridge = run(_model())
    assert isinstance(bridge.backend, MockBackend)
    assert bridge.state is BridgeState.SOLVED
    assert bridge.backend.solve_count == 1


def test_run_with_yaml(tmp_path):
    p = tmp_path / "bridge.yaml"
    p.write_text("run:\n  log_level: WARNING\nbackend:\n  impl: mock\n", encoding="utf-8")
    bridge = run(_model(), p)
    assert bridge.state is BridgeState.SOLVED
    assert bridge.backend.name == "mock"
