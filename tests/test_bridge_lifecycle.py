import pytest

from optbridge.backends.mock_impl import MockBackend
from optbridge.bridge import BridgeState, OptimizerBridge, ScalarAffine, SingleVariable
from optbridge.errors import (
    InvalidReferenceError,
    NoOptimizerError,
    ResultIndexOutOfRange,
    UnsupportedBackendError,
    UnsupportedProblemError,
)
from optbridge.model import LessThan, Model, ObjectiveSense, ResultStatus, SecondOrderCone, TerminationStatus


def _model():
    m = Model()
    x = m.add_variable("x", upper=1)
    c = m.add_constraint(2 * x, LessThan(1.0), "c")
    m.set_objective(ObjectiveSense.MAX, x)
    return m, x, c


def _solved_mock(mock):
    mock.set_termination_status(TerminationStatus.OPTIMAL)
    mock.set_result_count(1)
    mock.set_primal_status(ResultStatus.FEASIBLE_POINT)


def test_empty_bridge():
    m, x, _ = _model()
    bridge = OptimizerBridge(m)
    assert bridge.state is BridgeState.EMPTY
    assert bridge.termination_status() is TerminationStatus.OPTIMIZE_NOT_CALLED
    assert bridge.result_count() == 0
    with pytest.raises(NoOptimizerError):
        bridge.backend
    with pytest.raises(NoOptimizerError):
        bridge.solve()
    with pytest.raises(NoOptimizerError):
        bridge.attach()
    with pytest.raises(InvalidReferenceError):
        bridge.backend_index(x)


def test_solve_attaches_lazily_from_factory():
    m, x, _ = _model()
    bridge = OptimizerBridge(m)
    bridge.set_optimizer(MockBackend)
    assert bridge.state is BridgeState.EMPTY

    bridge.solve()
    assert bridge.state is BridgeState.SOLVED
    assert bridge.backend.solve_count == 1
    assert bridge.termination_status() is TerminationStatus.OPTIMIZE_NOT_CALLED

    # solving again from SOLVED is allowed
    bridge.solve()
    assert bridge.backend.solve_count == 2


def test_attach_then_clean():
    m, x, c = _model()
    bridge = OptimizerBridge(m, MockBackend)
    backend = bridge.attach()
    assert backend is bridge.backend
    assert bridge.state is BridgeState.ATTACHED_CLEAN
    assert bridge.backend_index(x).value == 1
    ci = bridge.backend_index(c)
    assert ci.function_type is ScalarAffine
    assert ci.set_type is LessThan
    bound = bridge.backend_index(m.upper_bound_ref(x))
    assert bound.function_type is SingleVariable


def test_model_edit_makes_bridge_stale_and_resync_rebuilds():
    m, x, c = _model()
    bridge = OptimizerBridge(m, MockBackend)
    first = bridge.attach()
    _solved_mock(first)
    first.set_variable_primal(bridge.backend_index(x), 0.5)
    bridge.solve()
    assert bridge.value(x) == 0.5

    y = m.add_variable("y")
    assert bridge.state is BridgeState.ATTACHED_STALE
    # results belong to the previous revision
    assert bridge.termination_status() is TerminationStatus.OPTIMIZE_NOT_CALLED
    assert bridge.result_count() == 0
    assert bridge.primal_status() is ResultStatus.NO_SOLUTION
    with pytest.raises(ResultIndexOutOfRange):
        bridge.value(x)
    with pytest.raises(InvalidReferenceError):
        bridge.backend_index(x)

    bridge.ensure_synced()
    assert bridge.state is BridgeState.ATTACHED_CLEAN
    second = bridge.backend
    assert second is not first
    assert len(second.variable_names) == 2
    assert bridge.backend_index(y).value == 2


def test_rename_invalidates_references():
    m, x, _ = _model()
    bridge = OptimizerBridge(m, MockBackend)
    bridge.attach()
    m.set_name(x, "z")
    assert bridge.state is BridgeState.ATTACHED_STALE
    bridge.solve()
    assert bridge.state is BridgeState.SOLVED
    assert bridge.backend.variable_names == ["z"]


def test_reset_optimizer_reuses_the_instance():
    m, x, _ = _model()
    mock = MockBackend()
    mock.add_variable("leftover")
    bridge = OptimizerBridge(m)
    bridge.reset_optimizer(mock)
    assert bridge.backend is mock
    assert mock.variable_names == ["x"]

    m.add_variable("y")
    bridge.ensure_synced()
    assert bridge.backend is mock
    assert mock.variable_names == ["x", "y"]


def test_unsupported_constraint_rejected_before_any_write():
    m = Model()
    x = m.add_variable("x", upper=1)
    y = m.add_variable("y")
    m.add_constraint([x, y, 1.0], SecondOrderCone())
    built = []

    def factory():
        b = MockBackend(supported_constraints={(SingleVariable, LessThan)})
        built.append(b)
        return b

    bridge = OptimizerBridge(m, factory)
    with pytest.raises(UnsupportedBackendError) as exc:
        bridge.attach()
    assert "SecondOrderCone" in str(exc.value)
    assert bridge.state is BridgeState.EMPTY
    assert built[0].is_empty()


def test_unsupported_objective_is_reported_at_solve():
    m, _, _ = _model()
    bridge = OptimizerBridge(m, lambda: MockBackend(supported_objectives=()))
    bridge.attach()
    with pytest.raises(UnsupportedProblemError):
        bridge.solve()
    assert bridge.backend.solve_count == 0


def test_backend_failure_is_recorded_and_reraised():
    m, _, _ = _model()

    def explode(backend):
        raise RuntimeError("solver crashed")

    bridge = OptimizerBridge(m, lambda: MockBackend(on_solve=explode))
    with pytest.raises(RuntimeError):
        bridge.solve()
    assert bridge.termination_status() is TerminationStatus.OTHER_ERROR
    assert bridge.raw_status() == "solver crashed"
    assert bridge.result_count() == 0


def test_detach_and_foreign_references():
    m, x, _ = _model()
    other = Model()
    z = other.add_variable("z")
    bridge = OptimizerBridge(m, MockBackend)
    bridge.attach()
    with pytest.raises(InvalidReferenceError):
        bridge.backend_index(z)

    bridge.detach()
    assert bridge.state is BridgeState.EMPTY
    with pytest.raises(InvalidReferenceError):
        bridge.backend_index(x)
    # the stored factory survives a detach
    bridge.solve()
    assert bridge.state is BridgeState.SOLVED


@pytest.mark.parametrize("drop", ["detach", "set_optimizer", "reset_optimizer", "attach"])
def test_dropping_the_backend_clears_results(drop):
    m, x, c = _model()
    bridge = OptimizerBridge(m, MockBackend)
    first = bridge.attach()
    _solved_mock(first)
    first.set_variable_primal(bridge.backend_index(x), 0.5)
    bridge.solve()
    assert bridge.termination_status() is TerminationStatus.OPTIMAL
    assert bridge.value(x) == 0.5

    if drop == "detach":
        bridge.detach()
    elif drop == "set_optimizer":
        bridge.set_optimizer(MockBackend)
    elif drop == "reset_optimizer":
        bridge.reset_optimizer(MockBackend())
    else:
        bridge.attach()

    if drop in ("detach", "set_optimizer"):
        assert bridge.state is BridgeState.EMPTY
    else:
        assert bridge.state is BridgeState.ATTACHED_CLEAN
        assert bridge.backend is not first
    assert bridge.termination_status() is TerminationStatus.OPTIMIZE_NOT_CALLED
    assert bridge.raw_status() is None
    assert bridge.result_count() == 0
    assert bridge.primal_status() is ResultStatus.NO_SOLUTION
    with pytest.raises(ResultIndexOutOfRange):
        bridge.value(x)
    with pytest.raises(ResultIndexOutOfRange):
        bridge.dual(c)


def test_rejected_attach_keeps_the_working_factory():
    m = Model()
    x = m.add_variable("x", upper=1)
    y = m.add_variable("y")
    m.add_constraint([x, y, 1.0], SecondOrderCone(), "soc")
    m.set_objective(ObjectiveSense.MIN, x)
    bridge = OptimizerBridge(m, MockBackend)
    good = bridge.attach()

    with pytest.raises(UnsupportedBackendError):
        bridge.attach(lambda: MockBackend(supported_constraints={(SingleVariable, LessThan)}))
    assert bridge.backend is good
    assert bridge.state is BridgeState.ATTACHED_CLEAN

    m.add_variable("z")
    assert bridge.state is BridgeState.ATTACHED_STALE
    bridge.solve()
    assert bridge.state is BridgeState.SOLVED
    assert bridge.backend is not good
    assert bridge.backend.variable_names == ["x", "y", "z"]
