import pyomo.environ as pyo
import pytest

from optbridge.backends.pyomo_impl import PyomoBackend
from optbridge.bridge import OptimizerBridge, VectorAffine, VectorOfVariables
from optbridge.bridge.functions import SCALAR_FUNCTIONS
from optbridge.errors import UnsupportedBackendError
from optbridge.model import (
    EqualTo,
    GreaterThan,
    Interval,
    LessThan,
    Model,
    ObjectiveSense,
    ResultStatus,
    SecondOrderCone,
    TerminationStatus,
    log,
)


def _glpk_available() -> bool:
    return bool(pyo.SolverFactory("glpk").available(exception_flag=False))


needs_glpk = pytest.mark.skipif(not _glpk_available(), reason="glpk not available")


def _lp():
    m = Model("lp")
    x = m.add_variable("x", upper=2)
    y = m.add_variable("y", lower=0)
    c = m.add_constraint(x + y, LessThan(1.0), "c")
    m.set_objective(ObjectiveSense.MIN, -x)
    return m, x, y, c


def test_builds_pyomo_model():
    m, x, y, c = _lp()
    r = m.add_constraint(x - y, Interval(-1.0, 1.0), "r")
    bridge = OptimizerBridge(m, PyomoBackend)
    backend = bridge.attach()
    pm = backend.m
    assert len(pm.x) == 2
    assert len(pm.cons) == 4
    assert pm.obj.sense == pyo.minimize
    assert bridge.backend_index(r).value == 4
    assert backend.termination_status() is TerminationStatus.OPTIMIZE_NOT_CALLED
    assert backend.result_count() == 0


def test_integrality_becomes_domain():
    m = Model()
    x = m.add_variable("x", integer=True)
    y = m.add_variable("y", binary=True)
    m.add_constraint(x + y, LessThan(1.5))
    m.set_objective(ObjectiveSense.MAX, x)
    backend = OptimizerBridge(m, PyomoBackend).attach()
    assert backend.m.x[1].is_integer()
    assert backend.m.x[2].is_binary()
    assert len(backend.m.cons) == 1
    assert backend.m.obj.sense == pyo.maximize


def test_capabilities_cover_scalar_functions_only():
    backend = PyomoBackend()
    for function_type in SCALAR_FUNCTIONS:
        for set_type in (LessThan, GreaterThan, EqualTo, Interval):
            assert backend.supports_constraint(function_type, set_type)
    for function_type in (VectorOfVariables, VectorAffine):
        assert not backend.supports_constraint(function_type, SecondOrderCone)
        assert not backend.supports_constraint(function_type, LessThan)


def test_cones_are_rejected():
    m = Model()
    x = m.add_variable("x")
    y = m.add_variable("y")
    m.add_constraint([x, y, 1.0], SecondOrderCone())
    with pytest.raises(UnsupportedBackendError):
        OptimizerBridge(m, PyomoBackend).attach()


def test_nonlinear_objective_is_expressed():
    m = Model()
    x = m.add_variable("x", lower=0)
    y = m.add_variable("y", lower=0)
    m.add_constraint(x + y, GreaterThan(1.0))
    m.set_nonlinear_objective(ObjectiveSense.MIN, log(x + y) + x**2)
    backend = OptimizerBridge(m, PyomoBackend).attach()
    for v in backend.m.x.values():
        v.set_value(0.5)
    assert pyo.value(backend.m.obj) == pytest.approx(0.25)


@needs_glpk
def test_solve_lp_with_glpk():
    m, x, y, c = _lp()
    bridge = OptimizerBridge(m, lambda: PyomoBackend("glpk"))
    bridge.solve()
    assert bridge.termination_status() is TerminationStatus.OPTIMAL
    assert bridge.primal_status() is ResultStatus.FEASIBLE_POINT
    assert bridge.value(x) == pytest.approx(1.0)
    assert bridge.value(y) == pytest.approx(0.0)
    assert bridge.value(c) == pytest.approx(1.0)
    assert bridge.objective_value() == pytest.approx(-1.0)
    assert bridge.dual(c) == pytest.approx(-1.0)
    assert bridge.solve_time() is not None


@needs_glpk
def test_solve_ip_with_glpk():
    m = Model()
    x = m.add_variable("x", integer=True, lower=0)
    y = m.add_variable("y", binary=True)
    m.add_constraint(x + y, LessThan(1.5))
    m.set_objective(ObjectiveSense.MAX, x + 0.5 * y)
    bridge = OptimizerBridge(m, lambda: PyomoBackend("glpk"))
    bridge.solve()
    assert bridge.termination_status() is TerminationStatus.OPTIMAL
    assert bridge.value(x) == pytest.approx(1.0)
    assert bridge.value(y) == pytest.approx(0.0)
    assert bridge.objective_value() == pytest.approx(1.0)


@needs_glpk
def test_infeasible_lp_with_glpk():
    m = Model()
    x = m.add_variable("x", lower=1, upper=0)
    m.set_objective(ObjectiveSense.MIN, x)
    bridge = OptimizerBridge(m, lambda: PyomoBackend("glpk"))
    bridge.solve()
    assert bridge.termination_status() is not TerminationStatus.OPTIMAL
    assert bridge.result_count() == 0
    assert not bridge.has_values()
