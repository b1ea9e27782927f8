import numpy as np
import pytest

from optbridge.errors import DimensionMismatch, InvalidReferenceError
from optbridge.model import (
    AffExpr,
    EqualTo,
    GreaterThan,
    Interval,
    LessThan,
    Model,
    NonlinearExpr,
    Nonnegatives,
    ObjectiveSense,
    PositiveSemidefiniteConeSquare,
    PositiveSemidefiniteConeTriangle,
    QuadExpr,
    SecondOrderCone,
    log,
)


def test_variable_bounds_become_constraints():
    m = Model()
    x = m.add_variable("x", lower=0, upper=2)
    assert m.num_variables() == 1
    assert m.num_constraints() == 2
    assert m.lower_bound_ref(x).set == GreaterThan(0.0)
    assert m.upper_bound_ref(x).set == LessThan(2.0)
    with pytest.raises(InvalidReferenceError):
        m.fix_ref(x)


def test_scalar_constant_moves_into_set():
    m = Model()
    x = m.add_variable("x")
    y = m.add_variable("y")
    c = m.add_constraint(x + y + 1, LessThan(3.0), "c")
    assert c.set == LessThan(2.0)
    assert isinstance(c.function, AffExpr)
    assert c.function.constant == 0.0

    r = m.add_constraint(2 * x - 1, Interval(0.0, 4.0))
    assert r.set == Interval(1.0, 5.0)


def test_expression_algebra():
    m = Model()
    x = m.add_variable("x")
    y = m.add_variable("y")
    assert isinstance(x + 2 * y, AffExpr)
    q = 2 * x * y + y**2
    assert isinstance(q, QuadExpr)
    with pytest.raises(TypeError):
        _ = q * x
    assert isinstance(x**3, NonlinearExpr)
    assert isinstance(log(x + y), NonlinearExpr)


def test_vector_set_dimension_is_inferred():
    m = Model()
    x = m.add_variable("x")
    y = m.add_variable("y")
    c = m.add_constraint([x, y, 1.0], SecondOrderCone())
    assert c.set == SecondOrderCone(3)
    with pytest.raises(DimensionMismatch):
        m.add_constraint([x, y], Nonnegatives(3))
    with pytest.raises(DimensionMismatch):
        m.add_constraint(x, Nonnegatives())
    with pytest.raises(DimensionMismatch):
        m.add_constraint([x, y], EqualTo(0.0))


def test_matrix_constraints_are_vectorized():
    m = Model()
    X = m.add_symmetric_matrix(2, "X")
    assert X.shape == (2, 2)
    assert X[0, 1] is X[1, 0]
    assert m.num_variables() == 3

    tri = m.add_constraint(X, PositiveSemidefiniteConeTriangle())
    assert tri.set == PositiveSemidefiniteConeTriangle(2)
    assert len(tri.function) == 3

    sq = m.add_constraint(X, PositiveSemidefiniteConeSquare())
    assert sq.set == PositiveSemidefiniteConeSquare(2)
    assert len(sq.function) == 4

    with pytest.raises(DimensionMismatch):
        m.add_constraint([1.0, 2.0, 3.0, 4.0, 5.0], PositiveSemidefiniteConeTriangle())
    with pytest.raises(DimensionMismatch):
        m.add_constraint(np.zeros((2, 3)), PositiveSemidefiniteConeSquare())


def test_revision_bumps_on_every_edit():
    m = Model()
    r0 = m.revision
    x = m.add_variable("x")
    r1 = m.revision
    assert r1 > r0
    m.set_objective(ObjectiveSense.MIN, x)
    assert m.revision > r1
    r2 = m.revision
    m.set_name(x, "z")
    assert m.revision > r2
    assert x.name == "z"
    assert m.variable_by_name("z") == x


def test_refs_from_another_model_are_rejected():
    a, b = Model(), Model()
    x = a.add_variable("x")
    b.add_variable("x")
    with pytest.raises(InvalidReferenceError):
        b.add_constraint(x, LessThan(1.0))
    with pytest.raises(InvalidReferenceError):
        b.set_objective(ObjectiveSense.MIN, 2 * x)


def test_nonlinear_objective_replaces_affine_one():
    m = Model()
    x = m.add_variable("x")
    m.set_objective(ObjectiveSense.MIN, x)
    m.set_nonlinear_objective(ObjectiveSense.MIN, log(x))
    assert m.has_nonlinear_objective()
    m.set_objective(ObjectiveSense.MAX, x)
    assert not m.has_nonlinear_objective()
    with pytest.raises(TypeError):
        m.set_objective(ObjectiveSense.MIN, log(x))
