import pytest

from optbridge.bridge import (
    ConstraintEntry,
    ScalarAffine,
    ScalarQuadratic,
    SingleVariable,
    VectorAffine,
    VectorOfVariables,
    parse_model_string,
    translate,
)
from optbridge.model import Interval, LessThan, Model, Nonnegatives, ObjectiveSense, SecondOrderCone


def test_parse_basic_model():
    rep = parse_model_string(
        """
        variables: x, y
        maxobjective: 2x + 3y + 1.0
        x >= 0.0   # bound
        c: x + 2y + 1.0 <= 3.0
        r: x in Interval(0.0, 4.0)
        """
    )
    assert rep.variable_names == ["x", "y"]
    assert rep.objective_sense is ObjectiveSense.MAX
    assert rep.objective == ScalarAffine(((0, 2.0), (1, 3.0)), 1.0)
    # constants move into scalar sets
    assert ConstraintEntry("c", ScalarAffine(((0, 1.0), (1, 2.0)), 0.0), LessThan(2.0)) in rep.constraints
    assert ConstraintEntry("r", SingleVariable(0), Interval(0.0, 4.0)) in rep.constraints
    assert len(rep.constraints) == 3


def test_parse_vector_and_quadratic_functions():
    rep = parse_model_string(
        """
        variables: x, y
        v: [x, y] in Nonnegatives(2)
        w: [x + 1.0, y] in Nonnegatives(2)
        q: x*x + 2x*y <= 1.0
        """
    )
    functions = {e.name: e.function for e in rep.constraints}
    assert functions["v"] == VectorOfVariables((0, 1))
    assert isinstance(functions["w"], VectorAffine)
    assert functions["w"].rows[0] == ScalarAffine(((0, 1.0),), 1.0)
    assert functions["q"] == ScalarQuadratic(((0, 0, 1.0), (0, 1, 2.0)), (), 0.0)
    assert rep.constraints[0].set == Nonnegatives(2)


def test_equality_ignores_constraint_order_but_not_coefficients():
    a = parse_model_string("variables: x, y\nx <= 1.0\ny >= 0.0")
    b = parse_model_string("variables: x, y\ny >= 0.0\nx <= 1.0")
    c = parse_model_string("variables: x, y\ny >= 0.0\nx <= 1.5")
    assert a == b
    assert a != c
    assert any("only on left" in d for d in a.diff(c))


def test_to_string_parses_back():
    text = """
    variables: x, y
    minobjective: x + 2.0*y
    c: x*y <= 1.0
    s: [x, y] in SecondOrderCone(2)
    """
    rep = parse_model_string(text)
    assert parse_model_string(rep.to_string()) == rep


def test_to_string_of_unnamed_variables_parses_back():
    m = Model()
    x = m.add_variable(lower=0.0)
    y = m.add_variable("y")
    z = m.add_variable()
    m.add_constraint(x + 2 * y, LessThan(1.0), "c")
    m.add_constraint([z, x, y], SecondOrderCone())
    m.set_objective(ObjectiveSense.MIN, x * z + y)
    rep = translate(m)

    text = rep.to_string()
    assert text.splitlines()[0] == "variables: _[1], y, _[3]"
    back = parse_model_string(text)
    assert back.variable_names == [None, "y", None]
    assert back == rep, back.diff(rep)


def test_unnamed_placeholder_must_match_its_position():
    with pytest.raises(ValueError, match="line 1"):
        parse_model_string("variables: _[2], y")


@pytest.mark.parametrize(
    "line",
    [
        "z <= 1.0",  # undeclared
        "x*x*x <= 1.0",  # cubic
        "x in NotASet(1)",
        "x ~ 1.0",
        "x / 2 <= 1.0",
    ],
)
def test_parse_errors_name_the_line(line):
    with pytest.raises(ValueError, match="line 2"):
        parse_model_string("variables: x\n" + line)
