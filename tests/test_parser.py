# File: tests/test_parser.py

import pytest
from errors import ParseError
from expression import add, factorial, mul, power, Number, Symbol
from parser import ExpressionParser, expand_factorials, parse_expression


# ─── 1) Well-formed input ──────────────────────────────────────────────────────

@pytest.mark.parametrize("src, expected", [
    ("x",               Symbol("x")),
    ("42",              Number(42)),
    ("-3",              Number(-3)),
    ("+x",              Symbol("x")),
    ("x + 2*y",         add("x", mul(2, "y"))),
    ("a + b + c",       add(add("a", "b"), "c")),
    ("(a + b) * c",     mul(add("a", "b"), "c")),
    ("-3 * x",          mul(-3, "x")),
    ("2^3^2",           power(2, power(3, 2))),
    ("2**3",            power(2, 3)),
    ("x + y^2",         add("x", power("y", 2))),
    ("4!",              factorial(4)),
    ("x!",              factorial("x")),
    ("(a + b)!",        factorial(add("a", "b"))),
    ("3!!",             factorial(factorial(3))),
    ("x^2!",            power("x", factorial(2))),
    ("2 * 3! + 1",      add(mul(2, factorial(3)), 1)),
    ("factorial(x)",    factorial("x")),
    ("fac(5)",          factorial(5)),
])
def test_parse(src, expected):
    assert parse_expression(src) == expected

def test_parser_is_reusable():
    parser = ExpressionParser()
    assert parser.parse("x") == Symbol("x")
    assert parser.parse("y") == Symbol("y")

@pytest.mark.parametrize("src, expected", [
    ("4!",          "factorial(4)"),
    ("(a + b)!",    "factorial((a + b))"),
    ("3!!",         "factorial(factorial(3))"),
    ("x ! + 1",     "factorial(x) + 1"),
    ("f(x)!",       "factorial(f(x))"),
])
def test_expand_factorials(src, expected):
    assert expand_factorials(src) == expected

@pytest.mark.parametrize("expr", [
    add(mul(add(mul("y", 2), 3), "x"), 3),
    power("x", power("y", 2)),
    factorial(add("x", 1)),
    add("x", -3),
])
def test_printed_trees_parse_back(expr):
    assert parse_expression(str(expr)) == expr


# ─── 2) Rejected input ─────────────────────────────────────────────────────────

@pytest.mark.parametrize("src", [
    "",
    "   ",
    "x - y",
    "x / 2",
    "-x",
    "1.5",
    "'x'",
    "True",
    "x +",
    "!",
    "x)!",
    "x != y",
    "sin(x)",
    "factorial(1, 2)",
    "x < y",
])
def test_parse_errors(src):
    with pytest.raises(ParseError):
        parse_expression(src)

def test_parse_error_is_a_value_error():
    with pytest.raises(ValueError) as excinfo:
        parse_expression("x - y")
    assert "x - y" in str(excinfo.value)
