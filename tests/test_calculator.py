import math
import random

import pytest

from spotlight.calculator import (
    calculator_result,
    evaluate,
    format_number,
    looks_like_expression,
    parse_and_evaluate,
)
from spotlight.errors import InvalidExpression, InvalidNumber, NonFiniteResult


@pytest.mark.parametrize(
    "expr, expected",
    [
        ("2+3*4", "14"),
        ("(2+3)*4", "20"),
        ("2^3^2", "512"),
        ("7/2", "3.5"),
        ("10%3", "1"),
        ("-5+2", "-3"),
        ("2 * (3 + 4)", "14"),
        ("0.1+0.2", "0.3"),
        ("1/3", "0.3333333333"),
        (".5*4", "2"),
        ("2*-3", "-6"),
    ],
)
def test_evaluate_arithmetic(expr, expected):
    assert evaluate(expr) == expected


@pytest.mark.parametrize("expr", ["10/0", "0/0", "abc", "", "   ", "2+x", "import os", "5%0"])
def test_evaluate_rejects_to_none(expr):
    assert evaluate(expr) is None


def test_unbalanced_open_paren_is_tolerated():
    assert evaluate("(2+3") == "5"


def test_number_token_uses_longest_decimal_prefix():
    # "1.2.3" reads as 1.2, the rest of the run is dropped
    assert evaluate("1.2.3+1") == "2.2"


def test_parse_and_evaluate_raises_typed_errors():
    with pytest.raises(InvalidExpression):
        parse_and_evaluate("2+a")
    with pytest.raises(InvalidNumber):
        parse_and_evaluate("2+")
    with pytest.raises(NonFiniteResult):
        parse_and_evaluate("1/0")


def test_deep_nesting_does_not_crash():
    expr = "(" * 5000 + "1" + ")" * 5000
    assert evaluate(expr) in (None, "1")


def test_format_number_has_no_trailing_zeros_or_negative_zero():
    assert format_number(14.0) == "14"
    assert format_number(2.5) == "2.5"
    assert format_number(-0.0) == "0"


def test_looks_like_expression():
    assert looks_like_expression("2+2")
    assert looks_like_expression("(3)")
    assert not looks_like_expression("42")
    assert not looks_like_expression("report")


def test_calculator_result_only_for_operator_queries():
    assert calculator_result("2+2") == "4"
    assert calculator_result("42") is None
    assert calculator_result("notes (old)") is None


@pytest.mark.parametrize(
    "expr, expected",
    [
        ("10^25", "1e+25"),
        ("2^70", "1.1805916207174113e+21"),
        ("10^20", "100000000000000000000"),
        ("1/10000000", "1e-7"),
        ("1/1000000", "0.000001"),
        ("0-10^25", "-1e+25"),
    ],
)
def test_large_and_small_results_use_canonical_form(expr, expected):
    assert evaluate(expr) == expected


@pytest.mark.parametrize("expr", ["1^(0/0)", "(-1)^(1/0)", "(0/0)^2"])
def test_power_with_nan_or_infinite_exponent_on_unit_base(expr):
    assert evaluate(expr) is None


def test_anything_to_the_zero_is_one():
    assert evaluate("(0/0)^0") == "1"
    assert evaluate("5^0") == "1"


def test_random_expressions_never_raise():
    rng = random.Random(1234)
    alphabet = "0123456789+-*/.()%^ "
    for _ in range(3000):
        expr = "".join(rng.choice(alphabet) for _ in range(rng.randint(1, 14)))
        result = evaluate(expr)
        if result is not None:
            assert math.isfinite(float(result)), expr
