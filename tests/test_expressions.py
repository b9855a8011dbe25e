"""
Expression Evaluator Tests

Tests verify:
- Arithmetic, comparison and logic semantics
- JavaScript-style spellings used by dashboard-authored rules
- Explicit failure modes (ParseError, UndefinedVariable, EvaluationError)
- No access to anything outside the whitelist
"""

import math

import pytest

from drivesim.expressions import (
    EvaluationError,
    ExpressionError,
    ParseError,
    UndefinedVariable,
    compile_expression,
    evaluate,
)
from drivesim.expressions.evaluator import MAX_EXPRESSION_LENGTH, MAX_NESTING_DEPTH


class TestArithmetic:
    """Numeric expressions."""

    def test_operator_precedence(self):
        assert evaluate("2 + 3 * 4", {}) == 14

    def test_parentheses_and_unary_minus(self):
        assert evaluate("-(2 + 3) * 2", {}) == -10

    def test_variables_are_looked_up(self):
        assert evaluate("source * 1.2 + 10", {"source": 50.0}) == pytest.approx(70.0)

    def test_whitelisted_functions(self):
        assert evaluate("max(a, b) + abs(-2)", {"a": 1, "b": 5}) == 7
        assert evaluate("sqrt(16)", {}) == 4.0

    def test_math_prefix_is_ignored(self):
        assert evaluate("Math.sqrt(x)", {"x": 9}) == 3.0

    def test_constants(self):
        assert evaluate("PI", {}) == pytest.approx(math.pi)
        assert evaluate("true", {}) is True

    def test_power(self):
        assert evaluate("2 ** 10", {}) == 1024.0


class TestConditions:
    """Boolean expressions as used by alarm rules."""

    def test_js_and_operator(self):
        condition = "temperature > 75 && vibration > 3"
        assert evaluate(condition, {"temperature": 80, "vibration": 4}) is True
        assert evaluate(condition, {"temperature": 80, "vibration": 2}) is False

    def test_js_or_and_not(self):
        assert evaluate("a > 10 || !(b > 1)", {"a": 0, "b": 0}) is True

    def test_strict_equality_spellings(self):
        assert evaluate("a === 2", {"a": 2}) is True
        assert evaluate("a !== 2", {"a": 2}) is False

    def test_python_spellings(self):
        assert evaluate("a > 1 and not b", {"a": 2, "b": 0}) is True

    def test_comparison_chain(self):
        assert evaluate("0 < x < 10", {"x": 5}) is True
        assert evaluate("0 < x < 10", {"x": 12}) is False

    def test_short_circuit_skips_missing_variable(self):
        assert evaluate("false && missing > 1", {}) is False

    def test_evaluate_bool(self):
        assert compile_expression("x").evaluate_bool({"x": 0}) is False


class TestFailures:
    """Failures are explicit ExpressionError subclasses."""

    def test_undefined_variable(self):
        with pytest.raises(UndefinedVariable) as exc_info:
            evaluate("temperature > 75", {"vibration": 1})
        assert exc_info.value.name == "temperature"

    @pytest.mark.parametrize("text", ["", "   ", "a +", "(1", "1 2"])
    def test_syntax_errors(self, text):
        with pytest.raises(ParseError):
            compile_expression(text)

    @pytest.mark.parametrize("text", [
        "__import__('os').system('ls')",
        "open('/etc/passwd')",
        "x.__class__",
        "'abc'",
        "lambda: 1",
        "[1, 2]",
        "a if b else c",
    ])
    def test_non_whitelisted_constructs_are_rejected(self, text):
        with pytest.raises(ParseError):
            compile_expression(text)

    def test_too_long_expression(self):
        with pytest.raises(ParseError):
            compile_expression("1+" * MAX_EXPRESSION_LENGTH + "1")

    @pytest.mark.parametrize("text", [
        "-" * 990 + "x",
        "(" * 300 + "x" + ")" * 300,
        "not " * 240 + "x",
        "!" * 990 + "x",
    ])
    def test_deeply_nested_expression_is_a_parse_error(self, text):
        with pytest.raises(ParseError):
            compile_expression(text)

    def test_nesting_within_limit_still_evaluates(self):
        text = "-" * (MAX_NESTING_DEPTH - 10) + "x"
        assert evaluate(text, {"x": 3}) == 3

    def test_division_by_zero(self):
        with pytest.raises(EvaluationError):
            evaluate("1 / x", {"x": 0})

    def test_domain_error(self):
        with pytest.raises(EvaluationError):
            evaluate("sqrt(x)", {"x": -1})

    def test_overflow(self):
        with pytest.raises(EvaluationError):
            evaluate("10 ** 10 ** 10", {})

    def test_non_finite_number(self):
        expression = compile_expression("x * 2")
        with pytest.raises(EvaluationError):
            expression.evaluate_number({"x": float("inf")})

    def test_all_failures_share_a_base_class(self):
        for exc in (ParseError, UndefinedVariable, EvaluationError):
            assert issubclass(exc, ExpressionError)


class TestCompilation:
    """Parsing happens once per text."""

    def test_variables_are_reported(self):
        expression = compile_expression("a + b * source > limit")
        assert expression.variables == frozenset({"a", "b", "source", "limit"})

    def test_constants_are_not_variables(self):
        assert compile_expression("x > PI && true").variables == frozenset({"x"})

    def test_compiled_expressions_are_cached(self):
        assert compile_expression("x + 1") is compile_expression("x + 1")

    def test_reusable_across_environments(self):
        expression = compile_expression("x * 2")
        assert expression.evaluate({"x": 1}) == 2
        assert expression.evaluate({"x": 3}) == 6
