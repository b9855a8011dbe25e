"""
Expression Evaluator — Safe Arithmetic & Boolean Expressions

Alarm conditions ("temperature > 75 && vibration > 3") and interaction
equations ("source * 1.2 + 10") are user-supplied text. They are parsed ONCE
into a small node tree and evaluated by walking that tree against a
variable-lookup table. Nothing is ever handed to eval().

Accepted syntax:
- Numbers, booleans (true/false/True/False), PI/pi, E
- Variables (any identifier not listed above)
- Arithmetic: + - * / % ** and unary -/+
- Comparisons: < <= > >= == != (chains allowed: 0 < x < 10)
- Logic: and / or / not, plus JavaScript-style && || ! === !==
- Whitelisted functions: abs, min, max, sqrt, pow, exp, log, sin, cos,
  round, floor, ceil (a leading "Math." is ignored)

Failure modes are explicit:
- ParseError: text is not a valid expression
- UndefinedVariable: a referenced variable is missing at evaluation time
- EvaluationError: arithmetic failure (division by zero, domain error, ...)
"""

import ast
import math
import operator
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, FrozenSet, Mapping, Tuple, Union

Number = Union[int, float, bool]


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ExpressionError(Exception):
    """Base class for all expression failures."""


class ParseError(ExpressionError):
    """Raised when expression text cannot be parsed."""


class UndefinedVariable(ExpressionError):
    """Raised when an expression references a variable with no value."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Undefined variable: '{name}'")


class EvaluationError(ExpressionError):
    """Raised when a parsed expression fails during evaluation."""


# =============================================================================
# OPERATOR & FUNCTION TABLES
# =============================================================================

MAX_EXPRESSION_LENGTH = 1000
MAX_NESTING_DEPTH = 200


def _power(base: Number, exponent: Number) -> float:
    # Float pow keeps "10 ** 10 ** 10" from building a gigantic integer
    return math.pow(float(base), float(exponent))


BINARY_OPERATORS: Dict[str, Callable[[Number, Number], Number]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "%": operator.mod,
    "**": _power,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}

UNARY_OPERATORS: Dict[str, Callable[[Number], Number]] = {
    "-": operator.neg,
    "+": operator.pos,
    "not": operator.not_,
}

FUNCTIONS: Dict[str, Callable[..., Number]] = {
    "abs": abs,
    "min": min,
    "max": max,
    "sqrt": math.sqrt,
    "pow": math.pow,
    "exp": math.exp,
    "log": math.log,
    "sin": math.sin,
    "cos": math.cos,
    "round": round,
    "floor": math.floor,
    "ceil": math.ceil,
}

CONSTANTS: Dict[str, Number] = {
    "true": True,
    "false": False,
    "PI": math.pi,
    "pi": math.pi,
    "E": math.e,
}

_AST_BINARY = {
    ast.Add: "+",
    ast.Sub: "-",
    ast.Mult: "*",
    ast.Div: "/",
    ast.Mod: "%",
    ast.Pow: "**",
}

_AST_COMPARE = {
    ast.Lt: "<",
    ast.LtE: "<=",
    ast.Gt: ">",
    ast.GtE: ">=",
    ast.Eq: "==",
    ast.NotEq: "!=",
}

_AST_UNARY = {
    ast.USub: "-",
    ast.UAdd: "+",
    ast.Not: "not",
}

# JavaScript spellings accepted for compatibility with dashboard-authored rules
_JS_SYNTAX = (
    (re.compile(r"&&"), " and "),
    (re.compile(r"\|\|"), " or "),
    (re.compile(r"!=="), "!="),
    (re.compile(r"==="), "=="),
    (re.compile(r"!(?!=)"), " not "),
    (re.compile(r"\bMath\."), ""),
)


# =============================================================================
# NODE TREE
# =============================================================================

@dataclass(frozen=True)
class Constant:
    value: Number

    def evaluate(self, env: Mapping[str, Number]) -> Number:
        return self.value

    def variables(self) -> FrozenSet[str]:
        return frozenset()


@dataclass(frozen=True)
class Variable:
    name: str

    def evaluate(self, env: Mapping[str, Number]) -> Number:
        try:
            return env[self.name]
        except KeyError:
            raise UndefinedVariable(self.name) from None

    def variables(self) -> FrozenSet[str]:
        return frozenset({self.name})


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"

    def evaluate(self, env: Mapping[str, Number]) -> Number:
        return UNARY_OPERATORS[self.op](self.operand.evaluate(env))

    def variables(self) -> FrozenSet[str]:
        return self.operand.variables()


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"

    def evaluate(self, env: Mapping[str, Number]) -> Number:
        return BINARY_OPERATORS[self.op](self.left.evaluate(env), self.right.evaluate(env))

    def variables(self) -> FrozenSet[str]:
        return self.left.variables() | self.right.variables()


@dataclass(frozen=True)
class LogicalOp:
    """Short-circuit and/or. Always yields a bool."""
    op: str
    left: "Node"
    right: "Node"

    def evaluate(self, env: Mapping[str, Number]) -> bool:
        left = bool(self.left.evaluate(env))
        if self.op == "and":
            return left and bool(self.right.evaluate(env))
        return left or bool(self.right.evaluate(env))

    def variables(self) -> FrozenSet[str]:
        return self.left.variables() | self.right.variables()


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: Tuple["Node", ...]

    def evaluate(self, env: Mapping[str, Number]) -> Number:
        return FUNCTIONS[self.name](*(arg.evaluate(env) for arg in self.args))

    def variables(self) -> FrozenSet[str]:
        names: FrozenSet[str] = frozenset()
        for arg in self.args:
            names |= arg.variables()
        return names


Node = Union[Constant, Variable, UnaryOp, BinaryOp, LogicalOp, FunctionCall]


# =============================================================================
# PARSING
# =============================================================================

def _translate(node: ast.AST, depth: int = 0) -> Node:
    """Translate a whitelisted Python AST node into the evaluator's node tree."""
    if depth > MAX_NESTING_DEPTH:
        raise ParseError(f"Expression nests deeper than {MAX_NESTING_DEPTH} levels")
    depth += 1

    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool):
            return Constant(node.value)
        if isinstance(node.value, (int, float)):
            return Constant(float(node.value))
        raise ParseError(f"Unsupported literal: {node.value!r}")

    if isinstance(node, ast.Name):
        if node.id in CONSTANTS:
            return Constant(CONSTANTS[node.id])
        return Variable(node.id)

    if isinstance(node, ast.UnaryOp):
        op = _AST_UNARY.get(type(node.op))
        if op is None:
            raise ParseError(f"Unsupported unary operator: {type(node.op).__name__}")
        return UnaryOp(op, _translate(node.operand, depth))

    if isinstance(node, ast.BinOp):
        op = _AST_BINARY.get(type(node.op))
        if op is None:
            raise ParseError(f"Unsupported operator: {type(node.op).__name__}")
        return BinaryOp(op, _translate(node.left, depth), _translate(node.right, depth))

    if isinstance(node, ast.BoolOp):
        op = "and" if isinstance(node.op, ast.And) else "or"
        result = _translate(node.values[0], depth)
        for value in node.values[1:]:
            result = LogicalOp(op, result, _translate(value, depth))
        return result

    if isinstance(node, ast.Compare):
        # a < b < c  ->  (a < b) and (b < c)
        operands = [_translate(node.left, depth)] + [_translate(c, depth) for c in node.comparators]
        result = None
        for i, cmp_op in enumerate(node.ops):
            op = _AST_COMPARE.get(type(cmp_op))
            if op is None:
                raise ParseError(f"Unsupported comparison: {type(cmp_op).__name__}")
            pair = BinaryOp(op, operands[i], operands[i + 1])
            result = pair if result is None else LogicalOp("and", result, pair)
        return result

    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
            raise ParseError("Function calls are limited to: " + ", ".join(sorted(FUNCTIONS)))
        if node.keywords:
            raise ParseError("Keyword arguments are not supported")
        return FunctionCall(node.func.id, tuple(_translate(arg, depth) for arg in node.args))

    raise ParseError(f"Unsupported expression element: {type(node).__name__}")


def _normalize(text: str) -> str:
    for pattern, replacement in _JS_SYNTAX:
        text = pattern.sub(replacement, text)
    return text.strip()


@dataclass(frozen=True)
class Expression:
    """A parsed expression, safe to evaluate any number of times."""
    source: str
    root: Node

    @property
    def variables(self) -> FrozenSet[str]:
        """Names of all variables the expression references."""
        return self.root.variables()

    def evaluate(self, env: Mapping[str, Number]) -> Number:
        """
        Evaluate against a variable mapping.

        Raises:
            UndefinedVariable: If a referenced name is missing from env
            EvaluationError: On arithmetic failure
        """
        try:
            return self.root.evaluate(env)
        except ExpressionError:
            raise
        except (ZeroDivisionError, OverflowError, ValueError, TypeError, RecursionError) as e:
            raise EvaluationError(f"Cannot evaluate '{self.source}': {e}") from e

    def evaluate_number(self, env: Mapping[str, Number]) -> float:
        """Evaluate and require a finite numeric result."""
        result = float(self.evaluate(env))
        if not math.isfinite(result):
            raise EvaluationError(f"'{self.source}' produced a non-finite value")
        return result

    def evaluate_bool(self, env: Mapping[str, Number]) -> bool:
        """Evaluate as a condition."""
        return bool(self.evaluate(env))


@lru_cache(maxsize=512)
def compile_expression(text: str) -> Expression:
    """
    Parse expression text into an Expression.

    Results are cached per text, so rules evaluated every tick are parsed once.

    Raises:
        ParseError: If the text is empty, too long, nested too deeply,
            or not a supported expression
    """
    if not isinstance(text, str) or not text.strip():
        raise ParseError("Expression is empty")
    if len(text) > MAX_EXPRESSION_LENGTH:
        raise ParseError(f"Expression exceeds {MAX_EXPRESSION_LENGTH} characters")

    normalized = _normalize(text)
    try:
        tree = ast.parse(normalized, mode="eval")
    except (SyntaxError, ValueError) as e:
        raise ParseError(f"Invalid expression '{text}': {e}") from e
    except (RecursionError, MemoryError) as e:
        raise ParseError(f"Expression '{text}' is nested too deeply") from e

    return Expression(source=text, root=_translate(tree.body))


def evaluate(text: str, env: Mapping[str, Number]) -> Number:
    """Parse (cached) and evaluate in one call."""
    return compile_expression(text).evaluate(env)
