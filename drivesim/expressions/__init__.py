"""
Expressions Module — Safe Expression Evaluation

Public API:
- compile_expression: Parse text once into an Expression
- Expression: Parsed, reusable expression
- ExpressionError / ParseError / UndefinedVariable / EvaluationError
"""

from .evaluator import (
    EvaluationError,
    Expression,
    ExpressionError,
    ParseError,
    UndefinedVariable,
    compile_expression,
    evaluate,
)

__all__ = [
    "compile_expression",
    "evaluate",
    "Expression",
    "ExpressionError",
    "ParseError",
    "UndefinedVariable",
    "EvaluationError",
]
