"""Arithmetic for the bundled ``eval-calc`` evaluator."""

import ast
import math
import operator
from typing import Any

MAX_EXPONENT = 10_000

_BINARY_OPS: dict[type[ast.operator], Any] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS: dict[type[ast.unaryop], Any] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def _eval_node(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return float(node.value)
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > MAX_EXPONENT:
            raise ValueError("exponent too large")
        return _BINARY_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    raise ValueError(f"unsupported expression: {ast.dump(node)}")


def evaluate(expression: str) -> float | None:
    """
    Evaluate an arithmetic expression, or return None if it is not one.

    All numbers are floats, so ``1/3`` is a true division.
    """
    try:
        result = _eval_node(ast.parse(expression.strip(), mode="eval"))
    except (SyntaxError, ValueError, ArithmeticError, TypeError, RecursionError):
        return None
    if isinstance(result, complex) or not math.isfinite(result):
        return None
    return result


def format_number(value: float) -> str:
    """Format a result, dropping the fractional part of whole numbers."""
    if value.is_integer() and abs(value) < 2**63:
        return str(int(value))
    return repr(value)


def calc_item(query: str) -> dict[str, str] | None:
    """The MenuItem payload for ``query``, or None when there is nothing to show."""
    query = query.strip()
    if not query:
        return None
    result = evaluate(query)
    if result is None:
        return None
    formatted = format_number(result)
    # A bare number evaluates to itself; don't echo it back
    if formatted == query:
        return None
    return {"title": f"= {formatted}", "subtitle": "Copy to clipboard", "data": formatted}
