"""Arithmetic calculator tool.

Expressions are parsed with :mod:`ast` and evaluated by walking a whitelist of
node types, so nothing but numbers, the four operators plus ``%``/``**`` and a
handful of math functions can ever run.
"""

from __future__ import annotations

import ast
import math
import operator
import re

from mcp import types

from toolhub.mcp_server.models.tools import CalculatorInput
from toolhub.mcp_server.tools.base import ToolContext, ToolSpec, error_result


class CalculationError(ValueError):
    """Raised for empty, disallowed or non-finite expressions."""


_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: math.fmod,
    ast.Pow: math.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_FUNCTIONS = {
    "sqrt": math.sqrt,
    "abs": abs,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "log": math.log10,
    "ln": math.log,
}

_CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
}

_ROOT_OF_NUMBER = re.compile(r"√\s*(\d+(?:\.\d+)?)")


def _normalize(expression: str) -> str:
    expression = expression.replace("π", "pi").replace("^", "**")
    expression = _ROOT_OF_NUMBER.sub(r"sqrt(\1)", expression)
    return expression.replace("√", "sqrt")


def _eval(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _eval(node.body)
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, int | float):
            msg = f"Unsupported literal: {node.value!r}"
            raise CalculationError(msg)
        return float(node.value)
    if isinstance(node, ast.Name):
        if node.id not in _CONSTANTS:
            msg = f"Unknown name: {node.id}"
            raise CalculationError(msg)
        return _CONSTANTS[node.id]
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        return _BINARY_OPS[type(node.op)](_eval(node.left), _eval(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval(node.operand))
    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS:
            msg = "Unsupported function call"
            raise CalculationError(msg)
        if len(node.args) != 1 or node.keywords:
            msg = f"{node.func.id}() takes exactly one argument"
            raise CalculationError(msg)
        return _FUNCTIONS[node.func.id](_eval(node.args[0]))
    msg = f"Unsupported syntax: {type(node).__name__}"
    raise CalculationError(msg)


def evaluate(expression: str) -> float:
    """Evaluate *expression*.  Raises ``CalculationError`` on any failure."""
    if not expression or not expression.strip():
        msg = "Expression must not be empty"
        raise CalculationError(msg)

    try:
        tree = ast.parse(_normalize(expression.strip()), mode="eval")
    except SyntaxError:
        msg = "Invalid expression"
        raise CalculationError(msg) from None

    try:
        result = _eval(tree)
    except ZeroDivisionError:
        msg = "Division by zero"
        raise CalculationError(msg) from None
    except OverflowError:
        msg = "Result is not a finite number"
        raise CalculationError(msg) from None
    except CalculationError:
        raise
    except ValueError as exc:
        # math domain errors, e.g. sqrt(-1)
        msg = f"Math error: {exc}"
        raise CalculationError(msg) from None

    if not math.isfinite(result):
        msg = "Result is not a finite number"
        raise CalculationError(msg)
    return result


def format_number(value: float) -> str:
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


async def calculate(ctx: ToolContext, params: CalculatorInput) -> str | types.CallToolResult:
    try:
        result = format_number(evaluate(params.expression))
    except CalculationError as exc:
        return error_result(f"Calculation error: {exc}")
    expression = params.expression.strip()
    return f"Calculator\n\nExpression: {expression}\nResult: {result}\n\n{expression} = {result}"


CALCULATOR_TOOLS = [
    ToolSpec(
        name="calculator",
        description=(
            "Evaluates a math expression. Supports +, -, *, /, %, ** (or ^), parentheses, "
            "sqrt, abs, sin, cos, tan, log (base 10), ln and the constants pi (π) and e."
        ),
        input_model=CalculatorInput,
        handler=calculate,
    ),
]
