"""
Mathematical Expression Solver

Safely evaluates mathematical expressions using SymPy's parser.
Supports scientific calculator syntax including:
- Factorial notation: 5!
- Caret exponentiation: 2^16
- Degree notation: sin(30 degrees)
"""

import logging
import re

from sympy import N
from sympy.parsing.sympy_parser import (
    parse_expr,
    standard_transformations,
    implicit_multiplication_application,
    convert_xor,
    factorial_notation,
)

from .registry import ToolDefinition

logger = logging.getLogger(__name__)

TRANSFORMATIONS = (
    standard_transformations
    + (implicit_multiplication_application,)
    + (convert_xor,)  # 2^16 -> 2**16
    + (factorial_notation,)  # 5! -> factorial(5)
)


def preprocess_expression(expression: str) -> str:
    """
    Rewrite calculator notation SymPy does not parse.

    Handles:
        - Degree notation: sin(30 degrees) -> sin(30 * pi / 180)
        - ceil function: ceil(x) -> ceiling(x)
    """
    degree_pattern = r"(\d+(?:\.\d+)?)\s*(?:degrees?|deg)\b"
    expression = re.sub(degree_pattern, r"(\1 * pi / 180)", expression, flags=re.IGNORECASE)
    return re.sub(r"\bceil\b", "ceiling", expression)


def calculate(expression: str) -> dict:
    """
    Evaluate a mathematical expression.

    Args:
        expression: Mathematical expression as a string

    Returns:
        Dictionary with ``success``, ``expression``, ``result`` and ``error``
    """
    if not expression or not expression.strip():
        return {
            "success": False,
            "expression": expression,
            "result": None,
            "error": 'Expression is empty. Expected JSON: {"expression": "2+2"}',
        }

    try:
        expr = parse_expr(
            preprocess_expression(expression),
            transformations=TRANSFORMATIONS,
            evaluate=True,
        )
        result = complex(N(expr))
        if result.imag == 0:
            result = result.real
        if isinstance(result, float) and result.is_integer():
            result = int(result)

        return {
            "success": True,
            "expression": expression,
            "result": result,
            "error": None,
        }
    except SyntaxError as e:
        logger.debug("Syntax error parsing expression '%s': %s", expression, e)
        error = f"Syntax error: {e}"
    except (ValueError, TypeError) as e:
        logger.debug("Value/Type error evaluating '%s': %s", expression, e)
        error = str(e)
    except Exception as e:
        logger.debug("Calculation error for '%s': %s", expression, e)
        error = f"Calculation error: {e}"

    return {
        "success": False,
        "expression": expression,
        "result": None,
        "error": error,
    }


def format_result_for_llm(calc_result: dict) -> str:
    """Format a calculate() result as a tool output string."""
    if not calc_result["success"]:
        return f"Calculation failed: {calc_result['error']}"
    return f"{calc_result['expression']} = {calc_result['result']}"


def _handle_calculate(params: dict) -> dict:
    return calculate(str(params.get("expression", "")))


CALCULATE_TOOL = ToolDefinition(
    name="calculate",
    description="Perform mathematical calculations",
    parameters={"expression": "math expression like 2+2 or sqrt(16)"},
    handler=_handle_calculate,
    formatter=format_result_for_llm,
)
