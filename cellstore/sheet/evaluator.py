"""
Expression Evaluator Module

Evaluates a single binary operation against the live cell store.

Grammar:
    <operand> <op> <operand>      op is one of + - * /

The first occurrence of that pattern in the expression is evaluated;
anything around it is ignored. There are no operator chains, no
precedence and no parentheses, so "1+2*3" evaluates "1+2".

Operands resolve in order:
    1. an existing cell id -> that cell's current value
    2. a floating-point literal -> Number
    3. otherwise -> Error("Invalid operand: <token>")
"""

import logging
import operator
import re
from typing import Callable, Dict, Optional, Tuple

from ..protocol.messages import CellValue
from .store import CellStore

logger = logging.getLogger(__name__)

# Operands are word tokens; '.' is allowed so decimal literals match whole
BINARY_OPERATION = re.compile(r"([\w.]+)\s*([+\-*/])\s*([\w.]+)")

# operator symbol -> (name used in error messages, implementation)
OPERATIONS: Dict[str, Tuple[str, Callable[[float, float], float]]] = {
    "+": ("addition", operator.add),
    "-": ("subtraction", operator.sub),
    "*": ("multiplication", operator.mul),
    "/": ("division", operator.truediv),
}


def parse_number(token: str) -> Optional[float]:
    """
    Parse a floating-point literal.

    Returns:
        The parsed float, or None if the token is not a numeric literal

    Examples:
        >>> parse_number("2.5")
        2.5
        >>> parse_number("A1") is None
        True
    """
    # float() would also accept digit separators like "1_000" and
    # non-ASCII digits like "١٢"
    if "_" in token or not token.isascii():
        return None
    try:
        return float(token)
    except ValueError:
        return None


class ExpressionEvaluator:
    """
    Evaluator for flat single-operator expressions.

    Reads go straight through to the store on every evaluation; nothing
    is cached and results are never re-evaluated later.

    Attributes:
        store: The CellStore operands are resolved against
    """

    def __init__(self, store: CellStore):
        self.store = store

    def evaluate(self, expr: str) -> CellValue:
        """
        Evaluate an expression to a resolved value.

        Args:
            expr: Expression text, e.g. "A1+B1" or "3 / C2"

        Returns:
            A NUMBER CellValue on success, an ERROR CellValue otherwise.
            Evaluation never raises for bad input.
        """
        literal = parse_number(expr.strip())
        if literal is not None:
            return CellValue.number(literal)

        match = BINARY_OPERATION.search(expr)
        if match is None:
            return CellValue.error(f"Unsupported expression format: {expr}")

        left_token, symbol, right_token = match.groups()
        left = self.resolve_operand(left_token)
        right = self.resolve_operand(right_token)
        logger.debug(f"Evaluating {left_token} {symbol} {right_token}: {left} {symbol} {right}")

        return self.apply(symbol, left, right)

    def resolve_operand(self, token: str) -> CellValue:
        """Resolve one operand token to a cell value or literal number."""
        value = self.store.get(token)
        if value is not None:
            return value

        literal = parse_number(token)
        if literal is not None:
            return CellValue.number(literal)

        return CellValue.error(f"Invalid operand: {token}")

    @staticmethod
    def apply(symbol: str, left: CellValue, right: CellValue) -> CellValue:
        """
        Apply a binary operator to two resolved operands.

        Both operands must be numbers. Dividing by zero is reported as an
        error value instead of producing inf or nan.
        """
        name, func = OPERATIONS[symbol]

        if not (left.is_number and right.is_number):
            return CellValue.error(f"Invalid operands for {name}")

        if symbol == "/" and right.payload == 0.0:
            return CellValue.error("Division by zero")

        return CellValue.number(func(left.payload, right.payload))
