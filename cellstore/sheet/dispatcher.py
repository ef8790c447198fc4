"""
Command Dispatcher Module

Parses command text and runs it against the shared cell store.

Commands:
    set <cell_id> <literal>        -> Ok
    set <cell_id> <expression>     -> Ok | Error(<evaluation error>)
    get <cell_id>                  -> Value(<cell value>)
    anything else                  -> Error("Invalid command format")

A get on a missing cell is not a failed command: it replies with a
Value carrying an Error cell value.
"""

import logging
from typing import List, Optional

from ..protocol.messages import CellValue, Reply
from .evaluator import ExpressionEvaluator, parse_number
from .store import CellStore

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """
    Single entry point for executing client commands.

    Evaluating an expression and storing its result are two separate
    store accesses. Another writer may change the operands between them;
    the stored value reflects the operands as they were read.

    Attributes:
        store: The CellStore shared by all connections
        evaluator: ExpressionEvaluator reading from the same store
    """

    def __init__(self, store: Optional[CellStore] = None):
        self.store = store if store is not None else CellStore()
        self.evaluator = ExpressionEvaluator(self.store)

    def run_command(self, text: str) -> Reply:
        """
        Execute one command.

        Args:
            text: Raw command text as received from the client

        Returns:
            Reply for the client; never raises for malformed input

        Examples:
            >>> dispatcher = CommandDispatcher()
            >>> dispatcher.run_command("set A1 2").kind.value
            'Ok'
            >>> dispatcher.run_command("get A1").value.payload
            2.0
        """
        parts = text.split()

        if len(parts) == 3 and parts[0] == "set":
            return self._run_set(parts)
        if len(parts) == 2 and parts[0] == "get":
            return self._run_get(parts[1])

        logger.debug(f"Rejected command: {text!r}")
        return Reply.invalid_format()

    def _run_set(self, parts: List[str]) -> Reply:
        cell_id = parts[1]

        literal = parse_number(parts[2])
        if literal is not None:
            self.store.put(cell_id, CellValue.number(literal))
            return Reply.ok()

        expr = " ".join(parts[2:])
        result = self.evaluator.evaluate(expr)
        if result.is_error:
            logger.debug(f"Expression {expr!r} for {cell_id} failed: {result.payload}")
            return Reply.error(result.payload)

        logger.debug(f"Setting {cell_id} = {result}")
        self.store.put(cell_id, result)
        return Reply.ok()

    def _run_get(self, cell_id: str) -> Reply:
        value = self.store.get(cell_id)
        if value is None:
            return Reply.value_response(CellValue.error(f"Cell {cell_id} not found"))
        return Reply.value_response(value)
