"""Sheet module for Cell Store."""

from .dispatcher import CommandDispatcher
from .evaluator import ExpressionEvaluator
from .store import CellStore

__all__ = ["CellStore", "CommandDispatcher", "ExpressionEvaluator"]
