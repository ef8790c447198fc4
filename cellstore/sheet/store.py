"""
Cell Store Module

This module implements the authoritative mapping from cell id to value.

The store holds resolved values only: formula text is never kept, so a
cell computed from other cells is a snapshot and is not recomputed when
its inputs change.
"""

import threading
from typing import Any, Dict, Optional

from ..protocol.messages import CellValue, ValueKind


class CellStore:
    """
    Thread-safe map of cell ids to CellValue.

    Every public method acquires the single store lock for exactly one
    map access and releases it before returning. Callers that combine
    several calls (read operands, then write a result) are not atomic
    as a whole; concurrent writers may interleave between them.

    Internal Storage:
        Plain dict: cell_id -> CellValue. Ids are case-sensitive and
        insertion order carries no meaning.
    """

    def __init__(self):
        self._cells: Dict[str, CellValue] = {}
        self._lock = threading.Lock()

    def put(self, cell_id: str, value: CellValue) -> None:
        """
        Create or overwrite a cell.

        Args:
            cell_id: Target cell id
            value: Resolved value to store
        """
        with self._lock:
            self._cells[cell_id] = value

    def get(self, cell_id: str) -> Optional[CellValue]:
        """
        Look up a cell.

        Returns:
            The stored value, or None if the cell was never set
        """
        with self._lock:
            return self._cells.get(cell_id)

    def exists(self, cell_id: str) -> bool:
        with self._lock:
            return cell_id in self._cells

    def size(self) -> int:
        """Get the current number of cells in the store."""
        with self._lock:
            return len(self._cells)

    def clear(self) -> None:
        """Remove all cells from the store."""
        with self._lock:
            self._cells.clear()

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the store.

        Returns:
            Dictionary containing:
            - total_cells: Number of cells stored
            - number_cells / text_cells / error_cells: Count per value kind
        """
        with self._lock:
            kinds = [value.kind for value in self._cells.values()]

        return {
            "total_cells": len(kinds),
            "number_cells": kinds.count(ValueKind.NUMBER),
            "text_cells": kinds.count(ValueKind.TEXT),
            "error_cells": kinds.count(ValueKind.ERROR),
        }
