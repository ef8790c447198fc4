"""Network module for Cell Store."""

from .tcp_server import CellServer, run_server

__all__ = ["CellServer", "run_server"]
