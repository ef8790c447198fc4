"""Protocol module for Cell Store."""

from .errors import ConnectionClosed, DecodeError, FrameIOError, ProtocolError
from .framing import FrameCodec
from .messages import CellValue, Message, MessageType, Reply, ReplyKind, ValueKind

__all__ = [
    "CellValue",
    "ConnectionClosed",
    "DecodeError",
    "FrameCodec",
    "FrameIOError",
    "Message",
    "MessageType",
    "ProtocolError",
    "Reply",
    "ReplyKind",
    "ValueKind",
]
