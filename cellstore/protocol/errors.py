"""
Protocol Errors

Exceptions raised by the frame codec. Sessions terminate on any of them;
none is ever reported back to the client as a reply.
"""


class ProtocolError(Exception):
    """Base class for framing and message decoding failures."""


class ConnectionClosed(ProtocolError):
    """The stream ended before a complete frame was read."""


class FrameIOError(ProtocolError):
    """The underlying transport failed while reading or writing a frame."""


class DecodeError(ProtocolError):
    """A frame payload did not parse into a valid message."""
