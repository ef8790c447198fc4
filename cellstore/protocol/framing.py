"""
Frame Codec Module

Turns a byte stream into discrete messages and back.

Wire format:
    +----------------------+---------------------------+
    | length (4 bytes, BE) | payload (length bytes)    |
    +----------------------+---------------------------+

The payload is UTF-8 JSON holding one tagged Message. No maximum frame
size is enforced: a peer can announce an arbitrarily large length.
"""

import asyncio
import json
import socket
import struct

from .errors import ConnectionClosed, DecodeError, FrameIOError
from .messages import Message

# Big-endian unsigned 32-bit length prefix
LENGTH_STRUCT = struct.Struct(">I")


class FrameCodec:
    """
    Encoder/decoder for length-prefixed message frames.

    Works with asyncio streams (server side) and with blocking sockets
    (interactive client and tests).

    Examples:
        >>> codec = FrameCodec()
        >>> codec.encode_frame(Message.for_command("get A1"))
        b'\\x00\\x00\\x00\\x14{"Command":"get A1"}'
    """

    def encode_frame(self, message: Message) -> bytes:
        """
        Serialize a message into one complete frame.

        Args:
            message: Message to encode

        Returns:
            Length prefix followed by the JSON payload
        """
        payload = json.dumps(
            message.to_dict(),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")
        return LENGTH_STRUCT.pack(len(payload)) + payload

    def decode_payload(self, payload: bytes) -> Message:
        """
        Parse a frame payload into a Message.

        Raises:
            DecodeError: if the bytes are not UTF-8 JSON of a known message shape
        """
        try:
            data = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecodeError(f"Invalid frame payload: {exc}") from exc
        return Message.from_dict(data)

    async def read_message(self, reader: asyncio.StreamReader) -> Message:
        """
        Read exactly one frame from an asyncio stream.

        Raises:
            ConnectionClosed: if the stream ends mid-frame or before one starts
            FrameIOError: if the transport fails
            DecodeError: if the payload is malformed
        """
        try:
            header = await reader.readexactly(LENGTH_STRUCT.size)
            (length,) = LENGTH_STRUCT.unpack(header)
            payload = await reader.readexactly(length)
        except asyncio.IncompleteReadError as exc:
            raise ConnectionClosed(
                f"Stream closed after {len(exc.partial)} of {exc.expected} bytes"
            ) from exc
        except OSError as exc:
            raise FrameIOError(f"Read failed: {exc}") from exc

        return self.decode_payload(payload)

    async def write_message(self, writer: asyncio.StreamWriter, message: Message) -> None:
        """
        Write one frame to an asyncio stream and wait for it to flush.

        Raises:
            FrameIOError: if the transport fails
        """
        frame = self.encode_frame(message)
        try:
            writer.write(frame)
            await writer.drain()
        except OSError as exc:
            raise FrameIOError(f"Write failed: {exc}") from exc

    def recv_message(self, sock: socket.socket) -> Message:
        """Blocking counterpart of read_message() for plain sockets."""
        header = self._recv_exact(sock, LENGTH_STRUCT.size)
        (length,) = LENGTH_STRUCT.unpack(header)
        return self.decode_payload(self._recv_exact(sock, length))

    def send_message(self, sock: socket.socket, message: Message) -> None:
        """Blocking counterpart of write_message() for plain sockets."""
        try:
            sock.sendall(self.encode_frame(message))
        except OSError as exc:
            raise FrameIOError(f"Write failed: {exc}") from exc

    @staticmethod
    def _recv_exact(sock: socket.socket, n: int) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            try:
                chunk = sock.recv(n - len(buf))
            except OSError as exc:
                raise FrameIOError(f"Read failed: {exc}") from exc
            if not chunk:
                raise ConnectionClosed(f"Stream closed after {len(buf)} of {n} bytes")
            buf.extend(chunk)
        return bytes(buf)
