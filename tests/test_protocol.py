"""
Tests for the Protocol Layer

These tests verify:
- The tagged JSON shape of CellValue, Reply and Message
- FrameCodec encoding and decoding of length-prefixed frames
- Decode failures for truncated streams and malformed payloads

Run with: python -m pytest tests/test_protocol.py -v
"""

import asyncio
import json
import math
import socket
import struct

import pytest
from cellstore.protocol.errors import ConnectionClosed, DecodeError, FrameIOError
from cellstore.protocol.framing import FrameCodec
from cellstore.protocol.messages import CellValue, Message, MessageType, Reply, ReplyKind


class TestMessageShapes:
    """Test the tagged dictionary form of each type."""

    def test_command_shape(self):
        assert Message.for_command("get A1").to_dict() == {"Command": "get A1"}

    def test_ok_reply_is_bare_tag(self):
        assert Message.for_reply(Reply.ok()).to_dict() == {"Reply": "Ok"}

    def test_value_reply_shape(self):
        message = Message.for_reply(Reply.value_response(CellValue.number(3)))
        assert message.to_dict() == {"Reply": {"Value": {"Number": 3.0}}}

    def test_error_reply_shape(self):
        message = Message.for_reply(Reply.error("Invalid command format"))
        assert message.to_dict() == {"Reply": {"Error": "Invalid command format"}}

    def test_error_value_is_not_error_reply(self):
        """Test the two error channels stay distinct on the wire."""
        value_error = Reply.value_response(CellValue.error("Cell Z not found"))
        reply_error = Reply.error("Cell Z not found")

        assert value_error.to_dict() == {"Value": {"Error": "Cell Z not found"}}
        assert reply_error.to_dict() == {"Error": "Cell Z not found"}
        assert value_error != reply_error

    def test_integer_number_payload(self):
        """Test JSON integers decode as float numbers."""
        assert CellValue.from_dict({"Number": 2}) == CellValue.number(2.0)

    @pytest.mark.parametrize("data", [
        {"Number": "3"},
        {"Number": "Infinity"},
        {"Number": True},
        {"Text": 5},
        {"Float": 1.0},
        {"Number": 1, "Text": "x"},
        "Number",
    ])
    def test_invalid_cell_values(self, data):
        with pytest.raises(DecodeError):
            CellValue.from_dict(data)

    @pytest.mark.parametrize("data", [
        "Error",
        {"Ok": None},
        {"Value": "Ok"},
        {"Error": ["x"]},
        [],
    ])
    def test_invalid_replies(self, data):
        with pytest.raises(DecodeError):
            Reply.from_dict(data)

    @pytest.mark.parametrize("data", [
        {"Command": 1},
        {"Request": "get A"},
        {},
        None,
    ])
    def test_invalid_messages(self, data):
        with pytest.raises(DecodeError):
            Message.from_dict(data)


class TestFrameEncoding:
    """Test encode_frame() and decode_payload()."""

    def test_length_prefix_is_big_endian(self, codec: FrameCodec):
        frame = codec.encode_frame(Message.for_command("set A1 3"))
        payload = b'{"Command":"set A1 3"}'

        assert frame[:4] == struct.pack(">I", len(payload))
        assert frame[4:] == payload

    def test_non_ascii_text_is_utf8(self, codec: FrameCodec):
        frame = codec.encode_frame(Message.for_reply(Reply.value_response(CellValue.text("héllo"))))
        (length,) = struct.unpack(">I", frame[:4])

        assert length == len(frame) - 4
        assert "héllo".encode("utf-8") in frame

    @pytest.mark.parametrize("reply", [
        Reply.ok(),
        Reply.error("Division by zero"),
        Reply.value_response(CellValue.number(2.0 / 3.0)),
        Reply.value_response(CellValue.text("label")),
        Reply.value_response(CellValue.error("Cell Z not found")),
    ])
    def test_reply_round_trip(self, codec: FrameCodec, reply: Reply):
        """Test every reply and value variant survives a frame round trip."""
        frame = codec.encode_frame(Message.for_reply(reply))
        decoded = codec.decode_payload(frame[4:])

        assert decoded.type == MessageType.REPLY
        assert decoded.reply == reply

    def test_decode_command(self, codec: FrameCodec):
        message = codec.decode_payload(b'{"Command":"get B2"}')
        assert message.is_command
        assert message.command == "get B2"

    def test_decode_original_peer_reply(self, codec: FrameCodec):
        """Test a reply as emitted by other implementations of the protocol."""
        message = codec.decode_payload(b'{"Reply":{"Value":{"Number":3.0}}}')
        assert message.reply.kind == ReplyKind.VALUE
        assert message.reply.value == CellValue.number(3)

    @pytest.mark.parametrize("value", [math.inf, -math.inf])
    def test_infinite_number_is_strict_json(self, codec: FrameCodec, value: float):
        """Test infinities are encoded without the non-standard Infinity literal."""
        reply = Reply.value_response(CellValue.number(value))
        frame = codec.encode_frame(Message.for_reply(reply))

        def reject(constant):
            raise ValueError(f"non-standard JSON constant {constant}")

        data = json.loads(frame[4:].decode("utf-8"), parse_constant=reject)
        assert data == {"Reply": {"Value": {"Number": repr(value)}}}
        assert codec.decode_payload(frame[4:]).reply == reply

    def test_nan_number_round_trip(self, codec: FrameCodec):
        frame = codec.encode_frame(Message.for_reply(Reply.value_response(CellValue.number(math.nan))))

        assert b"NaN" not in frame
        value = codec.decode_payload(frame[4:]).reply.value
        assert value.is_number
        assert math.isnan(value.payload)

    @pytest.mark.parametrize("payload", [
        b"",
        b"not json",
        b"\xff\xfe",
        b'{"Command":',
        b'"Command"',
    ])
    def test_decode_malformed(self, codec: FrameCodec, payload: bytes):
        with pytest.raises(DecodeError):
            codec.decode_payload(payload)


@pytest.mark.asyncio
class TestStreamCodec:
    """Test read_message() against asyncio streams."""

    async def test_read_two_frames(self, codec: FrameCodec):
        reader = asyncio.StreamReader()
        reader.feed_data(codec.encode_frame(Message.for_command("get A")))
        reader.feed_data(codec.encode_frame(Message.for_command("get B")))
        reader.feed_eof()

        assert (await codec.read_message(reader)).command == "get A"
        assert (await codec.read_message(reader)).command == "get B"

        with pytest.raises(ConnectionClosed):
            await codec.read_message(reader)

    async def test_read_split_frame(self, codec: FrameCodec):
        """Test a frame arriving in pieces is reassembled."""
        frame = codec.encode_frame(Message.for_command("set A 1"))
        reader = asyncio.StreamReader()
        reader.feed_data(frame[:2])
        reader.feed_data(frame[2:7])
        reader.feed_data(frame[7:])

        assert (await codec.read_message(reader)).command == "set A 1"

    async def test_truncated_header(self, codec: FrameCodec):
        reader = asyncio.StreamReader()
        reader.feed_data(b"\x00\x00")
        reader.feed_eof()

        with pytest.raises(ConnectionClosed):
            await codec.read_message(reader)

    async def test_truncated_payload(self, codec: FrameCodec):
        reader = asyncio.StreamReader()
        reader.feed_data(struct.pack(">I", 50) + b'{"Command"')
        reader.feed_eof()

        with pytest.raises(ConnectionClosed):
            await codec.read_message(reader)

    async def test_malformed_payload(self, codec: FrameCodec):
        reader = asyncio.StreamReader()
        reader.feed_data(struct.pack(">I", 3) + b"abc")

        with pytest.raises(DecodeError):
            await codec.read_message(reader)


class TestSocketCodec:
    """Test the blocking socket helpers over a socket pair."""

    def test_send_and_recv(self, codec: FrameCodec):
        left, right = socket.socketpair()
        with left, right:
            codec.send_message(left, Message.for_reply(Reply.error("nope")))
            message = codec.recv_message(right)

        assert message.reply == Reply.error("nope")

    def test_recv_after_close(self, codec: FrameCodec):
        left, right = socket.socketpair()
        with right:
            left.sendall(b"\x00\x00\x00\x10{")
            left.close()

            with pytest.raises(ConnectionClosed):
                codec.recv_message(right)

    def test_send_on_closed_socket(self, codec: FrameCodec):
        left, right = socket.socketpair()
        right.close()
        left.close()

        with pytest.raises(FrameIOError):
            codec.send_message(left, Message.for_command("get A"))
