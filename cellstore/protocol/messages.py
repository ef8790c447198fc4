"""
Protocol Message Definitions

This module defines the values exchanged between clients and the server:

- CellValue: what a cell holds (Number, Text or Error)
- Reply: what the server answers (Ok, Value or Error)
- Message: what travels inside one frame (Command or Reply)

Each type maps to an externally tagged JSON shape, for example::

    {"Command": "set A1 3"}
    {"Reply": "Ok"}
    {"Reply": {"Value": {"Number": 3.0}}}
    {"Reply": {"Error": "Invalid command format"}}

Non-finite numbers are sent as the strings "inf", "-inf" and "nan"
(``{"Number": "inf"}``) so every frame stays strict JSON.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from .errors import DecodeError

NON_FINITE_NUMBERS = ("inf", "-inf", "nan")


class ValueKind(Enum):
    """Variants of a cell value."""
    NUMBER = "Number"
    TEXT = "Text"
    ERROR = "Error"


class ReplyKind(Enum):
    """Variants of a server reply."""
    OK = "Ok"
    VALUE = "Value"
    ERROR = "Error"


class MessageType(Enum):
    """Top-level variants carried by a frame."""
    COMMAND = "Command"
    REPLY = "Reply"


@dataclass(frozen=True)
class CellValue:
    """
    A resolved cell value.

    Attributes:
        kind: NUMBER, TEXT or ERROR
        payload: float for NUMBER, str for TEXT and ERROR
    """
    kind: ValueKind
    payload: Union[float, str]

    @classmethod
    def number(cls, value: float) -> "CellValue":
        """Create a numeric value."""
        return cls(kind=ValueKind.NUMBER, payload=float(value))

    @classmethod
    def text(cls, value: str) -> "CellValue":
        """Create a text value."""
        return cls(kind=ValueKind.TEXT, payload=value)

    @classmethod
    def error(cls, message: str) -> "CellValue":
        """Create an error value (a legitimate value, not a failed command)."""
        return cls(kind=ValueKind.ERROR, payload=message)

    @property
    def is_number(self) -> bool:
        return self.kind == ValueKind.NUMBER

    @property
    def is_error(self) -> bool:
        return self.kind == ValueKind.ERROR

    def to_dict(self) -> dict:
        # Strict JSON has no inf/nan literals
        if self.is_number and not math.isfinite(self.payload):
            return {self.kind.value: repr(self.payload)}
        return {self.kind.value: self.payload}

    @classmethod
    def from_dict(cls, data: Any) -> "CellValue":
        tag, payload = _single_entry(data, "cell value")

        if tag == ValueKind.NUMBER.value:
            if payload in NON_FINITE_NUMBERS:
                return cls.number(float(payload))
            if isinstance(payload, bool) or not isinstance(payload, (int, float)):
                raise DecodeError(f"Number payload must be numeric, got {payload!r}")
            return cls.number(payload)
        if tag == ValueKind.TEXT.value:
            return cls.text(_expect_str(payload, "Text"))
        if tag == ValueKind.ERROR.value:
            return cls.error(_expect_str(payload, "Error"))

        raise DecodeError(f"Unknown cell value variant: {tag!r}")


@dataclass(frozen=True)
class Reply:
    """
    A server reply.

    Attributes:
        kind: OK, VALUE or ERROR
        value: The cell value (VALUE replies only)
        message: Failure description (ERROR replies only)
    """
    kind: ReplyKind
    value: Optional[CellValue] = None
    message: str = ""

    @classmethod
    def ok(cls) -> "Reply":
        """Create a successful reply carrying no value."""
        return cls(kind=ReplyKind.OK)

    @classmethod
    def value_response(cls, value: CellValue) -> "Reply":
        """Create a reply carrying a cell value (the result of a get)."""
        return cls(kind=ReplyKind.VALUE, value=value)

    @classmethod
    def error(cls, message: str) -> "Reply":
        """Create a protocol-level error reply."""
        return cls(kind=ReplyKind.ERROR, message=message)

    @classmethod
    def invalid_format(cls) -> "Reply":
        return cls.error("Invalid command format")

    def to_dict(self) -> Union[str, dict]:
        if self.kind == ReplyKind.OK:
            return ReplyKind.OK.value
        if self.kind == ReplyKind.VALUE:
            return {ReplyKind.VALUE.value: self.value.to_dict()}
        return {ReplyKind.ERROR.value: self.message}

    @classmethod
    def from_dict(cls, data: Any) -> "Reply":
        # Unit variants are encoded as a bare string
        if data == ReplyKind.OK.value:
            return cls.ok()

        tag, payload = _single_entry(data, "reply")

        if tag == ReplyKind.VALUE.value:
            return cls.value_response(CellValue.from_dict(payload))
        if tag == ReplyKind.ERROR.value:
            return cls.error(_expect_str(payload, "Error"))

        raise DecodeError(f"Unknown reply variant: {tag!r}")


@dataclass(frozen=True)
class Message:
    """
    One framed protocol message.

    Attributes:
        type: COMMAND (client to server) or REPLY (server to client)
        command: Raw command text (COMMAND messages only)
        reply: The reply (REPLY messages only)
    """
    type: MessageType
    command: str = ""
    reply: Optional[Reply] = None

    @classmethod
    def for_command(cls, text: str) -> "Message":
        return cls(type=MessageType.COMMAND, command=text)

    @classmethod
    def for_reply(cls, reply: Reply) -> "Message":
        return cls(type=MessageType.REPLY, reply=reply)

    @property
    def is_command(self) -> bool:
        return self.type == MessageType.COMMAND

    def to_dict(self) -> dict:
        if self.type == MessageType.COMMAND:
            return {MessageType.COMMAND.value: self.command}
        return {MessageType.REPLY.value: self.reply.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> "Message":
        tag, payload = _single_entry(data, "message")

        if tag == MessageType.COMMAND.value:
            return cls.for_command(_expect_str(payload, "Command"))
        if tag == MessageType.REPLY.value:
            return cls.for_reply(Reply.from_dict(payload))

        raise DecodeError(f"Unknown message variant: {tag!r}")


def _single_entry(data: Any, what: str) -> tuple:
    """Unpack a one-key tagged object into (tag, payload)."""
    if not isinstance(data, dict) or len(data) != 1:
        raise DecodeError(f"Expected a single-variant {what} object, got {data!r}")
    return next(iter(data.items()))


def _expect_str(payload: Any, variant: str) -> str:
    if not isinstance(payload, str):
        raise DecodeError(f"{variant} payload must be a string, got {payload!r}")
    return payload
