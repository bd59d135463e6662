"""Minecraft packet field encoding and length-prefixed packet framing."""

import enum
import struct
import sys

from .chat import Message, read_message
from .varint import MAX_VARINT_LEN, VarInt, encode_varint, read_varint, varint_len

BOOLEAN_TRUE = 0x01
BOOLEAN_FALSE = 0x00


class Field(enum.Enum):
    """Wire types of packet fields."""

    BOOL = "bool"
    BYTE = "byte"
    INT8 = "int8"
    INT16 = "int16"
    UINT16 = "uint16"
    INT = "int"
    INT32 = "int32"
    UINT32 = "uint32"
    INT64 = "int64"
    UINT64 = "uint64"
    STRING = "string"
    BYTES = "bytes"
    VARINT = "varint"
    MESSAGE = "message"


class PacketError(ValueError):
    """A packet does not fit the expected framing."""


# (size, format used when reading). INT is read unsigned, as the wire value is taken.
_FIXED = {
    Field.INT16: (2, ">h"),
    Field.UINT16: (2, ">H"),
    Field.INT: (4, ">I"),
    Field.INT32: (4, ">i"),
    Field.UINT32: (4, ">I"),
    Field.INT64: (8, ">q"),
    Field.UINT64: (8, ">Q"),
}
_UNSIGNED = {2: ">H", 4: ">I", 8: ">Q"}


def _infer_field(value):
    if isinstance(value, bool):
        return Field.BOOL
    if isinstance(value, VarInt):
        return Field.VARINT
    if isinstance(value, int):
        return Field.INT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Field.BYTES
    if isinstance(value, str):
        return Field.STRING
    if isinstance(value, Message):
        return Field.MESSAGE
    raise TypeError(f"cannot write {type(value).__name__} to a packet")


def _write_field(buffer, kind, value):
    if kind is Field.BOOL:
        buffer.write_byte(BOOLEAN_TRUE if value else BOOLEAN_FALSE)
    elif kind in (Field.BYTE, Field.INT8):
        buffer.write_byte(int(value) & 0xFF)
    elif kind in _FIXED:
        size = _FIXED[kind][0]
        buffer.extend(size)[:] = struct.pack(_UNSIGNED[size], int(value) & ((1 << (8 * size)) - 1))
    elif kind in (Field.STRING, Field.BYTES):
        data = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        VarInt(len(data)).write_to_buffer(buffer)
        buffer.write(data)
    elif kind is Field.VARINT:
        VarInt(value).write_to_buffer(buffer)
    elif kind is Field.MESSAGE:
        value.write_to(buffer)
    else:
        raise TypeError(f"unknown field type: {kind!r}")


def write_to_packet(buffer, *args):
    """Append fields to ``buffer``.

    Each argument is a value whose type selects the encoding (bool, str,
    bytes, VarInt, Message, or int as a 32-bit integer) or a
    ``(Field, value)`` pair naming the encoding explicitly.
    """
    for item in args:
        if isinstance(item, tuple):
            kind, value = item
        else:
            kind, value = _infer_field(item), item
        _write_field(buffer, kind, value)


def _read_length_prefixed(buffer):
    length = read_varint(buffer)
    if length < 0:
        raise PacketError(f"incorrect field length: {length}")
    return buffer.peek(length)


def read_string(buffer):
    """Read a VarInt-prefixed UTF-8 string."""
    return _read_length_prefixed(buffer).decode("utf-8", errors="replace")


def _read_field(buffer, kind):
    if kind is Field.BOOL:
        return buffer.read_byte() == BOOLEAN_TRUE
    if kind is Field.BYTE:
        return buffer.read_byte()
    if kind is Field.INT8:
        value = buffer.read_byte()
        return value - 256 if value >= 128 else value
    if kind in _FIXED:
        size, fmt = _FIXED[kind]
        return struct.unpack(fmt, buffer.peek(size))[0]
    if kind is Field.STRING:
        return read_string(buffer)
    if kind is Field.BYTES:
        return _read_length_prefixed(buffer)
    if kind is Field.VARINT:
        return VarInt(read_varint(buffer))
    if kind is Field.MESSAGE:
        return read_message(buffer)
    raise TypeError(f"unknown field type: {kind!r}")


def scan(buffer, *args):
    """Read fields of the given types from ``buffer`` and return them as a tuple."""
    return tuple(_read_field(buffer, kind) for kind in args)


def append_packet_length(buffer, length):
    """Write ``length`` as a VarInt into the headroom before the buffer's window."""
    encoded = encode_varint(length)
    buffer.extend_header(varint_len(VarInt(length)))[:] = encoded


class PacketConn:
    """Length-prefixed packet reads and writes over a stream or socket."""

    def __init__(self, stream):
        self.stream = stream

    def _send(self, data):
        sendall = getattr(self.stream, "sendall", None)
        if sendall is not None:
            sendall(data)
        else:
            self.stream.write(data)

    def read_limited_packet(self, buffer, max_len):
        """Append one packet's content to ``buffer``, refusing more than ``max_len`` bytes."""
        length = read_varint(self.stream)
        if length < 0:
            raise PacketError(f"incorrect packet length: {length}")
        if length > max_len:
            raise PacketError(f"packet max length exceeded: length={length}, max={max_len}")
        if buffer.free_len() < length:
            raise PacketError(f"short buffer: free size={buffer.free_len()}, need={length}")
        buffer.read_full_from(self.stream, length)

    def read_packet(self, buffer):
        self.read_limited_packet(buffer, sys.maxsize)

    def write_packet(self, buffer):
        """Prefix the buffer's content with its length, send it, and reset the buffer."""
        append_packet_length(buffer, len(buffer))
        try:
            self._send(buffer.getvalue())
        finally:
            buffer.reset(MAX_VARINT_LEN)

    def write_vectorized_packet(self, buffer, *args):
        """Send the buffer's content followed by ``args`` as one packet, then reset the buffer."""
        total = len(buffer) + sum(len(packet) for packet in args)
        append_packet_length(buffer, total)
        try:
            self._send(buffer.getvalue() + b"".join(bytes(packet) for packet in args))
        finally:
            buffer.reset(MAX_VARINT_LEN)

    def close(self):
        self.stream.close()