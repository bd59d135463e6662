"""Minecraft protocol variable-length 32-bit integers."""

from .rw import read_byte

MAX_VARINT_LEN = 5

_MASK32 = 0xFFFFFFFF


def _to_int32(value):
    value &= _MASK32
    return value - (1 << 32) if value >= 1 << 31 else value


class VarIntTooBigError(ValueError):
    """The encoded VarInt has more bytes than allowed."""

    def __init__(self):
        super().__init__("VarInt is too big")


class VarInt(int):
    """A signed 32-bit integer written in the VarInt format."""

    def __new__(cls, value=0):
        return super().__new__(cls, _to_int32(int(value)))

    def encode(self):
        return encode_varint(self)

    def write_to(self, writer):
        """Write the encoded value to ``writer`` and return the byte count."""
        return writer.write(encode_varint(self))

    def write_to_buffer(self, buffer):
        encoded = encode_varint(self)
        buffer.extend(len(encoded))[:] = encoded


def encode_varint(n):
    """Encode ``n`` (taken as int32) into VarInt bytes."""
    num = int(n) & _MASK32
    if num == 0:
        return b"\x00"
    out = bytearray()
    while num:
        b = num & 0x7F
        num >>= 7
        if num:
            b |= 0x80
        out.append(b)
    return bytes(out)


def varint_len(n):
    """Number of bytes the VarInt encoding of ``n`` takes."""
    if n < 0:
        return 5
    for size in range(1, 5):
        if n < 1 << (7 * size):
            return size
    return 5


def read_varint(reader):
    """Read a VarInt from ``reader`` and return it as an int."""
    value = 0
    count = 0
    while True:
        if count > MAX_VARINT_LEN:
            raise VarIntTooBigError()
        b = read_byte(reader)
        value |= (b & 0x7F) << (7 * count)
        count += 1
        if not b & 0x80:
            break
    return _to_int32(value)