"""Small helpers for reading exact amounts of data from streams."""


def _read_function(reader):
    read = getattr(reader, "read", None)
    if read is None:
        read = getattr(reader, "recv", None)
    if read is None:
        raise TypeError(f"{type(reader).__name__} object is not readable")
    return read


def read_bytes(reader, size):
    """Read exactly ``size`` bytes, raising EOFError if the stream ends first."""
    read = _read_function(reader)
    data = bytearray()
    while len(data) < size:
        chunk = read(size - len(data))
        if not chunk:
            raise EOFError(f"unexpected end of stream: got {len(data)} of {size} bytes")
        data += chunk
    return bytes(data)


def read_byte(reader):
    """Read one byte as an int, using the reader's own read_byte when it has one."""
    own = getattr(reader, "read_byte", None)
    if own is not None:
        return own()
    return read_bytes(reader, 1)[0]