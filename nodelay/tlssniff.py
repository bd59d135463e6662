"""TLS ClientHello sniffing: detect TLS and extract the SNI server name."""

import struct

from .rw import read_byte, read_bytes

_HANDSHAKE = 0x16
_EXTENSION_SERVER_NAME = 0x0000


class NoClueError(ValueError):
    """Not enough data to decide whether this is a TLS ClientHello."""

    def __init__(self, message="not enough information for making a decision"):
        super().__init__(message)


class NotTLSError(ValueError):
    """The data is not a TLS handshake, or carries no server name.

    ``record`` holds the bytes already consumed from the stream when the
    record header itself showed the stream is not TLS; it is None otherwise.
    """

    def __init__(self, message="not TLS header", record=None):
        super().__init__(message)
        self.record = record


class NotClientHelloError(ValueError):
    """The handshake message is not a well-formed ClientHello."""

    def __init__(self, message="not client hello"):
        super().__init__(message)


def is_valid_tls_version(major, minor):
    """True for record versions 3.1 to 3.3."""
    return major == 3 and 0 < minor < 4


def _u16(data, offset=0):
    return data[offset] << 8 | data[offset + 1]


def _server_name(ext):
    if len(ext) < 2:
        raise NotClientHelloError()
    names_len = _u16(ext)
    names = ext[2:]
    if len(names) != names_len:
        raise NotClientHelloError()
    while names:
        if len(names) < 3:
            raise NotClientHelloError()
        name_type = names[0]
        name_len = _u16(names, 1)
        names = names[3:]
        if len(names) < name_len:
            raise NotClientHelloError()
        if name_type == 0:
            server_name = bytes(names[:name_len]).decode("utf-8", errors="replace")
            # An SNI value may not include a trailing dot (RFC 6066, section 3).
            if server_name.endswith("."):
                raise NotClientHelloError()
            return server_name
        names = names[name_len:]
    return None


def read_client_hello(data):
    """Return the server name from a ClientHello handshake message."""
    data = memoryview(bytes(data))
    if len(data) < 42:
        raise NoClueError()
    session_id_len = data[38]
    if session_id_len > 32 or len(data) < 39 + session_id_len:
        raise NoClueError()
    data = data[39 + session_id_len:]
    if len(data) < 2:
        raise NoClueError()
    cipher_suite_len = _u16(data)
    if cipher_suite_len % 2 == 1 or len(data) < 2 + cipher_suite_len:
        raise NotClientHelloError()
    data = data[2 + cipher_suite_len:]
    if len(data) < 1:
        raise NoClueError()
    compression_len = data[0]
    if len(data) < 1 + compression_len:
        raise NoClueError()
    data = data[1 + compression_len:]

    if len(data) < 2:
        raise NotClientHelloError()
    extensions_len = _u16(data)
    data = data[2:]
    if extensions_len != len(data):
        raise NotClientHelloError()

    while data:
        if len(data) < 4:
            raise NotClientHelloError()
        extension = _u16(data)
        length = _u16(data, 2)
        data = data[4:]
        if len(data) < length:
            raise NotClientHelloError()
        if extension == _EXTENSION_SERVER_NAME:
            name = _server_name(data[:length])
            if name is not None:
                return name
        data = data[length:]

    raise NotTLSError()


def sniff_tls(data):
    """Return the server name from a complete TLS record holding a ClientHello."""
    if len(data) < 5:
        raise NoClueError()
    if data[0] != _HANDSHAKE:
        raise NotTLSError()
    if not is_valid_tls_version(data[1], data[2]):
        raise NotTLSError()
    (header_len,) = struct.unpack(">H", bytes(data[3:5]))
    if 5 + header_len > len(data):
        raise NoClueError()
    return read_client_hello(data[5:5 + header_len])


def sniff_and_record(reader):
    """Read one TLS record from ``reader`` and return ``(server_name, record_bytes)``.

    When the record header shows the stream is not TLS, NotTLSError is raised
    with the consumed bytes in its ``record`` attribute.
    """
    record = bytearray()
    first = read_byte(reader)
    record.append(first)
    if first != _HANDSHAKE:
        raise NotTLSError(record=bytes(record))
    version = read_bytes(reader, 2)
    record += version
    if not is_valid_tls_version(version[0], version[1]):
        raise NotTLSError(record=bytes(record))
    length = read_bytes(reader, 2)
    record += length
    (header_len,) = struct.unpack(">H", length)
    body = read_bytes(reader, header_len)
    record += body
    return read_client_hello(body), bytes(record)