import io
import struct

import pytest

from nodelay.access import ListNotFoundError
from nodelay.config import ProxyService, TLSSniffing
from nodelay.tlshandler import handle_tls_connection
from nodelay.tlssniff import NotTLSError


def tls_record(server_name):
    name = server_name.encode()
    entry = b"\x00" + struct.pack(">H", len(name)) + name
    ext_data = struct.pack(">H", len(entry)) + entry
    extensions = struct.pack(">HH", 0, len(ext_data)) + ext_data
    body = (
        bytes([1, 0, 0, 0])
        + b"\x03\x03"
        + bytes(32)
        + b"\x00"
        + b"\x00\x02\x13\x01"
        + b"\x01\x00"
        + struct.pack(">H", len(extensions))
        + extensions
    )
    return b"\x16\x03\x01" + struct.pack(">H", len(body)) + body


class FakeRemote:
    def __init__(self):
        self.sent = b""
        self.closed = False

    def sendall(self, data):
        self.sent += data

    def close(self):
        self.closed = True


class FakeOutbound:
    def __init__(self):
        self.dials = []
        self.remote = FakeRemote()

    def dial(self, network, address):
        self.dials.append((network, address))
        return self.remote

    def handshake(self, reader, writer, network, address):
        return None


def make_service(**sniffing):
    return ProxyService(
        name="svc",
        target_address="backend.example.com",
        target_port=443,
        tls_sniffing=TLSSniffing(**sniffing),
    )


LISTS = {"allowed": {"example.com"}}


def test_allowed_domain_is_dialled_directly():
    out = FakeOutbound()
    record = tls_record("example.com")
    service = make_service(sni_allow_list_tags=["allowed"])
    remote = handle_tls_connection(service, io.BytesIO(record), out, LISTS)
    assert remote is out.remote
    assert out.dials == [("tcp", "example.com:443")]
    assert remote.sent == record


def test_unmatched_domain_goes_to_target():
    out = FakeOutbound()
    record = tls_record("other.example.com")
    service = make_service(sni_allow_list_tags=["allowed"])
    remote = handle_tls_connection(service, io.BytesIO(record), out, LISTS)
    assert out.dials == [("tcp", "backend.example.com:443")]
    assert remote.sent == record


def test_unmatched_domain_rejected_when_configured():
    out = FakeOutbound()
    service = make_service(sni_allow_list_tags=["allowed"], reject_if_non_match=True)
    with pytest.raises(PermissionError):
        handle_tls_connection(service, io.BytesIO(tls_record("other.example.com")), out, LISTS)
    assert out.dials == []


def test_non_tls_forwarded_to_target():
    out = FakeOutbound()
    service = make_service()
    remote = handle_tls_connection(service, io.BytesIO(b"GET / HTTP/1.1"), out, LISTS)
    assert out.dials == [("tcp", "backend.example.com:443")]
    assert remote.sent == b"G"


def test_non_tls_rejected_when_configured():
    out = FakeOutbound()
    service = make_service(reject_non_tls=True)
    with pytest.raises(NotTLSError):
        handle_tls_connection(service, io.BytesIO(b"GET / HTTP/1.1"), out, LISTS)
    assert out.dials == []


def test_missing_list_raises():
    out = FakeOutbound()
    service = make_service(sni_allow_list_tags=["missing"])
    with pytest.raises(ListNotFoundError):
        handle_tls_connection(service, io.BytesIO(tls_record("example.com")), out, LISTS)