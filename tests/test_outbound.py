import io
import socket

import pytest

from nodelay import outbound
from nodelay.config import SocketOptions
from nodelay.outbound import (
    Outbound,
    SystemOutbound,
    apply_socket_options,
    join_host_port,
    split_host_port,
)


class RecordingSocket:
    def __init__(self):
        self.calls = []

    def setsockopt(self, level, option, value):
        self.calls.append((level, option, value))


def test_split_host_port_plain():
    assert split_host_port("example.com:25565") == ("example.com", "25565")


def test_split_host_port_bracketed_ipv6():
    assert split_host_port("[::1]:80") == ("::1", "80")


@pytest.mark.parametrize("address", ["example.com", "a:b:c", "[::1]", "[::1"])
def test_split_host_port_errors(address):
    with pytest.raises(ValueError):
        split_host_port(address)


@pytest.mark.parametrize("host,port", [("example.com", 25565), ("::1", 80), ("10.0.0.1", 1080)])
def test_join_then_split_round_trip(host, port):
    assert split_host_port(join_host_port(host, port)) == (host, str(port))


def test_join_host_port_brackets_ipv6():
    assert join_host_port("::1", 80).startswith("[::1]")


def test_fast_open_uses_linux_connect_option():
    sock = RecordingSocket()
    apply_socket_options(sock, SocketOptions(tcp_fast_open=True), "tcp")
    assert sock.calls == [(socket.IPPROTO_TCP, 30, 1)]


def test_apply_socket_options_all_tcp():
    sock = RecordingSocket()
    options = SocketOptions(mark=7, interface="eth0", tcp_fast_open=True, tcp_congestion="bbr")
    apply_socket_options(sock, options, "tcp")
    assert sock.calls == [
        (socket.SOL_SOCKET, outbound.SO_MARK, 7),
        (socket.SOL_SOCKET, outbound.SO_BINDTODEVICE, b"eth0"),
        (socket.IPPROTO_TCP, outbound.TCP_FASTOPEN_CONNECT, 1),
        (socket.IPPROTO_TCP, outbound.TCP_CONGESTION, b"bbr"),
    ]


def test_apply_socket_options_skips_tcp_options_for_udp():
    sock = RecordingSocket()
    options = SocketOptions(mark=3, tcp_fast_open=True, tcp_congestion="bbr")
    apply_socket_options(sock, options, "udp")
    assert sock.calls == [(socket.SOL_SOCKET, outbound.SO_MARK, 3)]


def test_apply_socket_options_none_and_empty():
    sock = RecordingSocket()
    apply_socket_options(sock, None, "tcp")
    apply_socket_options(sock, SocketOptions(), "tcp")
    assert sock.calls == []


@pytest.mark.parametrize("options", [None, SocketOptions()])
def test_system_outbound_connects(options):
    with socket.create_server(("127.0.0.1", 0)) as server:
        port = server.getsockname()[1]
        conn = SystemOutbound(options).dial("tcp", join_host_port("127.0.0.1", port))
        with conn:
            assert conn.getpeername() == ("127.0.0.1", port)
            peer, _ = server.accept()
            with peer:
                conn.sendall(b"ping")
                assert peer.recv(4) == b"ping"


def test_system_outbound_refused():
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(OSError):
        SystemOutbound().dial("tcp", join_host_port("127.0.0.1", port))


def test_system_outbound_unknown_network():
    with pytest.raises(ValueError, match="unknown network"):
        SystemOutbound().dial("carrier-pigeon", "127.0.0.1:80")


def test_system_outbound_handshake_touches_nothing():
    reader = io.BytesIO(b"data")
    writer = io.BytesIO()
    result = SystemOutbound().handshake(reader, writer, "tcp", "example.com:80")
    assert result is None
    assert writer.getvalue() == b""
    assert reader.read() == b"data"


def test_outbound_is_abstract():
    with pytest.raises(TypeError):
        Outbound()