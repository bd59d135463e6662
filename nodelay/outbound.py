"""Outgoing connections: the outbound interface and the plain system dialer."""

import abc
import socket

# Linux socket option numbers, with fallbacks where the socket module lacks them.
SO_MARK = getattr(socket, "SO_MARK", 36)
SO_BINDTODEVICE = getattr(socket, "SO_BINDTODEVICE", 25)
TCP_CONGESTION = getattr(socket, "TCP_CONGESTION", 13)
TCP_FASTOPEN_CONNECT = 30
IPPROTO_MPTCP = getattr(socket, "IPPROTO_MPTCP", 262)

_NETWORKS = {
    "tcp": (socket.AF_UNSPEC, socket.SOCK_STREAM),
    "tcp4": (socket.AF_INET, socket.SOCK_STREAM),
    "tcp6": (socket.AF_INET6, socket.SOCK_STREAM),
    "udp": (socket.AF_UNSPEC, socket.SOCK_DGRAM),
    "udp4": (socket.AF_INET, socket.SOCK_DGRAM),
    "udp6": (socket.AF_INET6, socket.SOCK_DGRAM),
}


class Outbound(abc.ABC):
    """A way of opening connections to remote addresses."""

    @abc.abstractmethod
    def dial(self, network, address):
        """Open a connection to ``address`` ("host:port") over ``network``."""

    @abc.abstractmethod
    def handshake(self, reader, writer, network, address):
        """Negotiate a connection to ``address`` over an already open stream."""


def split_host_port(address):
    """Split "host:port" or "[host]:port" into ``(host, port)`` strings."""
    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise ValueError(f"address {address}: missing ']' in address")
        rest = address[end + 1:]
        if not rest:
            raise ValueError(f"address {address}: missing port in address")
        if rest[0] != ":":
            raise ValueError(f"address {address}: unexpected ']' in address")
        host, port = address[1:end], rest[1:]
        if ":" in port:
            raise ValueError(f"address {address}: too many colons in address")
        if "[" in host:
            raise ValueError(f"address {address}: unexpected '[' in address")
        return host, port
    index = address.rfind(":")
    if index < 0:
        raise ValueError(f"address {address}: missing port in address")
    host, port = address[:index], address[index + 1:]
    if ":" in host:
        raise ValueError(f"address {address}: too many colons in address")
    if "[" in host or "]" in host or "[" in port or "]" in port:
        raise ValueError(f"address {address}: unexpected bracket in address")
    return host, port


def join_host_port(host, port):
    """Combine host and port, bracketing hosts that contain colons."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def apply_socket_options(sock, options, network):
    """Apply configured socket options to ``sock`` before it connects."""
    if options is None:
        return
    if options.mark:
        sock.setsockopt(socket.SOL_SOCKET, SO_MARK, options.mark)
    if options.interface:
        sock.setsockopt(socket.SOL_SOCKET, SO_BINDTODEVICE, options.interface.encode())
    if network.startswith("tcp"):
        if options.tcp_fast_open:
            sock.setsockopt(socket.IPPROTO_TCP, TCP_FASTOPEN_CONNECT, 1)
        if options.tcp_congestion:
            sock.setsockopt(socket.IPPROTO_TCP, TCP_CONGESTION, options.tcp_congestion.encode())


class SystemOutbound(Outbound):
    """Connects directly through the operating system's network stack."""

    def __init__(self, options=None):
        self.options = options

    def _new_socket(self, family, socktype, proto):
        if (
            self.options is not None
            and self.options.multipath_tcp
            and socktype == socket.SOCK_STREAM
        ):
            try:
                return socket.socket(family, socktype, IPPROTO_MPTCP)
            except OSError:
                pass
        return socket.socket(family, socktype, proto)

    def dial(self, network, address):
        try:
            family, socktype = _NETWORKS[network]
        except KeyError:
            raise ValueError(f"dial {network}: unknown network {network}") from None
        host, port = split_host_port(address)
        infos = socket.getaddrinfo(host or None, port, family, socktype)
        last_error = None
        for fam, stype, proto, _, sockaddr in infos:
            sock = self._new_socket(fam, stype, proto)
            try:
                apply_socket_options(sock, self.options, network)
                sock.connect(sockaddr)
            except OSError as err:
                sock.close()
                last_error = err
                continue
            return sock
        if last_error is not None:
            raise last_error
        raise OSError(f"dial {network} {address}: no suitable address found")

    def handshake(self, reader, writer, network, address):
        return None