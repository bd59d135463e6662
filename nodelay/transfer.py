"""Per-connection context, relay options and bidirectional data relaying."""

import enum
import random
import socket
import sys
import threading
from dataclasses import dataclass, field

from .console import COLOR_LIST, colorize

_CHUNK_SIZE = 32 * 1024


class FlowType(enum.IntEnum):
    ORIGIN = 0
    LINUX_ZEROCOPY = 1
    ZEROCOPY = 2
    MULTIPLE = 3
    AUTO = 4


_FLOW_NAMES = {
    "origin": FlowType.ORIGIN,
    "linux-zerocopy": FlowType.LINUX_ZEROCOPY,
    "zerocopy": FlowType.ZEROCOPY,
    "multiple": FlowType.MULTIPLE,
    "auto": FlowType.AUTO,
    "": FlowType.AUTO,
}


def flow_type_from_name(name):
    """Map a configured flow name to a FlowType."""
    try:
        return _FLOW_NAMES[name]
    except KeyError:
        raise ValueError(f"Unknown flow type '{name}'.") from None


class ConnContext:
    """Identity and outcome of one proxied connection, for logging."""

    def __init__(self):
        self.id = random.randrange(1 << 31)
        self.colored_id = colorize(f"[{self.id}]", random.choice(COLOR_LIST))
        self.additional_info = []
        self.err = None

    def attach_info(self, info):
        self.additional_info.append(info)

    def __str__(self):
        info = f"[{' '.join(self.additional_info)}]" if self.additional_info else ""
        if self.err is None:
            return info + ": √"
        return f"{info}: {self.err}"


class OnlineCounter:
    """Thread-safe counter of currently connected players."""

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def add(self, delta):
        with self._lock:
            self._value += delta
            return self._value

    def value(self):
        with self._lock:
            return self._value


@dataclass
class Options:
    out: object
    is_tls_handle_needed: bool = False
    is_minecraft_handle_needed: bool = False
    flow_type: FlowType = FlowType.AUTO
    online_count: OnlineCounter = field(default_factory=OnlineCounter)


def _splice_supported():
    return sys.platform.startswith("linux") or sys.platform == "android"


def _close(conn):
    shutdown = getattr(conn, "shutdown", None)
    if shutdown is not None:
        try:
            shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
    try:
        conn.close()
    except OSError:
        pass


def _pipe(src, dst):
    try:
        while True:
            data = src.recv(_CHUNK_SIZE)
            if not data:
                break
            dst.sendall(data)
    except OSError:
        pass
    finally:
        _close(src)
        _close(dst)


def relay(a, b, flow=FlowType.AUTO):
    """Copy data both ways between ``a`` and ``b`` until either side ends.

    Both connections are closed when the relay finishes.
    """
    flow = FlowType(flow)
    if flow in (FlowType.ZEROCOPY, FlowType.LINUX_ZEROCOPY) and not _splice_supported():
        raise RuntimeError(
            "Only Linux based systems support Linux ZeroCopy, "
            "please set your flow to origin or auto."
        )
    upstream = threading.Thread(target=_pipe, args=(a, b), daemon=True)
    upstream.start()
    _pipe(b, a)
    upstream.join()