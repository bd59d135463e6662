import socket
import sys
import threading

import pytest

from nodelay.transfer import (
    ConnContext,
    FlowType,
    OnlineCounter,
    Options,
    flow_type_from_name,
    relay,
)


@pytest.mark.parametrize(
    "name, flow",
    [
        ("origin", FlowType.ORIGIN),
        ("linux-zerocopy", FlowType.LINUX_ZEROCOPY),
        ("zerocopy", FlowType.ZEROCOPY),
        ("multiple", FlowType.MULTIPLE),
        ("auto", FlowType.AUTO),
        ("", FlowType.AUTO),
    ],
)
def test_flow_type_from_name(name, flow):
    assert flow_type_from_name(name) is flow


def test_flow_type_unknown():
    with pytest.raises(ValueError):
        flow_type_from_name("turbo")


def test_context_without_info_or_error():
    ctx = ConnContext()
    assert str(ctx) == ": √"


def test_context_with_info_and_error():
    ctx = ConnContext()
    ctx.attach_info("PlayerName=Steve")
    ctx.err = RuntimeError("boom")
    assert str(ctx) == "[PlayerName=Steve]: boom"


def test_context_id():
    ctx = ConnContext()
    assert 0 <= ctx.id < 2**31
    assert f"[{ctx.id}]" in ctx.colored_id
    assert ctx.additional_info == []


def test_online_counter_concurrent():
    counter = OnlineCounter()

    def bump():
        for _ in range(1000):
            counter.add(1)
            counter.add(-1)
            counter.add(1)

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert counter.value() == 4000


def test_options_defaults():
    options = Options(out=None)
    assert options.flow_type is FlowType.AUTO
    assert options.online_count.value() == 0
    assert Options(out=None).online_count is not options.online_count


def _recv_until_closed(sock):
    data = bytearray()
    while True:
        chunk = sock.recv(1024)
        if not chunk:
            return bytes(data)
        data += chunk


@pytest.mark.parametrize("flow", [FlowType.ORIGIN, FlowType.AUTO, FlowType.MULTIPLE])
def test_relay_both_directions(flow):
    a_client, a_server = socket.socketpair()
    b_client, b_server = socket.socketpair()
    for s in (a_client, b_client):
        s.settimeout(5)
    worker = threading.Thread(target=relay, args=(a_server, b_server, flow), daemon=True)
    worker.start()

    a_client.sendall(b"ping")
    assert b_client.recv(4) == b"ping"
    b_client.sendall(b"pong")
    assert a_client.recv(4) == b"pong"

    a_client.close()
    assert _recv_until_closed(b_client) == b""
    worker.join(5)
    assert not worker.is_alive()
    b_client.close()


@pytest.mark.parametrize("flow", [FlowType.ZEROCOPY, FlowType.LINUX_ZEROCOPY])
def test_zerocopy_requires_linux(monkeypatch, flow):
    monkeypatch.setattr(sys, "platform", "win32")
    a, b = socket.socketpair()
    try:
        with pytest.raises(RuntimeError):
            relay(a, b, flow)
    finally:
        a.close()
        b.close()