import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

import pytest

from nodelay.access import (
    AccessMode,
    ListNotFoundError,
    PlayerHistory,
    get_target_list,
    is_whitelist,
)
from nodelay.errors import CausedError

ALLOWED = {"Steve"}
NOT_FOUND_BUT_ECHOED = "Ghost"


class _ListHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        query = parse_qs(urlsplit(self.path).query)
        name = query.get("playerName", [""])[0]
        if name == NOT_FOUND_BUT_ECHOED:
            status, body = 404, name
        elif name in ALLOWED:
            status, body = 200, name
        else:
            status, body = 200, ""
        data = body.encode()
        self.send_response(status)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, *args):
        pass


@pytest.fixture
def list_api():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _ListHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/check"
    finally:
        server.shutdown()
        server.server_close()


def test_access_modes_match_config_strings():
    assert AccessMode("") is AccessMode.DEFAULT
    assert AccessMode("allow") is AccessMode.ALLOW
    assert AccessMode("block") is AccessMode.BLOCK
    assert AccessMode("down") is AccessMode.DOWN
    assert AccessMode("joke") is AccessMode.JOKE


def test_unknown_access_mode():
    with pytest.raises(ValueError):
        AccessMode("maybe")


def test_get_target_list_found():
    lists = {"friends": {"1.2.3.4"}}
    assert get_target_list(lists, "friends") is lists["friends"]


def test_get_target_list_missing():
    with pytest.raises(ListNotFoundError, match='list "enemies" not found'):
        get_target_list({"friends": set()}, "enemies")


def test_is_whitelist_allowed(list_api):
    assert is_whitelist(list_api, "Steve") is True


def test_is_whitelist_not_allowed(list_api):
    assert is_whitelist(list_api, "Alex") is False


def test_is_whitelist_uses_body_even_on_error_status(list_api):
    assert is_whitelist(list_api, NOT_FOUND_BUT_ECHOED) is True


def test_is_whitelist_unreachable():
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(CausedError, match="failed to make HTTP request"):
        is_whitelist(f"http://127.0.0.1:{port}/check", "Steve")


def test_player_history_first_time_once():
    history = PlayerHistory()
    assert history.is_first_time("Steve") is True
    assert history.is_first_time("Steve") is False
    assert history.is_first_time("Alex") is True


def test_player_history_concurrent_single_first():
    history = PlayerHistory()
    results = []
    lock = threading.Lock()

    def visit():
        outcome = history.is_first_time("Steve")
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=visit) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert sorted(results) == [False] * 15 + [True]
    assert history.is_first_time("Steve") is False