"""Server list (MOTD) responses."""

import enum
import json

VERSION = "Default"
COMMIT_HASH = "ManualBuilt"

_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


class PingMode(str, enum.Enum):
    """How the proxy answers the client's ping after a custom MOTD."""

    DISCONNECT = "disconnect"
    ZERO_MS = "0ms"


def generate_motd(protocol_version, service, online_count):
    """Build the status response JSON for ``service`` as UTF-8 bytes.

    A negative configured online count is replaced by ``online_count``,
    the number of players currently connected.
    """
    settings = service.minecraft
    online = settings.online_count.online
    if online < 0:
        online = online_count

    players = {"max": settings.online_count.max, "online": int(online)}
    if settings.online_count.sample is not None:
        players["sample"] = settings.online_count.sample

    motd = {
        "version": {"name": f"NoDelay {VERSION}", "protocol": protocol_version},
        "players": players,
        "description": {"text": settings.motd_description},
        "favicon": settings.motd_favicon,
    }
    text = json.dumps(motd, ensure_ascii=False, separators=(",", ":"))
    for raw, escaped in _JSON_ESCAPES:
        text = text.replace(raw, escaped)
    return text.encode("utf-8")