"""Minecraft handshake, status (MOTD) and login handling in front of the target server."""

import logging
import socket
import struct

from .access import AccessMode, is_whitelist
from .buffer import Buffer
from .errors import cause
from .kick import (
    down_message,
    joke_message,
    kick_message,
    new_player_message,
    player_limit_message,
    traffic_limit_message,
)
from .motd import PingMode, generate_motd
from .outbound import join_host_port
from .packet import Field, PacketConn, append_packet_length, scan, write_to_packet
from .traffic import TrafficMonitorConn, check_traffic_limit, get_user_traffic_info
from .varint import MAX_VARINT_LEN, VarInt, read_varint

log = logging.getLogger(__name__)

_FML_SUFFIX = "\x00FML\x00"
_MAX_INT64 = (1 << 63) - 1
_HANDSHAKE_MAX_LEN = 250
_STATUS_REQUEST_MAX_LEN = 1
_PING_MAX_LEN = 9
_MAX_PLAYER_NAME_LEN = 16
_STATE_STATUS = 1
_STATE_LOGIN = 2
_REJECTED = ("DENY", "REJECT", "NEW", "JOKE", "DOWN")


class HandledMotdRequest(Exception):
    """The client asked for the server status and has been answered by the proxy."""

    def __init__(self):
        super().__init__("handled MOTD")


class RejectedByAccessControl(PermissionError):
    """The login was refused by player name access control."""

    def __init__(self):
        super().__init__("interrupted by access control")


class PlayerLimitExceeded(ConnectionRefusedError):
    """The login was refused because the server is full."""

    def __init__(self):
        super().__init__("rejected due to player number limit exceeded")


class BadPlayerName(ValueError):
    """The player name in the login start packet has an impossible length."""

    def __init__(self):
        super().__init__("rejected due to bad player name")


class TrafficQuotaExceeded(ConnectionRefusedError):
    """The login was refused because the player's traffic is used up."""

    def __init__(self):
        super().__init__("traffic limit exceeded")


def _set_linger(conn, seconds):
    setsockopt = getattr(conn, "setsockopt", None)
    if setsockopt is None:
        return
    try:
        setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, seconds))
    except OSError:
        pass


def _send(conn, data):
    sendall = getattr(conn, "sendall", None)
    if sendall is not None:
        sendall(data)
    else:
        conn.write(data)


def _disconnect(packets, buffer, conn, message):
    """Send a login Disconnect packet carrying ``message`` and close the client."""
    payload = message.to_json()
    buffer.reset(MAX_VARINT_LEN)
    write_to_packet(buffer, (Field.BYTE, 0x00), VarInt(len(payload)))
    packets.write_vectorized_packet(buffer, payload)
    _set_linger(conn, 10)
    conn.close()


def _target(service):
    return join_host_port(service.target_address, service.target_port)


def _answer_status(service, packets, buffer, conn, protocol, options):
    packets.read_limited_packet(buffer, _STATUS_REQUEST_MAX_LEN)

    motd = generate_motd(int(protocol), service, options.online_count.value())
    buffer.reset(MAX_VARINT_LEN)
    write_to_packet(buffer, (Field.BYTE, 0x00), VarInt(len(motd)))
    packets.write_vectorized_packet(buffer, motd)

    buffer.reset(MAX_VARINT_LEN)
    ping_mode = service.minecraft.ping_mode
    if ping_mode == PingMode.DISCONNECT:
        pass
    elif ping_mode == PingMode.ZERO_MS:
        write_to_packet(buffer, (Field.BYTE, 0x01), (Field.INT64, _MAX_INT64))
        packets.write_packet(buffer)
    else:
        packets.read_limited_packet(buffer, _PING_MAX_LEN)
        packets.write_packet(buffer)

    conn.close()
    raise HandledMotdRequest()


def _accessibility(service, config, history, player_name):
    if history.is_first_time(player_name):
        return "NEW"
    mode = service.minecraft.name_access.mode
    if mode == AccessMode.DEFAULT:
        return "DEFAULT"
    hit = is_whitelist(config.configuration.list_api, player_name)
    if mode == AccessMode.ALLOW:
        return "ALLOW" if hit else "DENY"
    if mode == AccessMode.BLOCK:
        return "REJECT" if hit else "PASS"
    if mode == AccessMode.JOKE:
        return "JOKE"
    if mode == AccessMode.DOWN:
        return "DOWN"
    return "DEFAULT"


def _rejection_message(accessibility, configure, service_name, player_name):
    if accessibility == "NEW":
        return new_player_message()
    if accessibility == "JOKE":
        return joke_message()
    if accessibility == "DOWN":
        return down_message(configure, service_name, player_name)
    return kick_message(configure, service_name, player_name)


def handle_minecraft_connection(service, ctx, conn, options, config, history):
    """Handle the Minecraft handshake on ``conn`` and return the remote connection.

    Status requests are either proxied to the target (returning the remote)
    or answered here, in which case HandledMotdRequest is raised. Logins are
    checked against traffic, player count and name access rules; refused
    players get a Disconnect packet and one of this module's errors is raised.
    """
    buffer = Buffer(256)
    buffer.reset(MAX_VARINT_LEN)
    packets = PacketConn(conn)
    packets.read_limited_packet(buffer, _HANDSHAKE_MAX_LEN)

    _, protocol, hostname, port, next_state = scan(
        buffer, Field.VARINT, Field.VARINT, Field.STRING, Field.UINT16, Field.BYTE
    )
    settings = service.minecraft

    if settings.enable_hostname_access and settings.hostname_access not in hostname:
        _set_linger(conn, 0)
        raise PermissionError("hostname is not allowed")

    if next_state == _STATE_STATUS:
        if not settings.motd_description and not settings.motd_favicon:
            remote = options.out.dial("tcp", _target(service))
            buffer.rewind(MAX_VARINT_LEN)
            try:
                PacketConn(remote).write_packet(buffer)
            except BaseException:
                remote.close()
                raise
            return remote
        _answer_status(service, packets, buffer, conn, protocol, options)

    # Login start: only the length, packet ID and player name are read; the
    # rest of the packet is forwarded untouched during the copy stage.
    buffer.reset(MAX_VARINT_LEN)
    login_start_len = read_varint(conn)
    read_varint(conn)
    name_len = read_varint(conn)
    if name_len > _MAX_PLAYER_NAME_LEN or name_len <= 0:
        raise BadPlayerName()
    buffer.read_full_from(conn, name_len)
    raw_name = buffer.getvalue()
    player_name = raw_name.decode("utf-8", errors="replace")

    limiter_config = config.traffic_limiter
    traffic_enabled = limiter_config is not None and limiter_config.enable_traffic_limit
    if traffic_enabled and not check_traffic_limit(limiter_config, player_name):
        used, limit, percentage = get_user_traffic_info(player_name)
        log.info(
            "Service %s : %s Player %s rejected due to traffic limit. Usage: %.2f/%.0f MB (%.1f%%)",
            service.name, ctx.colored_id, player_name, used, limit, percentage,
        )
        message = traffic_limit_message(
            config.configuration, limiter_config, service.name, player_name
        )
        _disconnect(packets, buffer, conn, message)
        raise TrafficQuotaExceeded()

    online = settings.online_count
    if online.enable_max_limit and online.max <= options.online_count.value():
        log.info(
            "Service %s : %s Rejected a new Minecraft player login request due to online "
            "player number limit: %s",
            service.name, ctx.colored_id, player_name,
        )
        message = player_limit_message(config.configuration, service.name, player_name)
        _disconnect(packets, buffer, conn, message)
        raise PlayerLimitExceeded()

    accessibility = _accessibility(service, config, history, player_name)
    log.info(
        "Service %s : %s New Minecraft player logged in: %s [%s]",
        service.name, ctx.colored_id, player_name, accessibility,
    )
    ctx.attach_info("PlayerName=" + player_name)
    if accessibility in _REJECTED:
        message = _rejection_message(
            accessibility, config.configuration, service.name, player_name
        )
        _disconnect(packets, buffer, conn, message)
        raise RejectedByAccessControl()

    try:
        remote = options.out.dial("tcp", _target(service))
    except Exception as err:
        conn.close()
        raise cause("failed to dial to target server: ", err) from err

    try:
        buffer.reset(MAX_VARINT_LEN)
        if settings.enable_hostname_rewrite:
            rewritten = settings.rewritten_hostname
            if not settings.ignore_fml_suffix and hostname.endswith(_FML_SUFFIX):
                rewritten += _FML_SUFFIX
            write_to_packet(
                buffer,
                (Field.BYTE, 0x00),
                protocol,
                rewritten,
                (Field.UINT16, service.target_port),
                (Field.BYTE, _STATE_LOGIN),
            )
        else:
            write_to_packet(
                buffer,
                (Field.BYTE, 0x00),
                protocol,
                hostname,
                (Field.UINT16, port),
                (Field.BYTE, _STATE_LOGIN),
            )
        PacketConn(remote).write_packet(buffer)

        buffer.reset(MAX_VARINT_LEN)
        write_to_packet(buffer, (Field.BYTE, 0x00), (Field.BYTES, raw_name))
        append_packet_length(buffer, login_start_len)
        _send(remote, buffer.getvalue())
    except BaseException:
        remote.close()
        raise

    if traffic_enabled:
        return TrafficMonitorConn(remote, player_name, limiter_config)
    return remote