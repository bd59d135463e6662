# nodelay

`nodelay` holds the pieces of a TCP relay proxy for Minecraft servers:
the Minecraft packet format, the handshake / status / login handling that
sits in front of a target server, TLS ClientHello sniffing for SNI routing,
named access lists, per-player daily traffic quotas and a bidirectional
relay between two sockets. It has no third-party runtime dependencies and
needs Python 3.10 or later.

## Configuration

`nodelay.config.parse_config` reads a JSON document into a `MainConfig`
(`services`, `configuration`, `traffic_limiter`, `lists`); `dump_config`
writes one back. Keys are matched case-insensitively when reading.

```json
{
  "Services": [
    {
      "Name": "lobby",
      "TargetAddress": "mc.example.com",
      "TargetPort": 25565,
      "Listen": 25565,
      "Flow": "auto",
      "IPAccess": {"Mode": "block", "ListTags": ["banned"]},
      "Minecraft": {
        "EnableHostnameRewrite": true,
        "RewrittenHostname": "mc.example.com",
        "OnlineCount": {"Max": 100, "Online": -1, "EnableMaxLimit": true},
        "PingMode": "0ms",
        "MotdFavicon": "",
        "MotdDescription": "Welcome!"
      }
    }
  ],
  "Configuration": {
    "ListAPI": "http://localhost:8080/list",
    "Header": "My Network",
    "ContactName": "Support",
    "ContactLink": "support@example.com"
  },
  "TrafficLimiter": {"EnableTrafficLimit": false},
  "Lists": {"banned": ["192.0.2.10"]}
}
```

Lists become Python sets. `nodelay.access.get_target_list(config.lists, name)`
looks one up and raises `ListNotFoundError` when it is missing.
`AccessMode` has the values `""`, `"allow"`, `"block"`, `"down"` and `"joke"`.

`Flow` names map to `nodelay.transfer.FlowType` through `flow_type_from_name`
(`origin`, `linux-zerocopy`, `zerocopy`, `multiple`, `auto` or empty for
`auto`); unknown names raise `ValueError`.

## Handling a Minecraft connection

`nodelay.mchandler.handle_minecraft_connection` reads the handshake from an
accepted client socket and returns a connected socket to the target server,
ready for `nodelay.transfer.relay`:

```python
from nodelay.access import PlayerHistory
from nodelay.mchandler import HandledMotdRequest, handle_minecraft_connection
from nodelay.outbound import SystemOutbound
from nodelay.transfer import ConnContext, Options, flow_type_from_name, relay

service = config.services[0]
options = Options(
    out=SystemOutbound(service.socket_options),
    is_minecraft_handle_needed=True,
    flow_type=flow_type_from_name(service.flow),
)
history = PlayerHistory()

client, _ = listening_socket.accept()
ctx = ConnContext()
try:
    remote = handle_minecraft_connection(service, ctx, client, options, config, history)
except HandledMotdRequest:
    pass  # the proxy answered the status request itself
else:
    options.online_count.add(1)
    try:
        relay(client, remote, options.flow_type)
    finally:
        options.online_count.add(-1)
```

- Status requests are forwarded to the target unless a MOTD description or
  favicon is configured, in which case `nodelay.motd.generate_motd` builds the
  answer and the ping is handled according to `PingMode` (`disconnect`,
  `0ms`, or echoed otherwise).
- Logins are refused with a Disconnect packet built by `nodelay.kick` and one
  of `TrafficQuotaExceeded`, `PlayerLimitExceeded` or
  `RejectedByAccessControl` is raised. A player's first login attempt is
  always refused with the `new_player_message` screen (`PlayerHistory`).
  Name access in `allow`/`block` mode asks the configured `ListAPI` through
  `nodelay.access.is_whitelist`.
- With hostname rewriting enabled, the handshake is sent to the target with
  `RewrittenHostname` (keeping an FML suffix unless `IgnoreFMLSuffix`); the
  handler does not fill that name in for you when it is empty.
- With traffic limiting enabled, the returned remote is wrapped in
  `nodelay.traffic.TrafficMonitorConn`, which charges every byte to the player
  and raises `TrafficLimitExceeded` when the quota runs out.

`ConnContext` gives each connection a random coloured id and renders its
attached info and outcome with `str(ctx)`.

## TLS routing

`nodelay.tlshandler.handle_tls_connection(service, conn, out, config.lists)`
reads the first TLS record, dials the SNI name on the service's target port
when it appears in one of the `SNIAllowListTags` lists, and the configured
target otherwise (or refuses, per `RejectNonTLS` / `RejectIfNonMatch`). The
bytes already read are forwarded. The lower-level `nodelay.tlssniff` offers
`sniff_tls`, `read_client_hello`, `sniff_and_record` and
`is_valid_tls_version`.

## Traffic quotas

```python
from nodelay.limiter import TrafficLimiter, set_global_limiter

limiter = TrafficLimiter("TrafficTable.json", True)
set_global_limiter(limiter)

limiter.set_user_limit("Steve", 2048)
if limiter.can_use_traffic("Steve", 0, 1024):
    limiter.record_traffic("Steve", 4096)
used_mb, limit_mb, percentage = limiter.get_user_info("Steve")

limiter.close()  # stops background work and saves the table
```

With `autostart` true the limiter saves every five minutes and checks for
the daily reset every hour; `reset_daily`, `save_data`, `reload_data` and
`cleanup_old_data` can also be called directly. Records not seen for seven
days are dropped when the file is loaded. `nodelay.traffic.check_traffic_limit`
applies the login rule (refuse at 98 % of the quota, default 1024 MB) against
the global limiter.

## Protocol helpers

```python
from nodelay.buffer import Buffer
from nodelay.packet import Field, PacketConn, scan, write_to_packet
from nodelay.varint import VarInt, encode_varint, read_varint, varint_len

assert encode_varint(25565) == bytes([221, 199, 1])
assert varint_len(25565) == 3
assert read_varint(Buffer.wrap(bytes([255, 255, 255, 255, 15]))) == -1

buffer = Buffer(64)
write_to_packet(buffer, (Field.BYTE, 0), VarInt(47), "mc.example.com", (Field.UINT16, 25565))
assert scan(buffer, Field.BYTE, Field.VARINT, Field.STRING, Field.UINT16) == (0, 47, "mc.example.com", 25565)
```

`PacketConn` reads and writes length-prefixed packets over a socket or
stream; a buffer passed to its write methods needs five bytes of headroom
(`buffer.reset(MAX_VARINT_LEN)`). `nodelay.chat.Message` models chat
components and their JSON form. `nodelay.outbound` has `SystemOutbound`,
`apply_socket_options` (Linux socket option numbers), `split_host_port` and
`join_host_port`. `nodelay.console` has `set_title` and `colorize`.

## What it does not do

- There is no command and no service runner: nothing here binds the
  configured `Listen` ports, accepts connections, applies `IPAccess` rules to
  incoming addresses or restarts services when the configuration file
  changes. Wire the pieces above into your own accept loop.
- There is no SOCKS outbound. The `Outbound` settings are parsed, but the
  only dialer is `SystemOutbound`, which connects directly.
- `relay` copies data with plain socket reads and writes for every
  `FlowType`; the zero-copy flows only raise `RuntimeError` off Linux.

## Tests

The test suite uses pytest and is installed with the `test` extra.