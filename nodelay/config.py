"""Configuration model and its JSON form."""

import json
from dataclasses import dataclass, field, fields, is_dataclass

_INT_RANGES = {
    "int": (-(1 << 63), (1 << 63) - 1),
    "int64": (-(1 << 63), (1 << 63) - 1),
    "int32": (-(1 << 31), (1 << 31) - 1),
    "uint16": (0, 65535),
}


def _spec(key, kind, default=None, *, omitempty=False, factory=None):
    metadata = {"key": key, "kind": kind, "omitempty": omitempty}
    if factory is not None:
        return field(default_factory=factory, metadata=metadata)
    return field(default=default, metadata=metadata)


@dataclass
class SocketOptions:
    mark: int = _spec("Mark", "int", 0, omitempty=True)
    interface: str = _spec("Interface", "str", "", omitempty=True)
    tcp_fast_open: bool = _spec("TCPFastOpen", "bool", False, omitempty=True)
    tcp_congestion: str = _spec("TCPCongestion", "str", "", omitempty=True)
    multipath_tcp: bool = _spec("MultiPathTCP", "bool", False, omitempty=True)


@dataclass
class Access:
    mode: str = _spec("Mode", "str", "")
    list_tags: list = _spec("ListTags", "strlist", None, omitempty=True)


@dataclass
class OnlineCount:
    max: int = _spec("Max", "int", 0)
    online: int = _spec("Online", "int32", 0)
    enable_max_limit: bool = _spec("EnableMaxLimit", "bool", False)
    sample: object = _spec("Sample", "any", None, omitempty=True)


@dataclass
class AnyDest:
    wildcard_root_domain_name: str = _spec("WildcardRootDomainName", "str", "", omitempty=True)


@dataclass
class MinecraftSettings:
    enable_hostname_rewrite: bool = _spec("EnableHostnameRewrite", "bool", False)
    rewritten_hostname: str = _spec("RewrittenHostname", "str", "", omitempty=True)
    enable_hostname_access: bool = _spec("EnableHostnameAccess", "bool", False)
    hostname_access: str = _spec("HostnameAccess", "str", "", omitempty=True)
    online_count: OnlineCount = _spec("OnlineCount", OnlineCount, factory=OnlineCount)
    ignore_fml_suffix: bool = _spec("IgnoreFMLSuffix", "bool", False, omitempty=True)
    name_access: Access = _spec("NameAccess", Access, factory=Access, omitempty=True)
    enable_any_dest: bool = _spec("EnableAnyDest", "bool", False, omitempty=True)
    any_dest_settings: AnyDest = _spec("AnyDestSettings", AnyDest, factory=AnyDest, omitempty=True)
    ping_mode: str = _spec("PingMode", "str", "")
    motd_favicon: str = _spec("MotdFavicon", "str", "")
    motd_description: str = _spec("MotdDescription", "str", "")


@dataclass
class TLSSniffing:
    reject_non_tls: bool = _spec("RejectNonTLS", "bool", False)
    reject_if_non_match: bool = _spec("RejectIfNonMatch", "bool", False, omitempty=True)
    sni_allow_list_tags: list = _spec("SNIAllowListTags", "strlist", None, omitempty=True)


@dataclass
class OutboundSettings:
    type: str = _spec("Type", "str", "")
    network: str = _spec("Network", "str", "", omitempty=True)
    address: str = _spec("Address", "str", "", omitempty=True)


@dataclass
class ProxyService:
    name: str = _spec("Name", "str", "")
    target_address: str = _spec("TargetAddress", "str", "")
    target_port: int = _spec("TargetPort", "uint16", 0)
    listen: int = _spec("Listen", "uint16", 0)
    flow: str = _spec("Flow", "str", "")
    ip_access: Access = _spec("IPAccess", Access, factory=Access, omitempty=True)
    minecraft: MinecraftSettings = _spec(
        "Minecraft", MinecraftSettings, factory=MinecraftSettings, omitempty=True
    )
    tls_sniffing: TLSSniffing = _spec("TLSSniffing", TLSSniffing, factory=TLSSniffing, omitempty=True)
    socket_options: SocketOptions = _spec("SocketOptions", SocketOptions, None, omitempty=True)
    outbound: OutboundSettings = _spec(
        "Outbound", OutboundSettings, factory=OutboundSettings, omitempty=True
    )


@dataclass
class Configure:
    list_api: str = _spec("ListAPI", "str", "")
    header: str = _spec("Header", "str", "")
    contact_name: str = _spec("ContactName", "str", "")
    contact_link: str = _spec("ContactLink", "str", "")


@dataclass
class TrafficLimiterConfig:
    enable_traffic_limit: bool = _spec("EnableTrafficLimit", "bool", False)
    traffic_limit_mb: int = _spec("TrafficLimitMB", "int64", 0, omitempty=True)
    traffic_limit_kick_message: str = _spec("TrafficLimitKickMessage", "str", "", omitempty=True)


def _lookup(data, key):
    if key in data:
        return data[key]
    folded = key.casefold()
    for name, value in data.items():
        if isinstance(name, str) and name.casefold() == folded:
            return value
    return None


def _decode_value(kind, value, key):
    if kind == "str":
        if not isinstance(value, str):
            raise ValueError(f"{key}: expected a string, got {value!r}")
        return value
    if kind == "bool":
        if not isinstance(value, bool):
            raise ValueError(f"{key}: expected a boolean, got {value!r}")
        return value
    if kind in _INT_RANGES:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key}: expected an integer, got {value!r}")
        low, high = _INT_RANGES[kind]
        if not low <= value <= high:
            raise ValueError(f"{key}: value {value} out of range")
        return value
    if kind == "strlist":
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ValueError(f"{key}: expected an array of strings, got {value!r}")
        return list(value)
    if kind == "any":
        return value
    return _decode_struct(kind, value, key)


def _decode_struct(cls, data, where):
    if not isinstance(data, dict):
        raise ValueError(f"{where}: expected an object, got {data!r}")
    values = {}
    for spec in fields(cls):
        meta = spec.metadata
        value = _lookup(data, meta["key"])
        if value is not None:
            values[spec.name] = _decode_value(meta["kind"], value, meta["key"])
    return cls(**values)


def _is_empty(kind, value):
    if value is None:
        return True
    if kind == "any" or is_dataclass(value):
        return False
    return not value


def _encode_struct(obj):
    data = {}
    for spec in fields(obj):
        meta = spec.metadata
        value = getattr(obj, spec.name)
        if meta["omitempty"] and _is_empty(meta["kind"], value):
            continue
        if is_dataclass(value):
            value = _encode_struct(value)
        elif isinstance(value, list):
            value = list(value)
        data[meta["key"]] = value
    return data


def _decode_optional(cls, data, key):
    value = _lookup(data, key)
    return None if value is None else _decode_struct(cls, value, key)


@dataclass
class MainConfig:
    """The whole configuration: services, site settings, traffic limits and named lists."""

    services: list = field(default_factory=list)
    configuration: Configure = None
    traffic_limiter: TrafficLimiterConfig = None
    lists: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError(f"configuration must be an object, got {data!r}")
        raw_services = _lookup(data, "Services")
        if raw_services is None:
            services = []
        elif isinstance(raw_services, list):
            services = [
                None if item is None else _decode_struct(ProxyService, item, "Services")
                for item in raw_services
            ]
        else:
            raise ValueError("Services: expected an array")

        raw_lists = _lookup(data, "Lists")
        lists = {}
        if raw_lists is not None:
            if not isinstance(raw_lists, dict):
                raise ValueError("Lists: expected an object")
            for name, items in raw_lists.items():
                items = [] if items is None else _decode_value("strlist", items, f"Lists.{name}")
                lists[name] = set(items)

        return cls(
            services=services,
            configuration=_decode_optional(Configure, data, "Configuration"),
            traffic_limiter=_decode_optional(TrafficLimiterConfig, data, "TrafficLimiter"),
            lists=lists,
        )

    def to_dict(self):
        lists = {name: sorted(items) for name, items in self.lists.items()} if self.lists else None
        return {
            "Services": [None if s is None else _encode_struct(s) for s in self.services],
            "Configuration": None if self.configuration is None else _encode_struct(self.configuration),
            "TrafficLimiter": (
                None if self.traffic_limiter is None else _encode_struct(self.traffic_limiter)
            ),
            "Lists": lists,
        }


def parse_config(text):
    """Parse configuration JSON text."""
    return MainConfig.from_dict(json.loads(text))


def dump_config(config):
    """Serialise a configuration to compact JSON text."""
    return json.dumps(config.to_dict(), ensure_ascii=False, separators=(",", ":"))