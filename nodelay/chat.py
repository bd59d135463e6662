"""Minecraft chat components (JSON text messages)."""

import json
from dataclasses import dataclass, field

from .varint import VarInt, read_varint

BLACK = "black"
DARK_BLUE = "dark_blue"
DARK_GREEN = "dark_green"
DARK_AQUA = "dark_aqua"
DARK_RED = "dark_red"
DARK_PURPLE = "dark_purple"
GOLD = "gold"
GRAY = "gray"
DARK_GRAY = "dark_gray"
BLUE = "blue"
GREEN = "green"
AQUA = "aqua"
RED = "red"
LIGHT_PURPLE = "light_purple"
YELLOW = "yellow"
WHITE = "white"

_STRING_KEYS = {
    "text": "text",
    "font": "font",
    "color": "color",
    "insertion": "insertion",
    "translate": "translate",
}
_BOOL_KEYS = {
    "bold": "bold",
    "italic": "italic",
    "underlined": "underlined",
    "strikethrough": "strikethrough",
    "obfuscated": "obfuscated",
}
_LIST_KEYS = {"with": "with_", "extra": "extra"}

_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _encode_json(obj):
    text = json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
    for raw, escaped in _JSON_ESCAPES:
        text = text.replace(raw, escaped)
    return text.encode("utf-8")


@dataclass
class Message:
    """A chat component with optional styling and child components."""

    text: str = ""
    bold: bool = False
    italic: bool = False
    underlined: bool = False
    strikethrough: bool = False
    obfuscated: bool = False
    font: str = ""
    color: str = ""
    insertion: str = ""
    translate: str = ""
    with_: list = field(default_factory=list)
    extra: list = field(default_factory=list)

    def to_dict(self):
        """Return the JSON object form; ``text`` is dropped only for empty translated text."""
        data = {}
        if self.text or not self.translate:
            data["text"] = self.text
        for key, attr in _BOOL_KEYS.items():
            if getattr(self, attr):
                data[key] = True
        for key in ("font", "color", "insertion", "translate"):
            value = getattr(self, key)
            if value:
                data[key] = value
        if self.with_:
            data["with"] = [item.to_dict() for item in self.with_]
        if self.extra:
            data["extra"] = [item.to_dict() for item in self.extra]
        return data

    def to_json(self):
        """Return the compact JSON encoding as UTF-8 bytes."""
        return _encode_json(self.to_dict())

    @classmethod
    def from_json(cls, raw):
        """Decode a component given as a JSON string, object or array."""
        if isinstance(raw, (bytes, bytearray, memoryview)):
            raw = bytes(raw).decode("utf-8")
        raw = raw.strip()
        if not raw:
            raise EOFError("empty chat message")
        if raw[0] not in '"{[':
            raise ValueError(f"unknown chat message type: '{raw[0]}'")
        return cls.from_obj(json.loads(raw))

    @classmethod
    def from_obj(cls, obj):
        """Build a component from already decoded JSON data."""
        if isinstance(obj, str):
            return cls(text=obj)
        if isinstance(obj, list):
            return cls(extra=[cls.from_obj(item) for item in obj])
        if isinstance(obj, dict):
            return cls(**_fields_from_dict(cls, obj))
        raise ValueError(f"unknown chat message type: '{json.dumps(obj)[0]}'")

    def write_to(self, writer):
        """Write the VarInt-prefixed JSON to ``writer``; return the JSON byte count."""
        code = self.to_json()
        VarInt(len(code)).write_to(writer)
        return writer.write(code)


def _fields_from_dict(cls, obj):
    values = {}
    for key, value in obj.items():
        if value is None or not isinstance(key, str):
            continue
        folded = key.casefold()
        if folded in _STRING_KEYS:
            if not isinstance(value, str):
                raise ValueError(f"chat field {key!r} must be a string")
            values[_STRING_KEYS[folded]] = value
        elif folded in _BOOL_KEYS:
            if not isinstance(value, bool):
                raise ValueError(f"chat field {key!r} must be a boolean")
            values[_BOOL_KEYS[folded]] = value
        elif folded in _LIST_KEYS:
            if not isinstance(value, list):
                raise ValueError(f"chat field {key!r} must be an array")
            values[_LIST_KEYS[folded]] = [cls.from_obj(item) for item in value]
    return values


def read_message(buffer):
    """Read a VarInt-prefixed JSON chat component from ``buffer``."""
    length = read_varint(buffer)
    if length < 0:
        raise ValueError(f"incorrect message length: {length}")
    return Message.from_json(buffer.peek(length))