import json

import pytest

from nodelay.buffer import Buffer
from nodelay.chat import GOLD, Message, read_message
from nodelay.varint import read_varint


def test_plain_text_encoding():
    assert Message(text="hi").to_json() == b'{"text":"hi"}'


def test_empty_message_keeps_text_key():
    assert Message().to_dict() == {"text": ""}


def test_translate_drops_empty_text():
    data = Message(translate="chat.type.text").to_dict()
    assert "text" not in data
    assert data["translate"] == "chat.type.text"


def test_false_flags_are_omitted():
    data = Message(text="a", bold=True).to_dict()
    assert data.get("bold") is True
    assert "italic" not in data
    assert "extra" not in data


def test_html_characters_are_escaped():
    code = Message(text="<a&b>").to_json()
    assert b"<" not in code and b"&" not in code and b">" not in code
    assert json.loads(code)["text"] == "<a&b>"


def test_non_ascii_kept_as_utf8():
    code = Message(text=" ‖ ").to_json()
    assert " ‖ ".encode("utf-8") in code


def test_nested_round_trip():
    msg = Message(
        color=GOLD,
        extra=[
            Message(text="one", bold=True),
            Message(text="two", underlined=True, color="blue"),
            Message(translate="key", with_=[Message(text="arg")]),
        ],
    )
    assert Message.from_json(msg.to_json()) == msg


def test_from_json_string():
    assert Message.from_json('  "hello" ') == Message(text="hello")


def test_from_json_array():
    assert Message.from_json(b'["a", {"text": "b"}]') == Message(
        extra=[Message(text="a"), Message(text="b")]
    )


def test_from_json_keys_case_insensitive():
    assert Message.from_json('{"Text": "x", "BOLD": true}') == Message(text="x", bold=True)


def test_from_json_empty_raises_eof():
    with pytest.raises(EOFError):
        Message.from_json("   ")


def test_from_json_unknown_type():
    with pytest.raises(ValueError, match="unknown chat message type: '1'"):
        Message.from_json("123")


def test_from_obj_null_rejected():
    with pytest.raises(ValueError, match="unknown chat message type: 'n'"):
        Message.from_obj(None)


def test_wrong_field_type_rejected():
    with pytest.raises(ValueError):
        Message.from_json('{"bold": "yes"}')


def test_write_to_and_read_message_round_trip():
    msg = Message(text="kick", color="red", extra=[Message(text="reason")])
    buffer = Buffer(256)
    written = msg.write_to(buffer)
    code = msg.to_json()
    assert written == len(code)
    assert read_message(buffer) == msg
    assert buffer.is_empty()


def test_write_to_prefixes_length():
    msg = Message(text="abc")
    buffer = Buffer(64)
    msg.write_to(buffer)
    assert read_varint(buffer) == len(msg.to_json())
    assert buffer.getvalue() == msg.to_json()