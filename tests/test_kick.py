import json

import pytest

from nodelay.chat import Message
from nodelay.config import Configure, TrafficLimiterConfig
from nodelay.kick import (
    BAN_ID_CHARSET,
    down_message,
    joke_message,
    kick_message,
    new_player_message,
    player_limit_message,
    random_string,
    traffic_limit_message,
)
from nodelay.limiter import TrafficLimiter, set_global_limiter

MIB = 1024 * 1024


@pytest.fixture
def configure():
    return Configure(
        list_api="https://example.com/api",
        header="MyNetwork",
        contact_name="Support",
        contact_link="https://example.com/contact",
    )


@pytest.fixture
def limiter(tmp_path):
    lim = TrafficLimiter(str(tmp_path / "traffic.json"), autostart=False)
    set_global_limiter(lim)
    yield lim
    set_global_limiter(None)


@pytest.mark.parametrize("build", [kick_message, player_limit_message, down_message])
def test_refusal_messages_have_header_and_footer(configure, build):
    msg = build(configure, "lobby", "Steve")
    assert msg.extra[0].text == "MyNetwork"
    assert msg.extra[0].bold is True
    assert msg.extra[2].text == "已拒绝服务\n"
    link = msg.extra[-1]
    assert link.text == "https://example.com/contact"
    assert link.underlined is True
    assert msg.extra[-3].text == "Support"
    stamp = msg.extra[-4].text
    assert "玩家名称: Steve" in stamp
    assert "服务节点: lobby" in stamp


def test_kick_message_round_trips_through_json(configure):
    msg = kick_message(configure, "lobby", "Steve")
    assert Message.from_json(msg.to_json()) == msg


def test_new_player_message_text():
    msg = new_player_message()
    assert msg.extra[0].text == "=========首次进入提示=========\n"
    assert msg.extra[-1].text == "还有其他问题，请开票获取支持!"


def test_random_string_is_cyclic_run_of_charset():
    value = random_string(8, BAN_ID_CHARSET)
    assert len(value) == 8
    positions = [BAN_ID_CHARSET.index(c) for c in value]
    for a, b in zip(positions, positions[1:]):
        assert b == (a + 1) % len(BAN_ID_CHARSET)


def test_joke_message_ban_id():
    msg = joke_message()
    ban_line = next(m.text for m in msg.extra if m.text.startswith("#"))
    ban_id = ban_line[1:-1]
    assert len(ban_id) == 8
    assert set(ban_id) <= set(BAN_ID_CHARSET)
    assert ban_line.endswith("\n")


def test_traffic_message_with_template(configure, limiter):
    limiter.set_user_limit("Steve", 100)
    limiter.record_traffic("Steve", 50 * MIB)
    settings = TrafficLimiterConfig(
        enable_traffic_limit=True,
        traffic_limit_kick_message="{player} {used}/{limit} {percentage}",
    )
    msg = traffic_limit_message(configure, settings, "lobby", "Steve")
    assert msg.text == "Steve 50.00/100 50.0"
    assert msg.extra == []


def test_traffic_message_default_layout(configure, limiter):
    limiter.set_user_limit("Steve", 100)
    limiter.record_traffic("Steve", 50 * MIB)
    settings = TrafficLimiterConfig(enable_traffic_limit=True)
    msg = traffic_limit_message(configure, settings, "lobby", "Steve")
    texts = [m.text for m in msg.extra]
    assert "流量已耗尽！\n" in texts
    assert "100 MB " in texts
    assert msg.extra[0].text == "MyNetwork"
    decoded = json.loads(msg.to_json())
    assert decoded["color"] == "white"