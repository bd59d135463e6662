"""Chat components shown to players who are turned away at login."""

import time

from .chat import (
    AQUA,
    BLUE,
    GOLD,
    GRAY,
    GREEN,
    LIGHT_PURPLE,
    RED,
    WHITE,
    YELLOW,
    Message,
)
from .traffic import get_user_traffic_info

BAN_ID_CHARSET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
APPEAL_LINK = "https://example.com/security\n\n"


def _timestamp_ms():
    return time.time_ns() // 1_000_000


def _header(configure, status_color):
    return [
        Message(bold=True, color=YELLOW, text=configure.header),
        Message(text=" ‖ "),
        Message(bold=True, color=status_color, text="已拒绝服务\n"),
    ]


def _footer(configure, service_name, player_name):
    return [
        Message(
            color=GRAY,
            text=f"时间戳: {_timestamp_ms()} | 玩家名称: {player_name} | 服务节点: {service_name}\n",
        ),
        Message(text=configure.contact_name),
        Message(text=":"),
        Message(color=BLUE, underlined=True, text=configure.contact_link),
    ]


def kick_message(configure, service_name, player_name):
    """Message for players refused by access control."""
    return Message(
        color=WHITE,
        extra=[
            *_header(configure, RED),
            Message(text="您无法加入当前服务器！\n"),
            Message(text="理由: "),
            Message(color=LIGHT_PURPLE, text="你的连接可能未经处理，或者你没有权限加入此服务器。\n"),
            Message(text="请联系管理员寻求帮助！\n\n"),
            *_footer(configure, service_name, player_name),
        ],
    )


def player_limit_message(configure, service_name, player_name):
    """Message for players refused because the server is full."""
    return Message(
        color=WHITE,
        extra=[
            *_header(configure, RED),
            Message(text="你无法加入当前服务器！\n"),
            Message(text="理由: "),
            Message(color=LIGHT_PURPLE, text="服务器当前人数已满载！\n"),
            Message(text="请联系管理员寻求帮助！\n\n"),
            *_footer(configure, service_name, player_name),
        ],
    )


def new_player_message():
    """Message shown to a player on the first login attempt."""
    return Message(
        color=WHITE,
        extra=[
            Message(bold=True, color=GREEN, text="=========首次进入提示=========\n"),
            Message(color=RED, text="检测到您当前第一次进入本IP!\n"),
            Message(color=LIGHT_PURPLE, text="本IP暂不支持防安全警报。\n"),
            Message(color=BLUE, text="请使用21+或已经历安全警报的账号进入本IP!\n"),
            Message(color=GOLD, text="一旦被安全警报我们概不负责!\n"),
            Message(color=GREEN, text="如果已经使用21+或已经历安全警报的账号，请尝试重新进入。\n"),
            Message(color=WHITE, text="还有其他问题，请开票获取支持!"),
        ],
    )


def random_string(length, charset):
    """Return ``length`` characters of ``charset`` in cyclic order from a clock-derived offset."""
    base = time.time_ns()
    return "".join(charset[(base + i) % len(charset)] for i in range(length))


def joke_message():
    """A fake permanent-ban screen."""
    ban_id = random_string(8, BAN_ID_CHARSET)
    return Message(
        color=WHITE,
        extra=[
            Message(bold=True, color=RED, text="You are permanently banned from this server!\n\n"),
            Message(color=GRAY, text="Reason: "),
            Message(text="Suspicious activity has been detected on your account.\n"),
            Message(color=GRAY, text="Find out more: "),
            Message(color=AQUA, underlined=True, text=APPEAL_LINK),
            Message(color=GRAY, text="Ban ID: "),
            Message(text=f"#{ban_id}\n"),
            Message(color=GRAY, text="Sharing your Ban ID may affect the processing of your appeal!"),
        ],
    )


def down_message(configure, service_name, player_name):
    """Message for players refused during maintenance."""
    return Message(
        color=WHITE,
        extra=[
            *_header(configure, GOLD),
            Message(text="您无法加入当前服务器！\n"),
            Message(text="理由: "),
            Message(color=LIGHT_PURPLE, text="当前正在进行停机维护！\n"),
            Message(text="请关注相关信息渠道了解恢复时间！\n\n"),
            *_footer(configure, service_name, player_name),
        ],
    )


def traffic_limit_message(configure, limiter_config, service_name, player_name):
    """Message for players whose traffic quota is used up.

    A configured kick message template is used when present, with
    ``{player}``, ``{used}``, ``{limit}`` and ``{percentage}`` filled in.
    """
    used, limit, percentage = get_user_traffic_info(player_name)

    template = limiter_config.traffic_limit_kick_message if limiter_config is not None else ""
    if template:
        text = (
            template.replace("{player}", player_name)
            .replace("{used}", f"{used:.2f}")
            .replace("{limit}", f"{limit:.0f}")
            .replace("{percentage}", f"{percentage:.1f}")
        )
        return Message(text=text)

    return Message(
        color=WHITE,
        extra=[
            *_header(configure, GOLD),
            Message(text="您无法加入当前服务器！\n"),
            Message(text="理由: "),
            Message(color=LIGHT_PURPLE, text="流量已耗尽！\n"),
            Message(color=GRAY, text="已使用: "),
            Message(color=YELLOW, text=f"{used:.2f} MB "),
            Message(color=GRAY, text="/ "),
            Message(color=GREEN, text=f"{limit:.0f} MB "),
            Message(color=WHITE, text=f"({percentage:.1f}%)\n"),
            Message(text="请联系管理员寻求帮助！\n\n"),
            *_footer(configure, service_name, player_name),
        ],
    )