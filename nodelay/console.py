"""Terminal helpers: window title and ANSI colours."""

import sys

RESET = "\x1b[0m"

COLOR_LIST = (
    31, 32, 33, 34, 35, 36, 37,
    91, 92, 93, 94, 95, 96, 97,
)

COLORS = {
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "magenta": 35,
    "cyan": 36,
    "white": 37,
    "hired": 91,
    "higreen": 92,
    "hiyellow": 93,
    "hiblue": 94,
    "himagenta": 95,
    "hicyan": 96,
    "hiwhite": 97,
}


def set_title(title, stream=None):
    """Set the terminal window title with an OSC escape sequence."""
    out = sys.stdout if stream is None else stream
    out.write(f"\x1b]0;{title}\x07")
    out.flush()


def colorize(text, color):
    """Wrap ``text`` in the given SGR colour code or colour name."""
    code = COLORS[color.lower()] if isinstance(color, str) else int(color)
    return f"\x1b[{code}m{text}{RESET}"