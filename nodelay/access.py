"""Access control: named lists, remote allow-list lookups and first-visit tracking."""

import enum
import threading
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import urlopen

from .errors import cause


class AccessMode(str, enum.Enum):
    DEFAULT = ""
    ALLOW = "allow"
    BLOCK = "block"
    DOWN = "down"
    JOKE = "joke"


class ListNotFoundError(LookupError):
    """No list with the requested name is configured."""

    def __init__(self, name):
        super().__init__(name)
        self.name = name

    def __str__(self):
        return f'list "{self.name}" not found'


def get_target_list(lists, name):
    """Return the configured list called ``name``."""
    try:
        return lists[name]
    except KeyError:
        raise ListNotFoundError(name) from None


def is_whitelist(list_api, player_name):
    """Ask the list API about ``player_name``; True when it answers with the name itself."""
    url = f"{list_api}?playerName={quote(player_name, safe='')}"
    try:
        response = urlopen(url)
    except HTTPError as err:
        response = err
    except (URLError, OSError, ValueError) as err:
        raise cause("failed to make HTTP request: ", err) from err
    with response:
        try:
            body = response.read()
        except OSError as err:
            raise cause("failed to read HTTP response body: ", err) from err
    return body.decode("utf-8", errors="replace") == player_name


class PlayerHistory:
    """Remembers which players have already tried to log in."""

    def __init__(self):
        self._seen = set()
        self._lock = threading.Lock()

    def is_first_time(self, player_name):
        """Return True the first time a name is seen, False afterwards."""
        with self._lock:
            if player_name in self._seen:
                return False
            self._seen.add(player_name)
            return True