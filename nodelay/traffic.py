"""Traffic checks against the global limiter and a traffic-counting connection wrapper."""

import logging
import threading
import time

from .limiter import get_global_limiter

log = logging.getLogger(__name__)

_MIB = 1024 * 1024
_DEFAULT_LIMIT_MB = 1024
_WARNING_THRESHOLDS = (25.0, 50.0, 75.0, 80.0, 90.0, 98.0)
_REJECT_THRESHOLD = 98.0


class TrafficLimitExceeded(ConnectionError):
    """A player's traffic quota has run out."""

    def __init__(self, player_name):
        super().__init__(f"traffic limit exceeded for player {player_name}")
        self.player_name = player_name


def check_user_traffic(player_name, nbytes, default_limit_mb):
    """Return whether the player may use ``nbytes`` more; True without a limiter."""
    limiter = get_global_limiter()
    if limiter is None:
        return True
    return limiter.can_use_traffic(player_name, nbytes, default_limit_mb)


def record_user_traffic(player_name, nbytes):
    """Add ``nbytes`` to the player's usage in the global limiter, if there is one."""
    limiter = get_global_limiter()
    if limiter is not None:
        limiter.record_traffic(player_name, nbytes)


def get_user_traffic_info(player_name):
    """Return ``(used_mb, limit_mb, percentage)``; zeros without a limiter."""
    limiter = get_global_limiter()
    if limiter is None:
        return 0.0, 0.0, 0.0
    return limiter.get_user_info(player_name)


def check_traffic_limit(settings, player_name):
    """Check a player's traffic quota at login.

    ``settings`` is the global traffic limiter configuration. Players without
    a record get one with the configured (or 1024 MB) default limit.
    """
    limiter = get_global_limiter()
    if limiter is None or settings is None or not settings.enable_traffic_limit:
        return True

    default_limit_mb = settings.traffic_limit_mb if settings.traffic_limit_mb > 0 else _DEFAULT_LIMIT_MB

    used, limit, percentage = limiter.get_user_info(player_name)
    if used == 0 and limit == 0:
        return limiter.can_use_traffic(player_name, 0, default_limit_mb)

    reached = next((t for t in _WARNING_THRESHOLDS if percentage >= t), None)
    if reached is not None:
        log.warning(
            "Player %s traffic usage warning: %.2f MB / %.0f MB (%.1f%%) threshold %.1f%% reached",
            player_name,
            used,
            limit,
            percentage,
            reached,
        )
        if reached == _REJECT_THRESHOLD:
            return False
    return True


class TrafficMonitorConn:
    """Wraps a socket-like connection and charges all traffic to a player."""

    def __init__(self, conn, player_name, settings):
        self._conn = conn
        self.player_name = player_name
        self._settings = settings
        self._read = 0
        self._written = 0
        self._started = time.monotonic()
        self._lock = threading.Lock()

    def __getattr__(self, name):
        return getattr(self._conn, name)

    def _account(self, n, *, read):
        with self._lock:
            if read:
                self._read += n
            else:
                self._written += n
            total = self._read + self._written
            read_total, write_total = self._read, self._written

        record_user_traffic(self.player_name, n)

        if self._settings is not None and not check_user_traffic(
            self.player_name, 0, self._settings.traffic_limit_mb
        ):
            self.close()
            raise TrafficLimitExceeded(self.player_name)

        if total % _MIB < n:
            log.info(
                "Traffic Update: %s - Read: %d bytes, Write: %d bytes, Total: %d bytes",
                self.player_name,
                read_total,
                write_total,
                total,
            )

    def recv(self, size):
        """Receive up to ``size`` bytes and charge them to the player."""
        data = self._conn.recv(size)
        if data:
            self._account(len(data), read=True)
        return data

    def sendall(self, data):
        """Send all of ``data`` and charge it to the player."""
        self._conn.sendall(data)
        if data:
            self._account(len(data), read=False)

    def close(self):
        with self._lock:
            read_total, write_total = self._read, self._written
        duration = time.monotonic() - self._started
        log.info(
            "Session ended for %s: Read=%d bytes, Write=%d bytes, Total=%d bytes, Duration=%.3fs",
            self.player_name,
            read_total,
            write_total,
            read_total + write_total,
            duration,
        )
        self._conn.close()