"""Per-player daily traffic accounting, persisted to a JSON file."""

import json
import logging
import threading
import time
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timedelta

log = logging.getLogger(__name__)

_MIB = 1024 * 1024
_SAVE_INTERVAL = 5 * 60
_RESET_INTERVAL = 60 * 60
_RETENTION = timedelta(days=7)

_JSON_KEYS = {
    "player_name": "player_name",
    "used_bytes": "used_bytes",
    "limit_mb": "limit_mb",
    "last_reset_time": "last_reset",
    "last_seen": "last_seen",
}


@dataclass
class UserTrafficData:
    """Traffic usage of one player."""

    player_name: str = ""
    used_bytes: int = 0
    limit_mb: int = 0
    last_reset_time: int = 0
    last_seen: int = 0


def _to_json(data):
    return {_JSON_KEYS[name]: value for name, value in asdict(data).items()}


def _from_json(obj):
    if not isinstance(obj, dict):
        raise ValueError(f"traffic record must be an object, got {obj!r}")
    values = {}
    for attr, key in _JSON_KEYS.items():
        if key not in obj or obj[key] is None:
            continue
        value = obj[key]
        expected = str if attr == "player_name" else int
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ValueError(f"traffic record field {key!r} has wrong type: {value!r}")
        values[attr] = value
    return UserTrafficData(**values)


def _now():
    return int(time.time())


def _today_start():
    now = datetime.now()
    return int(now.replace(hour=0, minute=0, second=0, microsecond=0).timestamp())


class TrafficLimiter:
    """Tracks and limits player traffic, resetting usage every day."""

    def __init__(self, data_file, autostart=True):
        self.data_file = data_file
        self._users = {}
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._threads = []
        self._load_data()
        if autostart:
            for target in (self._auto_save, self._auto_reset):
                thread = threading.Thread(target=target, daemon=True)
                thread.start()
                self._threads.append(thread)

    def reload_data(self):
        log.info("Reloading traffic data from file...")
        self._load_data()
        log.info("Traffic data reloaded successfully.")

    def _load_data(self):
        with self._lock:
            try:
                with open(self.data_file, encoding="utf-8") as handle:
                    text = handle.read()
            except FileNotFoundError:
                return
            except OSError as err:
                log.error("Error reading traffic data file: %s", err)
                return

            try:
                raw = json.loads(text)
                if raw is None:
                    raw = {}
                if not isinstance(raw, dict):
                    raise ValueError("traffic data must be an object")
                records = [_from_json(value) for value in raw.values() if value is not None]
            except ValueError as err:
                log.error("Error parsing traffic data: %s", err)
                return

            cutoff = int((datetime.now() - _RETENTION).timestamp())
            for record in records:
                if record.last_seen > cutoff:
                    self._users[record.player_name] = record
            log.info("Loaded traffic data for %d players", len(self._users))

    def save_data(self):
        """Write all records to the data file."""
        with self._lock:
            payload = {name: _to_json(self._users[name]) for name in sorted(self._users)}
        try:
            with open(self.data_file, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
        except OSError as err:
            log.error("Error saving traffic data: %s", err)

    def _auto_save(self):
        while not self._stop.wait(_SAVE_INTERVAL):
            self.save_data()

    def _auto_reset(self):
        while not self._stop.wait(_RESET_INTERVAL):
            self.reset_daily()

    def reset_daily(self):
        """Zero the usage of players not yet reset today; return how many were reset."""
        today = _today_start()
        count = 0
        with self._lock:
            for record in self._users.values():
                if record.last_reset_time < today:
                    record.used_bytes = 0
                    record.last_reset_time = today
                    count += 1
        if count:
            log.info("Daily traffic reset: Traffic for %d players has been reset.", count)
        return count

    def can_use_traffic(self, player_name, nbytes, default_limit_mb):
        """Return whether ``player_name`` may use ``nbytes`` more, creating a record if needed."""
        with self._lock:
            record = self._users.get(player_name)
            if record is None:
                now = _now()
                record = UserTrafficData(
                    player_name=player_name,
                    limit_mb=default_limit_mb,
                    last_reset_time=now,
                    last_seen=now,
                )
                self._users[player_name] = record
                log.info(
                    "Created new player traffic record: %s (Limit: %d MB)",
                    player_name,
                    default_limit_mb,
                )

            record.last_seen = _now()

            today = _today_start()
            if record.last_reset_time < today:
                record.used_bytes = 0
                record.last_reset_time = today
                log.info("Reset daily traffic for player: %s", player_name)

            if record.limit_mb == 0 and default_limit_mb > 0:
                record.limit_mb = default_limit_mb
                log.info(
                    "Updated player %s limit from 0 to %d MB", player_name, default_limit_mb
                )

            return record.used_bytes + nbytes <= record.limit_mb * _MIB

    def record_traffic(self, player_name, nbytes):
        """Add ``nbytes`` to a known player's usage; unknown players are ignored."""
        with self._lock:
            record = self._users.get(player_name)
            if record is None:
                return
            record.used_bytes += nbytes
            record.last_seen = _now()

    def get_user_info(self, player_name):
        """Return ``(used_mb, limit_mb, percentage)``; zeros for unknown players."""
        with self._lock:
            record = self._users.get(player_name)
            if record is None:
                return 0.0, 0.0, 0.0
            used = record.used_bytes / _MIB
            limit = float(record.limit_mb)
        percentage = used / limit * 100 if limit > 0 else 0.0
        return used, limit, percentage

    def get_all_users_stats(self):
        """Return a snapshot copy of every player's record."""
        with self._lock:
            return {name: replace(record) for name, record in self._users.items()}

    def reset_user_traffic(self, player_name):
        with self._lock:
            record = self._users.get(player_name)
            if record is None:
                return False
            record.used_bytes = 0
            record.last_reset_time = _now()
            return True

    def set_user_limit(self, player_name, limit_mb):
        with self._lock:
            now = _now()
            record = self._users.get(player_name)
            if record is None:
                self._users[player_name] = UserTrafficData(
                    player_name=player_name,
                    limit_mb=limit_mb,
                    last_reset_time=now,
                    last_seen=now,
                )
            else:
                record.limit_mb = limit_mb
                record.last_seen = now
            return True

    def cleanup_old_data(self, cutoff_time):
        """Drop players last seen before ``cutoff_time``; True if any were removed."""
        with self._lock:
            stale = [name for name, rec in self._users.items() if rec.last_seen < cutoff_time]
            for name in stale:
                del self._users[name]
        if stale:
            log.info("Cleaned up data for %d expired players.", len(stale))
            return True
        return False

    def close(self):
        """Stop background work and save the data."""
        self._stop.set()
        for thread in self._threads:
            thread.join()
        self._threads = []
        self.save_data()
        log.info("Traffic data saved.")


_registry = {"limiter": None}
_registry_lock = threading.Lock()


def set_global_limiter(limiter):
    """Install ``limiter`` as the process-wide limiter and return the previous one."""
    with _registry_lock:
        previous = _registry["limiter"]
        _registry["limiter"] = limiter
    return previous


def get_global_limiter():
    """Return the process-wide limiter, or None when none is installed."""
    with _registry_lock:
        return _registry["limiter"]