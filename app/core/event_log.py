"""
Structured event log for provisioning and cleanup activity.

Entries are plain dicts ``{"time", "level", "action", ...}`` kept by an
``EventSink``. The in-memory sink is a bounded ring buffer; the Redis sink
keeps the same list in Redis so entries survive restarts and are shared
between workers. Every entry is mirrored to the ``app.events`` logger.
"""
import json
import logging
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
import redis
from redis.exceptions import RedisError

logger = logging.getLogger("app.events")

DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 500

_LOG_LEVELS = {
    "error": logging.ERROR,
    "alarm": logging.WARNING,
    "warning": logging.WARNING,
    "debug": logging.DEBUG,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning None when absent or invalid."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def clamp_limit(limit: Any) -> int:
    try:
        value = int(float(limit))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_QUERY_LIMIT
    return max(1, min(MAX_QUERY_LIMIT, value))


class EventSink:
    def append(self, entry: Dict[str, Any]) -> None:
        raise NotImplementedError

    def tail(self, limit: int) -> List[Dict[str, Any]]:
        """Return the last ``limit`` entries, oldest first."""
        raise NotImplementedError

    def all(self) -> List[Dict[str, Any]]:
        raise NotImplementedError


class InMemoryEventSink(EventSink):
    def __init__(self, capacity: int = 1000):
        self._entries: deque = deque(maxlen=capacity)

    def append(self, entry: Dict[str, Any]) -> None:
        self._entries.append(entry)

    def tail(self, limit: int) -> List[Dict[str, Any]]:
        if limit >= len(self._entries):
            return list(self._entries)
        return list(self._entries)[-limit:]

    def all(self) -> List[Dict[str, Any]]:
        return list(self._entries)


class RedisEventSink(EventSink):
    def __init__(self, client: redis.Redis, key: str, capacity: int = 1000):
        self.client = client
        self.key = key
        self.capacity = capacity

    def append(self, entry: Dict[str, Any]) -> None:
        try:
            pipe = self.client.pipeline()
            pipe.rpush(self.key, json.dumps(entry, default=str))
            pipe.ltrim(self.key, -self.capacity, -1)
            pipe.execute()
        except RedisError as e:
            # The log is a monitoring aid; losing an entry must not fail the request
            logger.warning(f"Could not persist event to Redis: {e}")

    def tail(self, limit: int) -> List[Dict[str, Any]]:
        try:
            raw = self.client.lrange(self.key, -limit, -1)
        except RedisError as e:
            logger.warning(f"Could not read events from Redis: {e}")
            return []
        entries = []
        for item in raw:
            try:
                entries.append(json.loads(item))
            except ValueError:
                logger.warning(f"Skipping unreadable event in {self.key}: {item!r}")
        return entries

    def all(self) -> List[Dict[str, Any]]:
        return self.tail(self.capacity)


class EventLog:
    def __init__(
        self,
        sink: Optional[EventSink] = None,
        clock: Callable[[], datetime] = utcnow,
        alarm_threshold: int = 5,
        alarm_window: timedelta = timedelta(minutes=10),
    ):
        self.sink = sink if sink is not None else InMemoryEventSink()
        self.clock = clock
        self.alarm_threshold = alarm_threshold
        self.alarm_window = alarm_window

    def record_event(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        """Append an entry, stamping ``time`` unless the caller supplied one."""
        record = {"time": isoformat(self.clock()), **entry}
        record.setdefault("level", "info")
        self.sink.append(record)
        logger.log(
            _LOG_LEVELS.get(record["level"], logging.INFO),
            "LOG EVENT: %s",
            json.dumps(record, default=str),
        )
        return record

    def info(self, action: str, **fields: Any) -> Dict[str, Any]:
        return self.record_event({"level": "info", "action": action, **fields})

    def error(self, action: str, **fields: Any) -> Dict[str, Any]:
        return self.record_event({"level": "error", "action": action, **fields})

    def query_recent(self, limit: Any = DEFAULT_QUERY_LIMIT) -> List[Dict[str, Any]]:
        return self.sink.tail(clamp_limit(limit))

    def check_error_alarm(self) -> Optional[Dict[str, Any]]:
        """
        Append one alarm entry when the trailing window holds at least
        ``alarm_threshold`` error entries. Returns the alarm entry, if any.
        """
        cutoff = self.clock() - self.alarm_window
        recent_errors = 0
        for entry in self.sink.all():
            if entry.get("level") != "error":
                continue
            logged_at = parse_timestamp(entry.get("time"))
            if logged_at is not None and logged_at >= cutoff:
                recent_errors += 1

        if recent_errors < self.alarm_threshold:
            return None

        minutes = int(self.alarm_window.total_seconds() // 60)
        return self.record_event({
            "level": "alarm",
            "type": "error_spike",
            "action": "error_spike_detected",
            "count": recent_errors,
            "message": f"{recent_errors} errors occurred in the last {minutes} minutes.",
        })
