import json
from datetime import timedelta

from app.core.event_log import EventLog, InMemoryEventSink, RedisEventSink, clamp_limit, isoformat


def test_record_event_stamps_time_and_level(event_log, clock):
    entry = event_log.record_event({"action": "variant_created"})
    assert entry["time"] == isoformat(clock.now)
    assert entry["level"] == "info"
    assert event_log.query_recent() == [entry]


def test_query_recent_returns_last_entries_in_order(event_log):
    for i in range(10):
        event_log.info("step", index=i)
    recent = event_log.query_recent(3)
    assert [e["index"] for e in recent] == [7, 8, 9]


def test_query_recent_limit_is_clamped(event_log):
    for i in range(600):
        event_log.info("step", index=i)
    assert len(event_log.query_recent(0)) == 1
    assert len(event_log.query_recent(10000)) == 500
    assert len(event_log.query_recent("nope")) == 100


def test_clamp_limit():
    assert clamp_limit("25") == 25
    assert clamp_limit(-3) == 1
    assert clamp_limit(None) == 100


def test_ring_buffer_drops_oldest(clock):
    log = EventLog(InMemoryEventSink(capacity=5), clock=clock)
    for i in range(8):
        log.info("step", index=i)
    assert [e["index"] for e in log.query_recent(500)] == [3, 4, 5, 6, 7]


def test_alarm_fires_at_threshold(event_log):
    for _ in range(5):
        event_log.error("create_variant_failed")
    alarm = event_log.check_error_alarm()
    assert alarm is not None
    assert alarm["level"] == "alarm"
    assert alarm["type"] == "error_spike"
    alarms = [e for e in event_log.query_recent(500) if e["level"] == "alarm"]
    assert len(alarms) == 1


def test_alarm_silent_below_threshold(event_log):
    for _ in range(4):
        event_log.error("create_variant_failed")
    assert event_log.check_error_alarm() is None
    assert all(e["level"] != "alarm" for e in event_log.query_recent(500))


def test_alarm_ignores_errors_outside_window(event_log, clock):
    old = isoformat(clock.now - timedelta(minutes=11))
    for _ in range(3):
        event_log.record_event({"time": old, "level": "error", "action": "cleanup_delete_failed"})
    for _ in range(4):
        event_log.error("cleanup_delete_failed")
    assert event_log.check_error_alarm() is None


def test_alarm_counts_errors_as_clock_moves(event_log, clock):
    for _ in range(5):
        event_log.error("create_variant_failed")
    clock.advance(minutes=10, seconds=1)
    assert event_log.check_error_alarm() is None


class FakePipeline:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def rpush(self, key, value):
        self.ops.append(("rpush", key, value))

    def ltrim(self, key, start, end):
        self.ops.append(("ltrim", key, start, end))

    def execute(self):
        for op in self.ops:
            if op[0] == "rpush":
                self.client.lists.setdefault(op[1], []).append(op[2])
            else:
                items = self.client.lists.get(op[1], [])
                self.client.lists[op[1]] = items[op[2]:] if len(items) > -op[2] else items


class FakeRedis:
    def __init__(self):
        self.lists = {}

    def pipeline(self):
        return FakePipeline(self)

    def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        return items[start:] if len(items) > -start else list(items)


def test_redis_sink_keeps_insertion_order_and_capacity(clock):
    redis_client = FakeRedis()
    log = EventLog(RedisEventSink(redis_client, "events", capacity=4), clock=clock)
    for i in range(6):
        log.info("step", index=i)
    assert [e["index"] for e in log.query_recent(2)] == [4, 5]
    assert [json.loads(raw)["index"] for raw in redis_client.lists["events"]] == [2, 3, 4, 5]


def test_redis_sink_skips_unreadable_entries(clock):
    redis_client = FakeRedis()
    log = EventLog(RedisEventSink(redis_client, "events", capacity=10), clock=clock, alarm_threshold=2)
    log.error("create_variant_failed")
    redis_client.lists["events"].append("{not json")
    log.error("create_variant_failed")

    recent = log.query_recent(10)
    assert [e["action"] for e in recent] == ["create_variant_failed", "create_variant_failed"]
    assert log.check_error_alarm() is not None
