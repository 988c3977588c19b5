import queue
from datetime import datetime, timezone

import pytest

from mcphub.logs import (
    LogAggregator,
    LogBuffer,
    LogLine,
    format_log_line,
    format_system_time,
)


def make_line(server, ts, message):
    return LogLine(server=server, timestamp=ts, message=message)


def test_buffer_evicts_oldest_when_full():
    buf = LogBuffer(3)
    for i in range(5):
        buf.push(make_line("s", float(i), f"m{i}"))
    assert len(buf) == 3
    assert [line.message for line in buf.snapshot()] == ["m2", "m3", "m4"]


def test_snapshot_last():
    buf = LogBuffer(10)
    for i in range(4):
        buf.push(make_line("s", float(i), f"m{i}"))
    assert [line.message for line in buf.snapshot_last(2)] == ["m2", "m3"]
    assert len(buf.snapshot_last(100)) == 4
    assert buf.snapshot_last(0) == []


def test_empty_buffer():
    buf = LogBuffer(5)
    assert len(buf) == 0
    assert buf.snapshot() == []


def test_aggregator_push_goes_to_named_buffer():
    agg = LogAggregator(["a", "b"], 10)
    agg.push("a", "hello")
    assert [line.message for line in agg.get_buffer("a").snapshot()] == ["hello"]
    assert len(agg.get_buffer("b")) == 0
    assert agg.get_buffer("missing") is None


def test_server_names():
    agg = LogAggregator(["a", "b"], 10)
    assert sorted(agg.server_names()) == ["a", "b"]


def test_subscribe_receives_all_lines_including_unknown_servers():
    agg = LogAggregator(["a"], 10)
    sub = agg.subscribe()
    agg.push("a", "one")
    agg.push("ghost", "two")
    assert sub.get(timeout=1).message == "one"
    second = sub.get(timeout=1)
    assert (second.server, second.message) == ("ghost", "two")
    assert agg.snapshot_all()[-1].message == "one"


def test_subscription_times_out_when_empty():
    agg = LogAggregator([], 10)
    sub = agg.subscribe()
    with pytest.raises(queue.Empty):
        sub.get(timeout=0.01)


def test_closed_subscription_stops_receiving():
    agg = LogAggregator(["a"], 10)
    with agg.subscribe() as sub:
        agg.push("a", "before")
    agg.push("a", "after")
    assert [line.message for line in sub.drain()] == ["before"]


def test_snapshot_all_sorted_by_timestamp():
    agg = LogAggregator(["a", "b"], 10)
    agg.get_buffer("a").push(make_line("a", 3.0, "a3"))
    agg.get_buffer("b").push(make_line("b", 1.0, "b1"))
    agg.get_buffer("a").push(make_line("a", 5.0, "a5"))
    agg.get_buffer("b").push(make_line("b", 4.0, "b4"))
    merged = agg.snapshot_all()
    assert [line.message for line in merged] == ["b1", "a3", "b4", "a5"]


def test_format_system_time_epoch():
    assert format_system_time(0) == "1970-01-01T00:00:00Z"


def test_format_system_time_round_trip():
    moment = datetime(2026, 4, 2, 10, 15, 30, tzinfo=timezone.utc)
    text = format_system_time(moment.timestamp())
    parsed = datetime.strptime(text, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
    assert parsed == moment


def test_format_log_line_plain():
    ts = datetime(2026, 4, 2, 10, 15, 30, tzinfo=timezone.utc).timestamp()
    line = make_line("server-name", ts, "message")
    assert format_log_line(line, False) == "server-name | 2026-04-02T10:15:30Z message"


def test_format_log_line_colored_is_stable():
    line = make_line("alpha", 0.0, "msg")
    colored = format_log_line(line, True)
    assert "\x1b[" in colored
    assert colored.endswith("| 1970-01-01T00:00:00Z msg")
    assert colored == format_log_line(make_line("alpha", 0.0, "msg"), True)
    assert "\x1b[" not in format_log_line(line, False)