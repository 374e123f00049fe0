"""Tests for the bounded per-room event log."""

import pytest

from core.event_log import Event, EventKind, EventLog


def test_append_assigns_increasing_ids_and_times(clock):
    """Each append gets the next id and a later timestamp."""
    log = EventLog(clock=clock)
    first = log.append(EventKind.CHAT_MESSAGE, {"text": "a"})
    second = log.append(EventKind.CHAT_MESSAGE, {"text": "b"})

    assert (first.id, second.id) == (1, 2)
    assert second.occurred_at > first.occurred_at


def test_append_accepts_kind_as_string(clock):
    log = EventLog(clock=clock)
    event = log.append("player-sync", {})
    assert event.kind is EventKind.PLAYER_SYNC


def test_unknown_kind_is_rejected(clock):
    log = EventLog(clock=clock)
    with pytest.raises(ValueError):
        log.append("volume-changed", {})


def test_log_never_exceeds_limit(clock):
    """After 350 appends only the newest 300 remain, oldest first."""
    log = EventLog(limit=300, clock=clock)
    for i in range(350):
        log.append(EventKind.CHAT_MESSAGE, {"n": i})

    events = log.since(0)
    assert len(log) == 300
    assert len(events) == 300
    assert [e.payload["n"] for e in events] == list(range(50, 350))


def test_since_is_strictly_greater(clock):
    log = EventLog(clock=clock)
    first = log.append(EventKind.CHAT_MESSAGE, {})
    second = log.append(EventKind.CHAT_MESSAGE, {})

    assert log.since(first.occurred_at) == [second]
    assert log.since(second.occurred_at) == []


def test_since_results_are_suffixes(clock):
    """A later watermark yields a suffix of an earlier watermark's result."""
    log = EventLog(clock=clock)
    stamps = []
    for _ in range(10):
        stamps.append(log.append(EventKind.CHAT_MESSAGE, {}).occurred_at)
        clock.advance(5)

    for w1, w2 in [(0, stamps[3]), (stamps[2], stamps[7]), (stamps[0], stamps[9])]:
        early, late = log.since(w1), log.since(w2)
        assert early[len(early) - len(late):] == late


def test_stamps_increase_within_same_millisecond(clock):
    """A frozen clock still produces strictly increasing stamps."""
    log = EventLog(clock=clock)
    stamps = [log.stamp() for _ in range(5)]
    assert stamps == sorted(set(stamps))


def test_stamps_do_not_go_backwards(clock):
    log = EventLog(clock=clock)
    before = log.stamp()
    clock.advance(-500)
    assert log.stamp() > before


def test_invalid_limit():
    with pytest.raises(ValueError):
        EventLog(limit=0)


def test_event_wire_format():
    event = Event(id=7, kind=EventKind.VIDEO_UPDATED, payload={"videoUrl": "x"}, occurred_at=12.5)
    assert event.to_dict() == {
        "id": 7,
        "type": "video-updated",
        "data": {"videoUrl": "x"},
        "at": 12.5,
    }
