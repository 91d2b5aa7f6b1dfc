import threading

import pytest

from studybuddy.errors import NotFoundError
from studybuddy.services import rate_limit_service
from studybuddy.services.ephemeral_store import EphemeralSessionStore


class FakeTime:
    def __init__(self, now=1000.0):
        self.now = now

    def time(self):
        return self.now


def _check(events, clock, key="ip:1", limit=2, window=60):
    return rate_limit_service.check_rate_limit(
        key,
        limit,
        window,
        in_memory_events=events,
        in_memory_lock=threading.Lock(),
        time_module=clock,
    )


def test_sliding_window_allows_limit_then_reports_retry_after():
    events = {}
    clock = FakeTime()

    assert _check(events, clock) == (True, 0)
    clock.now += 10
    assert _check(events, clock) == (True, 0)
    clock.now += 10
    allowed, retry_after = _check(events, clock)

    assert allowed is False
    assert retry_after == 40
    assert len(events["ip:1"]) == 2


def test_window_slides_as_old_hits_expire():
    events = {}
    clock = FakeTime()
    _check(events, clock)
    clock.now += 30
    _check(events, clock)

    clock.now += 31
    assert _check(events, clock) == (True, 0)
    assert _check(events, clock)[0] is False


def test_keys_are_independent():
    events = {}
    clock = FakeTime()
    _check(events, clock, key="a", limit=1)
    assert _check(events, clock, key="a", limit=1)[0] is False
    assert _check(events, clock, key="b", limit=1)[0] is True


def test_prune_drops_stale_keys_only():
    clock = FakeTime(5000.0)
    events = {"old": [100.0], "fresh": [4990.0], "empty": []}

    dropped = rate_limit_service.prune_rate_limit_events(events, threading.Lock(), 600, clock)

    assert dropped == 2
    assert list(events) == ["fresh"]


@pytest.mark.parametrize("value,expected", [
    ("203.0.113.5", "203.0.113.5"),
    ("  User@Example.COM ", "user@example.com"),
    ("a b/c", "a_b_c"),
    ("", "anon"),
    (None, "anon"),
])
def test_normalize_key_part(value, expected):
    assert rate_limit_service.normalize_rate_limit_key_part(value) == expected


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_store_evicts_oldest_when_full():
    store = EphemeralSessionStore(capacity=2, ttl_seconds=3600, clock=FakeClock())
    first, _ = store.create("one", [], "t1")
    second, _ = store.create("two", [], "t2")
    third, _ = store.create("three", [], "t3")

    assert len(store) == 2
    with pytest.raises(NotFoundError):
        store.get(first)
    assert store.get(second)["sessionName"] == "two"
    assert store.get(third)["transcript"] == "t3"


def test_store_expires_sessions_after_ttl():
    clock = FakeClock()
    store = EphemeralSessionStore(capacity=10, ttl_seconds=60, clock=clock)
    session_id, session = store.create("cells", [{"question": "q", "answer": "a"}], "transcript")
    assert session["flashcards"] == [{"question": "q", "answer": "a"}]

    clock.now = 59
    assert store.get(session_id)["sessionName"] == "cells"

    clock.now = 60
    with pytest.raises(NotFoundError) as excinfo:
        store.get(session_id)
    assert excinfo.value.message == "Ephemeral flashcard session not found."
    assert len(store) == 0


def test_store_delete_and_unknown_ids():
    store = EphemeralSessionStore(clock=FakeClock())
    session_id, _ = store.create("cells", [], "t")
    assert store.delete(session_id) is True
    with pytest.raises(NotFoundError):
        store.delete(session_id)
    with pytest.raises(NotFoundError):
        store.get(None)
