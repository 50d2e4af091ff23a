"""
Contract tests run against every thread store implementation.
"""

from __future__ import annotations

import threading

from chatrelay.domain.entities.message import Direction


def test_unknown_sender_has_empty_thread(store):
    assert store.list_ordered("910000000000") == []
    assert store.get_presence("910000000000") is None


def test_append_assigns_increasing_timestamps(store):
    first = store.append("911234567890", "hi", Direction.INBOUND)
    second = store.append("911234567890", "Hello", Direction.OUTBOUND)
    third = store.append("911234567890", "car", Direction.INBOUND)

    assert first.timestamp < second.timestamp < third.timestamp
    assert first.sender == "911234567890"
    assert first.direction is Direction.INBOUND
    assert second.direction is Direction.OUTBOUND


def test_list_ordered_returns_thread_oldest_first(store):
    for body in ("hi", "Hello", "car"):
        direction = Direction.OUTBOUND if body == "Hello" else Direction.INBOUND
        store.append("911234567890", body, direction)
    store.append("919999999999", "other thread", Direction.INBOUND)

    thread = store.list_ordered("911234567890")

    assert [m.body for m in thread] == ["hi", "Hello", "car"]
    assert [m.direction for m in thread] == [Direction.INBOUND, Direction.OUTBOUND, Direction.INBOUND]
    timestamps = [m.timestamp for m in thread]
    assert timestamps == sorted(timestamps)
    # Stable across repeated reads with no new writes.
    assert store.list_ordered("911234567890") == thread


def test_summaries_most_recent_sender_first(store):
    store.append("A", "from a", Direction.INBOUND)
    store.append("B", "from b", Direction.INBOUND)

    summaries = store.list_thread_summaries()

    assert [s.sender for s in summaries] == ["B", "A"]


def test_summary_matches_last_message_of_each_thread(store):
    store.append("A", "hi", Direction.INBOUND)
    store.append("B", "hello", Direction.INBOUND)
    store.append("A", "reply to a", Direction.OUTBOUND)

    summaries = store.list_thread_summaries()

    assert [s.sender for s in summaries] == ["A", "B"]
    for summary in summaries:
        last = store.list_ordered(summary.sender)[-1]
        assert summary.last_message_body == last.body
        assert summary.last_message_at == last.timestamp


def test_summaries_empty_store(store):
    assert store.list_thread_summaries() == []


def test_presence_without_messages_has_no_summary(store):
    store.upsert_presence("C")

    assert store.list_thread_summaries() == []
    assert [p.sender for p in store.list_presence()] == ["C"]


def test_upsert_presence_is_idempotent(store):
    first = store.upsert_presence("911234567890")
    second = store.upsert_presence("911234567890")

    assert second.first_seen_at == first.first_seen_at
    assert second.last_active_at > first.last_active_at
    assert store.get_presence("911234567890") == second
    assert len([p for p in store.list_presence() if p.sender == "911234567890"]) == 1


def test_list_presence_most_recently_active_first(store):
    store.upsert_presence("A")
    store.upsert_presence("B")
    store.upsert_presence("A")

    assert [p.sender for p in store.list_presence()] == ["A", "B"]


def test_remember_event_detects_repeats_within_window(store):
    assert store.remember_event("A", "wamid.1", window=2) is True
    assert store.remember_event("A", "wamid.1", window=2) is False
    # Same id from another sender is a different event.
    assert store.remember_event("B", "wamid.1", window=2) is True

    assert store.remember_event("A", "wamid.2", window=2) is True
    assert store.remember_event("A", "wamid.3", window=2) is True
    # wamid.1 has been evicted from A's window.
    assert store.remember_event("A", "wamid.1", window=2) is True


def test_forget_event_lets_the_id_be_remembered_again(store):
    store.remember_event("A", "wamid.1", window=5)
    store.remember_event("A", "wamid.2", window=5)

    store.forget_event("A", "wamid.1")
    store.forget_event("A", "wamid.unknown")

    assert store.remember_event("A", "wamid.1", window=5) is True
    assert store.remember_event("A", "wamid.2", window=5) is False


def test_concurrent_appends_for_one_sender_stay_ordered(store):
    errors: list[Exception] = []

    def writer(prefix: str) -> None:
        try:
            for i in range(10):
                store.append("911234567890", f"{prefix}-{i}", Direction.INBOUND)
        except Exception as e:  # surfaced through the assertion below
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(name,)) for name in ("w1", "w2", "w3")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    thread = store.list_ordered("911234567890")
    assert len(thread) == 30
    timestamps = [m.timestamp for m in thread]
    assert timestamps == sorted(timestamps)
    assert len(set(timestamps)) == 30
    for prefix in ("w1", "w2", "w3"):
        own = [m.body for m in thread if m.body.startswith(prefix)]
        assert own == [f"{prefix}-{i}" for i in range(10)]
