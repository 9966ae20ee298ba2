#!/usr/bin/env python3
"""
Test script for session stores.
"""
import os
from datetime import datetime, timedelta

import pytest

from stacktracker.core.exceptions import PersistenceError
from stacktracker.core.lifecycle import SessionLifecycleManager
from stacktracker.core.persistence import InMemorySessionStore, JsonSessionStore
from stacktracker.models import (
    BlindLevel,
    SessionKind,
    SessionRecord,
    SessionStatus,
)


def test_json_store_save_and_load(tmp_path):
    """Test that saved sessions load back with their children."""
    print("=== Testing JSON Session Store ===")

    store = JsonSessionStore(tmp_path / "sessions")
    manager = SessionLifecycleManager(store)
    record = manager.new_tournament(name="Main Event", buy_in=200, blind_levels=[
        BlindLevel(level_number=1, small_blind=100, big_blind=200),
    ])
    manager.start(record)
    manager.record_observation(24000)
    manager.record_hand_note("Flopped a set")

    files = list((tmp_path / "sessions").glob("*.json"))
    assert len(files) == 1
    assert files[0].name == record.session_filename()

    fresh = JsonSessionStore(tmp_path / "sessions")
    loaded = fresh.load_all()
    assert len(loaded) == 1
    restored = loaded[0]
    assert restored.id == record.id
    assert restored.status == SessionStatus.ACTIVE
    assert [e.chip_count for e in restored.stack_entries] == [20000, 24000]
    assert restored.hand_notes[0].description_text == "Flopped a set"
    assert fresh.in_progress() == [restored]


def test_crash_recovery_reattaches_session(tmp_path):
    store = JsonSessionStore(tmp_path)
    manager = SessionLifecycleManager(store)
    record = manager.new_cash_session(buy_in_total=300)
    manager.start(record)
    manager.pause()

    reloaded = JsonSessionStore(tmp_path)
    reloaded.load_all()
    recovered = SessionLifecycleManager(reloaded)
    recovered.attach(reloaded.in_progress()[0])
    recovered.resume()
    recovered.complete(500)

    assert JsonSessionStore(tmp_path).load_all()[0].profit == 200


def test_delete_removes_file(tmp_path):
    store = JsonSessionStore(tmp_path)
    record = SessionRecord(kind=SessionKind.CASH)
    store.insert(record)
    store.save()
    assert (tmp_path / record.session_filename()).exists()

    store.delete(record)
    assert (tmp_path / record.session_filename()).exists()
    store.save()
    assert not (tmp_path / record.session_filename()).exists()
    assert store.get(record.id) is None


def test_list_records_newest_first(tmp_path):
    store = JsonSessionStore(tmp_path)
    base = datetime(2026, 3, 1)
    old_cash = SessionRecord(kind=SessionKind.CASH, start_time=base)
    new_cash = SessionRecord(kind=SessionKind.CASH, start_time=base + timedelta(days=2))
    tournament = SessionRecord(kind=SessionKind.TOURNAMENT, start_time=base + timedelta(days=1),
                               status=SessionStatus.COMPLETED)
    for record in (old_cash, new_cash, tournament):
        store.insert(record)

    assert store.list_records() == [new_cash, tournament, old_cash]
    assert store.list_records(kind=SessionKind.CASH) == [new_cash, old_cash]
    assert store.list_records(status=SessionStatus.COMPLETED) == [tournament]


def test_corrupt_file_is_skipped(tmp_path):
    good = SessionRecord(kind=SessionKind.CASH)
    store = JsonSessionStore(tmp_path)
    store.insert(good)
    store.save()
    (tmp_path / "broken.json").write_text("{not json", encoding='utf-8')

    loaded = JsonSessionStore(tmp_path).load_all()
    assert [r.id for r in loaded] == [good.id]


@pytest.mark.skipif(os.name == "nt" or (hasattr(os, "geteuid") and os.geteuid() == 0),
                    reason="needs POSIX permissions enforced for the current user")
def test_unwritable_session_file_raises_persistence_error(tmp_path):
    """The mutation stays applied when the save fails."""
    store = JsonSessionStore(tmp_path)
    manager = SessionLifecycleManager(store)
    record = manager.new_cash_session(buy_in_total=100)
    manager.start(record)

    session_file = tmp_path / record.session_filename()
    session_file.chmod(0o400)
    try:
        with pytest.raises(PersistenceError):
            manager.add_on(50)
        assert record.buy_in_total == 150
    finally:
        session_file.chmod(0o600)


def test_save_to_file_path_raises_persistence_error(tmp_path):
    not_a_dir = tmp_path / "file"
    not_a_dir.write_text("x", encoding='utf-8')
    store = JsonSessionStore(not_a_dir)
    store.insert(SessionRecord(kind=SessionKind.CASH))

    with pytest.raises(PersistenceError):
        store.save()


def test_in_memory_store():
    store = InMemorySessionStore()
    record = SessionRecord(kind=SessionKind.CASH)
    store.insert(record)
    store.save()
    assert store.get(record.id) is record
    assert store.save_count == 1

    store.delete(record)
    assert store.all() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
