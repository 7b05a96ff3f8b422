import json

import pytest

from conftest import make_entity
from twitchup.storage.watch_store import StreamSession, WatchStore


def _session(started_at="2024-01-01T00:00:00Z"):
    return StreamSession(title="t", game_name="g", viewer_count=1, thumbnail_url="u", started_at=started_at)


def test_missing_file_starts_empty(tmp_path):
    store = WatchStore(tmp_path / "nested" / "streamers.json")
    assert store.list() == []
    assert not (tmp_path / "nested" / "streamers.json").exists()


def test_add_inserts_offline_without_session(store):
    entity = make_entity()
    entity.is_live = True
    entity.current_stream = _session()
    assert store.add(entity) is True
    stored = store.get("123")
    assert stored.is_live is False
    assert stored.current_stream is None
    assert stored.added_at.endswith("Z")


def test_add_duplicate_returns_false_and_leaves_store_unchanged(store):
    store.add(make_entity())
    before = store.path.read_text(encoding="utf-8")
    assert store.add(make_entity(login="other")) is False
    assert [e.login for e in store.list()] == ["alice"]
    assert store.path.read_text(encoding="utf-8") == before


def test_ids_stay_unique_over_add_remove_sequences(store):
    for entity_id in ["1", "2", "1", "3", "2"]:
        store.add(make_entity(entity_id, f"user{entity_id}"))
    store.remove("2")
    store.add(make_entity("2", "user2"))
    store.add(make_entity("2", "user2"))
    ids = [e.id for e in store.list()]
    assert ids == ["1", "3", "2"]
    assert len(ids) == len(set(ids))


def test_remove_drops_entity_and_ledger_entry(store):
    store.add(make_entity())
    store.mark_notified("123", "2024-01-01T00:00:00Z")
    assert store.remove("123") is True
    assert store.get("123") is None
    assert store.last_notified("123") is None
    data = json.loads(store.path.read_text(encoding="utf-8"))
    assert data == {"streamers": [], "lastNotified": {}}


def test_remove_absent_leaves_store_and_ledger_unchanged(store):
    store.add(make_entity())
    store.mark_notified("123", "2024-01-01T00:00:00Z")
    before = store.path.read_text(encoding="utf-8")
    assert store.remove("999") is False
    assert store.path.read_text(encoding="utf-8") == before
    assert store.last_notified("123") == "2024-01-01T00:00:00Z"


def test_set_live_state_unknown_returns_none(store):
    assert store.set_live_state("nope", False, None) is None


def test_set_live_state_attaches_and_clears_session(store):
    store.add(make_entity())
    live = store.set_live_state("123", True, _session())
    assert live.is_live and live.current_stream.started_at == "2024-01-01T00:00:00Z"
    offline = store.set_live_state("123", False, _session())
    assert offline.is_live is False
    assert offline.current_stream is None


def test_live_without_session_is_rejected(store):
    store.add(make_entity())
    with pytest.raises(ValueError):
        store.set_live_state("123", True, None)
    assert store.get("123").is_live is False


def test_repeated_identical_updates_are_idempotent(store):
    store.add(make_entity())
    store.set_live_state("123", True, _session())
    first = store.path.read_text(encoding="utf-8")
    store.set_live_state("123", True, _session())
    assert store.path.read_text(encoding="utf-8") == first


def test_mark_notified_unknown_is_ignored(store):
    assert store.mark_notified("ghost", "2024-01-01T00:00:00Z") is False
    assert store.last_notified("ghost") is None


def test_state_survives_reload(store):
    store.add(make_entity())
    store.add(make_entity("456", "bob"))
    store.record("123", True, _session(), notified_at="2024-01-01T00:00:00Z")
    reloaded = WatchStore(store.path)
    assert [e.id for e in reloaded.list()] == ["123", "456"]
    assert reloaded.get("123").is_live is True
    assert reloaded.get("123").current_stream == _session()
    assert reloaded.last_notified("123") == "2024-01-01T00:00:00Z"
    assert reloaded.find_by_login("BOB").id == "456"


def test_corrupt_file_is_treated_as_empty(tmp_path):
    path = tmp_path / "streamers.json"
    path.write_text("{not json", encoding="utf-8")
    assert WatchStore(path).list() == []


def test_failed_write_leaves_memory_unchanged(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = WatchStore(blocker / "streamers.json")
    with pytest.raises(OSError):
        store.add(make_entity())
    assert store.list() == []


def test_failed_write_keeps_entity_and_ledger(store, tmp_path):
    store.add(make_entity())
    store.record("123", True, _session(), notified_at="2024-01-01T00:00:00Z")
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store.path = blocker / "streamers.json"

    with pytest.raises(OSError):
        store.record("123", False, None, notified_at="2024-02-01T00:00:00Z")
    with pytest.raises(OSError):
        store.remove("123")
    with pytest.raises(OSError):
        store.mark_notified("123", "2024-03-01T00:00:00Z")

    assert store.get("123").is_live is True
    assert store.get("123").current_stream == _session()
    assert store.last_notified("123") == "2024-01-01T00:00:00Z"


@pytest.mark.parametrize("content", [
    "[]",
    '{"streamers": [{"login": "no-id"}]}',
    '{"streamers": [{"id": "1", "current_stream": {"title": "t", "bogus": 1}}]}',
    '{"streamers": "oops"}',
])
def test_malformed_document_is_treated_as_empty(tmp_path, content):
    path = tmp_path / "streamers.json"
    path.write_text(content, encoding="utf-8")
    store = WatchStore(path)
    assert store.list() == []
    assert store.last_notified("1") is None
