"""Tests for StateStore and its backends."""

from datetime import timedelta
import logging

import pytest

from rolebot.errors import StateStoreError
from rolebot.models import RequestContext, StateRecord, utc_now
from rolebot.state import FileStateBackend, MemoryStateBackend, StateStore


class TestStateStore:
    def test_load_without_conversation_is_noop(self, state_store):
        context = RequestContext(state={"kept": True})

        state_store.load(context)

        assert context.state == {"kept": True}

    def test_load_unknown_conversation_gives_empty_state(self, state_store):
        context = RequestContext(conversation_id="new", state={"stale": 1})

        state_store.load(context)

        assert context.state == {}
        assert context.session_data == {}

    def test_save_then_load(self, state_store):
        saved = RequestContext(
            conversation_id="c1", user_id="u1", state={"topic": "tea"}, session_data={"s": 1}
        )
        state_store.save(saved)

        loaded = RequestContext(conversation_id="c1")
        state_store.load(loaded)

        assert loaded.state == {"topic": "tea"}
        assert loaded.session_data == {"s": 1}

    def test_loaded_state_is_a_copy(self, state_store):
        state_store.save(RequestContext(conversation_id="c1", state={"items": [1]}))

        first = RequestContext(conversation_id="c1")
        state_store.load(first)
        first.state["items"].append(2)

        second = RequestContext(conversation_id="c1")
        state_store.load(second)

        assert second.state == {"items": [1]}

    def test_save_without_conversation_is_noop(self, state_store):
        state_store.save(RequestContext(state={"k": 1}))
        assert state_store.list_conversations() == []

    def test_clear(self, state_store):
        state_store.save(RequestContext(conversation_id="c1", state={"k": 1}))

        state_store.clear("c1")

        context = RequestContext(conversation_id="c1")
        state_store.load(context)
        assert context.state == {}
        assert state_store.list_conversations() == []

    def test_clear_requires_id(self, state_store):
        with pytest.raises(ValueError):
            state_store.clear("")

    def test_save_failure_raises_store_error(self):
        class BrokenBackend(MemoryStateBackend):
            def put(self, record):
                raise RuntimeError("unavailable")

        store = StateStore(BrokenBackend())

        with pytest.raises(StateStoreError):
            store.save(RequestContext(conversation_id="c1"))

    def test_load_failure_degrades_to_empty_state(self, caplog):
        class BrokenBackend(MemoryStateBackend):
            def get(self, conversation_id):
                raise StateStoreError("unreadable")

        store = StateStore(BrokenBackend())
        context = RequestContext(conversation_id="c1", state={"stale": 1})

        with caplog.at_level(logging.WARNING):
            store.load(context)

        assert context.state == {}
        assert "continuing with empty state" in caplog.text

    def test_cleanup_older_than(self, state_store):
        state_store.backend.put(
            StateRecord(conversation_id="old", last_updated=utc_now() - timedelta(days=3))
        )
        state_store.save(RequestContext(conversation_id="fresh", state={"k": 1}))

        deleted = state_store.cleanup_older_than(timedelta(days=1))

        assert deleted == 1
        assert state_store.list_conversations() == ["fresh"]

    def test_cleanup_drops_cached_entries(self, state_store):
        state_store.save(RequestContext(conversation_id="c1", state={"k": 1}))

        deleted = state_store.cleanup_older_than(timedelta(seconds=-1))

        context = RequestContext(conversation_id="c1")
        state_store.load(context)
        assert deleted == 1
        assert context.state == {}


class TestFileStateBackend:
    def test_creates_directory(self, tmp_path):
        state_dir = tmp_path / "nested" / "state"
        FileStateBackend(state_dir)
        assert state_dir.is_dir()

    def test_round_trip_through_disk(self, tmp_path):
        StateStore(FileStateBackend(tmp_path)).save(
            RequestContext(conversation_id="c1", state={"topic": "tea"})
        )

        # Fresh store: nothing cached, must read the file
        context = RequestContext(conversation_id="c1")
        StateStore(FileStateBackend(tmp_path)).load(context)

        assert context.state == {"topic": "tea"}
        assert (tmp_path / "state_c1.json").exists()

    def test_unsafe_ids_are_sanitized(self, tmp_path):
        backend = FileStateBackend(tmp_path)
        backend.put(StateRecord(conversation_id="team/chat:1"))

        assert len(list(tmp_path.glob("state_team_chat_1_*.json"))) == 1
        assert backend.get("team/chat:1").conversation_id == "team/chat:1"
        assert backend.list_ids() == ["team/chat:1"]

    def test_sanitized_ids_do_not_share_state(self, tmp_path):
        StateStore(FileStateBackend(tmp_path)).save(
            RequestContext(conversation_id="a/b", state={"secret": "alice"})
        )

        context = RequestContext(conversation_id="a_b")
        StateStore(FileStateBackend(tmp_path)).load(context)

        assert context.state == {}
        assert len(list(tmp_path.glob("state_*.json"))) == 1

    def test_record_for_another_conversation_is_ignored(self, tmp_path):
        (tmp_path / "state_c1.json").write_text(
            StateRecord(conversation_id="c2", state={"k": 1}).model_dump_json(),
            encoding="utf-8",
        )

        assert FileStateBackend(tmp_path).get("c1") is None

    def test_missing_record(self, tmp_path):
        backend = FileStateBackend(tmp_path)

        assert backend.get("nothing") is None
        assert backend.delete("nothing") is False

    def test_corrupted_file_raises_and_load_degrades(self, tmp_path):
        (tmp_path / "state_c1.json").write_text("{not json", encoding="utf-8")
        backend = FileStateBackend(tmp_path)

        with pytest.raises(StateStoreError):
            backend.get("c1")

        context = RequestContext(conversation_id="c1", state={"stale": 1})
        StateStore(backend).load(context)
        assert context.state == {}

    def test_listing_skips_unreadable_files(self, tmp_path):
        backend = FileStateBackend(tmp_path)
        backend.put(StateRecord(conversation_id="good"))
        (tmp_path / "state_bad.json").write_text("garbage", encoding="utf-8")

        assert backend.list_ids() == ["good"]

    def test_list_older_than(self, tmp_path):
        backend = FileStateBackend(tmp_path)
        backend.put(StateRecord(conversation_id="old", last_updated=utc_now() - timedelta(hours=5)))
        backend.put(StateRecord(conversation_id="new"))

        assert backend.list_older_than(utc_now() - timedelta(hours=1)) == ["old"]
