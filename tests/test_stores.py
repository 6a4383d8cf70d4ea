"""
Tests for the in-memory collaborator stores and seed loading.
"""

import json

from domains.collab_hub.core.models import NotificationRecord
from domains.collab_hub.core.store import (
    InMemoryCandidateStore,
    InMemoryNoteStore,
    InMemoryNotificationStore,
    InMemoryUserDirectory,
    load_seed,
)

from conftest import make_record


class TestNoteStore:
    """Tests for InMemoryNoteStore."""

    def test_create_assigns_id_and_timestamp(self):
        store = InMemoryNoteStore()
        note = store.create_note("c1", "u1", "hello", author_name="Alice")
        assert note.id
        assert note.created_at is not None
        assert note.author_name == "Alice"
        assert store.get(note.id) == note

    def test_list_in_creation_order(self):
        store = InMemoryNoteStore()
        ids = [store.create_note("c1", "u1", f"note {i}").id for i in range(3)]
        store.create_note("c2", "u1", "other")
        assert [n.id for n in store.list_notes("c1")] == ids

    def test_unknown(self):
        store = InMemoryNoteStore()
        assert store.list_notes("c9") == []
        assert store.get("missing") is None

    def test_returned_notes_are_copies(self):
        store = InMemoryNoteStore()
        note = store.create_note("c1", "u1", "hello")
        note.raw_text = "changed"
        assert store.get(note.id).raw_text == "hello"


class TestNotificationStore:
    """Tests for InMemoryNotificationStore."""

    def test_add_is_idempotent_per_note_and_recipient(self):
        store = InMemoryNotificationStore()
        first, created = store.add(make_record("", "n1"))
        again, created_again = store.add(make_record("", "n1"))

        assert created is True
        assert created_again is False
        assert first.id and again.id == first.id
        assert len(store.list_notifications("u2")) == 1

    def test_same_note_different_recipients(self):
        store = InMemoryNotificationStore()
        store.add(make_record("", "n1", recipient="u2"))
        _, created = store.add(make_record("", "n1", recipient="u3"))
        assert created is True

    def test_list_newest_first_and_unread_filter(self):
        store = InMemoryNotificationStore()
        old, _ = store.add(make_record("", "n1"))
        new, _ = store.add(make_record("", "n2"))
        store.mark_read(old.id)

        assert [r.id for r in store.list_notifications("u2")] == [new.id, old.id]
        assert [r.id for r in store.list_notifications("u2", unread_only=True)] == [new.id]
        assert store.list_notifications("u3") == []

    def test_mark_read_reports_change(self):
        store = InMemoryNotificationStore()
        record, _ = store.add(make_record("", "n1"))

        assert store.mark_read(record.id)[1] is True
        updated, changed = store.mark_read(record.id)
        assert changed is False
        assert updated.is_read is True
        assert store.mark_read("missing") is None

    def test_mark_all_read_only_touches_unread(self):
        store = InMemoryNotificationStore()
        a, _ = store.add(make_record("", "n1"))
        b, _ = store.add(make_record("", "n2"))
        other, _ = store.add(make_record("", "n3", recipient="u3"))
        store.mark_read(a.id)

        assert store.mark_all_read("u2") == [b.id]
        assert store.mark_all_read("u2") == []
        assert store.get(other.id).is_read is False

    def test_keeps_given_id(self):
        store = InMemoryNotificationStore()
        record, _ = store.add(NotificationRecord(id="r1", note_id="n1", candidate_id="c1", recipient_user_id="u2"))
        assert record.id == "r1"


class TestDirectoryAndCandidates:
    """Tests for InMemoryUserDirectory and InMemoryCandidateStore."""

    def test_authenticate(self, directory):
        assert directory.authenticate("t-bob").id == "u2"
        assert directory.authenticate("nope") is None

    def test_list_mentionable_users_in_insertion_order(self, directory):
        assert [u.id for u in directory.list_mentionable_users()] == ["u1", "u2", "u3"]

    def test_candidates(self, candidates):
        assert candidates.get("c1").name == "Jane Doe"
        assert candidates.get("c9") is None
        assert [c.id for c in candidates.list_candidates()] == ["c1", "c2"]


class TestLoadSeed:
    """Tests for load_seed()."""

    def test_loads_users_tokens_and_candidates(self, tmp_path):
        seed = tmp_path / "seed.json"
        seed.write_text(
            json.dumps(
                {
                    "users": [{"id": "u1", "display_name": "Alice", "token": "t1"}],
                    "candidates": [{"id": "c1", "name": "Jane Doe", "email": "jane@example.com"}],
                }
            ),
            encoding="utf-8",
        )
        candidates = InMemoryCandidateStore()
        directory = InMemoryUserDirectory()

        counts = load_seed(seed, candidates, directory)

        assert counts == {"users": 1, "candidates": 1}
        assert directory.authenticate("t1").display_name == "Alice"
        assert candidates.get("c1").email == "jane@example.com"
