"""
Tests for NoteService.

Covers:
- validation before any store call
- room delivery of new notes
- mention fan-out through the notification service
"""

from unittest.mock import MagicMock

import pytest

from domains.collab_hub.core.store import InMemoryNoteStore
from domains.collab_hub.services import NoteService
from domains.core import NotFoundError, ValidationError

from conftest import ALICE, BOB, RecordingSession


class TestCreateNote:
    """Tests for create_note()."""

    @pytest.mark.asyncio
    async def test_mention_bob_creates_one_notification(self, note_service, notification_store):
        note = await note_service.create_note("c1", ALICE, "@Bob please review")

        assert note.raw_text == "@Bob please review"
        assert note.author_id == "u1"
        assert note.author_name == "Alice"

        records = notification_store.list_notifications("u2")
        assert len(records) == 1
        assert records[0].note_id == note.id
        assert records[0].candidate_id == "c1"
        assert records[0].is_read is False
        assert notification_store.list_notifications("u1") == []

    @pytest.mark.asyncio
    async def test_self_mention_not_notified(self, note_service, notification_store):
        await note_service.create_note("c1", ALICE, "@Alice reminder, @bob too")
        assert notification_store.list_notifications("u1") == []
        assert len(notification_store.list_notifications("u2")) == 1

    @pytest.mark.asyncio
    async def test_repeated_mention_single_record(self, note_service, notification_store):
        await note_service.create_note("c1", ALICE, "@Bob @bob @BOB")
        assert len(notification_store.list_notifications("u2")) == 1

    @pytest.mark.asyncio
    async def test_text_is_trimmed(self, note_service):
        note = await note_service.create_note("c1", BOB, "  looks good  \n")
        assert note.raw_text == "looks good"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t "])
    async def test_blank_rejected_before_store(self, candidates, directory, broadcaster, notification_service, text):
        note_store = MagicMock()
        candidate_store = MagicMock()
        service = NoteService(note_store, candidate_store, directory, broadcaster, notification_service)

        with pytest.raises(ValidationError) as exc_info:
            await service.create_note("c1", ALICE, text)

        assert exc_info.value.field == "raw_text"
        note_store.create_note.assert_not_called()
        candidate_store.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_candidate(self, note_service, note_store):
        with pytest.raises(NotFoundError):
            await note_service.create_note("c404", ALICE, "hello")
        assert note_store.list_notes("c404") == []

    @pytest.mark.asyncio
    async def test_room_members_receive_note(self, note_service, broadcaster):
        watcher = RecordingSession("u3", "s-carol")
        broadcaster.join("c1", watcher)

        note = await note_service.create_note("c1", ALICE, "first")

        [event] = watcher.of_type("new-note")
        assert event.candidate_id == "c1"
        assert event.note.id == note.id

    @pytest.mark.asyncio
    async def test_mentioned_user_gets_push(self, note_service, broadcaster):
        bob_tab = RecordingSession("u2", "s-bob")
        broadcaster.connect(bob_tab)

        await note_service.create_note("c1", ALICE, "@Bob please review")

        [event] = bob_tab.of_type("notification")
        assert event.notification.recipient_user_id == "u2"
        assert event.notification.candidate_name == "Jane Doe"

    @pytest.mark.asyncio
    async def test_fan_out_failure_keeps_note(self, note_store, candidates, directory, broadcaster):
        notifications = MagicMock()
        notifications.fan_out.side_effect = RuntimeError("boom")
        service = NoteService(note_store, candidates, directory, broadcaster, notifications)

        note = await service.create_note("c1", ALICE, "@Bob ping")

        assert note_store.get(note.id) is not None


class TestListNotes:
    """Tests for list_notes()."""

    @pytest.mark.asyncio
    async def test_creation_order(self, note_service):
        first = await note_service.create_note("c1", ALICE, "one")
        second = await note_service.create_note("c1", BOB, "two")
        await note_service.create_note("c2", BOB, "elsewhere")

        notes = await note_service.list_notes("c1")
        assert [n.id for n in notes] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_unknown_candidate(self, note_service):
        with pytest.raises(NotFoundError):
            await note_service.list_notes("c404")

    @pytest.mark.asyncio
    async def test_empty(self, candidates, directory, broadcaster, notification_service):
        service = NoteService(InMemoryNoteStore(), candidates, directory, broadcaster, notification_service)
        assert await service.list_notes("c2") == []
