"""
Tests for real-time event validation at the transport boundary.
"""

import json

import pytest

from domains.collab_hub.core.events import (
    ErrorEvent,
    JoinRoom,
    NoteEvent,
    NotificationEvent,
    Ping,
    note_event,
    notification_event,
    parse_client_command,
    parse_server_event,
)
from domains.core import ValidationError

from conftest import make_note, make_record


class TestServerEvents:
    """Tests for parse_server_event()."""

    def test_note_event_from_json(self):
        event = note_event(make_note("n1", text="@Bob hi"))
        parsed = parse_server_event(event.model_dump_json())

        assert isinstance(parsed, NoteEvent)
        assert parsed.note.to_note().raw_text == "@Bob hi"

    def test_notification_event_targets_recipient(self):
        event = notification_event(make_record("r1", "n1", recipient="u3"))
        assert event.user_id == "u3"

        parsed = parse_server_event(event.model_dump())
        assert isinstance(parsed, NotificationEvent)
        assert parsed.notification.to_record().identity == ("n1", "u3")

    def test_error_event(self):
        parsed = parse_server_event({"type": "error", "code": "NOT_FOUND", "message": "x"})
        assert isinstance(parsed, ErrorEvent)

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_server_event({"type": "mystery"})

    def test_missing_field_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_server_event({"type": "new-note", "candidate_id": "c1"})
        assert exc_info.value.errors

    def test_malformed_json_rejected(self):
        with pytest.raises(ValidationError):
            parse_server_event("{not json")


class TestClientCommands:
    """Tests for parse_client_command()."""

    def test_join_room(self):
        command = parse_client_command(json.dumps({"type": "join-room", "candidate_id": "c1"}))
        assert isinstance(command, JoinRoom)
        assert command.candidate_id == "c1"

    def test_ping(self):
        assert isinstance(parse_client_command({"type": "ping"}), Ping)

    def test_empty_candidate_rejected(self):
        with pytest.raises(ValidationError):
            parse_client_command({"type": "join-room", "candidate_id": ""})

    def test_server_event_is_not_a_command(self):
        with pytest.raises(ValidationError):
            parse_client_command({"type": "pong"})
