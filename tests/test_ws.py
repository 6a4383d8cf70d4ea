"""
Tests for the WebSocket endpoint.

HTTP requests and WebSocket sessions share the TestClient's event loop,
so a note created over HTTP is pushed to the open sockets.
"""

import pytest
from starlette.websockets import WebSocketDisconnect

from app.routes.v1.ws import WS_CLOSE_UNAUTHORIZED

from conftest import TOKENS, auth


def ws_url(user_id: str) -> str:
    return f"/api/v1/ws?token={TOKENS[user_id]}"


def join(ws, candidate_id: str) -> dict:
    ws.send_json({"type": "join-room", "candidate_id": candidate_id})
    return ws.receive_json()


class TestHandshake:
    """Tests for connection authentication."""

    def test_bad_token_rejected(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/api/v1/ws?token=nope") as ws:
                ws.receive_json()
        assert exc_info.value.code == WS_CLOSE_UNAUTHORIZED

    def test_missing_token_rejected(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/api/v1/ws") as ws:
                ws.receive_json()

    def test_ping(self, client):
        with client.websocket_connect(ws_url("u1")) as ws:
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}


class TestCommands:
    """Tests for room commands."""

    def test_join_acknowledged_and_idempotent(self, client):
        with client.websocket_connect(ws_url("u1")) as ws:
            assert join(ws, "c1") == {"type": "room-joined", "candidate_id": "c1", "outcome": "applied"}
            assert join(ws, "c1")["outcome"] == "conflict_ignored"

    def test_join_unknown_candidate(self, client):
        with client.websocket_connect(ws_url("u1")) as ws:
            event = join(ws, "c404")
            assert event["type"] == "error"
            assert event["code"] == "NOT_FOUND"

    def test_leave_without_join(self, client):
        with client.websocket_connect(ws_url("u1")) as ws:
            ws.send_json({"type": "leave-room", "candidate_id": "c1"})
            assert ws.receive_json()["outcome"] == "conflict_ignored"

    def test_invalid_frame_keeps_connection(self, client):
        with client.websocket_connect(ws_url("u1")) as ws:
            ws.send_text("not json")
            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["code"] == "VALIDATION_ERROR"

            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"


class TestPush:
    """Tests for note and notification delivery."""

    def test_room_member_receives_new_note(self, client):
        with client.websocket_connect(ws_url("u3")) as ws:
            join(ws, "c1")
            client.post("/api/v1/candidates/c1/notes", json={"raw_text": "first"}, headers=auth("u1"))

            event = ws.receive_json()
            assert event["type"] == "new-note"
            assert event["candidate_id"] == "c1"
            assert event["note"]["raw_text"] == "first"
            assert event["note"]["author_name"] == "Alice"

    def test_mention_reaches_every_session_of_recipient(self, client):
        with client.websocket_connect(ws_url("u2")) as tab_a, client.websocket_connect(ws_url("u2")) as tab_b:
            # 确认两个会话都已注册
            for tab in (tab_a, tab_b):
                tab.send_json({"type": "ping"})
                tab.receive_json()

            client.post(
                "/api/v1/candidates/c1/notes",
                json={"raw_text": "@Bob please review"},
                headers=auth("u1"),
            )

            first = tab_a.receive_json()
            second = tab_b.receive_json()
            assert first["type"] == second["type"] == "notification"
            assert first["notification"]["id"] == second["notification"]["id"]
            assert first["user_id"] == "u2"

    def test_read_state_synced(self, client):
        with client.websocket_connect(ws_url("u2")) as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()

            client.post("/api/v1/candidates/c1/notes", json={"raw_text": "@Bob hi"}, headers=auth("u1"))
            record = ws.receive_json()["notification"]

            client.patch(f"/api/v1/notifications/{record['id']}/read", headers=auth("u2"))
            event = ws.receive_json()
            assert event == {"type": "notification-read", "user_id": "u2", "notification_ids": [record["id"]]}
