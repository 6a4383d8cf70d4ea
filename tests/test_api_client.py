"""
Tests for the aiohttp API client.

Covers:
- map_error status to exception mapping
- envelope unwrapping against a local aiohttp server
- client-side validation before any request
- malformed response bodies mapped to ValidationError
"""

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from domains.collab_hub.client.api import FALLBACK_MESSAGE, CollabApiClient, map_error
from domains.collab_hub.client.session import CollabSession
from domains.collab_hub.client.settings import ClientSettings
from domains.core import (
    BusinessError,
    ErrorCategory,
    NotFoundError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)

from conftest import BOB


class TestMapError:
    """Tests for map_error()."""

    def test_401_carries_redirect(self):
        error = map_error(401, {"error": "登录凭证无效", "details": {"redirect": "/sso"}}, "/users")
        assert isinstance(error, UnauthorizedError)
        assert error.redirect == "/sso"
        assert error.message == "登录凭证无效"

    def test_401_default_redirect(self):
        assert map_error(401, None, "/users").redirect == "/login"

    def test_404(self):
        error = map_error(404, {"error": "候选人不存在: c9"}, "/candidates/c9/notes")
        assert isinstance(error, NotFoundError)
        assert error.message == "候选人不存在: c9"

    @pytest.mark.parametrize("status", [400, 422])
    def test_validation(self, status):
        body = {"error": "bad", "details": {"validation_errors": [{"loc": ["raw_text"]}]}}
        error = map_error(status, body, "/x")
        assert isinstance(error, ValidationError)
        assert error.errors == [{"loc": ["raw_text"]}]

    def test_server_error_is_transport(self):
        error = map_error(503, "<html>", "/x")
        assert isinstance(error, TransportError)
        assert FALLBACK_MESSAGE in error.message

    def test_other_status_uses_server_code(self):
        error = map_error(409, {"error": "conflict", "code": "CONFLICT"}, "/x")
        assert isinstance(error, BusinessError)
        assert error.code == "CONFLICT"
        assert error.category == ErrorCategory.BUSINESS

    def test_other_status_without_body(self):
        error = map_error(418, None, "/x")
        assert error.code == "REQUEST_FAILED"
        assert error.message == FALLBACK_MESSAGE


def make_app() -> web.Application:
    async def list_users(request):
        if request.headers.get("Authorization") != "Bearer t-alice":
            return web.json_response(
                {"success": False, "error": "登录已失效", "code": "UNAUTHORIZED", "details": {"redirect": "/login"}},
                status=401,
            )
        return web.json_response(
            {"success": True, "data": [{"id": "u1", "display_name": "Alice", "email": ""}]}
        )

    async def list_notes(request):
        if request.match_info["candidate_id"] == "c-bad":
            return web.json_response({"success": True, "data": [{"id": "n1", "candidate_id": "c-bad"}]})
        if request.match_info["candidate_id"] != "c1":
            return web.json_response({"success": False, "error": "候选人不存在", "code": "NOT_FOUND"}, status=404)
        return web.json_response(
            {
                "success": True,
                "data": [
                    {"id": "n1", "candidate_id": "c1", "author_id": "u1", "raw_text": "@Bob hi",
                     "created_at": "2024-01-01T10:00:00"},
                ],
            }
        )

    async def read_all(request):
        return web.json_response({"success": True, "data": {"notification_ids": ["r1", "r2"], "count": 2}})

    async def list_notifications(request):
        return web.json_response({"success": True, "data": [{"id": "r1", "note_id": "n1", "is_read": "maybe"}]})

    async def read_one(request):
        return web.json_response({"success": True, "data": {"count": 1}})

    app = web.Application()
    app.router.add_get("/api/v1/users", list_users)
    app.router.add_get("/api/v1/candidates/{candidate_id}/notes", list_notes)
    app.router.add_post("/api/v1/notifications/read-all", read_all)
    app.router.add_get("/api/v1/notifications", list_notifications)
    app.router.add_patch("/api/v1/notifications/{record_id}/read", read_one)
    return app


class TestCollabApiClient:
    """Tests for CollabApiClient against a local server."""

    @pytest.mark.asyncio
    async def test_unwraps_envelope(self):
        async with TestServer(make_app()) as server:
            settings = ClientSettings(base_url=str(server.make_url("")))
            async with CollabApiClient("t-alice", settings=settings) as api:
                users = await api.list_users()
                notes = await api.list_notes("c1")
                marked = await api.mark_all_read()

        assert [u.display_name for u in users] == ["Alice"]
        assert notes[0].raw_text == "@Bob hi"
        assert notes[0].created_at is not None
        assert marked == ["r1", "r2"]

    @pytest.mark.asyncio
    async def test_bad_token_raises_unauthorized(self):
        async with TestServer(make_app()) as server:
            settings = ClientSettings(base_url=str(server.make_url("")))
            async with CollabApiClient("wrong", settings=settings) as api:
                with pytest.raises(UnauthorizedError) as exc_info:
                    await api.list_users()
        assert exc_info.value.redirect == "/login"

    @pytest.mark.asyncio
    async def test_not_found(self):
        async with TestServer(make_app()) as server:
            settings = ClientSettings(base_url=str(server.make_url("")))
            async with CollabApiClient("t-alice", settings=settings) as api:
                with pytest.raises(NotFoundError):
                    await api.list_notes("c9")

    @pytest.mark.asyncio
    async def test_malformed_payload_raises_validation_error(self):
        async with TestServer(make_app()) as server:
            settings = ClientSettings(base_url=str(server.make_url("")))
            async with CollabApiClient("t-alice", settings=settings) as api:
                with pytest.raises(ValidationError) as notes_error:
                    await api.list_notes("c-bad")
                with pytest.raises(ValidationError) as inbox_error:
                    await api.list_notifications()
                with pytest.raises(ValidationError):
                    await api.mark_read("r1")

        assert notes_error.value.http_status_code == 400
        fields = {tuple(e["loc"]) for e in inbox_error.value.errors}
        assert ("is_read",) in fields
        assert ("recipient_user_id",) in fields

    @pytest.mark.asyncio
    async def test_malformed_payload_degrades_session_reads(self):
        async with TestServer(make_app()) as server:
            settings = ClientSettings(base_url=str(server.make_url("")))
            async with CollabApiClient("t-alice", settings=settings) as api:
                session = CollabSession(api, BOB)
                inbox = await session.refresh_notifications()
                history = await session.join_room("c-bad")

        assert not inbox.ok and inbox.items == []
        assert isinstance(inbox.error, ValidationError)
        assert not history.ok
        assert isinstance(history.error, ValidationError)
        assert len(session.inbox) == 0
        assert len(session.timelines["c-bad"]) == 0

    @pytest.mark.asyncio
    async def test_unreachable_server_is_transport_error(self, unused_tcp_port):
        settings = ClientSettings(base_url=f"http://127.0.0.1:{unused_tcp_port}", request_timeout=2)
        async with CollabApiClient("t-alice", settings=settings) as api:
            with pytest.raises(TransportError):
                await api.list_users()

    @pytest.mark.asyncio
    async def test_blank_note_rejected_without_request(self):
        api = CollabApiClient("t-alice", settings=ClientSettings())
        with pytest.raises(ValidationError):
            await api.create_note("c1", "   ")
        assert api._session is None


class TestClientSettings:
    """Tests for ClientSettings URLs."""

    def test_urls(self):
        settings = ClientSettings(base_url="https://collab.example.com/")
        assert settings.api_url == "https://collab.example.com/api/v1"
        assert settings.ws_url == "wss://collab.example.com/api/v1/ws"
