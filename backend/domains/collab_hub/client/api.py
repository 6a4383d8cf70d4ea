"""
协作服务 HTTP 客户端（aiohttp）

所有接口返回 ApiResponse 信封 {success, data, error, ...}，这里解开信封并映射错误：
- 401 -> UnauthorizedError（调用方应跳转登录页）
- 404 -> NotFoundError
- 400 / 422 -> ValidationError
- 网络不可达 / 超时 -> TransportError
其他失败使用服务端返回的错误信息，没有时使用通用提示。
写操作失败不自动重试。
"""

import asyncio
import json
import logging
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError as PydanticValidationError

from domains.core.exceptions import (
    ApplicationError,
    BusinessError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)

from ..core.events import NoteData, NotificationData
from ..core.models import Note, NotificationRecord, User
from .settings import ClientSettings, get_client_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_MESSAGE = "请求失败，请稍后重试"
SERVICE_NAME = "collab-api"


def _error_message(body: Any) -> str:
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return FALLBACK_MESSAGE


def _decode(path: str, convert: Callable[[], T]) -> T:
    """响应体转领域对象；格式不符时抛 ValidationError，读路径据此降级为空结果"""
    try:
        return convert()
    except PydanticValidationError as e:
        errors = json.loads(e.json(include_url=False))
        raise ValidationError(f"响应格式无效: {path}", errors=errors) from e
    except (KeyError, TypeError, AttributeError) as e:
        raise ValidationError(f"响应格式无效: {path} ({type(e).__name__}: {e})") from e


def map_error(status: int, body: Any, path: str) -> ApplicationError:
    """把失败的 HTTP 响应转换为领域异常"""
    message = _error_message(body)
    details = body.get("details") if isinstance(body, dict) else None

    if status == 401:
        redirect = "/login"
        if isinstance(details, dict) and details.get("redirect"):
            redirect = details["redirect"]
        return UnauthorizedError(message=message, redirect=redirect)
    if status == 404:
        return NotFoundError("资源", path, details=details, message=message)
    if status in (400, 422):
        errors = details.get("validation_errors") if isinstance(details, dict) else None
        return ValidationError(message, errors=errors)
    if status >= 500:
        return TransportError(SERVICE_NAME, message, details=details)
    code = body.get("code") if isinstance(body, dict) else None
    return BusinessError(code or "REQUEST_FAILED", message, details=details)


class CollabApiClient:
    """
    协作服务客户端

    使用示例:
        async with CollabApiClient(token="t-alice") as api:
            users = await api.list_users()
            note = await api.create_note("c1", "@Bob please review")
    """

    def __init__(
        self,
        token: str,
        settings: Optional[ClientSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self._token = token
        self._settings = settings or get_client_settings()
        self._session = session
        self._owns_session = session is None

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=aiohttp.ClientTimeout(total=self._settings.request_timeout),
            )
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        url = f"{self._settings.api_url}{path}"
        try:
            async with self._get_session().request(method, url, json=json, params=params) as response:
                try:
                    body = await response.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError):
                    body = None
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"请求失败: {method} {path}, error={e!r}")
            raise TransportError(SERVICE_NAME, str(e) or FALLBACK_MESSAGE, cause=e) from e

        if status >= 400:
            error = map_error(status, body, path)
            logger.info(f"请求返回错误: {method} {path}, status={status}, code={error.code}")
            raise error

        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # ==================== 目录 ====================

    async def list_users(self) -> list[User]:
        data = await self._request("GET", "/users")
        return _decode("/users", lambda: [User.from_dict(item) for item in data or []])

    async def suggest_users(self, q: str = "", limit: Optional[int] = None) -> list[User]:
        params = {"q": q}
        if limit is not None:
            params["limit"] = limit
        data = await self._request("GET", "/users/suggest", params=params)
        return _decode("/users/suggest", lambda: [User.from_dict(item) for item in data or []])

    async def parse_mentions(self, text: str, cursor: Optional[int] = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"text": text}
        if cursor is not None:
            payload["cursor"] = cursor
        return await self._request("POST", "/mentions/parse", json=payload)

    # ==================== 笔记 ====================

    async def list_notes(self, candidate_id: str) -> list[Note]:
        data = await self._request("GET", f"/candidates/{quote(candidate_id, safe='')}/notes")
        return _decode("/notes", lambda: [NoteData.model_validate(item).to_note() for item in data or []])

    async def create_note(self, candidate_id: str, raw_text: str) -> Note:
        """
        提交笔记

        空白文本在发出请求之前被拒绝。

        Raises:
            ValidationError: 文本为空
        """
        text = (raw_text or "").strip()
        if not text:
            raise ValidationError("笔记内容不能为空", field="raw_text")
        if not candidate_id:
            raise ValidationError("候选人 ID 不能为空", field="candidate_id")

        data = await self._request(
            "POST",
            f"/candidates/{quote(candidate_id, safe='')}/notes",
            json={"raw_text": text},
        )
        return _decode("/notes", lambda: NoteData.model_validate(data).to_note())

    # ==================== 通知 ====================

    async def list_notifications(self, unread_only: bool = False) -> list[NotificationRecord]:
        params = {"unread_only": "true"} if unread_only else None
        data = await self._request("GET", "/notifications", params=params)
        return _decode("/notifications", lambda: [NotificationData.model_validate(item).to_record() for item in data or []])

    async def mark_read(self, record_id: str) -> NotificationRecord:
        data = await self._request("PATCH", f"/notifications/{quote(record_id, safe='')}/read")
        return _decode("/notifications", lambda: NotificationData.model_validate(data["notification"]).to_record())

    async def mark_all_read(self) -> list[str]:
        data = await self._request("POST", "/notifications/read-all")
        return _decode("/notifications/read-all", lambda: [str(i) for i in data.get("notification_ids", [])] if data else [])

    # ==================== 实时通道 ====================

    async def open_socket(self) -> aiohttp.ClientWebSocketResponse:
        """建立 WebSocket 连接"""
        url = f"{self._settings.ws_url}?token={quote(self._token, safe='')}"
        try:
            return await self._get_session().ws_connect(url, heartbeat=30)
        except aiohttp.WSServerHandshakeError as e:
            if e.status == 401 or e.status == 403:
                raise UnauthorizedError() from e
            raise TransportError(SERVICE_NAME, f"WebSocket 握手失败: {e.status}", cause=e) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(SERVICE_NAME, str(e) or "WebSocket 连接失败", cause=e) from e

    # ==================== 生命周期 ====================

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "CollabApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
