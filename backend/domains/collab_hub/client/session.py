"""
协作会话

显式持有的会话对象，替代进程级的全局 socket：
- 构造时不建立连接，start() 连接，close() 断开，生命周期确定
- 连接建立后服务端自动把会话挂到本人的个人通道
- 断线后按固定间隔重连（默认最多 5 次），每次重连成功后重新加入所有关注的房间，
  并补拉各房间历史和通知列表
- 拉取失败返回 FetchResult(items=[], error=...)，不抛异常
- 写操作（提交笔记、标记已读）失败直接抛出，不自动重试
- 连接失败只改变 connected 标记，不影响输入框状态
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

import aiohttp

from domains.core.exceptions import ApplicationError, ValidationError

from ..core.events import (
    ErrorEvent,
    JoinRoom,
    LeaveRoom,
    NoteEvent,
    NotificationEvent,
    NotificationReadEvent,
    parse_server_event,
)
from ..core.models import Note, NotificationRecord, User
from .api import CollabApiClient
from .composer import MentionComposer
from .directory import DirectoryCache
from .reconciliation import NoteTimeline, NotificationInbox
from .settings import ClientSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

EventListener = Callable[[Any], None]


@dataclass
class FetchResult(Generic[T]):
    """读操作的结果；失败时 items 为空并带上错误"""
    items: list[T] = field(default_factory=list)
    error: Optional[ApplicationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CollabSession:
    """
    协作会话

    使用示例:
        async with CollabApiClient(token) as api:
            async with CollabSession(api, user) as session:
                await session.join_room("c1")
                await session.submit_note("c1", "@Bob please review")
    """

    def __init__(
        self,
        api: CollabApiClient,
        user: User,
        settings: Optional[ClientSettings] = None,
    ):
        self._api = api
        self.user = user
        self._settings = settings or api.settings
        self._ws = None
        self._reader: Optional[asyncio.Task] = None
        self._closing = False
        self._rooms: set[str] = set()
        self._listeners: list[EventListener] = []

        self.connected = False
        self.last_error: Optional[Exception] = None
        self.timelines: dict[str, NoteTimeline] = {}
        self.inbox = NotificationInbox(user.id)
        self.directory = DirectoryCache(api.list_users, self_user_id=user.id)

    @property
    def rooms(self) -> list[str]:
        return sorted(self._rooms)

    def add_listener(self, listener: EventListener) -> None:
        """注册事件回调（每个已合并的服务端事件调用一次）"""
        self._listeners.append(listener)

    def new_composer(self) -> MentionComposer:
        return MentionComposer(self.directory, limit=self._settings.suggestion_limit)

    # ==================== 连接 ====================

    async def start(self) -> bool:
        """
        连接并开始接收事件，同时刷新目录和通知

        Returns:
            是否连接成功；失败时会话仍可用于 HTTP 操作
        """
        self._closing = False
        await self.directory.refresh()
        await self.refresh_notifications()

        if not await self.connect():
            return False
        self._reader = asyncio.create_task(self._run())
        return True

    async def connect(self) -> bool:
        """
        建立实时连接，失败时按固定间隔重试

        凭证无效时不重试。连接成功后重新加入所有关注的房间。
        """
        retries = self._settings.reconnect_attempts
        attempt = 0
        while not self._closing:
            try:
                self._ws = await self._api.open_socket()
            except (ApplicationError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                self.connected = False
                self.last_error = e
                if isinstance(e, ApplicationError) and not e.retryable:
                    logger.warning(f"实时连接被拒绝，不再重试: {e}")
                    return False
                if attempt >= retries:
                    logger.warning(f"实时连接失败，已重试 {attempt} 次: {e}")
                    return False
                attempt += 1
                logger.info(f"实时连接失败，{self._settings.reconnect_delay}s 后第 {attempt} 次重试: {e}")
                await asyncio.sleep(self._settings.reconnect_delay)
                continue

            self.connected = True
            self.last_error = None
            for candidate_id in self.rooms:
                await self._send(JoinRoom(candidate_id=candidate_id).model_dump())
            logger.info(f"实时连接已建立: user={self.user.id}, rooms={len(self._rooms)}")
            return True
        return False

    async def _run(self) -> None:
        while not self._closing:
            await self._read_loop()
            self.connected = False
            if self._closing:
                break
            logger.info("实时连接断开，尝试重连")
            if not await self.connect():
                break
            await self._resync()

    async def _resync(self) -> None:
        """重连后补拉断线期间错过的笔记和通知，推送通道不会重放"""
        synced = 0
        for candidate_id in self.rooms:
            timeline = self.timelines.get(candidate_id)
            if timeline is None:
                continue
            result = await self._fetch(self._api.list_notes, candidate_id)
            if result.ok:
                timeline.load(result.items)
                synced += 1
        notifications = await self.refresh_notifications()
        logger.info(
            f"重连后已同步: rooms={synced}/{len(self._rooms)}, notifications={notifications.ok}"
        )

    async def _read_loop(self) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self.handle_message(msg.data)
                elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                    break
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.last_error = e
            logger.warning(f"实时连接读取失败: {e}")

    async def _send(self, payload: dict) -> bool:
        if self._ws is None or not self.connected:
            return False
        try:
            await self._ws.send_json(payload)
            return True
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            self.connected = False
            self.last_error = e
            logger.warning(f"实时消息发送失败: {payload.get('type')}, error={e}")
            return False

    # ==================== 事件处理 ====================

    def handle_message(self, raw: Any):
        """
        处理一条服务端消息

        Returns:
            已校验的事件；格式错误时返回 None
        """
        try:
            event = parse_server_event(raw)
        except ValidationError as e:
            logger.warning(f"忽略无效的服务端事件: {e.message}")
            return None

        if isinstance(event, NoteEvent):
            timeline = self.timelines.get(event.candidate_id)
            if timeline is not None:
                timeline.push(event.note.to_note())
        elif isinstance(event, NotificationEvent):
            if event.user_id == self.user.id:
                self.inbox.push(event.notification.to_record())
        elif isinstance(event, NotificationReadEvent):
            if event.user_id == self.user.id:
                self.inbox.mark_read(event.notification_ids)
        elif isinstance(event, ErrorEvent):
            logger.warning(f"服务端错误事件: {event.code} {event.message}")

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"事件回调失败: {e}")
        return event

    # ==================== 房间 ====================

    async def join_room(self, candidate_id: str) -> FetchResult[Note]:
        """
        关注候选人房间并拉取历史

        先加入房间再拉取，之间推送到达的笔记由时间线合并去重。
        """
        self._rooms.add(candidate_id)
        timeline = self.timelines.setdefault(candidate_id, NoteTimeline(candidate_id))
        await self._send(JoinRoom(candidate_id=candidate_id).model_dump())

        result = await self._fetch(self._api.list_notes, candidate_id)
        if result.ok:
            timeline.load(result.items)
        return result

    async def leave_room(self, candidate_id: str) -> None:
        self._rooms.discard(candidate_id)
        self.timelines.pop(candidate_id, None)
        await self._send(LeaveRoom(candidate_id=candidate_id).model_dump())

    # ==================== 写操作 ====================

    async def submit_note(self, candidate_id: str, raw_text: str) -> Note:
        """提交笔记；失败时抛出，由调用方提示后手动重新提交"""
        note = await self._api.create_note(candidate_id, raw_text)
        timeline = self.timelines.get(candidate_id)
        if timeline is not None:
            timeline.push(note)
        return note

    async def mark_read(self, record_id: str) -> NotificationRecord:
        record = await self._api.mark_read(record_id)
        self.inbox.mark_read([record.id])
        return record

    async def mark_all_read(self) -> list[str]:
        marked = await self._api.mark_all_read()
        self.inbox.mark_read(marked)
        return marked

    # ==================== 读操作 ====================

    async def refresh_notifications(self) -> FetchResult[NotificationRecord]:
        result = await self._fetch(self._api.list_notifications)
        if result.ok:
            self.inbox.load(result.items)
        return result

    async def _fetch(self, loader: Callable, *args) -> FetchResult:
        try:
            items = await loader(*args)
        except ApplicationError as e:
            self.last_error = e
            logger.warning(f"拉取失败: {e}")
            return FetchResult(error=e)
        return FetchResult(items=list(items))

    # ==================== 生命周期 ====================

    async def close(self) -> None:
        self._closing = True
        self.connected = False
        if self._ws is not None:
            try:
                await self._ws.close()
            except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
                logger.debug(f"关闭实时连接失败: {e}")
            self._ws = None
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None

    async def __aenter__(self) -> "CollabSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

