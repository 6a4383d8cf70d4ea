"""
房间广播

维护两类订阅关系：
- 房间：candidate_id -> 正在查看该候选人的会话集合
- 个人通道：user_id -> 该用户的所有活跃会话（多标签页 / 多设备）

房间状态: EMPTY -> ACTIVE (>=1 成员) -> EMPTY，最后一个成员离开时房间被删除。
所有成员变更和发布都在同一个事件循环中串行执行，不需要额外加锁；
投递只是把事件放进会话的发送队列，不会阻塞发布方。

会话完全断开后不保留任何房间成员关系，重连后由客户端重新 join。
"""

import asyncio
import logging
import uuid
from typing import Dict, List, Optional, Protocol

from domains.core.exceptions import Outcome

from .events import NotificationReadEvent, ServerEvent, note_event, notification_event
from .models import Note, NotificationRecord

logger = logging.getLogger(__name__)


class SessionHandle(Protocol):
    """广播器眼中的一个客户端会话"""
    session_id: str
    user_id: str

    def deliver(self, event: ServerEvent) -> None:
        """非阻塞投递；失败时抛异常，广播器会断开该会话"""
        ...


class QueueSession:
    """
    基于 asyncio.Queue 的会话

    WebSocket 端点负责从队列中取出事件并发送，
    因此同一会话内事件的发送顺序与投递顺序一致。
    """

    def __init__(self, user_id: str, session_id: Optional[str] = None):
        self.user_id = user_id
        self.session_id = session_id or uuid.uuid4().hex
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, event: ServerEvent) -> None:
        if self._closed:
            return
        self._queue.put_nowait(event)

    async def next_event(self) -> Optional[ServerEvent]:
        """取下一个事件；会话关闭后返回 None"""
        return await self._queue.get()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    def pending(self) -> int:
        return self._queue.qsize()

    def __repr__(self) -> str:
        return f"QueueSession(user_id={self.user_id!r}, session_id={self.session_id!r})"


class RoomBroadcaster:
    """
    房间与个人通道的发布/订阅

    使用示例:
        broadcaster = RoomBroadcaster()
        broadcaster.connect(session)          # 挂到个人通道
        broadcaster.join("c1", session)       # 进入候选人房间
        broadcaster.publish("c1", note)       # 推送给房间内所有会话
        broadcaster.notify_user("u2", record) # 推送给 u2 的所有会话
        broadcaster.disconnect(session)       # 清理全部关系
    """

    def __init__(self):
        self._rooms: Dict[str, Dict[str, SessionHandle]] = {}
        self._channels: Dict[str, Dict[str, SessionHandle]] = {}
        self._memberships: Dict[str, set[str]] = {}

    # ==================== 连接管理 ====================

    def connect(self, session: SessionHandle) -> Outcome:
        """把会话挂到其用户的个人通道"""
        channel = self._channels.setdefault(session.user_id, {})
        if session.session_id in channel:
            return Outcome.CONFLICT_IGNORED
        channel[session.session_id] = session
        self._memberships.setdefault(session.session_id, set())
        logger.debug(f"session_connected: user={session.user_id}, session={session.session_id}")
        return Outcome.APPLIED

    def disconnect(self, session: SessionHandle) -> None:
        """离开所有房间并从个人通道移除，对未连接的会话是空操作"""
        for candidate_id in list(self._memberships.get(session.session_id, ())):
            self.leave(candidate_id, session)
        self._memberships.pop(session.session_id, None)

        channel = self._channels.get(session.user_id)
        if channel is not None:
            channel.pop(session.session_id, None)
            if not channel:
                del self._channels[session.user_id]
        logger.debug(f"session_disconnected: user={session.user_id}, session={session.session_id}")

    # ==================== 房间 ====================

    def join(self, candidate_id: str, session: SessionHandle) -> Outcome:
        """加入房间，重复加入与加入一次效果相同"""
        room = self._rooms.setdefault(candidate_id, {})
        if session.session_id in room:
            return Outcome.CONFLICT_IGNORED
        room[session.session_id] = session
        self._memberships.setdefault(session.session_id, set()).add(candidate_id)
        logger.debug(f"room_joined: room={candidate_id}, session={session.session_id}, members={len(room)}")
        return Outcome.APPLIED

    def leave(self, candidate_id: str, session: SessionHandle) -> Outcome:
        """离开房间，不在房间内时是空操作"""
        room = self._rooms.get(candidate_id)
        if room is None or session.session_id not in room:
            return Outcome.CONFLICT_IGNORED
        del room[session.session_id]
        if not room:
            del self._rooms[candidate_id]
        memberships = self._memberships.get(session.session_id)
        if memberships is not None:
            memberships.discard(candidate_id)
        logger.debug(f"room_left: room={candidate_id}, session={session.session_id}")
        return Outcome.APPLIED

    def publish(self, candidate_id: str, note: Note) -> int:
        """
        把笔记推送给房间当前的所有成员

        之后才加入的会话不会补收，需要通过历史接口拉取。

        Returns:
            成功投递的会话数
        """
        return self._fan(self._rooms.get(candidate_id), note_event(note))

    # ==================== 个人通道 ====================

    def notify_user(self, user_id: str, record: NotificationRecord) -> int:
        """推送通知到用户的所有会话；用户没有在线会话时直接丢弃"""
        return self._fan(self._channels.get(user_id), notification_event(record))

    def notify_read(self, user_id: str, notification_ids: List[str]) -> int:
        """把已读状态同步到用户的所有会话"""
        if not notification_ids:
            return 0
        event = NotificationReadEvent(user_id=user_id, notification_ids=list(notification_ids))
        return self._fan(self._channels.get(user_id), event)

    # ==================== 查询 ====================

    def room_members(self, candidate_id: str) -> List[str]:
        return list(self._rooms.get(candidate_id, {}).keys())

    def user_sessions(self, user_id: str) -> List[str]:
        return list(self._channels.get(user_id, {}).keys())

    def rooms_of(self, session: SessionHandle) -> List[str]:
        return sorted(self._memberships.get(session.session_id, ()))

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    # ==================== 内部 ====================

    def _fan(self, members: Optional[Dict[str, SessionHandle]], event: ServerEvent) -> int:
        if not members:
            return 0

        delivered = 0
        dead: List[SessionHandle] = []
        # 复制快照，投递失败时会修改成员表
        for session in list(members.values()):
            try:
                session.deliver(event)
                delivered += 1
            except Exception as e:
                logger.warning(f"event_delivery_failed: session={session.session_id}, type={event.type}, error={e}")
                dead.append(session)

        for session in dead:
            self.disconnect(session)

        return delivered

    def close(self) -> None:
        """关闭所有会话（应用关闭时调用）"""
        sessions = {}
        for channel in self._channels.values():
            sessions.update(channel)
        for room in self._rooms.values():
            sessions.update(room)
        for session in sessions.values():
            closer = getattr(session, "close", None)
            if callable(closer):
                closer()
        self._rooms.clear()
        self._channels.clear()
        self._memberships.clear()
