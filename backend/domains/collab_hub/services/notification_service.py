"""
通知服务层

提及扇出与已读状态：
- fan_out: 每个被提及用户一条通知，先持久化再推送到个人通道
- mark_read / mark_all_read: 已读只能从 False 变为 True，重复标记视为成功

存储层是同步的，通过 asyncio.to_thread 调用；
广播器只在事件循环线程中访问。
"""

import asyncio
import logging
from typing import Iterable

from domains.core.exceptions import NotFoundError, Outcome

from ..core.broadcaster import RoomBroadcaster
from ..core.models import Candidate, Note, NotificationRecord, ReadResult
from ..core.store import NotificationStore

logger = logging.getLogger(__name__)


def build_message(author_name: str, candidate_name: str) -> str:
    """通知文案"""
    author = author_name or "有人"
    if candidate_name:
        return f"{author} 在 {candidate_name} 的笔记中提到了你"
    return f"{author} 在一条笔记中提到了你"


class NotificationService:
    """
    通知服务

    使用示例:
        service = NotificationService(store, broadcaster)
        records = await service.fan_out(note, candidate, ["u2"], author_name="Alice")
        result = await service.mark_read(records[0].id, "u2")
    """

    def __init__(self, store: NotificationStore, broadcaster: RoomBroadcaster):
        self._store = store
        self._broadcaster = broadcaster

    @property
    def store(self) -> NotificationStore:
        return self._store

    async def fan_out(
        self,
        note: Note,
        candidate: Candidate,
        recipient_ids: Iterable[str],
        author_name: str = "",
    ) -> list[NotificationRecord]:
        """
        为每个接收人生成通知

        同一 (note_id, recipient_user_id) 只会有一条记录；
        已存在的记录不会再次推送。单个接收人失败只记录日志，不影响其他人。

        Args:
            note: 已持久化的笔记
            candidate: 笔记所属候选人
            recipient_ids: 去重后的接收人（不含作者）
            author_name: 作者显示名

        Returns:
            本次新建的通知记录
        """
        created: list[NotificationRecord] = []
        message = build_message(author_name or note.author_name, candidate.name)

        for recipient_id in recipient_ids:
            if recipient_id == note.author_id:
                continue

            record = NotificationRecord(
                id="",
                note_id=note.id,
                candidate_id=candidate.id,
                candidate_name=candidate.name,
                recipient_user_id=recipient_id,
                message=message,
            )
            try:
                stored, is_new = await asyncio.to_thread(self._store.add, record)
            except Exception as e:
                logger.error(f"通知写入失败: note={note.id}, recipient={recipient_id}, error={e}")
                continue

            if not is_new:
                logger.debug(f"通知已存在，跳过推送: note={note.id}, recipient={recipient_id}")
                continue

            delivered = self._broadcaster.notify_user(recipient_id, stored)
            logger.info(
                f"通知已生成: note={note.id}, recipient={recipient_id}, sessions={delivered}"
            )
            created.append(stored)

        return created

    async def list_notifications(self, user_id: str, unread_only: bool = False) -> list[NotificationRecord]:
        """获取用户的通知（最新在前）"""
        return await asyncio.to_thread(self._store.list_notifications, user_id, unread_only)

    async def mark_read(self, record_id: str, user_id: str) -> ReadResult:
        """
        标记单条通知已读

        记录不存在或不属于该用户时抛出 NotFoundError；
        已读记录再次标记返回 CONFLICT_IGNORED。
        状态发生变化时同步到该用户的其他会话。
        """
        existing = await asyncio.to_thread(self._store.get, record_id)
        if existing is None or existing.recipient_user_id != user_id:
            raise NotFoundError("通知", record_id)

        result = await asyncio.to_thread(self._store.mark_read, record_id)
        if result is None:
            raise NotFoundError("通知", record_id)

        record, changed = result
        if not changed:
            return ReadResult(record=record, outcome=Outcome.CONFLICT_IGNORED)

        self._broadcaster.notify_read(user_id, [record.id])
        return ReadResult(record=record, outcome=Outcome.APPLIED)

    async def mark_all_read(self, user_id: str) -> list[str]:
        """
        把调用时刻的未读通知全部标记为已读

        之后才到达的通知不受影响。

        Returns:
            本次被标记的通知 ID
        """
        marked = await asyncio.to_thread(self._store.mark_all_read, user_id)
        if marked:
            self._broadcaster.notify_read(user_id, marked)
        logger.info(f"全部已读: user={user_id}, count={len(marked)}")
        return marked
