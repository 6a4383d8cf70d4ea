"""
笔记服务层

提交流程：
1. 校验文本（去掉首尾空白后不能为空，在任何存储调用之前拒绝）
2. 校验候选人存在
3. 持久化笔记
4. 推送到候选人房间
5. 解析提及并扇出通知（失败只记录日志，笔记已经创建成功）
"""

import asyncio
import logging

from domains.core.exceptions import NotFoundError, ValidationError

from ..core.broadcaster import RoomBroadcaster
from ..core.mentions import resolve_recipients
from ..core.models import Note, User
from ..core.store import CandidateStore, NoteStore, UserDirectory
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class NoteService:
    """
    笔记服务层

    封装笔记提交的业务逻辑，协调存储、广播与通知扇出。
    """

    def __init__(
        self,
        note_store: NoteStore,
        candidate_store: CandidateStore,
        directory: UserDirectory,
        broadcaster: RoomBroadcaster,
        notifications: NotificationService,
    ):
        self._note_store = note_store
        self._candidate_store = candidate_store
        self._directory = directory
        self._broadcaster = broadcaster
        self._notifications = notifications

    async def create_note(self, candidate_id: str, author: User, raw_text: str) -> Note:
        """
        创建笔记

        Args:
            candidate_id: 候选人 ID
            author: 当前用户
            raw_text: 原始文本，提及保持 @name 形式

        Returns:
            已持久化的笔记

        Raises:
            ValidationError: 文本为空或只有空白
            NotFoundError: 候选人不存在
        """
        text = (raw_text or "").strip()
        if not text:
            raise ValidationError("笔记内容不能为空", field="raw_text")

        candidate = await asyncio.to_thread(self._candidate_store.get, candidate_id)
        if candidate is None:
            raise NotFoundError("候选人", candidate_id)

        note = await asyncio.to_thread(
            self._note_store.create_note,
            candidate_id,
            author.id,
            text,
            author.display_name,
        )
        delivered = self._broadcaster.publish(candidate_id, note)
        logger.info(f"创建笔记成功: {note.id} (候选人: {candidate_id}, 房间会话: {delivered})")

        try:
            directory = await asyncio.to_thread(self._directory.list_mentionable_users)
            recipients = resolve_recipients(text, directory, author_id=author.id)
            if recipients:
                await self._notifications.fan_out(
                    note, candidate, recipients, author_name=author.display_name
                )
        except Exception as e:
            logger.error(f"通知扇出失败: note={note.id}, error={e}")

        return note

    async def list_notes(self, candidate_id: str) -> list[Note]:
        """按创建时间升序获取候选人的笔记"""
        candidate = await asyncio.to_thread(self._candidate_store.get, candidate_id)
        if candidate is None:
            raise NotFoundError("候选人", candidate_id)
        return await asyncio.to_thread(self._note_store.list_notes, candidate_id)
