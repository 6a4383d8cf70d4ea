"""
客户端合并

拉取（历史接口）和推送（实时通道）是同一份数据的两个生产者，可能以任意顺序到达。
这里把两者合并为一个有序、无重复的视图：
- 笔记按 ID 去重，拉取结果确定初始顺序，推送按到达顺序追加
- 通知按 (note_id, recipient_user_id) 去重，最新在前；
  任一来源标记为已读，合并结果即为已读（is_read 只会从 False 变为 True）
"""

from dataclasses import replace
from typing import Iterable, Optional

from ..core.models import Note, NotificationRecord


class NoteTimeline:
    """单个候选人房间的笔记序列"""

    def __init__(self, candidate_id: str):
        self.candidate_id = candidate_id
        self._notes: list[Note] = []
        self._ids: set[str] = set()
        self.loaded = False

    @property
    def notes(self) -> list[Note]:
        return list(self._notes)

    def __len__(self) -> int:
        return len(self._notes)

    def __contains__(self, note_id: str) -> bool:
        return note_id in self._ids

    def load(self, fetched: Iterable[Note]) -> None:
        """
        用拉取结果建立序列

        拉取完成之前已经推送到达、但不在拉取结果中的笔记保留在末尾。
        """
        notes: list[Note] = []
        ids: set[str] = set()
        for note in fetched:
            if note.candidate_id != self.candidate_id or note.id in ids:
                continue
            notes.append(note)
            ids.add(note.id)

        for note in self._notes:
            if note.id not in ids:
                notes.append(note)
                ids.add(note.id)

        self._notes = notes
        self._ids = ids
        self.loaded = True

    def push(self, note: Note) -> bool:
        """追加推送的笔记，已存在时忽略"""
        if note.candidate_id != self.candidate_id or note.id in self._ids:
            return False
        self._notes.append(note)
        self._ids.add(note.id)
        return True


class NotificationInbox:
    """单个用户的通知列表（最新在前）"""

    def __init__(self, user_id: str):
        self.user_id = user_id
        self._records: list[NotificationRecord] = []
        # 已知已读的记录 ID，包括尚未拉取到的（其他会话先标记了已读）
        self._read_ids: set[str] = set()
        self.loaded = False

    @property
    def items(self) -> list[NotificationRecord]:
        return [replace(r) for r in self._records]

    @property
    def unread(self) -> list[NotificationRecord]:
        return [replace(r) for r in self._records if not r.is_read]

    @property
    def unread_count(self) -> int:
        return sum(1 for r in self._records if not r.is_read)

    def __len__(self) -> int:
        return len(self._records)

    def find(self, note_id: str) -> Optional[NotificationRecord]:
        for record in self._records:
            if record.note_id == note_id:
                return replace(record)
        return None

    def load(self, fetched: Iterable[NotificationRecord]) -> None:
        """
        合并拉取结果

        已在本地的记录保留已读状态，先于拉取收到的已读同步同样生效；
        只通过推送到达、不在拉取结果中的记录保留在最前面。
        """
        known = {r.identity: r for r in self._records}
        merged: list[NotificationRecord] = []
        seen: set[tuple[str, str]] = set()

        for record in fetched:
            if record.recipient_user_id != self.user_id or record.identity in seen:
                continue
            entry = replace(record)
            local = known.get(entry.identity)
            if (local is not None and local.is_read) or entry.id in self._read_ids:
                entry.is_read = True
            merged.append(entry)
            seen.add(entry.identity)

        pushed_only = [r for r in self._records if r.identity not in seen]
        self._records = pushed_only + merged
        self.loaded = True

    def push(self, record: NotificationRecord) -> bool:
        """
        合并推送的通知

        Returns:
            True 表示新增（插入最前面），False 表示已存在（只合并已读状态）
        """
        if record.recipient_user_id != self.user_id:
            return False

        for existing in self._records:
            if existing.identity == record.identity:
                if record.is_read or record.id in self._read_ids:
                    existing.is_read = True
                return False

        entry = replace(record)
        if entry.id in self._read_ids:
            entry.is_read = True
        self._records.insert(0, entry)
        return True

    def mark_read(self, record_ids: Iterable[str]) -> list[str]:
        """按记录 ID 标记已读，返回状态发生变化的 ID"""
        wanted = set(record_ids)
        self._read_ids.update(wanted)
        changed = []
        for record in self._records:
            if record.id in wanted and not record.is_read:
                record.is_read = True
                changed.append(record.id)
        return changed

    def mark_all_read(self) -> list[str]:
        """本地全部标记已读"""
        return self.mark_read([r.id for r in self._records])
