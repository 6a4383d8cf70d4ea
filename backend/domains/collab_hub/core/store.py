"""
外部协作方接口与内存实现

候选人库、用户目录、笔记库、通知库都视为外部服务，核心逻辑只依赖这里的窄接口。
内存实现是线程安全的（路由通过 asyncio.to_thread 调用同步存储），
用于开发演示和测试；PostgreSQL 实现见 pg_store.py。
"""

import json
import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from .models import Candidate, Note, NotificationRecord, User

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


# ==================== 接口 ====================

class CandidateStore(Protocol):
    def get(self, candidate_id: str) -> Optional[Candidate]: ...


class UserDirectory(Protocol):
    def list_mentionable_users(self) -> List[User]: ...

    def get(self, user_id: str) -> Optional[User]: ...

    def authenticate(self, token: str) -> Optional[User]: ...


class NoteStore(Protocol):
    def create_note(
        self,
        candidate_id: str,
        author_id: str,
        raw_text: str,
        author_name: str = "",
    ) -> Note: ...

    def list_notes(self, candidate_id: str) -> List[Note]: ...

    def get(self, note_id: str) -> Optional[Note]: ...


class NotificationStore(Protocol):
    def add(self, record: NotificationRecord) -> Tuple[NotificationRecord, bool]:
        """按 (note_id, recipient_user_id) 幂等写入，返回 (记录, 是否新建)"""
        ...

    def get(self, record_id: str) -> Optional[NotificationRecord]: ...

    def list_notifications(self, user_id: str, unread_only: bool = False) -> List[NotificationRecord]: ...

    def mark_read(self, record_id: str) -> Optional[Tuple[NotificationRecord, bool]]:
        """标记已读，返回 (记录, 是否发生变化)；记录不存在时返回 None"""
        ...

    def mark_all_read(self, user_id: str) -> List[str]:
        """把调用时刻的未读记录标记为已读，返回被标记的记录 ID"""
        ...


# ==================== 内存实现 ====================

class InMemoryCandidateStore:
    """候选人库（内存）"""

    def __init__(self, candidates: Optional[List[Candidate]] = None):
        self._lock = threading.Lock()
        self._candidates: Dict[str, Candidate] = {}
        for candidate in candidates or []:
            self.add(candidate)

    def add(self, candidate: Candidate) -> Candidate:
        with self._lock:
            self._candidates[candidate.id] = candidate
        return candidate

    def get(self, candidate_id: str) -> Optional[Candidate]:
        with self._lock:
            return self._candidates.get(candidate_id)

    def list_candidates(self) -> List[Candidate]:
        with self._lock:
            return list(self._candidates.values())


class InMemoryUserDirectory:
    """用户目录（内存），同时充当简单的 token 认证器"""

    def __init__(self):
        self._lock = threading.Lock()
        self._users: Dict[str, User] = {}
        self._tokens: Dict[str, str] = {}

    def add(self, user: User, token: Optional[str] = None) -> User:
        with self._lock:
            self._users[user.id] = user
            if token:
                self._tokens[token] = user.id
        return user

    def list_mentionable_users(self) -> List[User]:
        with self._lock:
            return [u for u in self._users.values() if u.is_mentionable]

    def get(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def authenticate(self, token: str) -> Optional[User]:
        with self._lock:
            user_id = self._tokens.get(token)
            return self._users.get(user_id) if user_id else None


class InMemoryNoteStore:
    """笔记库（内存），每个候选人的笔记按创建顺序保存"""

    def __init__(self):
        self._lock = threading.Lock()
        self._notes: Dict[str, Note] = {}
        self._by_candidate: Dict[str, List[str]] = {}

    def create_note(
        self,
        candidate_id: str,
        author_id: str,
        raw_text: str,
        author_name: str = "",
    ) -> Note:
        note = Note(
            id=new_id(),
            candidate_id=candidate_id,
            author_id=author_id,
            author_name=author_name,
            raw_text=raw_text,
            created_at=datetime.now(),
        )
        with self._lock:
            self._notes[note.id] = note
            self._by_candidate.setdefault(candidate_id, []).append(note.id)
        return replace(note)

    def list_notes(self, candidate_id: str) -> List[Note]:
        with self._lock:
            return [replace(self._notes[i]) for i in self._by_candidate.get(candidate_id, [])]

    def get(self, note_id: str) -> Optional[Note]:
        with self._lock:
            note = self._notes.get(note_id)
            return replace(note) if note else None


class InMemoryNotificationStore:
    """通知库（内存），(note_id, recipient_user_id) 唯一"""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, NotificationRecord] = {}
        self._by_identity: Dict[Tuple[str, str], str] = {}

    def add(self, record: NotificationRecord) -> Tuple[NotificationRecord, bool]:
        with self._lock:
            existing_id = self._by_identity.get(record.identity)
            if existing_id is not None:
                return replace(self._records[existing_id]), False
            stored = replace(record, id=record.id or new_id(), created_at=record.created_at or datetime.now())
            self._records[stored.id] = stored
            self._by_identity[stored.identity] = stored.id
            return replace(stored), True

    def get(self, record_id: str) -> Optional[NotificationRecord]:
        with self._lock:
            record = self._records.get(record_id)
            return replace(record) if record else None

    def list_notifications(self, user_id: str, unread_only: bool = False) -> List[NotificationRecord]:
        """按创建时间倒序（最新在前）"""
        with self._lock:
            records = [
                replace(r) for r in self._records.values()
                if r.recipient_user_id == user_id and not (unread_only and r.is_read)
            ]
        # dict 保持插入顺序，倒序即最新在前
        records.reverse()
        return records

    def mark_read(self, record_id: str) -> Optional[Tuple[NotificationRecord, bool]]:
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return None
            if record.is_read:
                return replace(record), False
            record.is_read = True
            return replace(record), True

    def mark_all_read(self, user_id: str) -> List[str]:
        with self._lock:
            snapshot = [
                r for r in self._records.values()
                if r.recipient_user_id == user_id and not r.is_read
            ]
            for record in snapshot:
                record.is_read = True
            return [r.id for r in snapshot]


# ==================== 种子数据 ====================

def load_seed(
    path: Path,
    candidates: InMemoryCandidateStore,
    directory: InMemoryUserDirectory,
) -> Dict[str, int]:
    """
    从 JSON 文件加载演示数据

    文件格式:
        {
            "users": [{"id": "u1", "display_name": "Alice", "email": "...", "token": "..."}],
            "candidates": [{"id": "c1", "name": "Jane Doe", "email": "..."}]
        }
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))

    users = data.get("users", [])
    for entry in users:
        directory.add(User.from_dict(entry), token=entry.get("token"))

    rows = data.get("candidates", [])
    for entry in rows:
        candidates.add(Candidate.from_dict(entry))

    logger.info(f"seed_loaded: {path}, users={len(users)}, candidates={len(rows)}")
    return {"users": len(users), "candidates": len(rows)}
