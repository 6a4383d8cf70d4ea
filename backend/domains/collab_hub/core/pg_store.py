"""
协作存储层 - PostgreSQL 数据源

表结构见 scripts/migrations/create_collab_tables.py。
通知表在 (note_id, recipient_user_id) 上有唯一约束，
写入用 ON CONFLICT DO NOTHING，重复写返回已有记录。
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import psycopg2

from domains.core.exceptions import NotFoundError
from domains.infra.store import BaseStore, get_store_instance

from .models import Candidate, Note, NotificationRecord, User
from .store import new_id

logger = logging.getLogger(__name__)


class PgCandidateStore(BaseStore[Candidate]):
    """候选人（只读）"""

    table_name = "candidates"
    order_columns = frozenset({"name", "created_at"})

    def _row_to_entity(self, row: Dict[str, Any]) -> Candidate:
        return Candidate.from_dict(row)

    def get(self, candidate_id: str) -> Optional[Candidate]:
        return self.get_by_id(candidate_id)


class PgUserDirectory(BaseStore[User]):
    """用户目录，登录 token 在 user_tokens 表"""

    table_name = "users"
    order_columns = frozenset({"display_name", "created_at"})

    def _row_to_entity(self, row: Dict[str, Any]) -> User:
        return User.from_dict(row)

    def list_mentionable_users(self) -> List[User]:
        # 目录顺序 = 注册顺序，显示名重复时先注册的优先
        return [u for u in self.list_all(order_by="created_at ASC") if u.is_mentionable]

    def get(self, user_id: str) -> Optional[User]:
        return self.get_by_id(user_id)

    def authenticate(self, token: str) -> Optional[User]:
        return self._fetch_one(
            '''SELECT u.* FROM users u
            JOIN user_tokens t ON t.user_id = u.id
            WHERE t.token = %s AND (t.expires_at IS NULL OR t.expires_at > NOW())''',
            (token,),
        )


class PgNoteStore(BaseStore[Note]):
    """笔记，只追加"""

    table_name = "notes"
    order_columns = frozenset({"created_at", "seq"})

    def _row_to_entity(self, row: Dict[str, Any]) -> Note:
        return Note.from_dict(row)

    def create_note(
        self,
        candidate_id: str,
        author_id: str,
        raw_text: str,
        author_name: str = "",
    ) -> Note:
        """候选人不存在（外键冲突）时抛 NotFoundError"""
        try:
            return self._fetch_one(
                '''INSERT INTO notes (id, candidate_id, author_id, author_name, raw_text, created_at)
                VALUES (%s, %s, %s, %s, %s, NOW())
                RETURNING *''',
                (new_id(), candidate_id, author_id, author_name, raw_text),
            )
        except psycopg2.errors.ForeignKeyViolation as e:
            logger.warning(f"添加笔记失败，候选人不存在: {candidate_id}")
            raise NotFoundError("候选人", candidate_id) from e

    def list_notes(self, candidate_id: str) -> List[Note]:
        return self._fetch_all(
            "SELECT * FROM notes WHERE candidate_id = %s ORDER BY created_at ASC, seq ASC",
            (candidate_id,),
        )

    def get(self, note_id: str) -> Optional[Note]:
        return self.get_by_id(note_id)


class PgNotificationStore(BaseStore[NotificationRecord]):
    """提及通知"""

    table_name = "notifications"
    order_columns = frozenset({"created_at", "seq"})

    def _row_to_entity(self, row: Dict[str, Any]) -> NotificationRecord:
        return NotificationRecord.from_dict(row)

    def add(self, record: NotificationRecord) -> Tuple[NotificationRecord, bool]:
        """返回 (记录, 是否新写入)；同一事务内插入并在冲突时回读"""
        with self._cursor() as cursor:
            cursor.execute(
                '''INSERT INTO notifications (
                    id, note_id, candidate_id, candidate_name,
                    recipient_user_id, message, is_read, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, NOW())
                ON CONFLICT (note_id, recipient_user_id) DO NOTHING
                RETURNING *''',
                (
                    record.id or new_id(), record.note_id, record.candidate_id,
                    record.candidate_name, record.recipient_user_id,
                    record.message, record.is_read,
                ),
            )
            inserted = cursor.fetchone()
            if inserted is None:
                cursor.execute(
                    "SELECT * FROM notifications WHERE note_id = %s AND recipient_user_id = %s",
                    (record.note_id, record.recipient_user_id),
                )
                existing = cursor.fetchone()
        if inserted is not None:
            return self._row_to_entity(dict(inserted)), True
        return self._row_to_entity(dict(existing)), False

    def get(self, record_id: str) -> Optional[NotificationRecord]:
        return self.get_by_id(record_id)

    def list_notifications(self, user_id: str, unread_only: bool = False) -> List[NotificationRecord]:
        unread = " AND is_read = FALSE" if unread_only else ""
        return self._fetch_all(
            f"SELECT * FROM notifications WHERE recipient_user_id = %s{unread} ORDER BY created_at DESC, seq DESC",
            (user_id,),
        )

    def mark_read(self, record_id: str) -> Optional[Tuple[NotificationRecord, bool]]:
        """返回 (记录, 是否由未读变为已读)；记录不存在时返回 None"""
        with self._cursor() as cursor:
            cursor.execute(
                "UPDATE notifications SET is_read = TRUE WHERE id = %s AND is_read = FALSE RETURNING *",
                (record_id,),
            )
            row = cursor.fetchone()
            changed = row is not None
            if not changed:
                cursor.execute("SELECT * FROM notifications WHERE id = %s", (record_id,))
                row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_entity(dict(row)), changed

    def mark_all_read(self, user_id: str) -> List[str]:
        """单条 UPDATE，语句开始之后写入的通知不受影响"""
        with self._cursor() as cursor:
            cursor.execute(
                '''UPDATE notifications SET is_read = TRUE
                WHERE recipient_user_id = %s AND is_read = FALSE
                RETURNING id''',
                (user_id,),
            )
            return [row["id"] for row in cursor.fetchall()]


def get_pg_stores(database_url: Optional[str] = None) -> Dict[str, Any]:
    """四个存储的进程级单例"""
    return {
        "candidate_store": get_store_instance(PgCandidateStore, database_url=database_url),
        "user_directory": get_store_instance(PgUserDirectory, database_url=database_url),
        "note_store": get_store_instance(PgNoteStore, database_url=database_url),
        "notification_store": get_store_instance(PgNotificationStore, database_url=database_url),
    }
