"""
协作笔记数据模型定义

围绕"候选人"记录的协作批注：
- 用户（User）由外部目录服务维护，这里只读
- 笔记（Note）只追加，创建后不再修改或删除
- 提及（MentionToken）从笔记文本中派生，不落库
- 通知（NotificationRecord）由提及扇出生成，逻辑身份为 (note_id, recipient_user_id)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from domains.core.exceptions import Outcome


@dataclass
class User:
    """
    目录用户

    Attributes:
        id: 用户 ID
        display_name: 显示名，提及解析时按显示名匹配（不区分大小写）
        email: 联系邮箱
    """
    id: str
    display_name: str
    email: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'display_name': self.display_name,
            'email': self.email,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'User':
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**valid_fields)

    @property
    def is_mentionable(self) -> bool:
        """缺少 ID 或显示名的目录条目不能被提及"""
        return bool(self.id) and bool(self.display_name)


@dataclass
class Candidate:
    """候选人记录（外部候选人库的只读视图）"""
    id: str
    name: str
    email: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'email': self.email}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Candidate':
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**valid_fields)


@dataclass
class Note:
    """
    候选人笔记

    Attributes:
        id: 笔记 ID
        candidate_id: 所属候选人 ID
        author_id: 作者用户 ID
        raw_text: 原始文本（提及保持 @name 形式，不替换为用户 ID）
        author_name: 作者显示名（创建时冗余保存，便于房间成员直接渲染）
        created_at: 创建时间
    """
    id: str
    candidate_id: str
    author_id: str
    raw_text: str
    author_name: str = ""
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'candidate_id': self.candidate_id,
            'author_id': self.author_id,
            'author_name': self.author_name,
            'raw_text': self.raw_text,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Note':
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**valid_fields)


@dataclass(frozen=True)
class MentionToken:
    """
    文本中的一个 @提及

    start_offset/end_offset 覆盖包括 '@' 在内的整个片段，raw_tag 不含 '@'。
    resolved_user_id 为 None 表示目录中没有匹配的用户（渲染为"未知"样式）。
    """
    start_offset: int
    end_offset: int
    raw_tag: str
    resolved_user_id: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.resolved_user_id is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            'start_offset': self.start_offset,
            'end_offset': self.end_offset,
            'raw_tag': self.raw_tag,
            'resolved_user_id': self.resolved_user_id,
        }


@dataclass(frozen=True)
class ActiveTag:
    """
    光标处正在输入的提及

    tag 为 None 表示当前没有活跃的提及；tag_start_offset 指向触发的 '@'。
    """
    tag: str | None = None
    tag_start_offset: int | None = None

    @property
    def is_active(self) -> bool:
        return self.tag is not None


@dataclass(frozen=True)
class Segment:
    """渲染片段：普通文本或提及"""
    text: str
    start_offset: int
    token: MentionToken | None = None

    @property
    def is_mention(self) -> bool:
        return self.token is not None


@dataclass
class NotificationRecord:
    """
    提及通知

    同一条通知可能先通过拉取接口、再通过实时推送被客户端看到（或反过来），
    因此去重身份是 (note_id, recipient_user_id) 而不是记录 ID。
    is_read 只能从 False 变为 True。
    """
    id: str
    note_id: str
    candidate_id: str
    recipient_user_id: str
    candidate_name: str = ""
    message: str = ""
    is_read: bool = False
    created_at: datetime | None = None

    @property
    def identity(self) -> tuple[str, str]:
        return (self.note_id, self.recipient_user_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'note_id': self.note_id,
            'candidate_id': self.candidate_id,
            'candidate_name': self.candidate_name,
            'recipient_user_id': self.recipient_user_id,
            'message': self.message,
            'is_read': self.is_read,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'NotificationRecord':
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**valid_fields)


@dataclass
class ReadResult:
    """标记已读的结果；记录原本已读时 outcome 为 CONFLICT_IGNORED"""
    record: NotificationRecord
    outcome: Outcome = Outcome.APPLIED
