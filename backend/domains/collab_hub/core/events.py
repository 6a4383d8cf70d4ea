"""
实时通道事件定义

所有经过 WebSocket 的消息都是带 type 标签的 JSON 对象，
在传输边界用 pydantic 的判别联合（discriminated union）校验。

服务端 -> 客户端:
- new-note: 推送给候选人房间的所有成员
- notification: 推送给被提及用户的个人通道
- notification-read: 已读状态同步到该用户的其他会话
- room-joined / room-left: 房间操作回执
- pong / error

客户端 -> 服务端:
- join-room / leave-room / ping
"""

import json
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from domains.core.exceptions import ApplicationError, Outcome, ValidationError

from .models import Note, NotificationRecord


class NoteData(BaseModel):
    """笔记载荷"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    candidate_id: str
    author_id: str
    author_name: str = ""
    raw_text: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_note(cls, note: Note) -> "NoteData":
        return cls.model_validate(note)

    def to_note(self) -> Note:
        return Note(**self.model_dump())


class NotificationData(BaseModel):
    """通知载荷"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    note_id: str
    candidate_id: str
    candidate_name: str = ""
    recipient_user_id: str
    message: str = ""
    is_read: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: NotificationRecord) -> "NotificationData":
        return cls.model_validate(record)

    def to_record(self) -> NotificationRecord:
        return NotificationRecord(**self.model_dump())


# ==================== 服务端事件 ====================

class NoteEvent(BaseModel):
    type: Literal["new-note"] = "new-note"
    candidate_id: str
    note: NoteData


class NotificationEvent(BaseModel):
    type: Literal["notification"] = "notification"
    user_id: str
    notification: NotificationData


class NotificationReadEvent(BaseModel):
    type: Literal["notification-read"] = "notification-read"
    user_id: str
    notification_ids: list[str] = Field(default_factory=list)


class RoomJoinedEvent(BaseModel):
    type: Literal["room-joined"] = "room-joined"
    candidate_id: str
    outcome: Outcome = Outcome.APPLIED


class RoomLeftEvent(BaseModel):
    type: Literal["room-left"] = "room-left"
    candidate_id: str
    outcome: Outcome = Outcome.APPLIED


class PongEvent(BaseModel):
    type: Literal["pong"] = "pong"


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    code: str
    message: str

    @classmethod
    def from_error(cls, error: ApplicationError) -> "ErrorEvent":
        return cls(code=error.code, message=error.message)


ServerEvent = Annotated[
    Union[
        NoteEvent,
        NotificationEvent,
        NotificationReadEvent,
        RoomJoinedEvent,
        RoomLeftEvent,
        PongEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]


# ==================== 客户端命令 ====================

class JoinRoom(BaseModel):
    type: Literal["join-room"] = "join-room"
    candidate_id: str = Field(..., min_length=1)


class LeaveRoom(BaseModel):
    type: Literal["leave-room"] = "leave-room"
    candidate_id: str = Field(..., min_length=1)


class Ping(BaseModel):
    type: Literal["ping"] = "ping"


ClientCommand = Annotated[
    Union[JoinRoom, LeaveRoom, Ping],
    Field(discriminator="type"),
]

_server_event_adapter: TypeAdapter = TypeAdapter(ServerEvent)
_client_command_adapter: TypeAdapter = TypeAdapter(ClientCommand)


def _validate(adapter: TypeAdapter, raw: Union[str, bytes, dict[str, Any]], kind: str):
    try:
        if isinstance(raw, (str, bytes)):
            return adapter.validate_json(raw)
        return adapter.validate_python(raw)
    except PydanticValidationError as e:
        errors = json.loads(e.json(include_url=False))
        raise ValidationError(f"无效的{kind}: {e.error_count()} 个错误", errors=errors) from e


def parse_server_event(raw: Union[str, bytes, dict[str, Any]]):
    """校验服务端事件，失败时抛出 ValidationError"""
    return _validate(_server_event_adapter, raw, "服务端事件")


def parse_client_command(raw: Union[str, bytes, dict[str, Any]]):
    """校验客户端命令，失败时抛出 ValidationError"""
    return _validate(_client_command_adapter, raw, "客户端命令")


def note_event(note: Note) -> NoteEvent:
    return NoteEvent(candidate_id=note.candidate_id, note=NoteData.from_note(note))


def notification_event(record: NotificationRecord) -> NotificationEvent:
    return NotificationEvent(
        user_id=record.recipient_user_id,
        notification=NotificationData.from_record(record),
    )
