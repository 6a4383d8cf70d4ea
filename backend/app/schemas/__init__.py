"""Pydantic schemas for API requests and responses."""

from app.schemas.common import ApiResponse, ErrorResponse
from app.schemas.mention import MentionParseRequest, MentionParseResult
from app.schemas.note import Note, NoteCreate
from app.schemas.notification import MarkAllReadResult, MarkReadResult, Notification
from app.schemas.user import User

__all__ = [
    "ApiResponse",
    "ErrorResponse",
    "User",
    "Note",
    "NoteCreate",
    "Notification",
    "MarkReadResult",
    "MarkAllReadResult",
    "MentionParseRequest",
    "MentionParseResult",
]
