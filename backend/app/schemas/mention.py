"""Mention parsing schemas."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.user import User


class MentionParseRequest(BaseModel):
    """解析请求，cursor 缺省时取文本末尾"""

    text: str = Field("", description="输入框文本")
    cursor: Optional[int] = Field(None, ge=0, description="光标位置")


class MentionToken(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start_offset: int
    end_offset: int
    raw_tag: str
    resolved_user_id: Optional[str] = None


class Segment(BaseModel):
    """渲染片段，mention 为 None 时是普通文本"""

    text: str
    start_offset: int
    mention: Optional[MentionToken] = None
    known: bool = False


class MentionParseResult(BaseModel):
    active_tag: Optional[str] = None
    tag_start_offset: Optional[int] = None
    tokens: List[MentionToken] = Field(default_factory=list)
    segments: List[Segment] = Field(default_factory=list)
    recipients: List[str] = Field(default_factory=list, description="会收到通知的用户（不含本人）")
    suggestions: List[User] = Field(default_factory=list)
