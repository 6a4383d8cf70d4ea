"""Note-related Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NoteCreate(BaseModel):
    """Note create request.

    空白校验在服务层完成，返回统一的 VALIDATION_ERROR。
    """

    raw_text: str = Field(..., description="笔记内容，提及使用 @显示名", max_length=10000)


class Note(BaseModel):
    """Complete note model for API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="笔记 ID")
    candidate_id: str = Field(..., description="候选人 ID")
    author_id: str = Field(..., description="作者 ID")
    author_name: str = Field("", description="作者显示名")
    raw_text: str = Field(..., description="原始文本")
    created_at: Optional[datetime] = None
