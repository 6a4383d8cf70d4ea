"""Notification-related Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from domains.core import Outcome


class Notification(BaseModel):
    """提及通知"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    note_id: str
    candidate_id: str
    candidate_name: str = ""
    recipient_user_id: str
    message: str = ""
    is_read: bool = False
    created_at: Optional[datetime] = None


class MarkReadResult(BaseModel):
    """标记已读结果；重复标记时 outcome 为 conflict_ignored"""

    notification: Notification
    outcome: Outcome = Outcome.APPLIED


class MarkAllReadResult(BaseModel):
    """全部已读结果"""

    notification_ids: List[str] = Field(default_factory=list)
    count: int = 0
