"""
响应信封

成功: {"success": true, "data": ..., "message": ..., "timestamp": ...}
失败: {"success": false, "error": 消息, "code": 错误码, "details": {...}}
"""

import dataclasses
from datetime import datetime
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


def model_to_dict(obj: Any) -> Dict[str, Any]:
    """领域对象（dataclass）转成可以喂给 schema 的 dict"""
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"cannot convert {type(obj).__name__} to dict")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class ErrorResponse(BaseModel):
    """错误响应；redirect 只在未登录 (401) 时出现"""

    success: bool = False
    error: str
    code: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    redirect: Optional[str] = None

    def to_content(self) -> Dict[str, Any]:
        content = self.model_dump(mode="json")
        if content["redirect"] is None:
            del content["redirect"]
        return content
