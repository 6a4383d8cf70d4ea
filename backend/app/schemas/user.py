"""User-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """目录用户"""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="用户 ID")
    display_name: str = Field(..., description="显示名")
    email: str = Field("", description="联系邮箱")
