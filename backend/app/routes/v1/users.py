"""User directory API routes.

提供可提及用户列表和提及建议。
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.core.async_utils import run_sync
from app.core.config import settings
from app.core.deps import CurrentUser, get_user_directory
from app.schemas.common import ApiResponse
from app.schemas.user import User
from domains.collab_hub.core.suggestions import suggest

router = APIRouter()


@router.get("", response_model=ApiResponse[List[User]])
async def list_users(user: CurrentUser, directory=Depends(get_user_directory)):
    """获取可提及的用户目录（含本人，由客户端缓存排除）"""
    users = await run_sync(directory.list_mentionable_users)
    return ApiResponse(data=[User.model_validate(u) for u in users])


@router.get("/suggest", response_model=ApiResponse[List[User]])
async def suggest_users(
    user: CurrentUser,
    q: str = Query("", description="@ 之后已输入的内容"),
    limit: Optional[int] = Query(None, ge=1, le=50),
    directory=Depends(get_user_directory),
):
    """
    提及建议

    前缀匹配优先，其次包含匹配，不含本人。
    """
    users = await run_sync(directory.list_mentionable_users)
    matches = suggest(q, users, exclude_user_id=user.id, limit=limit or settings.SUGGESTION_LIMIT)
    return ApiResponse(data=[User.model_validate(u) for u in matches])
