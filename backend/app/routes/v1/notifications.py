"""Notification API routes."""

from typing import List

from fastapi import APIRouter, Depends, Query

from app.core.deps import CurrentUser, get_notification_service
from app.schemas.common import ApiResponse, model_to_dict
from app.schemas.notification import MarkAllReadResult, MarkReadResult, Notification
from domains.infra.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=ApiResponse[List[Notification]])
async def list_notifications(
    user: CurrentUser,
    unread_only: bool = Query(False, description="只返回未读"),
    service=Depends(get_notification_service),
):
    """获取当前用户的通知（最新在前）"""
    records = await service.list_notifications(user.id, unread_only=unread_only)
    return ApiResponse(data=[Notification(**model_to_dict(r)) for r in records])


@router.patch("/{notification_id}/read", response_model=ApiResponse[MarkReadResult])
async def mark_read(
    notification_id: str,
    user: CurrentUser,
    service=Depends(get_notification_service),
):
    """
    标记已读

    重复标记返回成功，outcome 为 conflict_ignored。
    """
    result = await service.mark_read(notification_id, user.id)
    if result.outcome.changed:
        logger.info("notification_read", notification_id=notification_id, user_id=user.id)
    return ApiResponse(
        data=MarkReadResult(
            notification=Notification(**model_to_dict(result.record)),
            outcome=result.outcome,
        )
    )


@router.post("/read-all", response_model=ApiResponse[MarkAllReadResult])
async def mark_all_read(
    user: CurrentUser,
    service=Depends(get_notification_service),
):
    """把当前所有未读通知标记为已读，之后到达的通知不受影响"""
    marked = await service.mark_all_read(user.id)
    return ApiResponse(data=MarkAllReadResult(notification_ids=marked, count=len(marked)))
