"""Candidate note API routes.

笔记只追加：列表 + 创建。
创建成功后推送到候选人房间，并给被提及的用户生成通知。
"""

from typing import List

from fastapi import APIRouter, Depends

from app.core.deps import CurrentUser, get_candidate_or_404, get_note_service
from app.schemas.common import ApiResponse, model_to_dict
from app.schemas.note import Note, NoteCreate
from domains.infra.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/{candidate_id}/notes", response_model=ApiResponse[List[Note]])
async def list_notes(
    user: CurrentUser,
    candidate=Depends(get_candidate_or_404),
    service=Depends(get_note_service),
):
    """获取候选人的笔记（按创建时间升序）"""
    notes = await service.list_notes(candidate.id)
    return ApiResponse(data=[Note(**model_to_dict(n)) for n in notes])


@router.post("/{candidate_id}/notes", response_model=ApiResponse[Note])
async def create_note(
    candidate_id: str,
    request: NoteCreate,
    user: CurrentUser,
    service=Depends(get_note_service),
):
    """
    创建笔记

    空白内容返回 400，候选人不存在返回 404。
    """
    note = await service.create_note(candidate_id, user, request.raw_text)
    logger.info("note_created", note_id=note.id, candidate_id=candidate_id, author_id=user.id)
    return ApiResponse(data=Note(**model_to_dict(note)), message="创建成功")
