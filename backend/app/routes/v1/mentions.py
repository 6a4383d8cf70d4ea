"""Mention parsing API routes."""

from fastapi import APIRouter, Depends

from app.core.async_utils import run_sync
from app.core.config import settings
from app.core.deps import CurrentUser, get_user_directory
from app.schemas.common import ApiResponse
from app.schemas.mention import MentionParseRequest, MentionParseResult, MentionToken, Segment
from app.schemas.user import User
from domains.collab_hub.core.mentions import parse, resolve_mentions, resolve_recipients, split_segments
from domains.collab_hub.core.suggestions import suggest

router = APIRouter()


@router.post("/parse", response_model=ApiResponse[MentionParseResult])
async def parse_mentions(
    request: MentionParseRequest,
    user: CurrentUser,
    directory=Depends(get_user_directory),
):
    """
    解析文本中的提及

    返回光标处的活跃 tag、所有提及（含解析结果）、渲染片段、通知接收人和建议列表。
    """
    users = await run_sync(directory.list_mentionable_users)
    text = request.text
    cursor = len(text) if request.cursor is None else request.cursor

    active = parse(text, cursor)
    segments = [
        Segment(
            text=s.text,
            start_offset=s.start_offset,
            mention=MentionToken.model_validate(s.token) if s.token else None,
            known=bool(s.token and s.token.is_resolved),
        )
        for s in split_segments(text, users)
    ]

    return ApiResponse(
        data=MentionParseResult(
            active_tag=active.tag,
            tag_start_offset=active.tag_start_offset,
            tokens=[MentionToken.model_validate(t) for t in resolve_mentions(text, users)],
            segments=segments,
            recipients=resolve_recipients(text, users, author_id=user.id),
            suggestions=[
                User.model_validate(u)
                for u in suggest(active.tag, users, exclude_user_id=user.id, limit=settings.SUGGESTION_LIMIT)
            ],
        )
    )
