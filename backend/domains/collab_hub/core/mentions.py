"""
提及解析

纯函数，无 I/O：
- parse: 根据光标位置找出正在输入的提及（驱动建议列表）
- extract_mentions: 扫描全文，按从左到右的顺序提取 @tag
- split_segments: 渲染用的切分，拼接所有片段可还原原文
- resolve_mentions / resolve_recipients: 按目录快照把 tag 解析为用户

解析失败不抛异常，无法匹配的 tag 只是 resolved_user_id 为 None。
显示名重名时取目录顺序中的第一个用户。
"""

import re
from typing import Iterable, Optional, Sequence

from .models import ActiveTag, MentionToken, Segment, User

# '@' 后跟一个或多个字母/数字/下划线/连字符；前面带反斜杠的 '@' 视为转义
MENTION_PATTERN = re.compile(r"(?<!\\)@([\w-]+)")

# 与 MENTION_PATTERN 相同，但整个提及作为一个捕获组，split 后奇数下标即提及片段
_SPLIT_PATTERN = re.compile(r"((?<!\\)@[\w-]+)")


def _is_escaped(text: str, index: int) -> bool:
    return index > 0 and text[index - 1] == "\\"


def parse(text: str, cursor_offset: int) -> ActiveTag:
    """
    找出光标处正在输入的提及

    从光标向前扫描最近的未转义 '@'，'@' 之后到光标之间的内容即为活跃 tag。
    中间出现任何空白字符则没有活跃 tag。
    需要在每次文本变化和光标移动时重新调用。

    Args:
        text: 当前输入框文本
        cursor_offset: 光标位置（超出范围时会被截断到 [0, len(text)]）

    Returns:
        ActiveTag，tag 为 None 表示没有活跃提及；裸 '@' 对应空字符串 tag
    """
    text = text or ""
    cursor = max(0, min(cursor_offset, len(text)))

    index = cursor - 1
    while index >= 0:
        char = text[index]
        if char.isspace():
            return ActiveTag()
        if char == "@" and not _is_escaped(text, index):
            return ActiveTag(tag=text[index + 1:cursor], tag_start_offset=index)
        index -= 1

    return ActiveTag()


def extract_mentions(text: str) -> list[MentionToken]:
    """按从左到右的顺序提取所有 @tag（未解析）"""
    if not text:
        return []
    return [
        MentionToken(
            start_offset=match.start(),
            end_offset=match.end(),
            raw_tag=match.group(1),
        )
        for match in MENTION_PATTERN.finditer(text)
    ]


def build_name_index(directory: Iterable[User]) -> dict[str, User]:
    """
    显示名（小写）到用户的索引

    重名时保留目录顺序中的第一个用户。
    """
    index: dict[str, User] = {}
    for user in directory:
        if not user.is_mentionable:
            continue
        index.setdefault(user.display_name.lower(), user)
    return index


def resolve_mentions(
    text: str,
    directory: Iterable[User],
) -> list[MentionToken]:
    """提取并解析提及，无法匹配的 tag 保持未解析状态"""
    index = build_name_index(directory)
    tokens = []
    for token in extract_mentions(text):
        user = index.get(token.raw_tag.lower())
        tokens.append(
            MentionToken(
                start_offset=token.start_offset,
                end_offset=token.end_offset,
                raw_tag=token.raw_tag,
                resolved_user_id=user.id if user else None,
            )
        )
    return tokens


def resolve_recipients(
    text: str,
    directory: Iterable[User],
    author_id: Optional[str] = None,
) -> list[str]:
    """
    计算通知接收人

    Returns:
        去重后的用户 ID 列表（按首次出现顺序），不包含作者本人
    """
    recipients: list[str] = []
    for token in resolve_mentions(text, directory):
        user_id = token.resolved_user_id
        if user_id is None or user_id == author_id or user_id in recipients:
            continue
        recipients.append(user_id)
    return recipients


def split_segments(
    text: str,
    directory: Optional[Sequence[User]] = None,
) -> list[Segment]:
    """
    切分为渲染片段

    提及片段包含 '@'，所有片段的 text 依次拼接等于原文。
    传入 directory 时提及片段会带上解析结果，否则均为未解析。
    """
    if not text:
        return []

    index = build_name_index(directory or [])
    segments: list[Segment] = []
    offset = 0
    for position, part in enumerate(_SPLIT_PATTERN.split(text)):
        if position % 2 == 1:
            raw_tag = part[1:]
            user = index.get(raw_tag.lower())
            token = MentionToken(
                start_offset=offset,
                end_offset=offset + len(part),
                raw_tag=raw_tag,
                resolved_user_id=user.id if user else None,
            )
            segments.append(Segment(text=part, start_offset=offset, token=token))
        elif part:
            segments.append(Segment(text=part, start_offset=offset))
        offset += len(part)
    return segments
