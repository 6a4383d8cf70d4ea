"""
提及建议

给定活跃 tag 和目录快照，返回排序后的候选用户：
1. 显示名以 tag 开头（不区分大小写）
2. 显示名包含 tag（不区分大小写）
同组内保持目录顺序，结果数量有上限，调用者本人不出现在结果中。
裸 '@'（空 tag）返回整个目录（同样受上限约束），方便浏览可提及的用户。
"""

from typing import Iterable, Optional

from .mentions import parse
from .models import User

DEFAULT_SUGGESTION_LIMIT = 8


def suggest(
    active_tag: Optional[str],
    directory: Iterable[User],
    exclude_user_id: Optional[str] = None,
    limit: int = DEFAULT_SUGGESTION_LIMIT,
) -> list[User]:
    """
    计算建议列表

    Args:
        active_tag: parse() 得到的活跃 tag，None 表示没有活跃提及
        directory: 目录快照
        exclude_user_id: 需要排除的用户（调用者本人）
        limit: 最大返回数量

    Returns:
        排序后的用户列表
    """
    if active_tag is None or limit <= 0:
        return []

    needle = active_tag.lower()
    prefix_matches: list[User] = []
    substring_matches: list[User] = []

    for user in directory:
        if not user.is_mentionable:
            continue
        if exclude_user_id is not None and user.id == exclude_user_id:
            continue
        name = user.display_name.lower()
        if name.startswith(needle):
            prefix_matches.append(user)
        elif needle in name:
            substring_matches.append(user)

    return (prefix_matches + substring_matches)[:limit]


def apply_suggestion(text: str, cursor_offset: int, user: User) -> tuple[str, int]:
    """
    用选中的用户替换光标处的提及

    从触发的 '@' 到光标之间的内容替换为 "@<显示名> "，
    新光标位于插入的空格之后。没有活跃提及时原样返回。

    Returns:
        (新文本, 新光标位置)
    """
    text = text or ""
    cursor = max(0, min(cursor_offset, len(text)))
    active = parse(text, cursor)
    if not active.is_active:
        return text, cursor

    start = active.tag_start_offset
    inserted = f"@{user.display_name} "
    new_text = text[:start] + inserted + text[cursor:]
    return new_text, start + len(inserted)


class SuggestionList:
    """
    建议列表的导航状态

    - 列表非空时才处于打开状态
    - 每次更新候选项，高亮重置到第一项
    - 上下移动在两端循环
    """

    def __init__(self):
        self._items: list[User] = []
        self._highlighted = 0
        self._dismissed = False

    @property
    def items(self) -> list[User]:
        return list(self._items)

    @property
    def is_open(self) -> bool:
        return bool(self._items) and not self._dismissed

    @property
    def highlighted_index(self) -> int:
        return self._highlighted

    @property
    def highlighted(self) -> Optional[User]:
        if not self.is_open:
            return None
        return self._items[self._highlighted]

    def replace(self, items: list[User]) -> None:
        self._items = list(items)
        self._highlighted = 0
        self._dismissed = False

    def move_down(self) -> None:
        if self.is_open:
            self._highlighted = (self._highlighted + 1) % len(self._items)

    def move_up(self) -> None:
        if self.is_open:
            self._highlighted = (self._highlighted - 1) % len(self._items)

    def dismiss(self) -> None:
        self._dismissed = True

    def clear(self) -> None:
        self._items = []
        self._highlighted = 0
        self._dismissed = False
