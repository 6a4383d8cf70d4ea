"""
提及输入框状态

把解析器、建议引擎和目录缓存组合成输入框的状态机：
- 文本变化和光标移动都会重新解析活跃提及并刷新建议
- 建议列表打开时，方向键循环移动高亮，Enter 确认，Escape 关闭（不改动文本）
- 鼠标点击某一项与键盘确认效果相同
- 建议列表打开时 Enter 被消费，不会提交表单
"""

from typing import Optional

from ..core.mentions import parse, split_segments
from ..core.models import ActiveTag, Segment, User
from ..core.suggestions import DEFAULT_SUGGESTION_LIMIT, SuggestionList, apply_suggestion, suggest
from .directory import DirectoryCache

KEY_DOWN = "ArrowDown"
KEY_UP = "ArrowUp"
KEY_ENTER = "Enter"
KEY_ESCAPE = "Escape"


class MentionComposer:
    """
    笔记输入框

    使用示例:
        composer = MentionComposer(cache)
        composer.update("ping @al", 8)
        composer.suggestions.items      # [Alice]
        composer.handle_key("Enter")    # True，文本变为 "ping @Alice "
    """

    def __init__(self, directory: DirectoryCache, limit: int = DEFAULT_SUGGESTION_LIMIT):
        self._directory = directory
        self._limit = limit
        self._text = ""
        self._cursor = 0
        self._active = ActiveTag()
        self.suggestions = SuggestionList()

    @property
    def text(self) -> str:
        return self._text

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def active_tag(self) -> ActiveTag:
        return self._active

    @property
    def segments(self) -> list[Segment]:
        """当前文本的高亮片段，提及是否已知按完整目录（含本人）判断"""
        return split_segments(self._text, self._directory.known_users)

    def update(self, text: str, cursor: int) -> None:
        """文本变化"""
        self._text = text or ""
        self._cursor = max(0, min(cursor, len(self._text)))
        self._refresh()

    def move_cursor(self, cursor: int) -> None:
        """光标移动（点击或方向键左右），文本不变"""
        self.update(self._text, cursor)

    def handle_key(self, key: str) -> bool:
        """
        处理按键

        Returns:
            True 表示按键已被建议列表消费，调用方不应再处理（例如不提交表单）
        """
        if not self.suggestions.is_open:
            return False

        if key == KEY_DOWN:
            self.suggestions.move_down()
        elif key == KEY_UP:
            self.suggestions.move_up()
        elif key == KEY_ENTER:
            self.confirm()
        elif key == KEY_ESCAPE:
            self.suggestions.dismiss()
        else:
            return False
        return True

    def select(self, index: int) -> bool:
        """鼠标选择第 index 项"""
        items = self.suggestions.items
        if not self.suggestions.is_open or not 0 <= index < len(items):
            return False
        self.confirm(items[index])
        return True

    def confirm(self, user: Optional[User] = None) -> tuple[str, int]:
        """
        用选中的用户（默认为高亮项）替换活跃提及

        Returns:
            (新文本, 新光标位置)
        """
        user = user or self.suggestions.highlighted
        if user is None:
            return self._text, self._cursor

        self._text, self._cursor = apply_suggestion(self._text, self._cursor, user)
        self._active = parse(self._text, self._cursor)
        self.suggestions.clear()
        return self._text, self._cursor

    def reset(self) -> None:
        """提交成功后清空"""
        self._text = ""
        self._cursor = 0
        self._active = ActiveTag()
        self.suggestions.clear()

    def _refresh(self) -> None:
        self._active = parse(self._text, self._cursor)
        if not self._active.is_active:
            self.suggestions.clear()
            return
        matches = suggest(
            self._active.tag,
            self._directory.users,
            exclude_user_id=self._directory.self_user_id,
            limit=self._limit,
        )
        self.suggestions.replace(matches)
