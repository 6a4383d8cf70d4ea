"""
目录缓存

每个会话持有一份用户目录快照，会话开始时刷新一次，之后可按需再次刷新。
刷新失败时保留上一份快照（失败不影响输入框的使用）。
本人由缓存统一排除，所有使用方看到一致的排除策略。
"""

import logging
from typing import Awaitable, Callable, Optional

from ..core.models import User

logger = logging.getLogger(__name__)

DirectoryLoader = Callable[[], Awaitable[list[User]]]


class DirectoryCache:
    """
    用户目录缓存

    使用示例:
        cache = DirectoryCache(api.list_users, self_user_id="u1")
        await cache.refresh()
        suggest(tag, cache.users)
    """

    def __init__(self, loader: DirectoryLoader, self_user_id: Optional[str] = None):
        self._loader = loader
        self._self_user_id = self_user_id
        self._snapshot: list[User] = []
        self._loaded = False
        self.last_error: Optional[Exception] = None

    @property
    def self_user_id(self) -> Optional[str]:
        return self._self_user_id

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def users(self) -> list[User]:
        """可提及的其他用户（不含本人）"""
        return [u for u in self._snapshot if u.id != self._self_user_id]

    @property
    def known_users(self) -> list[User]:
        """完整快照（含本人），用于渲染时的提及解析"""
        return list(self._snapshot)

    async def refresh(self) -> list[User]:
        """
        重新加载目录

        Returns:
            刷新后的 users；失败时返回旧快照
        """
        try:
            fetched = await self._loader()
        except Exception as e:
            self.last_error = e
            logger.warning(f"目录刷新失败，保留旧快照 ({len(self._snapshot)} 个用户): {e}")
            return self.users

        self._snapshot = [u for u in fetched if u.is_mentionable]
        self._loaded = True
        self.last_error = None
        logger.debug(f"目录已刷新: {len(self._snapshot)} 个用户")
        return self.users
