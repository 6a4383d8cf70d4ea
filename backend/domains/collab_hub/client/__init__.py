"""
协作客户端

- DirectoryCache: 会话级用户目录缓存
- MentionComposer: 提及输入框状态
- NoteTimeline / NotificationInbox: 拉取与推送的合并
- CollabApiClient / CollabSession: HTTP 客户端与实时会话
"""

from .api import CollabApiClient, map_error
from .composer import MentionComposer
from .directory import DirectoryCache
from .reconciliation import NoteTimeline, NotificationInbox
from .session import CollabSession, FetchResult
from .settings import ClientSettings, get_client_settings

__all__ = [
    'ClientSettings',
    'get_client_settings',
    'DirectoryCache',
    'MentionComposer',
    'NoteTimeline',
    'NotificationInbox',
    'CollabApiClient',
    'map_error',
    'CollabSession',
    'FetchResult',
]
