"""
候选人协作笔记领域模块

围绕候选人记录的实时协作：
- 笔记中的 @提及 解析与输入建议
- 候选人房间内的笔记实时广播
- 提及通知扇出与已读状态
- 客户端：目录缓存、输入框状态、拉取与推送的合并

客户端代码在 collab_hub.client 中，需要单独导入。
"""

from .core.models import Candidate, Note, NotificationRecord, User
from .core.broadcaster import RoomBroadcaster
from .services import NoteService, NotificationService

__all__ = [
    'User',
    'Candidate',
    'Note',
    'NotificationRecord',
    'RoomBroadcaster',
    'NoteService',
    'NotificationService',
]
