"""
核心层：数据模型、提及解析、建议、事件与广播

纯逻辑与进程内状态，不依赖 Web 框架。
"""

from .broadcaster import QueueSession, RoomBroadcaster, SessionHandle
from .mentions import (
    extract_mentions,
    parse,
    resolve_mentions,
    resolve_recipients,
    split_segments,
)
from .models import (
    ActiveTag,
    Candidate,
    MentionToken,
    Note,
    NotificationRecord,
    ReadResult,
    Segment,
    User,
)
from .store import (
    CandidateStore,
    InMemoryCandidateStore,
    InMemoryNoteStore,
    InMemoryNotificationStore,
    InMemoryUserDirectory,
    NoteStore,
    NotificationStore,
    UserDirectory,
    load_seed,
)
from .suggestions import DEFAULT_SUGGESTION_LIMIT, SuggestionList, apply_suggestion, suggest

__all__ = [
    'User', 'Candidate', 'Note', 'MentionToken', 'ActiveTag', 'Segment',
    'NotificationRecord', 'ReadResult',
    'parse', 'extract_mentions', 'resolve_mentions', 'resolve_recipients', 'split_segments',
    'suggest', 'apply_suggestion', 'SuggestionList', 'DEFAULT_SUGGESTION_LIMIT',
    'RoomBroadcaster', 'QueueSession', 'SessionHandle',
    'CandidateStore', 'UserDirectory', 'NoteStore', 'NotificationStore',
    'InMemoryCandidateStore', 'InMemoryUserDirectory', 'InMemoryNoteStore',
    'InMemoryNotificationStore', 'load_seed',
]
