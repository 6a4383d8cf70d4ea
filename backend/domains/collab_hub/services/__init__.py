"""服务层：笔记提交与通知扇出"""

from .note_service import NoteService
from .notification_service import NotificationService, build_message

__all__ = ['NoteService', 'NotificationService', 'build_message']
