"""WebSocket endpoint for real-time collaboration.

连接: /api/v1/ws?token=<token>

连接建立后会话自动挂到本人的个人通道，接收 notification / notification-read 事件；
通过 join-room / leave-room 关注候选人房间，接收 new-note 事件。
断线后服务端不保留房间关系，客户端重连后需要重新 join。
"""

import asyncio

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from app.core.async_utils import run_sync, stop_task
from app.core.deps import authenticate_token, get_broadcaster, get_candidate_store
from domains.collab_hub.core.broadcaster import QueueSession, RoomBroadcaster
from domains.collab_hub.core.events import (
    ErrorEvent,
    JoinRoom,
    LeaveRoom,
    Ping,
    PongEvent,
    RoomJoinedEvent,
    RoomLeftEvent,
    parse_client_command,
)
from domains.collab_hub.core.models import User
from domains.core import NotFoundError, ValidationError
from domains.infra.logging import bind_session_context, clear_request_context, get_logger

router = APIRouter()
logger = get_logger(__name__)

# 应用自定义关闭码：凭证无效
WS_CLOSE_UNAUTHORIZED = 4401


class ConnectionManager:
    """Manages WebSocket connections and their broadcaster sessions."""

    def __init__(self):
        self.active_connections: dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, user: User, broadcaster: RoomBroadcaster) -> QueueSession:
        """Accept and register a new connection."""
        await websocket.accept()
        session = QueueSession(user.id)
        self.active_connections[session.session_id] = websocket
        broadcaster.connect(session)
        logger.info("ws_connected", session_id=session.session_id, user_id=user.id)
        return session

    def disconnect(self, session: QueueSession, broadcaster: RoomBroadcaster):
        """Remove a connection and all of its room memberships."""
        broadcaster.disconnect(session)
        session.close()
        self.active_connections.pop(session.session_id, None)
        logger.info("ws_disconnected", session_id=session.session_id, user_id=session.user_id)

    async def pump(self, session: QueueSession):
        """按投递顺序把会话队列中的事件发送出去"""
        websocket = self.active_connections.get(session.session_id)
        if websocket is None:
            return
        while True:
            event = await session.next_event()
            if event is None:
                break
            await websocket.send_text(event.model_dump_json())

    @property
    def connection_count(self) -> int:
        return len(self.active_connections)


manager = ConnectionManager()


async def _handle_command(raw: str, session: QueueSession, broadcaster: RoomBroadcaster) -> None:
    try:
        command = parse_client_command(raw)
    except ValidationError as e:
        session.deliver(ErrorEvent.from_error(e))
        return

    if isinstance(command, JoinRoom):
        candidate = await run_sync(get_candidate_store().get, command.candidate_id)
        if candidate is None:
            session.deliver(ErrorEvent.from_error(NotFoundError("候选人", command.candidate_id)))
            return
        outcome = broadcaster.join(command.candidate_id, session)
        logger.info("room_joined", candidate_id=command.candidate_id, outcome=outcome.value)
        session.deliver(RoomJoinedEvent(candidate_id=command.candidate_id, outcome=outcome))
    elif isinstance(command, LeaveRoom):
        outcome = broadcaster.leave(command.candidate_id, session)
        logger.info("room_left", candidate_id=command.candidate_id, outcome=outcome.value)
        session.deliver(RoomLeftEvent(candidate_id=command.candidate_id, outcome=outcome))
    elif isinstance(command, Ping):
        session.deliver(PongEvent())


@router.websocket("/ws")
async def collab_stream(websocket: WebSocket, token: str = Query("")):
    """
    协作实时通道

    凭证无效时以 4401 关闭连接（握手阶段即拒绝）。
    """
    user = await authenticate_token(token)
    if user is None:
        logger.info("ws_rejected", reason="unauthorized")
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED)
        return

    broadcaster = get_broadcaster()
    session = await manager.connect(websocket, user, broadcaster)
    bind_session_context(session.session_id, user.id)
    sender = asyncio.create_task(manager.pump(session))

    try:
        while True:
            raw = await websocket.receive_text()
            await _handle_command(raw, session, broadcaster)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("ws_error", session_id=session.session_id, error=str(e))
    finally:
        manager.disconnect(session, broadcaster)
        await stop_task(sender, name="ws_sender")
        clear_request_context()
