"""
Shared fixtures for collaboration tests.

目录里有三个用户（Alice / Bob / Carol-Ann）和两个候选人，
服务注册表在每个用例前后重置，路由测试通过 registry.set() 注入同一份数据。
"""

import pytest

from domains.collab_hub.core.broadcaster import RoomBroadcaster
from domains.collab_hub.core.models import Candidate, Note, NotificationRecord, User
from domains.collab_hub.core.store import (
    InMemoryCandidateStore,
    InMemoryNoteStore,
    InMemoryNotificationStore,
    InMemoryUserDirectory,
)
from domains.collab_hub.services import NoteService, NotificationService
from domains.core import get_service_registry, register_core_services, reset_service_registry

ALICE = User(id="u1", display_name="Alice", email="alice@example.com")
BOB = User(id="u2", display_name="Bob", email="bob@example.com")
CAROL = User(id="u3", display_name="Carol-Ann", email="carol@example.com")

JANE = Candidate(id="c1", name="Jane Doe")
JOHN = Candidate(id="c2", name="John Smith")

TOKENS = {"u1": "t-alice", "u2": "t-bob", "u3": "t-carol"}


class RecordingSession:
    """记录投递事件的会话，可以模拟投递失败"""

    def __init__(self, user_id: str, session_id: str, fail: bool = False):
        self.user_id = user_id
        self.session_id = session_id
        self.fail = fail
        self.events = []

    def deliver(self, event) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.events.append(event)

    def of_type(self, event_type: str) -> list:
        return [e for e in self.events if e.type == event_type]


def make_note(note_id: str, candidate_id: str = "c1", author_id: str = "u1", text: str = "hello") -> Note:
    return Note(id=note_id, candidate_id=candidate_id, author_id=author_id, raw_text=text)


def make_record(
    record_id: str,
    note_id: str,
    recipient: str = "u2",
    is_read: bool = False,
    candidate_id: str = "c1",
) -> NotificationRecord:
    return NotificationRecord(
        id=record_id,
        note_id=note_id,
        candidate_id=candidate_id,
        recipient_user_id=recipient,
        is_read=is_read,
    )


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {TOKENS[user_id]}"}


@pytest.fixture
def directory():
    store = InMemoryUserDirectory()
    for user in (ALICE, BOB, CAROL):
        store.add(user, token=TOKENS[user.id])
    return store


@pytest.fixture
def candidates():
    return InMemoryCandidateStore([JANE, JOHN])


@pytest.fixture
def note_store():
    return InMemoryNoteStore()


@pytest.fixture
def notification_store():
    return InMemoryNotificationStore()


@pytest.fixture
def broadcaster():
    return RoomBroadcaster()


@pytest.fixture
def notification_service(notification_store, broadcaster):
    return NotificationService(notification_store, broadcaster)


@pytest.fixture
def note_service(note_store, candidates, directory, broadcaster, notification_service):
    return NoteService(
        note_store=note_store,
        candidate_store=candidates,
        directory=directory,
        broadcaster=broadcaster,
        notifications=notification_service,
    )


@pytest.fixture
def registry(directory, candidates):
    reset_service_registry()
    registry = get_service_registry()
    registry.set("candidate_store", candidates)
    registry.set("user_directory", directory)
    register_core_services()
    yield registry
    reset_service_registry()


@pytest.fixture
def client(registry):
    from fastapi.testclient import TestClient

    from app.main import app

    with TestClient(app) as test_client:
        yield test_client
