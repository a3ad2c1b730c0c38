import jwt
import pytest

from opsroom.config import get_settings
from opsroom.rooms.controller import RoomController
from opsroom.services.repository import Repository
from opsroom.services.state_machine import MeetingStateMachine

JWT_SECRET = "opsroom-test-secret-0123456789abcdef"
OWNER = "user-1"
STRANGER = "user-2"


@pytest.fixture(autouse=True)
def _env(monkeypatch, tmp_path):
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "test")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "test")
    monkeypatch.setenv("BEDROCK_MODEL_ID", "anthropic.claude-3-haiku-20240307-v1:0")
    monkeypatch.setenv("AUTH_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("STORE_PATH", str(tmp_path / "default-store.json"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def repository(tmp_path):
    return Repository(tmp_path / "store.json")


@pytest.fixture
def room(repository):
    return RoomController(repository).create_room(OWNER, "Sprint sync", goal="Ship OAuth login")


@pytest.fixture
def state_machine(repository):
    return MeetingStateMachine(repository)


@pytest.fixture
def active_meeting(state_machine, room):
    meeting = state_machine.create(OWNER, room.id)
    return state_machine.start(OWNER, meeting.id)


@pytest.fixture
def token():
    def _make(subject=OWNER, secret=JWT_SECRET):
        return jwt.encode({"sub": subject}, secret, algorithm="HS256")

    return _make
