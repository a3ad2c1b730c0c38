from __future__ import annotations

import logging
import threading

from opsroom.errors import Conflict, InvalidTransition
from opsroom.models.meeting_model import Meeting, MeetingState, SubState
from opsroom.services.access import owned_meeting, owned_room
from opsroom.services.repository import Repository, get_repository
from opsroom.utils.time_utils import now_ms

logger = logging.getLogger(__name__)


class MeetingStateMachine:
    """Lifecycle of meetings: lobby -> active <-> paused -> ended.

    ``status`` is persisted through the repository. The in-session sub-state
    (listening/processing/speaking) belongs to the single facilitation session
    served by this instance and is kept in memory only.
    """

    def __init__(self, repository: Repository | None = None):
        self.repository = repository or get_repository()
        self._sub_states: dict[str, SubState | None] = {}
        self._create_lock = threading.Lock()

    def create(self, user_id: str | None, room_id: str) -> Meeting:
        owned_room(self.repository, user_id, room_id)
        with self._create_lock:
            existing = self.repository.query("meetings", room_id=room_id)
            if any(Meeting(**item).is_open for item in existing):
                raise Conflict("Room already has an active meeting")
            meeting_id = self.repository.insert("meetings", {"room_id": room_id, "status": "lobby"})
        logger.info("Created meeting %s for room %s", meeting_id, room_id)
        return Meeting(id=meeting_id, room_id=room_id, status="lobby")

    def get(self, user_id: str | None, meeting_id: str) -> Meeting:
        meeting, _room = owned_meeting(self.repository, user_id, meeting_id)
        return meeting

    def get_active(self, user_id: str | None, room_id: str) -> Meeting | None:
        owned_room(self.repository, user_id, room_id)
        for item in self.repository.query("meetings", room_id=room_id):
            meeting = Meeting(**item)
            if meeting.is_open:
                return meeting
        return None

    def list_for_room(self, user_id: str | None, room_id: str) -> list[Meeting]:
        owned_room(self.repository, user_id, room_id)
        meetings = [Meeting(**item) for item in self.repository.query("meetings", room_id=room_id)]
        meetings.reverse()
        return meetings

    def start(self, user_id: str | None, meeting_id: str) -> Meeting:
        meeting = self.get(user_id, meeting_id)
        if meeting.status not in ("lobby", "paused"):
            raise InvalidTransition(f"Meeting cannot be started from {meeting.status}")
        updated = self.repository.patch(
            "meetings",
            meeting_id,
            status="active",
            started_at=meeting.started_at if meeting.started_at is not None else now_ms(),
        )
        self._sub_states[meeting_id] = "listening"
        logger.info("Meeting %s started (was %s)", meeting_id, meeting.status)
        return Meeting(**updated)

    def pause(self, user_id: str | None, meeting_id: str) -> Meeting:
        meeting = self.get(user_id, meeting_id)
        if meeting.status != "active":
            raise InvalidTransition(f"Meeting cannot be paused from {meeting.status}")
        updated = self.repository.patch("meetings", meeting_id, status="paused")
        self._sub_states.pop(meeting_id, None)
        logger.info("Meeting %s paused", meeting_id)
        return Meeting(**updated)

    def end(self, user_id: str | None, meeting_id: str) -> Meeting:
        meeting = self.get(user_id, meeting_id)
        self._sub_states.pop(meeting_id, None)
        if meeting.status == "ended":
            return meeting
        updated = self.repository.patch(
            "meetings",
            meeting_id,
            status="ended",
            ended_at=meeting.ended_at if meeting.ended_at is not None else now_ms(),
        )
        logger.info("Meeting %s ended", meeting_id)
        return Meeting(**updated)

    def set_sub_state(self, meeting_id: str, sub_state: SubState | None) -> None:
        record = self.repository.get("meetings", meeting_id)
        if not record or record.get("status") != "active":
            return
        self._sub_states[meeting_id] = sub_state

    def reset_sub_state(self, meeting_id: str) -> None:
        self._sub_states.pop(meeting_id, None)

    def sub_state(self, meeting_id: str) -> SubState | None:
        return self._sub_states.get(meeting_id)

    def get_state(self, user_id: str | None, meeting_id: str) -> MeetingState:
        meeting = self.get(user_id, meeting_id)
        return MeetingState(
            meeting_id=meeting.id,
            status=meeting.status,
            sub_state=self._sub_states.get(meeting.id) if meeting.status == "active" else None,
            started_at=meeting.started_at,
            ended_at=meeting.ended_at,
        )
