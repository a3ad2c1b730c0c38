from typing import Literal

from pydantic import BaseModel

MeetingStatus = Literal["lobby", "active", "paused", "ended"]
SubState = Literal["listening", "processing", "speaking"]

OPEN_STATUSES = ("lobby", "active", "paused")


class Meeting(BaseModel):
    id: str
    room_id: str
    status: MeetingStatus = "lobby"
    started_at: int | None = None
    ended_at: int | None = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES


class MeetingState(BaseModel):
    """Durable status plus the session-local sub-state; only ``status`` is persisted."""

    meeting_id: str
    status: MeetingStatus
    sub_state: SubState | None = None
    started_at: int | None = None
    ended_at: int | None = None
