from pydantic import BaseModel, Field

from opsroom.models.meeting_model import SubState
from opsroom.models.record_model import ActionStatus, MeetingSummary
from opsroom.models.room_model import RoomStatus


class RoomCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    goal: str | None = Field(default=None, max_length=500)


class RoomUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    goal: str | None = Field(default=None, max_length=500)
    status: RoomStatus | None = None
    context_summary: str | None = None


class TurnRequest(BaseModel):
    text: str = Field(min_length=1)
    speaker_id: str = Field(min_length=1)
    speaker_name: str = Field(min_length=1)
    room_context: str | None = None
    room_goal: str | None = None
    start_time: int | None = None
    end_time: int | None = None


class SubStateRequest(BaseModel):
    sub_state: SubState | None = None


class ActionItemStatusRequest(BaseModel):
    status: ActionStatus


class FinishResponse(BaseModel):
    meeting_id: str
    status: str
    summary: MeetingSummary | None = None
    summary_error: str | None = None
