from typing import Literal

from pydantic import BaseModel, Field

ActionStatus = Literal["pending", "completed"]

UNASSIGNED_OWNER = "Unassigned"


class Turn(BaseModel):
    id: str
    meeting_id: str
    speaker_id: str
    speaker_name: str
    text: str
    start_time: int
    end_time: int


class SpeakerUpdate(BaseModel):
    id: str
    meeting_id: str
    speaker_id: str
    speaker_name: str
    summary: str
    risks: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    proposed_actions: list[str] = Field(default_factory=list)
    created_at: int


class ActionItem(BaseModel):
    id: str
    meeting_id: str
    room_id: str
    task: str
    owner: str = UNASSIGNED_OWNER
    status: ActionStatus = "pending"
    created_at: int


class MeetingSummary(BaseModel):
    id: str
    meeting_id: str
    room_id: str
    overview: str
    decisions: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    generated_at: int


class MeetingSummaryView(MeetingSummary):
    meeting_status: str
    meeting_started_at: int | None = None
    meeting_ended_at: int | None = None


class TurnOutcome(BaseModel):
    turn: Turn
    speaker_update: SpeakerUpdate
    action_items: list[ActionItem] = Field(default_factory=list)
    agent_response: str
