"""Contracts for the extraction and summarization model calls.

Replies are validated strictly against these models. A reply that does not
fit is treated as a failed call rather than partially recovered.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProposedAction(BaseModel):
    task: str = Field(min_length=1)
    owner: str | None = None

    @field_validator("owner")
    @classmethod
    def blank_owner_is_missing(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()


class ExtractionRequest(BaseModel):
    utterance_text: str
    speaker_name: str
    room_context: str | None = None
    room_goal: str | None = None


class ExtractionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str
    risks: list[str]
    gaps: list[str]
    proposed_actions: list[ProposedAction] = Field(alias="proposedActions")
    agent_response: str = Field(alias="agentResponse")


class TurnDigest(BaseModel):
    speaker_name: str
    text: str


class SpeakerUpdateDigest(BaseModel):
    speaker_name: str
    summary: str
    risks: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    proposed_actions: list[str] = Field(default_factory=list)


class ActionItemDigest(BaseModel):
    task: str
    owner: str
    status: str


class SummaryRequest(BaseModel):
    turns: list[TurnDigest] = Field(default_factory=list)
    speaker_updates: list[SpeakerUpdateDigest] = Field(default_factory=list)
    action_items: list[ActionItemDigest] = Field(default_factory=list)
    room_goal: str | None = None
    room_context: str | None = None


class SummaryResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overview: str
    decisions: list[str]
    risks: list[str]
    next_steps: list[str] = Field(alias="nextSteps")
