from __future__ import annotations

import logging
from functools import lru_cache

from opsroom.errors import OpsRoomError
from opsroom.models.api_model import FinishResponse
from opsroom.models.meeting_model import Meeting, MeetingState, SubState
from opsroom.models.record_model import MeetingSummary, MeetingSummaryView, SpeakerUpdate, Turn, TurnOutcome
from opsroom.services.access import owned_meeting
from opsroom.services.repository import Repository, get_repository
from opsroom.services.state_machine import MeetingStateMachine
from opsroom.services.summary_aggregator import SummaryAggregator
from opsroom.services.turn_processor import TurnProcessor

logger = logging.getLogger(__name__)


class MeetingController:
    def __init__(
        self,
        repository: Repository | None = None,
        state_machine: MeetingStateMachine | None = None,
        turn_processor: TurnProcessor | None = None,
        aggregator: SummaryAggregator | None = None,
    ):
        self.repository = repository or get_repository()
        self.state_machine = state_machine or MeetingStateMachine(self.repository)
        self.turn_processor = turn_processor or TurnProcessor(self.state_machine, self.repository)
        self.aggregator = aggregator or SummaryAggregator(self.repository)

    def list_meetings(self, user_id: str | None, room_id: str) -> list[Meeting]:
        return self.state_machine.list_for_room(user_id, room_id)

    def active_meeting(self, user_id: str | None, room_id: str) -> Meeting | None:
        return self.state_machine.get_active(user_id, room_id)

    def create_meeting(self, user_id: str | None, room_id: str) -> Meeting:
        return self.state_machine.create(user_id, room_id)

    def get_meeting(self, user_id: str | None, meeting_id: str) -> Meeting:
        return self.state_machine.get(user_id, meeting_id)

    def get_state(self, user_id: str | None, meeting_id: str) -> MeetingState:
        return self.state_machine.get_state(user_id, meeting_id)

    def start(self, user_id: str | None, meeting_id: str) -> Meeting:
        return self.state_machine.start(user_id, meeting_id)

    def pause(self, user_id: str | None, meeting_id: str) -> Meeting:
        return self.state_machine.pause(user_id, meeting_id)

    def end(self, user_id: str | None, meeting_id: str) -> Meeting:
        return self.state_machine.end(user_id, meeting_id)

    def set_sub_state(self, user_id: str | None, meeting_id: str, sub_state: SubState | None) -> MeetingState:
        self.state_machine.get(user_id, meeting_id)
        self.state_machine.set_sub_state(meeting_id, sub_state)
        return self.state_machine.get_state(user_id, meeting_id)

    def connect(self, user_id: str | None, room_id: str) -> MeetingState:
        """Avatar session connected: open a meeting if needed, start or resume it and listen."""
        meeting = self.state_machine.get_active(user_id, room_id)
        if meeting is None:
            meeting = self.state_machine.create(user_id, room_id)
        self.state_machine.reset_sub_state(meeting.id)
        if meeting.status in ("lobby", "paused"):
            meeting = self.state_machine.start(user_id, meeting.id)
        self.state_machine.set_sub_state(meeting.id, "listening")
        return self.state_machine.get_state(user_id, meeting.id)

    async def process_turn(self, user_id: str | None, meeting_id: str, **turn) -> TurnOutcome:
        return await self.turn_processor.process_turn(user_id, meeting_id, **turn)

    def list_turns(self, user_id: str | None, meeting_id: str) -> list[Turn]:
        owned_meeting(self.repository, user_id, meeting_id)
        turns = [Turn(**item) for item in self.repository.query("transcripts", meeting_id=meeting_id)]
        return sorted(turns, key=lambda turn: turn.start_time)

    def list_speaker_updates(self, user_id: str | None, meeting_id: str) -> list[SpeakerUpdate]:
        owned_meeting(self.repository, user_id, meeting_id)
        updates = [SpeakerUpdate(**item) for item in self.repository.query("speaker_updates", meeting_id=meeting_id)]
        return sorted(updates, key=lambda update: update.created_at)

    async def generate_summary(self, user_id: str | None, meeting_id: str) -> MeetingSummary:
        return await self.aggregator.generate_summary(user_id, meeting_id)

    def get_summary(self, user_id: str | None, meeting_id: str) -> MeetingSummary | None:
        return self.aggregator.get_for_meeting(user_id, meeting_id)

    def list_summaries(self, user_id: str | None, room_id: str) -> list[MeetingSummaryView]:
        return self.aggregator.list_for_room(user_id, room_id)

    def latest_summary(self, user_id: str | None, room_id: str) -> MeetingSummaryView | None:
        return self.aggregator.latest_for_room(user_id, room_id)

    async def finish(self, user_id: str | None, meeting_id: str) -> FinishResponse:
        """Summarize best-effort, then end the meeting whatever the summary outcome."""
        self.state_machine.get(user_id, meeting_id)
        summary: MeetingSummary | None = None
        summary_error: str | None = None
        try:
            summary = await self.aggregator.generate_summary(user_id, meeting_id)
        except OpsRoomError as exc:
            logger.warning("Meeting %s ends without a summary: %s", meeting_id, exc)
            summary_error = str(exc) or type(exc).__name__
        except Exception:
            logger.exception("Summary generation crashed for meeting %s", meeting_id)
            self.state_machine.end(user_id, meeting_id)
            raise
        meeting = self.state_machine.end(user_id, meeting_id)
        return FinishResponse(meeting_id=meeting.id, status=meeting.status, summary=summary, summary_error=summary_error)


@lru_cache
def get_meeting_controller() -> MeetingController:
    return MeetingController()
