from __future__ import annotations

import asyncio
import logging
from typing import Callable

from opsroom.errors import Busy, ExtractionFailure, InvalidState
from opsroom.models.llm_model import ExtractionRequest, ExtractionResult
from opsroom.models.record_model import UNASSIGNED_OWNER, ActionItem, SpeakerUpdate, Turn, TurnOutcome
from opsroom.services.access import owned_meeting
from opsroom.services.bedrock_utils import extract_turn
from opsroom.services.repository import Repository
from opsroom.services.state_machine import MeetingStateMachine
from opsroom.utils.time_utils import now_ms

logger = logging.getLogger(__name__)

Extractor = Callable[[ExtractionRequest], ExtractionResult]


class TurnProcessor:
    """Turns one finished utterance into a transcript entry, a speaker update and action items.

    At most one turn per meeting is processed at a time. The guard is an
    in-process set of meeting ids, which assumes a single writer per meeting;
    a second call while one is in flight is rejected with ``Busy`` rather
    than queued.
    """

    def __init__(
        self,
        state_machine: MeetingStateMachine,
        repository: Repository | None = None,
        extractor: Extractor | None = None,
    ):
        self.state_machine = state_machine
        self.repository = repository or state_machine.repository
        self.extractor = extractor or extract_turn
        self._in_flight: set[str] = set()

    def is_processing(self, meeting_id: str) -> bool:
        return meeting_id in self._in_flight

    async def process_turn(
        self,
        user_id: str | None,
        meeting_id: str,
        speaker_id: str,
        speaker_name: str,
        text: str,
        room_context: str | None = None,
        room_goal: str | None = None,
        start_time: int | None = None,
        end_time: int | None = None,
    ) -> TurnOutcome:
        meeting, room = owned_meeting(self.repository, user_id, meeting_id)
        if meeting.status != "active":
            raise InvalidState(f"Meeting is {meeting.status}, not active")
        if meeting_id in self._in_flight:
            raise Busy("A turn is already being processed for this meeting")

        self._in_flight.add(meeting_id)
        self.state_machine.set_sub_state(meeting_id, "processing")
        try:
            turn = self._record_turn(meeting_id, speaker_id, speaker_name, text, start_time, end_time)
            request = ExtractionRequest(
                utterance_text=text,
                speaker_name=speaker_name,
                room_context=room_context if room_context is not None else room.context_text(),
                room_goal=room_goal if room_goal is not None else room.goal,
            )
            try:
                result = await asyncio.to_thread(self.extractor, request)
            except ExtractionFailure:
                logger.warning("Extraction failed for meeting %s turn %s; transcript kept", meeting_id, turn.id)
                raise
            update = self._record_update(meeting_id, speaker_id, speaker_name, result)
            items = self._record_actions(meeting_id, room.id, result)
            logger.info(
                "Processed turn %s for meeting %s: %d risks, %d action items",
                turn.id,
                meeting_id,
                len(result.risks),
                len(items),
            )
            return TurnOutcome(
                turn=turn,
                speaker_update=update,
                action_items=items,
                agent_response=result.agent_response,
            )
        finally:
            self.state_machine.set_sub_state(meeting_id, "listening")
            self._in_flight.discard(meeting_id)

    def _record_turn(
        self,
        meeting_id: str,
        speaker_id: str,
        speaker_name: str,
        text: str,
        start_time: int | None,
        end_time: int | None,
    ) -> Turn:
        now = now_ms()
        record = {
            "meeting_id": meeting_id,
            "speaker_id": speaker_id,
            "speaker_name": speaker_name,
            "text": text,
            "start_time": start_time if start_time is not None else now,
            "end_time": end_time if end_time is not None else now,
        }
        turn_id = self.repository.insert("transcripts", record)
        return Turn(id=turn_id, **record)

    def _record_update(
        self, meeting_id: str, speaker_id: str, speaker_name: str, result: ExtractionResult
    ) -> SpeakerUpdate:
        record = {
            "meeting_id": meeting_id,
            "speaker_id": speaker_id,
            "speaker_name": speaker_name,
            "summary": result.summary,
            "risks": result.risks,
            "gaps": result.gaps,
            "proposed_actions": [action.task for action in result.proposed_actions],
            "created_at": now_ms(),
        }
        update_id = self.repository.insert("speaker_updates", record)
        return SpeakerUpdate(id=update_id, **record)

    def _record_actions(self, meeting_id: str, room_id: str, result: ExtractionResult) -> list[ActionItem]:
        if not result.proposed_actions:
            return []
        now = now_ms()
        records = [
            {
                "meeting_id": meeting_id,
                "room_id": room_id,
                "task": action.task,
                "owner": action.owner or UNASSIGNED_OWNER,
                "status": "pending",
                "created_at": now,
            }
            for action in result.proposed_actions
        ]
        ids = self.repository.insert_many("action_items", records)
        return [ActionItem(id=item_id, **record) for item_id, record in zip(ids, records)]
