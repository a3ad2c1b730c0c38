from __future__ import annotations

import asyncio
import logging
from typing import Callable

from opsroom.errors import Busy, ExtractionFailure
from opsroom.models.llm_model import (
    ActionItemDigest,
    SpeakerUpdateDigest,
    SummaryRequest,
    SummaryResult,
    TurnDigest,
)
from opsroom.models.meeting_model import Meeting
from opsroom.models.record_model import ActionItem, MeetingSummary, MeetingSummaryView, SpeakerUpdate, Turn
from opsroom.models.room_model import Room
from opsroom.services.access import owned_meeting, owned_room
from opsroom.services.bedrock_utils import summarize_meeting
from opsroom.services.repository import Repository, get_repository
from opsroom.utils.time_utils import now_ms

logger = logging.getLogger(__name__)

Summarizer = Callable[[SummaryRequest], SummaryResult]


class SummaryAggregator:
    """Builds the single end-of-meeting summary from everything a meeting accumulated.

    Never changes meeting status; callers end the meeting regardless of
    whether summarization succeeded.
    """

    def __init__(self, repository: Repository | None = None, summarizer: Summarizer | None = None):
        self.repository = repository or get_repository()
        self.summarizer = summarizer or summarize_meeting
        self._in_flight: set[str] = set()

    async def generate_summary(self, user_id: str | None, meeting_id: str) -> MeetingSummary:
        meeting, room = owned_meeting(self.repository, user_id, meeting_id)
        if meeting_id in self._in_flight:
            raise Busy("Summary generation already running for this meeting")

        self._in_flight.add(meeting_id)
        try:
            request = self._build_request(meeting, room)
            try:
                result = await asyncio.to_thread(self.summarizer, request)
            except ExtractionFailure:
                logger.warning("Summarization failed for meeting %s; no summary written", meeting_id)
                raise
            return self._upsert(meeting, result)
        finally:
            self._in_flight.discard(meeting_id)

    def _build_request(self, meeting: Meeting, room: Room) -> SummaryRequest:
        turns = sorted(
            (Turn(**item) for item in self.repository.query("transcripts", meeting_id=meeting.id)),
            key=lambda turn: turn.start_time,
        )
        updates = [SpeakerUpdate(**item) for item in self.repository.query("speaker_updates", meeting_id=meeting.id)]
        items = [ActionItem(**item) for item in self.repository.query("action_items", meeting_id=meeting.id)]
        return SummaryRequest(
            turns=[TurnDigest(speaker_name=turn.speaker_name, text=turn.text) for turn in turns],
            speaker_updates=[
                SpeakerUpdateDigest(
                    speaker_name=update.speaker_name,
                    summary=update.summary,
                    risks=update.risks,
                    gaps=update.gaps,
                    proposed_actions=update.proposed_actions,
                )
                for update in updates
            ],
            action_items=[ActionItemDigest(task=item.task, owner=item.owner, status=item.status) for item in items],
            room_goal=room.goal,
            room_context=room.context_summary,
        )

    def _upsert(self, meeting: Meeting, result: SummaryResult) -> MeetingSummary:
        fields = {
            "overview": result.overview,
            "decisions": result.decisions,
            "risks": result.risks,
            "next_steps": result.next_steps,
            "generated_at": now_ms(),
        }
        existing = self.repository.query("summaries", meeting_id=meeting.id)
        if existing:
            updated = self.repository.patch("summaries", existing[0]["id"], **fields)
            logger.info("Replaced summary %s for meeting %s", updated["id"], meeting.id)
            return MeetingSummary(**updated)
        record = {"meeting_id": meeting.id, "room_id": meeting.room_id, **fields}
        summary_id = self.repository.insert("summaries", record)
        logger.info("Stored summary %s for meeting %s", summary_id, meeting.id)
        return MeetingSummary(id=summary_id, **record)

    def get_for_meeting(self, user_id: str | None, meeting_id: str) -> MeetingSummary | None:
        owned_meeting(self.repository, user_id, meeting_id)
        existing = self.repository.query("summaries", meeting_id=meeting_id)
        return MeetingSummary(**existing[0]) if existing else None

    def list_for_room(self, user_id: str | None, room_id: str) -> list[MeetingSummaryView]:
        owned_room(self.repository, user_id, room_id)
        views: list[MeetingSummaryView] = []
        for item in self.repository.query("meetings", room_id=room_id):
            meeting = Meeting(**item)
            found = self.repository.query("summaries", meeting_id=meeting.id)
            if not found:
                continue
            views.append(
                MeetingSummaryView(
                    **found[0],
                    meeting_status=meeting.status,
                    meeting_started_at=meeting.started_at,
                    meeting_ended_at=meeting.ended_at,
                )
            )
        return sorted(views, key=lambda view: view.generated_at, reverse=True)

    def latest_for_room(self, user_id: str | None, room_id: str) -> MeetingSummaryView | None:
        """Summary of the most recently ended meeting that has one."""
        ended = [view for view in self.list_for_room(user_id, room_id) if view.meeting_status == "ended"]
        if not ended:
            return None
        return max(ended, key=lambda view: view.meeting_ended_at or 0)
