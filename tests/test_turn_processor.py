import asyncio
import threading

import pytest

from opsroom.errors import Busy, ExtractionFailure, InvalidState, Unauthorized
from opsroom.models.llm_model import ExtractionResult
from opsroom.rooms.controller import RoomController
from opsroom.services.turn_processor import TurnProcessor

OWNER = "user-1"
STRANGER = "user-2"


def make_result(actions=None, **overrides):
    payload = {
        "summary": "Sarah will follow up on OAuth support.",
        "risks": ["Deadline is tomorrow"],
        "gaps": ["Which OAuth providers?"],
        "proposedActions": actions if actions is not None else [{"task": "Follow up with OAuth support", "owner": "Sarah"}],
        "agentResponse": "Got it Sarah. Which providers are in scope?",
    }
    payload.update(overrides)
    return ExtractionResult.model_validate(payload)


class FakeExtractor:
    def __init__(self, result=None, error=None):
        self.result = result or make_result()
        self.error = error
        self.calls = []

    def __call__(self, request):
        self.calls.append(request)
        if self.error:
            raise self.error
        return self.result


class BlockingExtractor(FakeExtractor):
    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def __call__(self, request):
        self.started.set()
        self.release.wait(timeout=5)
        return super().__call__(request)


def _turn(processor, meeting_id, text="I'll follow up with OAuth support by tomorrow", user=OWNER):
    return processor.process_turn(user, meeting_id, speaker_id="u1", speaker_name="Sarah", text=text)


@pytest.mark.asyncio
async def test_turn_is_persisted_with_update_and_actions(state_machine, repository, active_meeting):
    processor = TurnProcessor(state_machine, extractor=FakeExtractor())
    outcome = await _turn(processor, active_meeting.id)

    assert repository.count("transcripts", meeting_id=active_meeting.id) == 1
    assert repository.count("speaker_updates", meeting_id=active_meeting.id) == 1
    assert outcome.speaker_update.proposed_actions == ["Follow up with OAuth support"]
    assert len(outcome.action_items) == 1
    item = repository.query("action_items", meeting_id=active_meeting.id)[0]
    assert "Sarah" in item["owner"]
    assert item["status"] == "pending"
    assert item["room_id"] == active_meeting.room_id
    assert outcome.agent_response.startswith("Got it Sarah")
    assert state_machine.sub_state(active_meeting.id) == "listening"


@pytest.mark.asyncio
async def test_missing_owner_defaults_to_unassigned(state_machine, repository, active_meeting):
    result = make_result(actions=[{"task": "Book the demo room"}, {"task": "Update docs", "owner": "Team"}])
    processor = TurnProcessor(state_machine, extractor=FakeExtractor(result))
    await _turn(processor, active_meeting.id)

    owners = [item["owner"] for item in repository.query("action_items", meeting_id=active_meeting.id)]
    assert owners == ["Unassigned", "Team"]


@pytest.mark.asyncio
async def test_no_actions_creates_no_items(state_machine, repository, active_meeting):
    processor = TurnProcessor(state_machine, extractor=FakeExtractor(make_result(actions=[])))
    outcome = await _turn(processor, active_meeting.id)

    assert outcome.action_items == []
    assert repository.count("action_items") == 0
    assert repository.count("speaker_updates") == 1


@pytest.mark.asyncio
async def test_room_context_and_goal_come_from_room(state_machine, active_meeting):
    extractor = FakeExtractor()
    processor = TurnProcessor(state_machine, extractor=extractor)
    await _turn(processor, active_meeting.id)

    request = extractor.calls[0]
    assert request.room_goal == "Ship OAuth login"
    assert request.room_context.startswith("Meeting: Sprint sync")
    assert request.speaker_name == "Sarah"


@pytest.mark.asyncio
async def test_explicit_room_context_is_used(state_machine, active_meeting):
    extractor = FakeExtractor()
    processor = TurnProcessor(state_machine, extractor=extractor)
    await processor.process_turn(
        OWNER,
        active_meeting.id,
        speaker_id="u1",
        speaker_name="Sarah",
        text="status update",
        room_context="Quarterly planning",
        room_goal="Agree roadmap",
        start_time=1000,
        end_time=2000,
    )
    request = extractor.calls[0]
    assert (request.room_context, request.room_goal) == ("Quarterly planning", "Agree roadmap")


@pytest.mark.asyncio
@pytest.mark.parametrize("transition", ["pause", "end"])
async def test_inactive_meeting_is_rejected_without_side_effects(state_machine, repository, active_meeting, transition):
    getattr(state_machine, transition)(OWNER, active_meeting.id)
    extractor = FakeExtractor()
    processor = TurnProcessor(state_machine, extractor=extractor)

    with pytest.raises(InvalidState):
        await _turn(processor, active_meeting.id)
    assert repository.count("transcripts") == 0
    assert extractor.calls == []


@pytest.mark.asyncio
async def test_lobby_meeting_is_rejected(state_machine, repository, room):
    meeting = state_machine.create(OWNER, room.id)
    processor = TurnProcessor(state_machine, extractor=FakeExtractor())
    with pytest.raises(InvalidState):
        await _turn(processor, meeting.id)
    assert repository.count("transcripts") == 0


@pytest.mark.asyncio
async def test_stranger_is_rejected(state_machine, repository, active_meeting):
    processor = TurnProcessor(state_machine, extractor=FakeExtractor())
    with pytest.raises(Unauthorized):
        await _turn(processor, active_meeting.id, user=STRANGER)
    assert repository.count("transcripts") == 0


@pytest.mark.asyncio
async def test_overlapping_turn_is_busy(state_machine, repository, active_meeting):
    extractor = BlockingExtractor()
    processor = TurnProcessor(state_machine, extractor=extractor)

    first = asyncio.create_task(_turn(processor, active_meeting.id))
    while not extractor.started.is_set():
        await asyncio.sleep(0.01)

    assert processor.is_processing(active_meeting.id)
    assert state_machine.sub_state(active_meeting.id) == "processing"
    with pytest.raises(Busy):
        await _turn(processor, active_meeting.id, text="second utterance")

    extractor.release.set()
    await first
    assert repository.count("transcripts") == 1
    assert repository.count("speaker_updates") == 1

    await _turn(processor, active_meeting.id, text="third utterance")
    assert repository.count("transcripts") == 2
    assert repository.count("speaker_updates") == 2


@pytest.mark.asyncio
async def test_extraction_failure_keeps_transcript_and_recovers(state_machine, repository, active_meeting):
    processor = TurnProcessor(state_machine, extractor=FakeExtractor(error=ExtractionFailure("bad json")))

    with pytest.raises(ExtractionFailure):
        await _turn(processor, active_meeting.id)

    assert repository.count("transcripts") == 1
    assert repository.count("speaker_updates") == 0
    assert repository.count("action_items") == 0
    assert state_machine.sub_state(active_meeting.id) == "listening"
    assert not processor.is_processing(active_meeting.id)

    processor.extractor = FakeExtractor()
    await _turn(processor, active_meeting.id)
    assert repository.count("speaker_updates") == 1


@pytest.mark.asyncio
async def test_other_meetings_are_not_blocked(state_machine, repository, room, active_meeting):
    other_room = RoomController(repository).create_room(OWNER, "Incident review")
    other = state_machine.start(OWNER, state_machine.create(OWNER, other_room.id).id)

    extractor = BlockingExtractor()
    processor = TurnProcessor(state_machine, extractor=extractor)
    first = asyncio.create_task(_turn(processor, active_meeting.id))
    while not extractor.started.is_set():
        await asyncio.sleep(0.01)

    processor.extractor = FakeExtractor()
    outcome = await _turn(processor, other.id)
    assert outcome.turn.meeting_id == other.id

    extractor.release.set()
    await first
