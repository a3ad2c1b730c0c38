import pytest

from opsroom.errors import Conflict, InvalidTransition, NotFound, Unauthorized

OWNER = "user-1"
STRANGER = "user-2"


def test_create_starts_in_lobby(state_machine, room):
    meeting = state_machine.create(OWNER, room.id)
    assert meeting.status == "lobby"
    assert meeting.started_at is None and meeting.ended_at is None


def test_second_open_meeting_conflicts(state_machine, repository, room):
    state_machine.create(OWNER, room.id)
    with pytest.raises(Conflict):
        state_machine.create(OWNER, room.id)
    assert repository.count("meetings", room_id=room.id) == 1


@pytest.mark.parametrize("prepare", ["start", "pause"])
def test_conflict_while_active_or_paused(state_machine, room, prepare):
    meeting = state_machine.create(OWNER, room.id)
    state_machine.start(OWNER, meeting.id)
    if prepare == "pause":
        state_machine.pause(OWNER, meeting.id)
    with pytest.raises(Conflict):
        state_machine.create(OWNER, room.id)


def test_new_meeting_allowed_after_end(state_machine, room):
    first = state_machine.create(OWNER, room.id)
    state_machine.end(OWNER, first.id)
    second = state_machine.create(OWNER, room.id)
    assert second.id != first.id
    assert state_machine.get_active(OWNER, room.id).id == second.id


def test_started_at_survives_pause_and_resume(state_machine, room):
    meeting = state_machine.create(OWNER, room.id)
    started = state_machine.start(OWNER, meeting.id)
    assert started.status == "active"
    assert started.started_at is not None

    state_machine.pause(OWNER, meeting.id)
    resumed = state_machine.start(OWNER, meeting.id)
    assert resumed.started_at == started.started_at


def test_start_rejected_from_active_and_ended(state_machine, active_meeting):
    with pytest.raises(InvalidTransition):
        state_machine.start(OWNER, active_meeting.id)
    state_machine.end(OWNER, active_meeting.id)
    with pytest.raises(InvalidTransition):
        state_machine.start(OWNER, active_meeting.id)


def test_pause_rejected_from_lobby_and_ended(state_machine, room):
    meeting = state_machine.create(OWNER, room.id)
    with pytest.raises(InvalidTransition):
        state_machine.pause(OWNER, meeting.id)
    state_machine.end(OWNER, meeting.id)
    with pytest.raises(InvalidTransition):
        state_machine.pause(OWNER, meeting.id)


def test_end_is_idempotent(state_machine, active_meeting):
    first = state_machine.end(OWNER, active_meeting.id)
    second = state_machine.end(OWNER, active_meeting.id)
    assert first.status == second.status == "ended"
    assert second.ended_at == first.ended_at


def test_end_from_lobby(state_machine, room):
    meeting = state_machine.create(OWNER, room.id)
    ended = state_machine.end(OWNER, meeting.id)
    assert ended.status == "ended"
    assert ended.started_at is None


def test_stranger_cannot_transition(state_machine, repository, active_meeting):
    with pytest.raises(Unauthorized):
        state_machine.pause(STRANGER, active_meeting.id)
    with pytest.raises(Unauthorized):
        state_machine.end(None, active_meeting.id)
    assert repository.get("meetings", active_meeting.id)["status"] == "active"


def test_stranger_cannot_create(state_machine, repository, room):
    with pytest.raises(Unauthorized):
        state_machine.create(STRANGER, room.id)
    assert repository.count("meetings") == 0


def test_missing_meeting_and_room(state_machine):
    with pytest.raises(NotFound):
        state_machine.start(OWNER, "mtg-missing")
    with pytest.raises(NotFound):
        state_machine.create(OWNER, "room-missing")


def test_sub_state_only_tracked_while_active(state_machine, repository, room):
    meeting = state_machine.create(OWNER, room.id)
    state_machine.set_sub_state(meeting.id, "speaking")
    assert state_machine.sub_state(meeting.id) is None

    state_machine.start(OWNER, meeting.id)
    assert state_machine.get_state(OWNER, meeting.id).sub_state == "listening"
    state_machine.set_sub_state(meeting.id, "speaking")
    assert state_machine.get_state(OWNER, meeting.id).sub_state == "speaking"
    assert "sub_state" not in repository.get("meetings", meeting.id)

    state_machine.pause(OWNER, meeting.id)
    state = state_machine.get_state(OWNER, meeting.id)
    assert state.status == "paused"
    assert state.sub_state is None
    state_machine.set_sub_state(meeting.id, "listening")
    assert state_machine.sub_state(meeting.id) is None


def test_reset_sub_state_on_reconnect(state_machine, active_meeting):
    state_machine.set_sub_state(active_meeting.id, "speaking")
    state_machine.reset_sub_state(active_meeting.id)
    assert state_machine.get_state(OWNER, active_meeting.id).sub_state is None


def test_list_for_room_newest_first(state_machine, room):
    first = state_machine.create(OWNER, room.id)
    state_machine.end(OWNER, first.id)
    second = state_machine.create(OWNER, room.id)
    assert [meeting.id for meeting in state_machine.list_for_room(OWNER, room.id)] == [second.id, first.id]
