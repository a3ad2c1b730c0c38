from __future__ import annotations

from opsroom.errors import NotFound, Unauthorized
from opsroom.models.meeting_model import Meeting
from opsroom.models.room_model import Room
from opsroom.services.repository import Repository


def require_user(user_id: str | None) -> str:
    if not user_id:
        raise Unauthorized("Unauthorised")
    return user_id


def owned_room(repository: Repository, user_id: str | None, room_id: str) -> Room:
    user_id = require_user(user_id)
    record = repository.get("rooms", room_id)
    if not record:
        raise NotFound("Room not found")
    room = Room(**record)
    if room.creator_id != user_id:
        raise Unauthorized("Unauthorised")
    return room


def owned_meeting(repository: Repository, user_id: str | None, meeting_id: str) -> tuple[Meeting, Room]:
    user_id = require_user(user_id)
    record = repository.get("meetings", meeting_id)
    if not record:
        raise NotFound("Meeting not found")
    meeting = Meeting(**record)
    room_record = repository.get("rooms", meeting.room_id)
    if not room_record or room_record.get("creator_id") != user_id:
        raise Unauthorized("Unauthorised")
    return meeting, Room(**room_record)
