from __future__ import annotations

import logging
from functools import lru_cache

from opsroom.errors import NotFound, Unauthorized
from opsroom.models.record_model import ActionItem, ActionStatus
from opsroom.models.room_model import Room
from opsroom.services.access import owned_meeting, owned_room, require_user
from opsroom.services.repository import Repository, get_repository
from opsroom.utils.time_utils import now_ms

logger = logging.getLogger(__name__)

MEETING_TABLES = ("transcripts", "speaker_updates", "action_items", "summaries")


class RoomController:
    def __init__(self, repository: Repository | None = None):
        self.repository = repository or get_repository()

    def list_rooms(self, user_id: str | None) -> list[Room]:
        user_id = require_user(user_id)
        rooms = [Room(**item) for item in self.repository.query("rooms", creator_id=user_id)]
        return sorted(rooms, key=lambda room: room.created_at, reverse=True)

    def create_room(self, user_id: str | None, name: str, goal: str | None = None) -> Room:
        user_id = require_user(user_id)
        now = now_ms()
        record = {
            "name": name,
            "goal": goal,
            "creator_id": user_id,
            "status": "draft",
            "context_summary": None,
            "created_at": now,
            "updated_at": now,
        }
        room_id = self.repository.insert("rooms", record)
        return Room(id=room_id, **record)

    def get_room(self, user_id: str | None, room_id: str) -> Room:
        return owned_room(self.repository, user_id, room_id)

    def update_room(self, user_id: str | None, room_id: str, **fields) -> Room:
        owned_room(self.repository, user_id, room_id)
        updates = {key: value for key, value in fields.items() if value is not None}
        updated = self.repository.patch("rooms", room_id, **updates, updated_at=now_ms())
        return Room(**updated)

    def delete_room(self, user_id: str | None, room_id: str) -> None:
        """Remove the room together with its meetings and every record they own."""
        owned_room(self.repository, user_id, room_id)
        for meeting in self.repository.query("meetings", room_id=room_id):
            for table in MEETING_TABLES:
                for item in self.repository.query(table, meeting_id=meeting["id"]):
                    self.repository.delete(table, item["id"])
            self.repository.delete("meetings", meeting["id"])
        self.repository.delete("rooms", room_id)
        logger.info("Deleted room %s", room_id)

    def list_action_items_for_room(self, user_id: str | None, room_id: str) -> list[ActionItem]:
        owned_room(self.repository, user_id, room_id)
        items = [ActionItem(**item) for item in self.repository.query("action_items", room_id=room_id)]
        return sorted(items, key=lambda item: item.created_at, reverse=True)

    def list_action_items_for_meeting(self, user_id: str | None, meeting_id: str) -> list[ActionItem]:
        owned_meeting(self.repository, user_id, meeting_id)
        items = [ActionItem(**item) for item in self.repository.query("action_items", meeting_id=meeting_id)]
        return sorted(items, key=lambda item: item.created_at, reverse=True)

    def _owned_action_item(self, user_id: str | None, item_id: str) -> ActionItem:
        user_id = require_user(user_id)
        record = self.repository.get("action_items", item_id)
        if not record:
            raise NotFound("Action item not found")
        item = ActionItem(**record)
        room = self.repository.get("rooms", item.room_id)
        if not room or room.get("creator_id") != user_id:
            raise Unauthorized("Unauthorised")
        return item

    def set_action_item_status(self, user_id: str | None, item_id: str, status: ActionStatus) -> ActionItem:
        self._owned_action_item(user_id, item_id)
        return ActionItem(**self.repository.patch("action_items", item_id, status=status))

    def delete_action_item(self, user_id: str | None, item_id: str) -> None:
        self._owned_action_item(user_id, item_id)
        self.repository.delete("action_items", item_id)


@lru_cache
def get_room_controller() -> RoomController:
    return RoomController()
