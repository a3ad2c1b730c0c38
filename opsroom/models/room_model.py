from typing import Literal

from pydantic import BaseModel

RoomStatus = Literal["draft", "active", "completed"]


class Room(BaseModel):
    id: str
    name: str
    goal: str | None = None
    creator_id: str
    status: RoomStatus = "draft"
    context_summary: str | None = None
    created_at: int
    updated_at: int

    def context_text(self) -> str:
        header = f"Meeting: {self.name}\nGoal: {self.goal or 'Not specified'}"
        if self.context_summary:
            return f"{header}\n\nContext:\n{self.context_summary}"
        return header
