from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from marketplace_chat.domain.entities.participant import Participant
from marketplace_chat.domain.value_objects.ids import ConversationId


@dataclass(frozen=True, slots=True)
class LastMessage:
    text: str
    created_at: datetime | None = None


@dataclass(slots=True)
class Conversation:
    id: ConversationId
    participants: list[Participant] = field(default_factory=list)
    last_message: LastMessage | None = None
    unread_count: int = 0

    @property
    def counterpart(self) -> Participant | None:
        """The participant shown for a direct chat."""
        return self.participants[0] if self.participants else None

    def has_participant(self, user_id: str) -> bool:
        return any(p.id == user_id for p in self.participants)
