from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from marketplace_chat.domain.value_objects.ids import ConversationId, MessageId, UserId


@dataclass(frozen=True, slots=True)
class Sender:
    id: UserId
    username: str


@dataclass(frozen=True, slots=True)
class Message:
    id: MessageId
    conversation_id: ConversationId
    sender: Sender
    text: str
    created_at: datetime
    attachments: tuple[str, ...] = field(default_factory=tuple)
