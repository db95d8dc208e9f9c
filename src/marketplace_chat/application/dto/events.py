from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from marketplace_chat.domain.entities.conversation import Conversation
from marketplace_chat.domain.entities.message import Message
from marketplace_chat.domain.value_objects.ids import ConversationId, UserId


@dataclass(frozen=True, slots=True)
class NewMessage:
    message: Message
    # Partial conversation sent alongside the message; may lack participants.
    conversation: Conversation | None = None


@dataclass(frozen=True, slots=True)
class TypingStatus:
    conversation_id: ConversationId
    user_id: UserId
    is_typing: bool


@dataclass(frozen=True, slots=True)
class UserStatusChanged:
    user_id: UserId
    is_online: bool
    last_seen: datetime | None = None


@dataclass(frozen=True, slots=True)
class MessagesRead:
    conversation_id: ConversationId
    reader_id: UserId | None = None


InboundEvent = NewMessage | TypingStatus | UserStatusChanged | MessagesRead
