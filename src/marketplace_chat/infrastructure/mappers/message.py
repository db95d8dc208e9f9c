from __future__ import annotations

from marketplace_chat.application.exceptions import ValidationError
from marketplace_chat.domain.entities.message import Message, Sender
from marketplace_chat.domain.value_objects.ids import ConversationId, MessageId, UserId
from marketplace_chat.infrastructure.http.schemas import MessagePayload
from marketplace_chat.infrastructure.mappers._time import as_utc


def payload_to_entity(payload: MessagePayload, conversation_id: str | None = None) -> Message:
    """``conversation_id`` fills in for payloads that do not name their conversation."""
    conversation = payload.conversation or conversation_id
    if not conversation:
        raise ValidationError(f"Message {payload.id} has no conversation")
    return Message(
        id=MessageId(payload.id),
        conversation_id=ConversationId(conversation),
        sender=Sender(id=UserId(payload.sender.id), username=payload.sender.username),
        text=payload.text,
        created_at=as_utc(payload.created_at),
        attachments=tuple(payload.attachments),
    )
