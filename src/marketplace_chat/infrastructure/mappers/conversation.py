from __future__ import annotations

from marketplace_chat.domain.entities.conversation import Conversation, LastMessage
from marketplace_chat.domain.entities.participant import Participant
from marketplace_chat.domain.value_objects.ids import ConversationId, UserId
from marketplace_chat.infrastructure.http.schemas import (
    ConversationPayload,
    LastMessagePayload,
    ParticipantPayload,
)
from marketplace_chat.infrastructure.mappers._time import as_utc


def participant_to_entity(payload: ParticipantPayload) -> Participant:
    return Participant(
        id=UserId(payload.id),
        username=payload.username,
        role=payload.user_type,
        email=payload.email,
        is_online=payload.is_online,
        last_seen=as_utc(payload.last_seen),
    )


def last_message_to_entity(payload: LastMessagePayload | None) -> LastMessage | None:
    if payload is None:
        return None
    return LastMessage(text=payload.text, created_at=as_utc(payload.created_at))


def payload_to_entity(payload: ConversationPayload) -> Conversation:
    participants = [participant_to_entity(p) for p in payload.participants]
    if not participants and payload.participant is not None:
        participants = [participant_to_entity(payload.participant)]
    return Conversation(
        id=ConversationId(payload.id),
        participants=participants,
        last_message=last_message_to_entity(payload.last_message),
        unread_count=payload.unread_count,
    )
