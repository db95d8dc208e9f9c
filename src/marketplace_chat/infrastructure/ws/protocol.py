"""Validation of inbound Socket.IO chat events."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from marketplace_chat.application.dto.events import (
    InboundEvent,
    MessagesRead,
    NewMessage,
    TypingStatus,
    UserStatusChanged,
)
from marketplace_chat.application.exceptions import ValidationError
from marketplace_chat.domain.value_objects.enums import InboundEventType
from marketplace_chat.domain.value_objects.ids import ConversationId, UserId
from marketplace_chat.infrastructure.http.schemas import ConversationPayload, MessagePayload
from marketplace_chat.infrastructure.mappers import conversation as conversation_mapper
from marketplace_chat.infrastructure.mappers import message as message_mapper
from marketplace_chat.infrastructure.mappers._time import as_utc

logger = logging.getLogger(__name__)

HANDLED_EVENTS = frozenset(e.value for e in InboundEventType)


class _Frame(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NewMessageFrame(_Frame):
    type: Literal["newMessage"]
    message: MessagePayload
    conversation: ConversationPayload | None = None


class TypingStatusFrame(_Frame):
    type: Literal["typingStatus"]
    conversation_id: str
    user_id: str
    is_typing: bool


class StatusPayload(_Frame):
    is_online: bool = Field(validation_alias=AliasChoices("isOnline", "is_online"))
    last_seen: datetime | None = Field(None, validation_alias=AliasChoices("lastSeen", "last_seen"))


class UserStatusChangedFrame(_Frame):
    type: Literal["userStatusChanged"]
    user_id: str
    status: StatusPayload


class MessagesReadFrame(_Frame):
    type: Literal["messagesRead"]
    conversation_id: str
    reader: Any = None


InboundFrame = Annotated[
    Union[NewMessageFrame, TypingStatusFrame, UserStatusChangedFrame, MessagesReadFrame],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[Any] = TypeAdapter(InboundFrame)


def decode_event(event_type: str, data: Any) -> InboundEvent | None:
    """Validate the payload of one Socket.IO event.

    Returns None for event names the client does not handle. Raises
    ValidationError when a handled event has the wrong shape.
    """
    if event_type not in HANDLED_EVENTS:
        logger.debug("Ignoring unhandled channel event: %s", event_type)
        return None
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid {event_type} payload: expected an object")

    try:
        frame = _inbound_adapter.validate_python({**data, "type": event_type})
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {event_type} payload: {exc.error_count()} error(s)") from exc

    return _frame_to_event(frame)


def _frame_to_event(frame: Any) -> InboundEvent:
    if isinstance(frame, NewMessageFrame):
        conversation = None
        if frame.conversation is not None:
            conversation = conversation_mapper.payload_to_entity(frame.conversation)
        return NewMessage(
            message=message_mapper.payload_to_entity(
                frame.message, conversation.id if conversation is not None else None,
            ),
            conversation=conversation,
        )
    if isinstance(frame, TypingStatusFrame):
        return TypingStatus(
            conversation_id=ConversationId(frame.conversation_id),
            user_id=UserId(frame.user_id),
            is_typing=frame.is_typing,
        )
    if isinstance(frame, UserStatusChangedFrame):
        return UserStatusChanged(
            user_id=UserId(frame.user_id),
            is_online=frame.status.is_online,
            last_seen=as_utc(frame.status.last_seen),
        )
    return MessagesRead(
        conversation_id=ConversationId(frame.conversation_id),
        reader_id=_reader_id(frame.reader),
    )


def _reader_id(reader: Any) -> UserId | None:
    if isinstance(reader, dict):
        reader = reader.get("_id") or reader.get("id")
    return UserId(str(reader)) if reader else None
