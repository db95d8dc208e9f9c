"""Wire shapes of the chat REST API payloads (the ``data`` part of the envelope)."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _id_field() -> Any:
    return Field(validation_alias=AliasChoices("_id", "id"))


class ParticipantPayload(_WireModel):
    id: str = _id_field()
    username: str = "Unknown"
    user_type: str | None = None
    email: str | None = None
    is_online: bool | None = Field(None, validation_alias=AliasChoices("isOnline", "is_online"))
    last_seen: datetime | None = Field(None, validation_alias=AliasChoices("lastSeen", "last_seen"))


class SenderPayload(_WireModel):
    id: str = _id_field()
    username: str = "Unknown"


class MessagePayload(_WireModel):
    id: str = _id_field()
    # Absent from /chat/messages pages; the caller knows the conversation.
    conversation: str | None = Field(None, validation_alias=AliasChoices("conversation", "conversation_id"))
    sender: SenderPayload
    text: str = ""
    attachments: list[str] = []
    created_at: datetime = Field(validation_alias=AliasChoices("createdAt", "created_at"))


class LastMessagePayload(_WireModel):
    text: str = ""
    created_at: datetime | None = Field(None, validation_alias=AliasChoices("createdAt", "created_at"))


class ConversationPayload(_WireModel):
    id: str = _id_field()
    participants: list[ParticipantPayload] = []
    # /chat/conversation/start answers with a single counterpart
    participant: ParticipantPayload | None = None
    last_message: LastMessagePayload | None = Field(
        None, validation_alias=AliasChoices("lastMessage", "last_message"),
    )
    unread_count: int = Field(0, ge=0, validation_alias=AliasChoices("unreadCount", "unread_count"))


class UserPayload(_WireModel):
    id: str = _id_field()
    username: str = "Unknown"
    user_type: str | None = None
    email: str | None = None
    is_online: bool = Field(False, validation_alias=AliasChoices("isOnline", "is_online"))


class LoginPayload(_WireModel):
    token: str | None = None
    message: str | None = None
    user_type: str | None = None
    user_data: dict[str, Any] | None = None
    id: str | None = None
    username: str | None = None
    email: str | None = None


class ConversationsPayload(_WireModel):
    conversations: list[ConversationPayload] = []


class MessagesPayload(_WireModel):
    messages: list[MessagePayload] = []


class StartConversationPayload(_WireModel):
    conversation: ConversationPayload


class SentMessagePayload(_WireModel):
    sent_message: MessagePayload = Field(validation_alias=AliasChoices("sentMessage", "sent_message"))


class UsersPayload(_WireModel):
    users: list[UserPayload] = []
