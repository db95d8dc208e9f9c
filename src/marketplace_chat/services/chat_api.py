"""Typed calls to the chat REST endpoints."""
from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from marketplace_chat.application.dto.user import UserSummary
from marketplace_chat.application.exceptions import TransportError
from marketplace_chat.application.ports.transport import Transport
from marketplace_chat.domain.entities.conversation import Conversation
from marketplace_chat.domain.entities.message import Message
from marketplace_chat.domain.entities.session import Identity
from marketplace_chat.infrastructure.http.schemas import (
    ConversationsPayload,
    LoginPayload,
    MessagesPayload,
    SentMessagePayload,
    StartConversationPayload,
    UsersPayload,
)
from marketplace_chat.infrastructure.mappers import conversation as conversation_mapper
from marketplace_chat.infrastructure.mappers import message as message_mapper
from marketplace_chat.infrastructure.mappers import user as user_mapper

M = TypeVar("M", bound=BaseModel)

LOGIN = "/account/login"
CONVERSATIONS = "/chat/conversations"
MESSAGES = "/chat/messages"
START_CONVERSATION = "/chat/conversation/start"
SEND = "/chat/send"
MARK_READ = "/chat/mark-read"
SEND_WITH_ATTACHMENTS = "/uploads/chat/send-with-attachments"
SEARCH_USERS = "/chat/search-users"


def _parse(model: type[M], data: dict[str, Any]) -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise TransportError(f"Invalid response format ({exc.error_count()} error(s))") from exc


async def login(transport: Transport, email: str, password: str) -> tuple[str, Identity]:
    data = await transport.call(LOGIN, {"email": email, "password": password}, auth=False)
    return user_mapper.login_to_identity(_parse(LoginPayload, data))


async def list_conversations(transport: Transport) -> list[Conversation]:
    data = await transport.call(CONVERSATIONS, method="GET")
    payload = _parse(ConversationsPayload, data)
    return [conversation_mapper.payload_to_entity(c) for c in payload.conversations]


async def list_messages(
    transport: Transport,
    conversation_id: str,
    *,
    page: int = 1,
    limit: int = 20,
) -> list[Message]:
    data = await transport.call(
        MESSAGES, {"conversation_id": conversation_id, "page": page, "limit": limit},
    )
    payload = _parse(MessagesPayload, data)
    return [message_mapper.payload_to_entity(m, conversation_id) for m in payload.messages]


async def start_conversation(transport: Transport, participant_id: str) -> Conversation:
    data = await transport.call(START_CONVERSATION, {"participant_id": participant_id})
    payload = _parse(StartConversationPayload, data)
    return conversation_mapper.payload_to_entity(payload.conversation)


async def send_message(transport: Transport, conversation_id: str, text: str) -> Message:
    data = await transport.call(SEND, {"conversation_id": conversation_id, "text": text})
    return message_mapper.payload_to_entity(_parse(SentMessagePayload, data).sent_message, conversation_id)


async def mark_read(transport: Transport, conversation_id: str) -> None:
    await transport.call(MARK_READ, {"conversation_id": conversation_id})


async def send_attachment(transport: Transport, conversation_id: str, path: Path) -> Message:
    data = await transport.upload(
        SEND_WITH_ATTACHMENTS, [path], {"conversation_id": conversation_id},
    )
    return message_mapper.payload_to_entity(_parse(SentMessagePayload, data).sent_message, conversation_id)


async def search_users(transport: Transport, query: str) -> list[UserSummary]:
    data = await transport.call(SEARCH_USERS, {"query": query})
    payload = _parse(UsersPayload, data)
    return [user_mapper.user_to_summary(u) for u in payload.users]
