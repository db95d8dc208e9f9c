"""Shared test fixtures."""
from __future__ import annotations

import io
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from marketplace_chat.application.exceptions import AppError, ChannelDown
from marketplace_chat.application.ports.transport import EventHandler, StatusHandler, Subscription
from marketplace_chat.cli.presenter import ConsolePresenter
from marketplace_chat.domain.entities.conversation import Conversation, LastMessage
from marketplace_chat.domain.entities.message import Message, Sender
from marketplace_chat.domain.entities.participant import Participant
from marketplace_chat.domain.entities.session import Identity
from marketplace_chat.domain.value_objects.enums import ConnectionStatus
from marketplace_chat.services.reconciler import EventReconciler
from marketplace_chat.services.session_store import SessionStateStore

ME = Identity(id="me", username="alice", email="alice@example.com", role="buyer")

_BASE_TS = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_participant(user_id: str = "u-bob", username: str = "bob", **kwargs: Any) -> Participant:
    kwargs.setdefault("role", "seller")
    return Participant(id=user_id, username=username, **kwargs)


def make_conversation(
    conversation_id: str | None = None,
    *,
    participants: list[Participant] | None = None,
    last_text: str | None = None,
    unread: int = 0,
) -> Conversation:
    return Conversation(
        id=conversation_id or uuid.uuid4().hex,
        participants=participants if participants is not None else [make_participant()],
        last_message=LastMessage(text=last_text, created_at=_BASE_TS) if last_text else None,
        unread_count=unread,
    )


def make_message(
    conversation_id: str,
    *,
    message_id: str | None = None,
    sender_id: str = "u-bob",
    sender_name: str = "bob",
    text: str = "hello",
    minutes: int = 0,
) -> Message:
    return Message(
        id=message_id or uuid.uuid4().hex,
        conversation_id=conversation_id,
        sender=Sender(id=sender_id, username=sender_name),
        text=text,
        created_at=_BASE_TS + timedelta(minutes=minutes),
    )


def conversation_wire(conversation_id: str, *, user_id: str = "u-bob", username: str = "bob", unread: int = 0) -> dict:
    return {
        "_id": conversation_id,
        "participants": [{"_id": user_id, "username": username, "user_type": "seller", "isOnline": False}],
        "lastMessage": None,
        "unreadCount": unread,
    }


def message_wire(conversation_id: str, message_id: str, *, sender_id: str = "me", text: str = "hi") -> dict:
    return {
        "_id": message_id,
        "conversation": conversation_id,
        "sender": {"_id": sender_id, "username": "alice" if sender_id == "me" else "bob"},
        "text": text,
        "attachments": [],
        "createdAt": "2024-03-01T12:30:00Z",
    }


def server_message_wire(message_id: str, *, text: str = "hello there") -> dict:
    """A /chat/messages item exactly as the server sends it: no conversation key."""
    return {
        "_id": message_id,
        "text": text,
        "sender": {"_id": "u-bob", "username": "bob", "user_type": "seller"},
        "isRead": True,
        "isEdited": False,
        "attachments": [],
        "createdAt": "2024-03-01T12:30:00.000Z",
        "updatedAt": "2024-03-01T12:30:00.000Z",
    }


LOGIN_OK = {
    "token": "tok-1",
    "user_type": "buyer",
    "user_data": {"id": "me", "username": "alice", "email": "alice@example.com"},
}


@dataclass
class FakeTransport:
    """In-memory transport: canned REST answers and a recorded channel."""

    responses: dict[str, Any] = field(default_factory=dict)
    calls: list[tuple[str, dict[str, Any] | None]] = field(default_factory=list)
    uploads: list[tuple[str, list[Path], dict[str, Any]]] = field(default_factory=list)
    emitted: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    channel_connected: bool = False
    connected_with: str | None = None
    closed: int = 0
    handlers: list[EventHandler] = field(default_factory=list)
    status_handlers: list[StatusHandler] = field(default_factory=list)
    _token: str | None = None

    @property
    def token(self) -> str | None:
        return self._token

    def set_credential(self, token: str | None) -> None:
        self._token = token

    def _answer(self, endpoint: str) -> dict[str, Any]:
        answer = self.responses.get(endpoint, {})
        if isinstance(answer, list):
            answer = answer.pop(0) if len(answer) > 1 else answer[0]
        if isinstance(answer, AppError):
            raise answer
        return answer

    async def call(
        self,
        endpoint: str,
        payload: dict[str, Any] | None = None,
        *,
        method: str = "POST",
        auth: bool = True,
    ) -> dict[str, Any]:
        self.calls.append((endpoint, payload))
        return self._answer(endpoint)

    async def upload(self, endpoint: str, files: Any, data: dict[str, Any]) -> dict[str, Any]:
        self.uploads.append((endpoint, list(files), data))
        return self._answer(endpoint)

    async def connect(self, token: str | None = None) -> None:
        self.connected_with = token
        self.channel_connected = True
        self.set_status(ConnectionStatus.CONNECTED)

    async def send(self, event_type: str, payload: dict[str, Any]) -> bool:
        if not self.channel_connected:
            return False
        self.emitted.append((str(event_type), payload))
        return True

    def subscribe(self, handler: EventHandler) -> Subscription:
        return Subscription(self.handlers, handler)

    def on_status(self, handler: StatusHandler) -> Subscription:
        return Subscription(self.status_handlers, handler)

    def set_status(self, status: ConnectionStatus, error: ChannelDown | None = None) -> None:
        for handler in list(self.status_handlers):
            handler(status, error)

    async def push(self, event: Any) -> None:
        for handler in list(self.handlers):
            await handler(event)

    async def close_channel(self) -> None:
        self.closed += 1
        self.channel_connected = False
        self.set_status(ConnectionStatus.DISCONNECTED)

    async def aclose(self) -> None:
        await self.close_channel()

    def endpoints(self) -> list[str]:
        return [endpoint for endpoint, _ in self.calls]


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def presenter(out) -> ConsolePresenter:
    return ConsolePresenter(out)


@pytest.fixture
def store() -> SessionStateStore:
    return SessionStateStore()


@pytest.fixture
def logged_in_store(store) -> SessionStateStore:
    store.start_session(ME, "tok-1")
    return store


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def reconciler(logged_in_store, presenter, transport) -> EventReconciler:
    return EventReconciler(logged_in_store, presenter, transport)
