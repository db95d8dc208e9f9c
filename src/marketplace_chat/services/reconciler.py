"""Applies channel push events to the session store."""
from __future__ import annotations

import logging

from marketplace_chat.application.dto.events import (
    InboundEvent,
    MessagesRead,
    NewMessage,
    TypingStatus,
    UserStatusChanged,
)
from marketplace_chat.application.exceptions import AuthError, TransportError
from marketplace_chat.application.ports.presenter import Presenter
from marketplace_chat.application.ports.transport import Transport
from marketplace_chat.domain.entities.conversation import Conversation, LastMessage
from marketplace_chat.domain.entities.participant import Participant
from marketplace_chat.domain.value_objects.enums import OutboundEventType
from marketplace_chat.services import chat_api
from marketplace_chat.services.session_store import SessionStateStore

logger = logging.getLogger(__name__)


class EventReconciler:
    """Per-event state machine over the session store.

    Must be fed from a single ordered stream; fields are last-write-wins.
    """

    def __init__(
        self,
        store: SessionStateStore,
        presenter: Presenter,
        transport: Transport,
    ) -> None:
        self._store = store
        self._presenter = presenter
        self._transport = transport

    async def apply(self, event: InboundEvent) -> None:
        if isinstance(event, NewMessage):
            await self._on_new_message(event)
        elif isinstance(event, TypingStatus):
            self._on_typing(event)
        elif isinstance(event, UserStatusChanged):
            self._on_user_status(event)
        elif isinstance(event, MessagesRead):
            self._on_messages_read(event)
        else:
            logger.debug("No reconciliation rule for %r", event)

    async def _on_new_message(self, event: NewMessage) -> None:
        message = event.message
        conversation_id = message.conversation_id

        identity = self._store.identity
        own = identity is not None and message.sender.id == identity.id

        if self._store.get(conversation_id) is None:
            if event.conversation is not None:
                fragment = event.conversation
                fragment.unread_count = 0
            else:
                # No fragment: keep a stub so the unread count has somewhere to live.
                participants = [] if own else [Participant(id=message.sender.id, username=message.sender.username)]
                fragment = Conversation(id=conversation_id, participants=participants)
            self._store.upsert_conversation(fragment)

        self._store.set_last_message(
            conversation_id,
            LastMessage(text=message.text, created_at=message.created_at),
        )

        if self._store.focused_id == conversation_id:
            added = self._store.record_message(message)
            thread = self._store.thread
            # While /open is still fetching, the page render will include it.
            if added and thread is not None and thread.loaded:
                self._presenter.message(message)
            if added and not own:
                await self._acknowledge(conversation_id)
            return

        if own:
            return
        self._store.increment_unread(conversation_id)
        self._presenter.notice(f"NEW MESSAGE from {message.sender.username} in another conversation")

    async def _acknowledge(self, conversation_id: str) -> None:
        await self._transport.send(
            OutboundEventType.MARK_READ, {"conversation_id": conversation_id},
        )
        try:
            await chat_api.mark_read(self._transport, conversation_id)
        except (TransportError, AuthError) as exc:
            logger.warning("Read receipt for %s failed: %s", conversation_id, exc.detail)

    def _on_typing(self, event: TypingStatus) -> None:
        focused = self._store.focused
        if focused is None or focused.id != event.conversation_id or not event.is_typing:
            return
        for participant in focused.participants:
            if participant.id == event.user_id:
                self._presenter.notice(f"{participant.username} is typing...")
                return

    def _on_user_status(self, event: UserStatusChanged) -> None:
        affected = self._store.apply_presence(event.user_id, event.is_online, event.last_seen)
        focused_id = self._store.focused_id
        for conv in affected:
            if conv.id != focused_id:
                continue
            for participant in conv.participants:
                if participant.id == event.user_id:
                    state = "online" if event.is_online else "offline"
                    self._presenter.notice(f"{participant.username} is now {state}")
            return

    def _on_messages_read(self, event: MessagesRead) -> None:
        if self._store.focused_id != event.conversation_id:
            return
        identity = self._store.identity
        if identity is not None and event.reader_id == identity.id:
            return
        self._presenter.notice("Messages read by other participant")
