"""Single source of truth for the running client session."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from marketplace_chat.domain.entities.conversation import Conversation, LastMessage
from marketplace_chat.domain.entities.message import Message
from marketplace_chat.domain.entities.participant import Participant
from marketplace_chat.domain.entities.session import Identity, Session
from marketplace_chat.domain.value_objects.enums import ConnectionStatus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FocusedThread:
    """The focused conversation and the messages seen for it so far."""

    conversation_id: str
    loaded: bool = False
    messages: dict[str, Message] = field(default_factory=dict)

    def ordered(self) -> list[Message]:
        return sorted(self.messages.values(), key=lambda m: (m.created_at, m.id))


class SessionStateStore:
    """Session, ordered conversation list and focus.

    Every operation is total: unknown ids are ignored and reported through
    the return value, so no call can leave the store inconsistent.
    Conversations keep the list position of their first insertion; the
    numeric indices shown to the user stay valid across refreshes.
    """

    def __init__(self) -> None:
        self.session: Session | None = None
        self._conversations: list[Conversation] = []
        self._participants: dict[str, Participant] = {}
        self._focus: FocusedThread | None = None

    # -- session ---------------------------------------------------------

    @property
    def authenticated(self) -> bool:
        return self.session is not None

    @property
    def identity(self) -> Identity | None:
        return self.session.identity if self.session else None

    @property
    def connection(self) -> ConnectionStatus:
        return self.session.connection if self.session else ConnectionStatus.DISCONNECTED

    def start_session(self, identity: Identity, token: str) -> Session:
        """Begin a fresh session; state from a previous login is dropped."""
        self._conversations.clear()
        self._participants.clear()
        self._focus = None
        self.session = Session(identity=identity, token=token)
        return self.session

    def end_session(self) -> None:
        self.session = None
        self._conversations.clear()
        self._participants.clear()
        self._focus = None

    def set_connection(self, status: ConnectionStatus) -> None:
        if self.session is not None:
            self.session.connection = status

    # -- conversations ---------------------------------------------------

    @property
    def conversations(self) -> list[Conversation]:
        return list(self._conversations)

    def get(self, conversation_id: str) -> Conversation | None:
        for conv in self._conversations:
            if conv.id == conversation_id:
                return conv
        return None

    def index_of(self, conversation_id: str) -> int | None:
        for i, conv in enumerate(self._conversations):
            if conv.id == conversation_id:
                return i
        return None

    def conversation_at(self, index: int) -> Conversation | None:
        if 0 <= index < len(self._conversations):
            return self._conversations[index]
        return None

    def upsert_conversation(self, incoming: Conversation) -> Conversation:
        """Insert or update by id, keeping the original list position.

        An existing entry is updated in place. Participants are interned
        so every conversation that contains a user shares one object. A
        fragment without participants keeps the known ones, and the
        focused conversation always stays at zero unread.
        """
        participants = [self._intern(p) for p in incoming.participants]
        existing = self.get(incoming.id)
        if existing is None:
            incoming.participants = participants
            if self.focused_id == incoming.id:
                incoming.unread_count = 0
            self._conversations.append(incoming)
            return incoming

        if participants:
            existing.participants = participants
        if incoming.last_message is not None:
            existing.last_message = incoming.last_message
        existing.unread_count = 0 if self.focused_id == existing.id else max(0, incoming.unread_count)
        return existing

    def _intern(self, participant: Participant) -> Participant:
        known = self._participants.get(participant.id)
        if known is None:
            self._participants[participant.id] = participant
            return participant
        known.username = participant.username
        known.role = participant.role or known.role
        known.email = participant.email or known.email
        if participant.is_online is not None:
            known.is_online = participant.is_online
        if participant.last_seen is not None and (known.last_seen is None or participant.last_seen > known.last_seen):
            known.last_seen = participant.last_seen
        return known

    def set_last_message(self, conversation_id: str, last_message: LastMessage) -> bool:
        conv = self.get(conversation_id)
        if conv is None:
            return False
        conv.last_message = last_message
        return True

    def increment_unread(self, conversation_id: str) -> int | None:
        """Bump unread for a non-focused conversation; returns the new count."""
        conv = self.get(conversation_id)
        if conv is None:
            return None
        if self.focused_id != conversation_id:
            conv.unread_count += 1
        return conv.unread_count

    def clear_unread(self, conversation_id: str) -> int:
        """Zero the unread count and return what it was."""
        conv = self.get(conversation_id)
        if conv is None:
            return 0
        previous = conv.unread_count
        conv.unread_count = 0
        return previous

    def apply_presence(
        self,
        user_id: str,
        is_online: bool,
        last_seen: datetime | None,
    ) -> list[Conversation]:
        """Update a participant's presence; returns every conversation containing them."""
        participant = self._participants.get(user_id)
        if participant is None:
            return []
        participant.is_online = is_online
        if last_seen is not None:
            participant.last_seen = last_seen
        return [c for c in self._conversations if c.has_participant(user_id)]

    # -- focus -----------------------------------------------------------

    @property
    def focused_id(self) -> str | None:
        return self._focus.conversation_id if self._focus else None

    @property
    def focused(self) -> Conversation | None:
        return self.get(self._focus.conversation_id) if self._focus else None

    @property
    def thread(self) -> FocusedThread | None:
        return self._focus

    def set_focus(self, conversation_id: str) -> int:
        """Focus a conversation and clear its unread count.

        Returns the unread count it had. Refocusing the same conversation
        keeps the messages already merged into its thread.
        """
        if self._focus is None or self._focus.conversation_id != conversation_id:
            self._focus = FocusedThread(conversation_id=conversation_id)
        return self.clear_unread(conversation_id)

    def clear_focus(self) -> str | None:
        """Drop focus; returns the id that was focused."""
        previous = self.focused_id
        self._focus = None
        return previous

    def record_message(self, message: Message) -> bool:
        """Add a message to the focused thread; False if not focused or already known."""
        if self._focus is None or self._focus.conversation_id != message.conversation_id:
            return False
        if message.id in self._focus.messages:
            return False
        self._focus.messages[message.id] = message
        return True

    def merge_thread(self, conversation_id: str, messages: list[Message]) -> list[Message]:
        """Merge a fetched page into the focused thread and mark it loaded.

        Returns the full thread oldest first, or an empty list when the
        conversation lost focus while the page was being fetched.
        """
        if self._focus is None or self._focus.conversation_id != conversation_id:
            logger.debug("Discarding message page for unfocused conversation %s", conversation_id)
            return []
        for message in messages:
            if message.conversation_id == conversation_id:
                self._focus.messages.setdefault(message.id, message)
        self._focus.loaded = True
        conv = self.get(conversation_id)
        if conv is not None:
            conv.unread_count = 0
        return self._focus.ordered()
