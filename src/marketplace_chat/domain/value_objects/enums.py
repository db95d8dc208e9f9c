from __future__ import annotations

from enum import StrEnum


class ConnectionStatus(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DOWN = "down"


class InboundEventType(StrEnum):
    NEW_MESSAGE = "newMessage"
    TYPING_STATUS = "typingStatus"
    USER_STATUS_CHANGED = "userStatusChanged"
    MESSAGES_READ = "messagesRead"


class OutboundEventType(StrEnum):
    MARK_READ = "markRead"
    TYPING = "typing"
    VIEWING_CONVERSATION = "viewingConversation"
