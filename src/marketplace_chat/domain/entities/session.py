from __future__ import annotations

from dataclasses import dataclass

from marketplace_chat.domain.value_objects.enums import ConnectionStatus
from marketplace_chat.domain.value_objects.ids import UserId


@dataclass(frozen=True, slots=True)
class Identity:
    id: UserId
    username: str
    email: str | None = None
    role: str | None = None


@dataclass(slots=True)
class Session:
    identity: Identity
    token: str
    connection: ConnectionStatus = ConnectionStatus.DISCONNECTED
