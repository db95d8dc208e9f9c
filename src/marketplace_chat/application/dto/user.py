from __future__ import annotations

from dataclasses import dataclass

from marketplace_chat.domain.value_objects.ids import UserId


@dataclass(frozen=True, slots=True)
class UserSummary:
    """A search hit from ``/chat/search-users``."""

    id: UserId
    username: str
    role: str | None = None
    email: str | None = None
    is_online: bool = False
