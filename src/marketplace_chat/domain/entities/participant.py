from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from marketplace_chat.domain.value_objects.ids import UserId


@dataclass(slots=True)
class Participant:
    """A chat counterpart.

    One instance per user id is shared by every conversation that contains
    the user, so a presence update lands on all of them at once.
    ``is_online`` is None when the source did not report presence.
    """

    id: UserId
    username: str
    role: str | None = None
    email: str | None = None
    is_online: bool | None = None
    last_seen: datetime | None = None
