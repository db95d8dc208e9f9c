from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated uploader extracted from the bearer JWT."""

    user_id: str
    user_type: str | None = None
