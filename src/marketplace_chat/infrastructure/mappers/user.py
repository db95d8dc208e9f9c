from __future__ import annotations

from marketplace_chat.application.dto.user import UserSummary
from marketplace_chat.application.exceptions import AuthError
from marketplace_chat.domain.entities.session import Identity
from marketplace_chat.domain.value_objects.ids import UserId
from marketplace_chat.infrastructure.http.schemas import LoginPayload, UserPayload


def user_to_summary(payload: UserPayload) -> UserSummary:
    return UserSummary(
        id=UserId(payload.id),
        username=payload.username,
        role=payload.user_type,
        email=payload.email,
        is_online=payload.is_online,
    )


def login_to_identity(payload: LoginPayload) -> tuple[str, Identity]:
    """Extract (token, identity) from either login response layout.

    Newer servers nest the user under ``user_data``; older ones answer with
    ``message == "Login successful"`` and the user fields at top level.
    """
    if not payload.token:
        raise AuthError("Invalid response format or login failed")

    user_data = payload.user_data or {}
    user_id = user_data.get("id") or user_data.get("_id") or payload.id
    username = user_data.get("username") or payload.username
    if not user_id or not username:
        raise AuthError("Login response is missing the user identity")

    identity = Identity(
        id=UserId(str(user_id)),
        username=username,
        email=user_data.get("email") or payload.email,
        role=payload.user_type,
    )
    return payload.token, identity
