from __future__ import annotations

import jwt

from marketplace_chat.application.dto.principal import Principal
from marketplace_chat.application.exceptions import AuthError


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as exc:
            raise AuthError("Not authorized, token failed") from exc
        user_id = payload.get("id") or payload.get("sub")
        if not user_id:
            raise AuthError("Not authorized, token has no subject")
        return Principal(
            user_id=str(user_id),
            user_type=payload.get("user_type") or payload.get("role"),
        )
