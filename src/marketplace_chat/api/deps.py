"""FastAPI dependency injection helpers."""
from __future__ import annotations

from pathlib import Path
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from marketplace_chat.application.dto.principal import Principal
from marketplace_chat.application.exceptions import AuthError
from marketplace_chat.application.ports.auth import TokenVerifier
from marketplace_chat.application.ports.crypto import PayloadDecryptor
from marketplace_chat.config import settings
from marketplace_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from marketplace_chat.infrastructure.crypto.cryptojs_aes import CryptoJsAesCipher

_bearer_scheme = HTTPBearer(auto_error=False)

_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_verifier)],
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise AuthError("Not authorized, no token")
    return await verifier.verify(credentials.credentials)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_decryptor() -> PayloadDecryptor:
    return CryptoJsAesCipher(settings.AES_SECRET_KEY)


DecryptorDep = Annotated[PayloadDecryptor, Depends(get_decryptor)]


def get_upload_root() -> Path:
    return Path(settings.UPLOAD_ROOT)


UploadRootDep = Annotated[Path, Depends(get_upload_root)]
