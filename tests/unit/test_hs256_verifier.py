from __future__ import annotations

import jwt
import pytest

from marketplace_chat.application.exceptions import AuthError
from marketplace_chat.infrastructure.auth.hs256_verifier import HS256Verifier

SECRET = "unit-test-secret-of-sufficient-length"


@pytest.mark.asyncio
async def test_verify_reads_id_and_user_type():
    token = jwt.encode({"id": "u1", "user_type": "seller"}, SECRET, algorithm="HS256")

    principal = await HS256Verifier(SECRET).verify(token)

    assert principal.user_id == "u1"
    assert principal.user_type == "seller"


@pytest.mark.asyncio
async def test_verify_falls_back_to_sub():
    token = jwt.encode({"sub": "u2"}, SECRET, algorithm="HS256")
    assert (await HS256Verifier(SECRET).verify(token)).user_id == "u2"


@pytest.mark.asyncio
async def test_bad_signature():
    token = jwt.encode({"id": "u1"}, "another-secret-of-sufficient-length!", algorithm="HS256")

    with pytest.raises(AuthError, match="token failed"):
        await HS256Verifier(SECRET).verify(token)
