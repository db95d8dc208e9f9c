from __future__ import annotations

import pytest

from marketplace_chat.cli.app import build_transport, run
from marketplace_chat.config import Settings
from marketplace_chat.services import chat_api
from tests.conftest import LOGIN_OK


def _script(*lines: str):
    pending = list(lines)

    async def read_line() -> str | None:
        return pending.pop(0) if pending else None

    return read_line


@pytest.mark.asyncio
async def test_eof_behaves_like_exit(transport, out):
    await run(Settings(), read_line=_script("/help"), stream=out, transport=transport)

    text = out.getvalue()
    assert text.startswith("=== Chat Test Client ===")
    assert "--- Chat Test Client Commands ---" in text
    assert "Exiting..." in text
    assert transport.closed >= 1


@pytest.mark.asyncio
async def test_search_prompt_reads_next_line(transport, out):
    transport.responses[chat_api.LOGIN] = LOGIN_OK
    transport.responses[chat_api.CONVERSATIONS] = {"conversations": []}
    transport.responses[chat_api.SEARCH_USERS] = {"users": [{"_id": "u-bob", "username": "bob"}]}

    await run(
        Settings(),
        read_line=_script("/login alice@example.com pw", "/search bob", "cancel", "/exit"),
        stream=out,
        transport=transport,
    )

    text = out.getvalue()
    assert 'Start conversation with a user? (Enter index or "cancel"): ' in text
    assert chat_api.START_CONVERSATION not in transport.endpoints()
    assert "Unknown command" not in text


def test_build_transport_holds_credential():
    cfg = Settings(API_URL="http://api.test", WEBSOCKET_URL="http://ws.test/")
    transport = build_transport(cfg)

    transport.set_credential("tok")

    assert transport.token == "tok"
    assert transport.channel_connected is False
