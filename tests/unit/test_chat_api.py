from __future__ import annotations

import pytest

from marketplace_chat.application.exceptions import AuthError, TransportError
from marketplace_chat.services import chat_api
from tests.conftest import LOGIN_OK, FakeTransport, conversation_wire, message_wire, server_message_wire


@pytest.mark.asyncio
async def test_login_nested_user_data():
    transport = FakeTransport(responses={chat_api.LOGIN: LOGIN_OK})

    token, identity = await chat_api.login(transport, "alice@example.com", "secret")

    assert token == "tok-1"
    assert identity.id == "me"
    assert identity.username == "alice"
    assert identity.role == "buyer"


@pytest.mark.asyncio
async def test_login_flat_layout():
    transport = FakeTransport(responses={chat_api.LOGIN: {
        "message": "Login successful",
        "token": "tok-2",
        "_id": "u7",
        "id": "u7",
        "username": "carol",
        "email": "carol@example.com",
        "user_type": "seller",
    }})

    token, identity = await chat_api.login(transport, "carol@example.com", "pw")

    assert token == "tok-2"
    assert identity.id == "u7"
    assert identity.email == "carol@example.com"


@pytest.mark.asyncio
async def test_login_without_token_fails():
    transport = FakeTransport(responses={chat_api.LOGIN: {"message": "nope"}})

    with pytest.raises(AuthError):
        await chat_api.login(transport, "a@b.c", "pw")


@pytest.mark.asyncio
async def test_list_conversations_maps_wire_fields():
    wire = conversation_wire("c1", unread=3)
    wire["lastMessage"] = {"text": "see you", "createdAt": "2024-03-01T10:00:00"}
    transport = FakeTransport(responses={chat_api.CONVERSATIONS: {"conversations": [wire]}})

    [conv] = await chat_api.list_conversations(transport)

    assert conv.id == "c1"
    assert conv.unread_count == 3
    assert conv.counterpart.username == "bob"
    assert conv.counterpart.role == "seller"
    assert conv.last_message.text == "see you"
    assert conv.last_message.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_list_messages_sends_paging():
    transport = FakeTransport(responses={chat_api.MESSAGES: {"messages": [message_wire("c1", "m1")]}})

    [message] = await chat_api.list_messages(transport, "c1", limit=5)

    assert transport.calls == [(chat_api.MESSAGES, {"conversation_id": "c1", "page": 1, "limit": 5})]
    assert message.id == "m1"
    assert message.sender.username == "alice"


@pytest.mark.asyncio
async def test_list_messages_stamps_requested_conversation():
    transport = FakeTransport(responses={chat_api.MESSAGES: {"messages": [server_message_wire("m1")]}})

    [message] = await chat_api.list_messages(transport, "c1")

    assert message.conversation_id == "c1"
    assert message.text == "hello there"
    assert message.sender.username == "bob"


@pytest.mark.asyncio
async def test_negative_unread_is_invalid_response():
    transport = FakeTransport(responses={chat_api.CONVERSATIONS: {"conversations": [conversation_wire("c1", unread=-1)]}})

    with pytest.raises(TransportError, match="Invalid response format"):
        await chat_api.list_conversations(transport)


@pytest.mark.asyncio
async def test_send_message_reads_sent_message():
    transport = FakeTransport(responses={chat_api.SEND: {"sentMessage": message_wire("c1", "m2", text="yo")}})

    message = await chat_api.send_message(transport, "c1", "yo")

    assert message.text == "yo"
    assert message.conversation_id == "c1"
