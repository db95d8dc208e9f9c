"""Maps user commands to transport calls and session store mutations."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from marketplace_chat.application.exceptions import (
    AuthError,
    ChannelDown,
    NotFoundError,
    TransportError,
    UsageError,
)
from marketplace_chat.application.ports.presenter import Presenter
from marketplace_chat.application.ports.transport import Subscription, Transport
from marketplace_chat.domain.entities.conversation import Conversation, LastMessage
from marketplace_chat.domain.entities.message import Message
from marketplace_chat.domain.value_objects.enums import ConnectionStatus, OutboundEventType
from marketplace_chat.services import chat_api
from marketplace_chat.services.reconciler import EventReconciler
from marketplace_chat.services.session_store import SessionStateStore

logger = logging.getLogger(__name__)

Prompt = Callable[[str], Awaitable[str]]
Handler = Callable[[list[str]], Awaitable[None]]

SEARCH_PROMPT = 'Start conversation with a user? (Enter index or "cancel"): '


@dataclass(frozen=True, slots=True)
class Command:
    handler: Handler
    min_args: int = 0
    usage: str = ""


class CommandDispatcher:
    """Runs one command at a time against the session store.

    Owns the typing auto-revert task and the channel subscriptions made at
    login, so that logout, exit and channel teardown cancel them together.
    """

    def __init__(
        self,
        store: SessionStateStore,
        transport: Transport,
        presenter: Presenter,
        reconciler: EventReconciler,
        *,
        prompt: Prompt,
        typing_revert_seconds: float = 5.0,
        page_limit: int = 20,
    ) -> None:
        self._store = store
        self._transport = transport
        self._presenter = presenter
        self._reconciler = reconciler
        self._prompt = prompt
        self._typing_revert_seconds = typing_revert_seconds
        self._page_limit = page_limit
        self._typing_task: asyncio.Task[None] | None = None
        self._subscriptions: list[Subscription] = []
        self.finished = False

        self._commands: dict[str, Command] = {
            "help": Command(self._cmd_help),
            "exit": Command(self._cmd_exit),
            "login": Command(self._cmd_login, 2, "/login <email> <password>"),
            "conversations": Command(self._cmd_conversations),
            "open": Command(self._cmd_open, 1, "/open <index>"),
            "search": Command(self._cmd_search, 1, "/search <query>"),
            "start": Command(self._cmd_start, 1, "/start <user_id>"),
            "send": Command(self._cmd_send, 1, "/send <message>"),
            "attach": Command(self._cmd_attach, 1, "/attach <file_path>"),
            "typing": Command(self._cmd_typing),
            "read": Command(self._cmd_read),
            "back": Command(self._cmd_back),
            "status": Command(self._cmd_status),
        }

    @property
    def typing_revert_pending(self) -> bool:
        return self._typing_task is not None and not self._typing_task.done()

    async def handle_line(self, line: str) -> None:
        text = line.strip()
        if not text:
            return
        if text.startswith("/"):
            parts = text[1:].split()
            name, args = (parts[0], parts[1:]) if parts else ("", [])
            await self.dispatch(name, args)
        elif self._store.focused_id is not None:
            await self.dispatch("send", [text])
        else:
            self._presenter.info(
                "No open conversation. Type /conversations to see your conversations."
            )

    async def dispatch(self, name: str, args: list[str]) -> None:
        command = self._commands.get(name)
        if command is None:
            self._presenter.info(f"Unknown command: {name}")
            self._presenter.help()
            return
        try:
            if len(args) < command.min_args:
                raise UsageError(f"Usage: {command.usage}")
            await command.handler(args)
        except (UsageError, NotFoundError) as exc:
            self._presenter.info(exc.detail)
        except AuthError as exc:
            await self._on_auth_error(exc)
        except TransportError as exc:
            self._presenter.error(f"Request failed: {exc.detail}")

    # -- preconditions -----------------------------------------------------

    def _require_session(self) -> None:
        if not self._store.authenticated:
            raise AuthError("Not logged in. Use /login <email> <password>")

    def _require_focus(self) -> Conversation:
        conv = self._store.focused
        if conv is None:
            raise UsageError("No open conversation")
        return conv

    async def _on_auth_error(self, exc: AuthError) -> None:
        if not self._store.authenticated:
            self._presenter.error(exc.detail)
            return
        # The server rejected a held token: the session is over.
        self._presenter.error(f"Authentication failed: {exc.detail}. Please /login again.")
        await self.shutdown()
        self._store.end_session()
        self._transport.set_credential(None)

    # -- channel -----------------------------------------------------------

    async def _emit(self, event_type: OutboundEventType, payload: dict) -> None:
        if not await self._transport.send(event_type, payload):
            logger.debug("%s not delivered, channel unavailable", event_type)

    def _on_channel_status(self, status: ConnectionStatus, error: ChannelDown | None) -> None:
        self._store.set_connection(status)
        if status == ConnectionStatus.CONNECTED:
            self._presenter.notice("Realtime channel connected")
        elif status in (ConnectionStatus.DISCONNECTED, ConnectionStatus.DOWN):
            self._cancel_typing_revert()
        if error is not None:
            self._presenter.notice(
                f"Realtime channel down: {error.detail}. Sending and reading still work"
            )

    def _cancel_typing_revert(self) -> None:
        if self._typing_task is not None and not self._typing_task.done():
            self._typing_task.cancel()
        self._typing_task = None

    def _schedule_typing_revert(self, conversation_id: str) -> None:
        self._cancel_typing_revert()
        self._typing_task = asyncio.create_task(
            self._revert_typing(conversation_id), name=f"typing-revert-{conversation_id}",
        )

    async def _revert_typing(self, conversation_id: str) -> None:
        await asyncio.sleep(self._typing_revert_seconds)
        if self._store.focused_id != conversation_id or not self._transport.channel_connected:
            logger.debug("Skipping typing revert for %s, context changed", conversation_id)
            return
        await self._emit(
            OutboundEventType.TYPING, {"conversation_id": conversation_id, "is_typing": False},
        )

    async def shutdown(self) -> None:
        """Cancel pending timers, drop subscriptions and close the channel."""
        self._cancel_typing_revert()
        for sub in self._subscriptions:
            sub.dispose()
        self._subscriptions.clear()
        await self._transport.close_channel()

    # -- focus -------------------------------------------------------------

    async def _focus(self, conv: Conversation) -> None:
        previous = self._store.focused_id
        if previous is not None and previous != conv.id:
            self._cancel_typing_revert()
            await self._emit(
                OutboundEventType.VIEWING_CONVERSATION,
                {"conversation_id": previous, "is_viewing": False},
            )

        # Focus before fetching so pushes for this conversation land in the thread.
        had_unread = self._store.set_focus(conv.id)
        try:
            page = await chat_api.list_messages(
                self._transport, conv.id, limit=self._page_limit,
            )
        except TransportError as exc:
            self._presenter.error(f"Failed to get messages: {exc.detail}")
            page = []

        thread = self._store.merge_thread(conv.id, page)
        self._presenter.conversation_header(conv)
        self._presenter.messages(thread)

        if had_unread > 0:
            try:
                await chat_api.mark_read(self._transport, conv.id)
            except TransportError as exc:
                self._presenter.error(f"Failed to mark as read: {exc.detail}")
            await self._emit(OutboundEventType.MARK_READ, {"conversation_id": conv.id})

        await self._emit(
            OutboundEventType.VIEWING_CONVERSATION,
            {"conversation_id": conv.id, "is_viewing": True},
        )

    def _show_confirmed(self, message: Message) -> None:
        self._store.set_last_message(
            message.conversation_id,
            LastMessage(text=message.text, created_at=message.created_at),
        )
        # The echo may already have arrived over the channel.
        if self._store.record_message(message):
            self._presenter.message(message)

    # -- commands ----------------------------------------------------------

    async def _cmd_help(self, args: list[str]) -> None:
        self._presenter.help()

    async def _cmd_login(self, args: list[str]) -> None:
        email, password = args[0], args[1]
        try:
            token, identity = await chat_api.login(self._transport, email, password)
        except (TransportError, AuthError) as exc:
            self._presenter.error(f"Login failed: {exc.detail}")
            return

        if self._store.authenticated:
            await self.shutdown()
        self._store.start_session(identity, token)
        self._transport.set_credential(token)
        self._presenter.info("Login successful!")
        self._presenter.info(f"Logged in as {identity.username} ({identity.role or 'user'})")

        self._subscriptions = [
            self._transport.subscribe(self._reconciler.apply),
            self._transport.on_status(self._on_channel_status),
        ]
        await self._transport.connect(token)
        await self._cmd_conversations([])

    async def _cmd_conversations(self, args: list[str]) -> None:
        self._require_session()
        try:
            fetched = await chat_api.list_conversations(self._transport)
        except TransportError as exc:
            self._presenter.error(f"Failed to get conversations: {exc.detail}")
            fetched = []
        for conv in fetched:
            self._store.upsert_conversation(conv)
        self._presenter.conversation_list(self._store.conversations)

    async def _cmd_open(self, args: list[str]) -> None:
        try:
            index = int(args[0])
        except ValueError:
            raise NotFoundError("Invalid conversation index") from None
        conv = self._store.conversation_at(index)
        if conv is None:
            raise NotFoundError("Invalid conversation index")
        await self._focus(conv)

    async def _cmd_search(self, args: list[str]) -> None:
        self._require_session()
        query = " ".join(args)
        try:
            users = await chat_api.search_users(self._transport, query)
        except TransportError as exc:
            self._presenter.error(f"Failed to search users: {exc.detail}")
            users = []
        self._presenter.users(users)
        if not users:
            return

        answer = (await self._prompt(SEARCH_PROMPT)).strip()
        if answer.lower() == "cancel":
            return
        try:
            index = int(answer)
        except ValueError:
            index = -1
        if not 0 <= index < len(users):
            self._presenter.info("Invalid selection")
            return
        await self._cmd_start([users[index].id])

    async def _cmd_start(self, args: list[str]) -> None:
        self._require_session()
        try:
            conv = await chat_api.start_conversation(self._transport, args[0])
        except TransportError as exc:
            self._presenter.error(f"Failed to start conversation: {exc.detail}")
            return
        stored = self._store.upsert_conversation(conv)
        name = stored.counterpart.username if stored.counterpart else "Unknown"
        self._presenter.info(f"Started conversation with {name}")
        await self._cmd_open([str(self._store.index_of(stored.id))])

    async def _cmd_send(self, args: list[str]) -> None:
        conv = self._require_focus()
        text = " ".join(args)
        self._cancel_typing_revert()
        await self._emit(OutboundEventType.TYPING, {"conversation_id": conv.id, "is_typing": False})
        try:
            message = await chat_api.send_message(self._transport, conv.id, text)
        except TransportError as exc:
            self._presenter.error(f"Failed to send message: {exc.detail}")
            return
        self._show_confirmed(message)

    async def _cmd_attach(self, args: list[str]) -> None:
        conv = self._require_focus()
        raw_path = " ".join(args)
        path = Path(raw_path).expanduser()
        if not path.is_file():
            self._presenter.info(f"File not found: {raw_path}")
            return
        try:
            message = await chat_api.send_attachment(self._transport, conv.id, path)
        except TransportError as exc:
            self._presenter.error(f"Failed to send attachment: {exc.detail}")
            return
        self._presenter.info(f"Attachment sent: {path.name}")
        self._show_confirmed(message)

    async def _cmd_typing(self, args: list[str]) -> None:
        conv = self._store.focused
        if conv is None or not self._transport.channel_connected:
            self._presenter.info("No open conversation or not connected")
            return
        await self._emit(OutboundEventType.TYPING, {"conversation_id": conv.id, "is_typing": True})
        self._presenter.info("Typing status: ON")
        self._schedule_typing_revert(conv.id)

    async def _cmd_read(self, args: list[str]) -> None:
        conv = self._require_focus()
        try:
            await chat_api.mark_read(self._transport, conv.id)
        except TransportError as exc:
            self._presenter.error(f"Failed to mark as read: {exc.detail}")
            return
        await self._emit(OutboundEventType.MARK_READ, {"conversation_id": conv.id})
        self._store.clear_unread(conv.id)
        self._presenter.info("Marked conversation as read")

    async def _cmd_back(self, args: list[str]) -> None:
        self._cancel_typing_revert()
        previous = self._store.clear_focus()
        if previous is not None:
            await self._emit(
                OutboundEventType.VIEWING_CONVERSATION,
                {"conversation_id": previous, "is_viewing": False},
            )
        if self._store.authenticated:
            await self._cmd_conversations([])
        else:
            self._presenter.conversation_list(self._store.conversations)

    async def _cmd_status(self, args: list[str]) -> None:
        self._presenter.status(
            self._store.session,
            self._transport.channel_connected,
            self._store.focused,
            len(self._store.conversations),
        )

    async def _cmd_exit(self, args: list[str]) -> None:
        self._presenter.info("Exiting...")
        await self.shutdown()
        self.finished = True
