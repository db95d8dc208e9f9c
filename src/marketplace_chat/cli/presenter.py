"""Console rendering for the chat client."""
from __future__ import annotations

import sys
from collections.abc import Iterable
from datetime import datetime
from typing import TextIO

from marketplace_chat.application.dto.user import UserSummary
from marketplace_chat.domain.entities.conversation import Conversation
from marketplace_chat.domain.entities.message import Message
from marketplace_chat.domain.entities.participant import Participant
from marketplace_chat.domain.entities.session import Session

PREVIEW_CHARS = 30

HELP_LINES = (
    "/help - Show this help",
    "/exit - Exit the application",
    "/login <email> <password> - Login with email and password",
    "/conversations - List all conversations",
    "/open <index> - Open conversation by index",
    "/search <query> - Search for users",
    "/start <user_id> - Start a new conversation",
    "/send <message> - Send message in current conversation",
    "/attach <file_path> - Send attachment in current conversation",
    "/typing - Send typing indicator (clears after a few seconds)",
    "/read - Mark current conversation as read",
    "/back - Go back to conversation list",
    "/status - Show current connection status",
)


def format_timestamp(ts: datetime | None) -> str:
    if ts is None:
        return "unknown"
    return ts.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _display_name(participant: Participant | None) -> str:
    return participant.username if participant is not None else "Unknown"


class ConsolePresenter:
    """Writes state and notices to a text stream. Never touches state."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    def _write(self, line: str = "") -> None:
        print(line, file=self._stream, flush=True)

    def info(self, text: str) -> None:
        self._write(text)

    def error(self, text: str) -> None:
        self._write(text)

    def notice(self, text: str) -> None:
        """Out-of-band notice from the channel."""
        self._write(f"\n[{text}]")

    def banner(self) -> None:
        self._write("=== Chat Test Client ===")
        self._write("Type /help to see available commands")

    def help(self) -> None:
        self._write()
        self._write("--- Chat Test Client Commands ---")
        for line in HELP_LINES:
            self._write(line)
        self._write("Any text without a leading / is sent to the open conversation")
        self._write("-------------------------------")
        self._write()

    def message(self, message: Message) -> None:
        line = f"[{format_timestamp(message.created_at)}] {message.sender.username}: {message.text}"
        if message.attachments:
            line += f" (attachments: {', '.join(message.attachments)})"
        self._write(line)

    def messages(self, messages: Iterable[Message]) -> None:
        self._write("--- Messages ---")
        rendered = False
        for message in messages:
            self.message(message)
            rendered = True
        if not rendered:
            self._write("No messages in this conversation")

    def conversation_list(self, conversations: list[Conversation]) -> None:
        if not conversations:
            self._write("No conversations found")
            return
        self._write()
        self._write("--- Your Conversations ---")
        for index, conv in enumerate(conversations):
            participant = conv.counterpart
            role = f" ({participant.role})" if participant is not None and participant.role else ""
            unread = f" ({conv.unread_count} unread)" if conv.unread_count > 0 else ""
            self._write(f"[{index}] {_display_name(participant)}{role} - {self._preview(conv)}{unread}")
        self._write("------------------------")
        self._write()

    @staticmethod
    def _preview(conv: Conversation) -> str:
        if conv.last_message is None or not conv.last_message.text:
            return "No messages yet"
        text = conv.last_message.text
        if len(text) > PREVIEW_CHARS:
            return text[:PREVIEW_CHARS] + "..."
        return text

    def conversation_header(self, conv: Conversation) -> None:
        participant = conv.counterpart
        role = f" ({participant.role})" if participant is not None and participant.role else ""
        self._write()
        self._write(f"--- Conversation with {_display_name(participant)}{role} ---")
        if participant is None:
            self._write("Status: unknown")
        elif participant.is_online:
            self._write("Status: Online")
        else:
            self._write(f"Status: Last seen {format_timestamp(participant.last_seen)}")

    def users(self, users: list[UserSummary]) -> None:
        if not users:
            self._write("No users found")
            return
        self._write()
        self._write("--- Found Users ---")
        for index, user in enumerate(users):
            role = f" ({user.role})" if user.role else ""
            email = f" - {user.email}" if user.email else ""
            online = "Online" if user.is_online else "Offline"
            self._write(f"[{index}] {user.username}{role}{email} - {online}")
        self._write("------------------")
        self._write()

    def status(
        self,
        session: Session | None,
        channel_connected: bool,
        focused: Conversation | None,
        total: int,
    ) -> None:
        self._write()
        self._write("--- Status ---")
        self._write(f"User: {session.identity.username if session else 'Not logged in'}")
        self._write(f"Socket connected: {'Yes' if channel_connected else 'No'}")
        if session is not None:
            self._write(f"Channel status: {session.connection}")
        current = _display_name(focused.counterpart) if focused is not None else "None"
        self._write(f"Current conversation: {current}")
        self._write(f"Total conversations: {total}")
        self._write("--------------")
        self._write()

    def prompt(self, text: str) -> None:
        print(text, end="", file=self._stream, flush=True)
