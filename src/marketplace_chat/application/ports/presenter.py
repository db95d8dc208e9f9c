from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from marketplace_chat.application.dto.user import UserSummary
from marketplace_chat.domain.entities.conversation import Conversation
from marketplace_chat.domain.entities.message import Message
from marketplace_chat.domain.entities.session import Session


class Presenter(Protocol):
    def info(self, text: str) -> None: ...

    def error(self, text: str) -> None: ...

    def notice(self, text: str) -> None: ...

    def help(self) -> None: ...

    def message(self, message: Message) -> None: ...

    def messages(self, messages: Iterable[Message]) -> None: ...

    def conversation_list(self, conversations: list[Conversation]) -> None: ...

    def conversation_header(self, conv: Conversation) -> None: ...

    def users(self, users: list[UserSummary]) -> None: ...

    def status(
        self,
        session: Session | None,
        channel_connected: bool,
        focused: Conversation | None,
        total: int,
    ) -> None: ...

    def prompt(self, text: str) -> None: ...
