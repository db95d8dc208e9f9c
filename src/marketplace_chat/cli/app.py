"""Interactive line loop: one asyncio loop for stdin, REST calls and channel events."""
from __future__ import annotations

import asyncio
import logging
import sys
from typing import Awaitable, Callable, TextIO

from marketplace_chat.cli.presenter import ConsolePresenter
from marketplace_chat.config import Settings, settings
from marketplace_chat.infrastructure.http.client import HttpTransport
from marketplace_chat.infrastructure.transport import ChatTransport
from marketplace_chat.infrastructure.ws.channel import SocketIOChannel
from marketplace_chat.services.dispatcher import CommandDispatcher
from marketplace_chat.services.reconciler import EventReconciler
from marketplace_chat.services.session_store import SessionStateStore

logger = logging.getLogger(__name__)

ReadLine = Callable[[], Awaitable[str | None]]


def build_transport(cfg: Settings) -> ChatTransport:
    http = HttpTransport(cfg.API_URL, timeout=cfg.HTTP_TIMEOUT_SECONDS)
    channel = SocketIOChannel(
        cfg.WEBSOCKET_URL,
        socketio_path=cfg.SOCKETIO_PATH,
        reconnect_attempts=cfg.WS_RECONNECT_ATTEMPTS,
        reconnect_delay=cfg.WS_RECONNECT_DELAY,
        connect_timeout=cfg.WS_CONNECT_TIMEOUT,
    )
    return ChatTransport(http, channel)


async def stdin_line_reader() -> ReadLine:
    """Attach stdin to the running loop; the returned callable yields None at EOF."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)

    async def read_line() -> str | None:
        raw = await reader.readline()
        if not raw:
            return None
        return raw.decode(errors="replace")

    return read_line


async def run_loop(dispatcher: CommandDispatcher, read_line: ReadLine) -> None:
    while not dispatcher.finished:
        line = await read_line()
        if line is None:
            await dispatcher.dispatch("exit", [])
            break
        try:
            await dispatcher.handle_line(line)
        except Exception:
            logger.exception("Error processing command: %r", line)


async def run(
    cfg: Settings = settings,
    *,
    read_line: ReadLine | None = None,
    stream: TextIO | None = None,
    transport: ChatTransport | None = None,
) -> None:
    presenter = ConsolePresenter(stream)
    store = SessionStateStore()
    transport = transport or build_transport(cfg)
    if read_line is None:
        read_line = await stdin_line_reader()

    async def prompt(text: str) -> str:
        presenter.prompt(text)
        return await read_line() or ""

    reconciler = EventReconciler(store, presenter, transport)
    dispatcher = CommandDispatcher(
        store,
        transport,
        presenter,
        reconciler,
        prompt=prompt,
        typing_revert_seconds=cfg.TYPING_REVERT_SECONDS,
        page_limit=cfg.MESSAGES_PAGE_LIMIT,
    )

    presenter.banner()
    try:
        await run_loop(dispatcher, read_line)
    finally:
        await dispatcher.shutdown()
        await transport.aclose()
