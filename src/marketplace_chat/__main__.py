"""Entrypoint: python -m marketplace_chat"""
from __future__ import annotations

import asyncio
import logging

from marketplace_chat.cli.app import run
from marketplace_chat.config import settings


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
