"""Apply .env.test to the environment before marketplace_chat.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

ENV_TEST = Path(__file__).with_name(".env.test")


def _apply(path: Path) -> None:
    for raw in path.read_text().splitlines():
        if raw.lstrip().startswith("#"):
            continue
        key, sep, value = raw.partition("=")
        if sep:
            os.environ.setdefault(key.strip(), value.strip())


if ENV_TEST.is_file():
    _apply(ENV_TEST)
