from __future__ import annotations

from typing import Protocol


class PayloadDecryptor(Protocol):
    """Turns the encrypted ``data`` form field back into its JSON text."""

    def decrypt(self, ciphertext: str) -> str: ...
