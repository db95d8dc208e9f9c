"""AES-256-CBC in the CryptoJS passphrase format.

``base64("Salted__" + salt[8] + ciphertext)`` with key and IV derived from
the passphrase by OpenSSL's EVP_BytesToKey (MD5, one iteration).
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from marketplace_chat.application.exceptions import ValidationError

_MAGIC = b"Salted__"
_KEY_LEN = 32
_IV_LEN = 16
_BLOCK = 16


def _derive(passphrase: bytes, salt: bytes) -> tuple[bytes, bytes]:
    derived = b""
    block = b""
    while len(derived) < _KEY_LEN + _IV_LEN:
        block = hashlib.md5(block + passphrase + salt, usedforsecurity=False).digest()
        derived += block
    return derived[:_KEY_LEN], derived[_KEY_LEN:_KEY_LEN + _IV_LEN]


class CryptoJsAesCipher:
    def __init__(self, passphrase: str) -> None:
        self._passphrase = passphrase.encode()

    def decrypt(self, ciphertext: str) -> str:
        if not self._passphrase:
            raise ValidationError("Decryption key is not configured")
        try:
            raw = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("Invalid encrypted data") from exc
        if not raw.startswith(_MAGIC) or len(raw) < 2 * _BLOCK or len(raw) % _BLOCK:
            raise ValidationError("Invalid encrypted data")

        key, iv = _derive(self._passphrase, raw[8:16])
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(raw[16:]) + decryptor.finalize()
        unpadder = padding.PKCS7(_BLOCK * 8).unpadder()
        try:
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            # Wrong key shows up as bad padding or garbage bytes.
            raise ValidationError("Invalid encrypted data") from exc

    def encrypt(self, plaintext: str, *, salt: bytes | None = None) -> str:
        salt = salt if salt is not None else os.urandom(8)
        key, iv = _derive(self._passphrase, salt)
        padder = padding.PKCS7(_BLOCK * 8).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        body = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(_MAGIC + salt + body).decode("ascii")
