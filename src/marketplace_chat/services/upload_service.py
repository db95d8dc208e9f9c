"""Disk storage and body decryption for multipart uploads.

A request either fully succeeds or leaves no file behind: every failure
after the first byte was written removes what that request stored.
"""
from __future__ import annotations

import json
import logging
import secrets
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Protocol

from marketplace_chat.application.exceptions import ValidationError
from marketplace_chat.application.ports.crypto import PayloadDecryptor

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
MB = 1024 * 1024


class IncomingFile(Protocol):
    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True, slots=True)
class UploadPolicy:
    field_name: str
    directory: str
    prefix: str
    max_bytes: int
    max_files: int
    type_prefix: str | None = None
    allowed_types: frozenset[str] = frozenset()
    type_error: str = "Unsupported file format"

    @property
    def many(self) -> bool:
        return self.max_files > 1

    def accepts(self, content_type: str | None) -> bool:
        if not content_type:
            return False
        if self.type_prefix is not None:
            return content_type.startswith(self.type_prefix)
        return content_type in self.allowed_types


PROFILE_IMAGE = UploadPolicy(
    field_name="profile_image",
    directory="profiles",
    prefix="profile",
    max_bytes=5 * MB,
    max_files=1,
    type_prefix="image/",
    type_error="Unsupported file format. Only images are allowed.",
)

CHAT_ATTACHMENTS = UploadPolicy(
    field_name="attachments",
    directory="chat",
    prefix="chat",
    max_bytes=10 * MB,
    max_files=5,
    allowed_types=frozenset({
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "text/plain",
        "audio/mpeg",
        "audio/mp4",
        "audio/wav",
        "audio/ogg",
        "video/mp4",
        "video/quicktime",
        "video/webm",
    }),
)


@dataclass(frozen=True, slots=True)
class StoredFile:
    path: Path
    public_path: str
    original_name: str
    content_type: str
    size: int


def _unique_name(policy: UploadPolicy, user_id: str, original: str) -> str:
    suffix = Path(original).suffix
    return f"{policy.prefix}-{user_id}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"


async def _store_one(
    upload: IncomingFile,
    policy: UploadPolicy,
    user_id: str,
    root: Path,
    stored: list[StoredFile],
) -> None:
    if not policy.accepts(upload.content_type):
        raise ValidationError(policy.type_error)

    directory = root / policy.directory
    directory.mkdir(parents=True, exist_ok=True)
    original = upload.filename or "upload"
    name = _unique_name(policy, user_id, original)
    path = directory / name
    entry = StoredFile(
        path=path,
        public_path=f"/{root.name}/{policy.directory}/{name}",
        original_name=original,
        content_type=upload.content_type or "",
        size=0,
    )
    # Registered before writing so a partial file is rolled back too.
    stored.append(entry)

    size = 0
    with path.open("wb") as fh:
        while chunk := await upload.read(CHUNK_SIZE):
            size += len(chunk)
            if size > policy.max_bytes:
                raise ValidationError(
                    f"File size is too large. Maximum size is {policy.max_bytes // MB}MB."
                )
            fh.write(chunk)
    stored[-1] = replace(entry, size=size)


def rollback(stored: list[StoredFile]) -> None:
    for entry in stored:
        try:
            entry.path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Error deleting uploaded file %s", entry.path)


def decrypt_body(ciphertext: str, decryptor: PayloadDecryptor) -> dict[str, Any]:
    plain = decryptor.decrypt(ciphertext)
    try:
        body = json.loads(plain)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Failed to process request: {exc.msg}") from exc
    if not isinstance(body, dict):
        raise ValidationError("Failed to process request: decrypted data is not an object")
    return body


async def process_upload(
    files: list[IncomingFile],
    fields: dict[str, str],
    policy: UploadPolicy,
    user_id: str,
    *,
    root: Path,
    decryptor: PayloadDecryptor,
) -> dict[str, Any]:
    """Store files, decrypt the ``data`` field and merge both into one body.

    ``fields`` are the plain text form fields; ``data`` among them is the
    ciphertext. Without ``data`` the plain fields are the body.
    """
    if len(files) > policy.max_files:
        raise ValidationError(f"Too many files. Maximum is {policy.max_files} file(s).")

    stored: list[StoredFile] = []
    committed = False
    try:
        for upload in files:
            await _store_one(upload, policy, user_id, root, stored)

        ciphertext = fields.get("data")
        if ciphertext:
            body = decrypt_body(ciphertext, decryptor)
        else:
            body = {k: v for k, v in fields.items() if k != "data"}

        if policy.many:
            body[policy.field_name] = [s.public_path for s in stored]
        elif stored:
            body[policy.field_name] = stored[0].public_path
        elif fields.get(policy.field_name) and not body.get(policy.field_name):
            # No new file: keep the path the client already had.
            body[policy.field_name] = fields[policy.field_name]

        committed = True
        logger.info("Stored %d %s upload(s) for user %s", len(stored), policy.field_name, user_id)
        return body
    finally:
        if not committed:
            rollback(stored)
