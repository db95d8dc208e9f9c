"""Upload-processing dependencies for multipart routes.

Routes declare ``body: ProfileUploadBody`` (or ``ChatUploadBody``) and get
the decrypted request body with stored file paths merged in.
"""
from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from marketplace_chat.api.deps import CurrentPrincipal, DecryptorDep, UploadRootDep
from marketplace_chat.application.exceptions import AuthError, ValidationError
from marketplace_chat.services import upload_service
from marketplace_chat.services.upload_service import CHAT_ATTACHMENTS, PROFILE_IMAGE, UploadPolicy


async def _process(
    request: Request,
    principal: CurrentPrincipal,
    decryptor: DecryptorDep,
    root: UploadRootDep,
    policy: UploadPolicy,
) -> dict[str, Any]:
    form = await request.form()
    try:
        files: list[Any] = []
        fields: dict[str, str] = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key != policy.field_name:
                    raise ValidationError(f"Unexpected field: {key}")
                files.append(value)
            else:
                fields[key] = value
        return await upload_service.process_upload(
            files, fields, policy, principal.user_id, root=root, decryptor=decryptor,
        )
    finally:
        await form.close()


async def profile_image_body(
    request: Request,
    principal: CurrentPrincipal,
    decryptor: DecryptorDep,
    root: UploadRootDep,
) -> dict[str, Any]:
    return await _process(request, principal, decryptor, root, PROFILE_IMAGE)


async def chat_attachments_body(
    request: Request,
    principal: CurrentPrincipal,
    decryptor: DecryptorDep,
    root: UploadRootDep,
) -> dict[str, Any]:
    return await _process(request, principal, decryptor, root, CHAT_ATTACHMENTS)


ProfileUploadBody = Annotated[dict[str, Any], Depends(profile_image_body)]
ChatUploadBody = Annotated[dict[str, Any], Depends(chat_attachments_body)]


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.detail})

    @app.exception_handler(AuthError)
    async def _unauthorized(_req: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"error": exc.detail})
