from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class UsageError(AppError):
    """Wrong command arity; raised before anything touches the network."""


class AuthError(AppError):
    pass


class TransportError(AppError):
    def __init__(self, detail: str = "", status: int | None = None) -> None:
        self.status = status
        super().__init__(detail)


class ChannelDown(AppError):
    pass


class NotFoundError(AppError):
    pass


class ValidationError(AppError):
    pass
