from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_URL: str = "http://localhost:5000"
    WEBSOCKET_URL: str = "http://localhost:5000"
    SOCKETIO_PATH: str = "socket.io"

    HTTP_TIMEOUT_SECONDS: float = 30.0

    WS_RECONNECT_ATTEMPTS: int = 5
    WS_RECONNECT_DELAY: float = 1.0
    WS_CONNECT_TIMEOUT: float = 5.0

    TYPING_REVERT_SECONDS: float = 5.0
    MESSAGES_PAGE_LIMIT: int = 20

    LOG_LEVEL: str = "WARNING"

    UPLOAD_ROOT: str = "uploads"
    AES_SECRET_KEY: str = ""

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
