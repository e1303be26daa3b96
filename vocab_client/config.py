"""
Client configuration.
Loads environment variables for the API client, sync and local storage.
"""
from pathlib import Path

from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Client settings loaded from environment variables."""

    # Backend
    VOCAB_API_BASE_URL: str = "http://localhost:8000"

    # Request timeouts in seconds (connect / whole request)
    VOCAB_CONNECT_TIMEOUT: float = 30.0
    VOCAB_TOTAL_TIMEOUT: float = 60.0

    # Local key-value storage file
    VOCAB_STORAGE_PATH: str = "~/.vocab/storage.json"

    # Days a deleted wordbook stays restorable
    VOCAB_TRASH_RETENTION_DAYS: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def storage_path(self) -> Path:
        return Path(self.VOCAB_STORAGE_PATH).expanduser()


# Global settings instance
client_settings = ClientSettings()
