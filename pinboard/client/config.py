from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Backend
    API_BASE: str = "http://localhost:3001"
    REQUEST_TIMEOUT: float = 10.0

    # Device-local persistent storage (device id + cached pins)
    STATE_FILE: str = "~/.pinboard/state.json"

    # Scheduler
    POLL_INTERVAL: float = 5.0
    SYNC_GRACE_SECONDS: float = 1.0   # lets backend replication settle before the pull

client_settings = ClientSettings()
