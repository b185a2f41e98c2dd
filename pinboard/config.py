from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Core
    APP_NAME: str = "Pinboard Scan Annotations"

    # DB
    DATABASE_URL: str = "sqlite:///./data/pinboard.db"

    # HTTP
    STATIC_DIR: str = ""          # front end (index.html, scans/, ...) served at / when set
    CORS_ORIGINS: str = "*"       # comma-separated

    # Cloud replica (S3); empty bucket disables /api/sync
    AWS_REGION: str = "us-east-1"
    CLOUD_BUCKET: str = ""
    CLOUD_KEY: str = "pins/replica.json"

    # Behavior
    MERGE_RETRIES: int = 3

settings = Settings()
