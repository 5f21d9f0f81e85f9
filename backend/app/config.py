from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "photohunt-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Photo Hunt")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/photohunt_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    notifier_backend: str = os.getenv("NOTIFIER_BACKEND", "memory")  # memory|redis

    # Blob store (MinIO, speaks S3 API)
    s3_endpoint: str = os.getenv("S3_ENDPOINT", "http://minio:9000")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "minioadmin")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "minioadmin")
    s3_bucket_photos: str = os.getenv("S3_BUCKET_PHOTOS", "photohunt-photos-dev")
    signed_url_ttl_seconds: int = int(os.getenv("SIGNED_URL_TTL_SECONDS", "3600"))
    # Storage is eventually consistent right after upload
    signed_url_tries: int = int(os.getenv("SIGNED_URL_TRIES", "6"))
    signed_url_delay_ms: int = int(os.getenv("SIGNED_URL_DELAY_MS", "400"))

    # Anonymous player tokens
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    player_token_ttl_days: int = int(os.getenv("PLAYER_TOKEN_TTL_DAYS", "365"))

    join_code_length: int = int(os.getenv("JOIN_CODE_LENGTH", "5"))
    join_code_attempts: int = int(os.getenv("JOIN_CODE_ATTEMPTS", "5"))

settings = Settings()
