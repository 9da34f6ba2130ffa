from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "CampusDesk"
    env: str = "dev"
    cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    storage_backend: str = "inmemory"  # inmemory|mongo
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "campusdesk"

    # JWT identity (tokens are issued by the identity provider)
    jwt_secret_key: str = "campusdesk-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Exam sessions
    submission_grace_seconds: int = 30
    session_tick_seconds: float = 1.0

    # Observability (OpenTelemetry)
    observability_enabled: bool = True
    otel_service_name: str = "campusdesk"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_console: bool = False
    otel_sample_rate: float = 0.1


settings = Settings()
