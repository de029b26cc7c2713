"""Конфигурация приложения."""
from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
    app_env: str = "development"
    secret_key: str = "dev-secret-change-in-production"
    debug: bool = True

    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "misan"
    postgres_user: str = "misan"
    postgres_password: str = "changeme"
    database_url: str = ""

    token_encryption_key: str = ""  # min 32 chars, secrets stored in system_settings

    admin_default_email: str = "admin@localhost"
    admin_default_password: str = "changeme"

    jwt_secret: str = "your-jwt-secret-min-32-chars"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60

    # console client side
    backend_url: str = "http://localhost:8000"
    backend_api_key: str = ""
    backend_timeout_seconds: float = 15.0

    support_forwarding_webhook: str = ""
    support_inbox_email: str = "assistant-misan@parene.org"
    email_default_signature: str = "L'équipe Moualimy\nVous accompagne dans votre réussite"


@lru_cache
def get_settings() -> Settings:
    return Settings()
