"""Зависимости FastAPI."""
from typing import Generator

from sqlalchemy.orm import Session

from apps.console.config import get_settings
from apps.console.database import get_session_factory


def get_db() -> Generator[Session, None, None]:
    factory = get_session_factory()
    sess = factory()
    try:
        yield sess
    finally:
        sess.close()


def get_secrets_key() -> str:
    """Key protecting secrets stored in system_settings."""
    s = get_settings()
    return s.token_encryption_key or s.secret_key
