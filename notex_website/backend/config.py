"""Application configuration using pydantic-settings.

Values come from ``NOTEX_*`` environment variables or a ``.env`` file in the
working directory. Consumers call ``get_settings()`` for a cached instance;
tests build ``Settings(...)`` directly and pass it to ``create_app``.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    """Runtime settings for the NoteX API."""

    model_config = SettingsConfigDict(
        env_prefix="NOTEX_",
        env_file=".env",
        extra="ignore",
    )

    users_db: str = "users.db"
    notes_db: str = "notes.db"
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    # Directory with the built frontend; served at / and /static when present.
    website_dir: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8000

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()
    logger.debug("Loaded settings: users_db=%s notes_db=%s", settings.users_db, settings.notes_db)
    return settings

def configure_logging(level: str = "INFO") -> None:
    """Install a basic root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    root.setLevel(level.upper())
