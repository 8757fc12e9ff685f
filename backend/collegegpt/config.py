# config.py
import logging
import os
from functools import lru_cache
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)

DEFAULT_GEMINI_API_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"
)
DEFAULT_GEMINI_IMAGES_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateImages"
)
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


def _env_str(name: str) -> Optional[str]:
    """Read an env var, stripping whitespace and stray quotes. Empty -> None."""
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip().strip('"').strip("'")
    return value or None


def _env_number(name: str, default, cast):
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        log.warning("Ignoring invalid %s=%r, using default %r", name, raw, default)
        return default


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    database_url: Optional[str] = None
    database_service_user: str = "service_role"
    database_service_password: Optional[str] = None
    database_anon_user: str = "anon"
    database_anon_password: Optional[str] = None

    gemini_api_url: str = DEFAULT_GEMINI_API_URL
    gemini_images_url: str = DEFAULT_GEMINI_IMAGES_URL
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    http_timeout_seconds: float = 8.0
    db_timeout_seconds: int = 5
    max_image_bytes: int = 12 * 1024 * 1024
    fetch_limit: int = 800

    alias_file: Optional[str] = None
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @property
    def store_configured(self) -> bool:
        return bool(self.database_url)

    @property
    def llm_configured(self) -> bool:
        return bool(self.gemini_api_key or self.openai_api_key)

    def database_credential(self) -> Optional[Tuple[str, str]]:
        """Service credential wins over the anonymous one; None means the DSN carries its own."""
        if self.database_service_password:
            return self.database_service_user, self.database_service_password
        if self.database_anon_password:
            return self.database_anon_user, self.database_anon_password
        return None

    @classmethod
    def from_env(cls) -> "Settings":
        origins_raw = _env_str("CORS_ORIGINS")
        origins = (
            [o.strip() for o in origins_raw.split(",") if o.strip()]
            if origins_raw
            else list(DEFAULT_CORS_ORIGINS)
        )
        return cls(
            database_url=_env_str("DATABASE_URL"),
            database_service_user=_env_str("DATABASE_SERVICE_USER") or "service_role",
            database_service_password=_env_str("DATABASE_SERVICE_PASSWORD"),
            database_anon_user=_env_str("DATABASE_ANON_USER") or "anon",
            database_anon_password=_env_str("DATABASE_ANON_PASSWORD"),
            gemini_api_url=_env_str("GEMINI_API_URL") or DEFAULT_GEMINI_API_URL,
            gemini_images_url=_env_str("GEMINI_API_URL_IMAGES") or DEFAULT_GEMINI_IMAGES_URL,
            gemini_api_key=_env_str("GEMINI_API_KEY"),
            openai_api_key=_env_str("OPENAI_API_KEY"),
            openai_model=_env_str("OPENAI_MODEL") or "gpt-4o-mini",
            http_timeout_seconds=_env_number("HTTP_TIMEOUT_SECONDS", 8.0, float),
            db_timeout_seconds=_env_number("DB_TIMEOUT_SECONDS", 5, int),
            max_image_bytes=_env_number("MAX_IMAGE_BYTES", 12 * 1024 * 1024, int),
            fetch_limit=_env_number("FETCH_LIMIT", 800, int),
            alias_file=_env_str("ALIAS_FILE"),
            log_level=(_env_str("LOG_LEVEL") or "INFO").upper(),
            cors_origins=origins,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()
