import os
from dataclasses import dataclass, field
from typing import Optional


def _default_sqlite_url() -> str:
    data_dir = "/data"
    if os.path.isdir(data_dir):
        return f"sqlite:////{os.path.join(data_dir.lstrip('/'), 'household_hub.db')}"
    return "sqlite:///household_hub.db"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass
class Settings:
    database_url: str = field(default_factory=_default_sqlite_url)
    session_secret: str = "dev-secret"
    household_pin: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    ai_content_char_limit: int = 8000
    fetch_timeout: int = 15
    log_level: str = "INFO"
    log_file: Optional[str] = None
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", _default_sqlite_url()),
            session_secret=os.getenv("SESSION_SECRET", "dev-secret"),
            household_pin=os.getenv("HOUSEHOLD_PIN") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            ai_content_char_limit=_env_int("AI_CONTENT_CHAR_LIMIT", 8000),
            fetch_timeout=_env_int("FETCH_TIMEOUT", 15),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
            port=_env_int("PORT", 8000),
        )
