"""
Environment-driven settings.

Rationale:
- Everything comes from environment variables (optionally a .env file loaded by main.py).
- Read lazily via get_settings() so tests and late-loaded .env files are honoured.
"""

import os
from dataclasses import dataclass
from typing import List, Optional


DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
DEFAULT_DB_NAME = "patents_db"
DEFAULT_PATENT_COLLECTIONS = ["adc_patents", "ic_patents"]
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    llm_provider: str = "openai"
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    temperature: float = 0.7
    max_tokens: int = 2000
    mongodb_uri: Optional[str] = None
    mongodb_db_name: str = DEFAULT_DB_NAME
    patent_collections: tuple = tuple(DEFAULT_PATENT_COLLECTIONS)
    auth_userinfo_url: Optional[str] = None
    auth_sign_in_url: Optional[str] = None
    auth_sign_up_url: Optional[str] = None
    log_level: str = "INFO"

    @property
    def auth_enabled(self) -> bool:
        return self.auth_userinfo_url is not None

    @property
    def db_enabled(self) -> bool:
        return self.mongodb_uri is not None


def _split_list(raw: Optional[str], default: List[str]) -> tuple:
    if not raw:
        return tuple(default)
    items = [part.strip() for part in raw.split(",") if part.strip()]
    return tuple(items) or tuple(default)


def _log_level(raw: Optional[str]) -> str:
    level = (raw or "INFO").upper()
    # Unknown names would make logging.basicConfig raise at import
    return level if level in LOG_LEVELS else "INFO"


def get_settings() -> Settings:
    """Snapshot the current environment into a Settings object."""
    return Settings(
        llm_provider=(_env("LLM_PROVIDER") or "openai").lower(),
        openai_api_key=_env("OPENAI_API_KEY"),
        openai_model=_env("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
        # GEMINI_API_KEY wins, LLM_API_KEY kept as a generic alias
        gemini_api_key=_env("GEMINI_API_KEY") or _env("LLM_API_KEY"),
        gemini_model=_env("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
        temperature=float(_env("LLM_TEMPERATURE") or 0.7),
        max_tokens=int(_env("LLM_MAX_TOKENS") or 2000),
        mongodb_uri=_env("MONGODB_URI"),
        mongodb_db_name=_env("MONGODB_DB_NAME") or DEFAULT_DB_NAME,
        patent_collections=_split_list(_env("PATENT_COLLECTIONS"), DEFAULT_PATENT_COLLECTIONS),
        auth_userinfo_url=_env("AUTH_USERINFO_URL"),
        auth_sign_in_url=_env("AUTH_SIGN_IN_URL"),
        auth_sign_up_url=_env("AUTH_SIGN_UP_URL"),
        log_level=_log_level(_env("LOG_LEVEL")),
    )
