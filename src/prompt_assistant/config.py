"""Environment-driven settings."""

import os
from typing import List, Optional

from pydantic import BaseModel

DEFAULT_MODEL = "gemini-1.5-flash"


def _flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Runtime configuration for the assistant."""

    gemini_api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    require_category: bool = False
    cors_origins: List[str] = ["*"]

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("PROMPT_ASSISTANT_CORS_ORIGINS", "*")
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            model=os.getenv("PROMPT_ASSISTANT_MODEL", DEFAULT_MODEL),
            require_category=_flag("PROMPT_ASSISTANT_REQUIRE_CATEGORY"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings, read once from the environment."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
