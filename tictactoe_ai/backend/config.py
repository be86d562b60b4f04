import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class Settings(BaseModel):
    # empty key = no credential, the AI falls back to random moves
    api_key: str = ""
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    ai_timeout: float = Field(default=20.0, gt=0)
    ai_min_delay: float = Field(default=0.6, ge=0)
    # idle sessions older than this are dropped from the registry
    session_ttl: float = Field(default=3600.0, gt=0)
    log_level: str = "INFO"

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key.strip())


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from the environment (or the given mapping)."""
    env = os.environ if env is None else env

    data = {
        "api_key": env.get("GEMINI_API_KEY") or env.get("API_KEY") or "",
        "model": env.get("GEMINI_MODEL") or DEFAULT_MODEL,
        "base_url": (env.get("GEMINI_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
        "log_level": (env.get("LOG_LEVEL") or "INFO").upper(),
    }
    if env.get("AI_TIMEOUT"):
        data["ai_timeout"] = env["AI_TIMEOUT"]
    if env.get("AI_MIN_DELAY"):
        data["ai_min_delay"] = env["AI_MIN_DELAY"]
    if env.get("SESSION_TTL"):
        data["session_ttl"] = env["SESSION_TTL"]
    return Settings(**data)
