from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv(override=False)


DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:5174"]
SCOPE_COMMIT_MODES = {"checked", "unchecked"}


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() not in {"0", "false", "no", "off"}


class Settings(BaseModel):
    """Runtime configuration for the hierarchy API."""

    environment: str = Field(default_factory=lambda: os.getenv("ENVIRONMENT", "dev"))
    db_path: Path = Field(default_factory=lambda: Path(os.getenv("ORG_DB_PATH", "artifacts/orgscope.db")))
    org_root: str = Field(default_factory=lambda: os.getenv("ORG_ROOT", "org"))
    scope_commit_mode: str = Field(default_factory=lambda: os.getenv("SCOPE_COMMIT_MODE", "checked"))
    release_claims_on_delete: bool = Field(default_factory=lambda: _env_flag("RELEASE_CLAIMS_ON_DELETE"))
    audit_enabled: bool = Field(default_factory=lambda: _env_flag("AUDIT_ENABLED"))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    cors_origins: List[str] = Field(default_factory=lambda: os.getenv("CORS_ORIGINS"))
    sqlite_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("SQLITE_TIMEOUT_SECONDS", "5"))
    )

    model_config = {
        "frozen": True,
        "validate_default": True,
    }

    @property
    def checked_commits(self) -> bool:
        return self.scope_commit_mode == "checked"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> List[str]:
        if value is None:
            return list(DEFAULT_CORS_ORIGINS)
        if isinstance(value, str):
            if not value.strip():
                return list(DEFAULT_CORS_ORIGINS)
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return list(value)

    @field_validator("scope_commit_mode")
    @classmethod
    def _check_commit_mode(cls, value: str) -> str:
        mode = value.strip().lower()
        if mode not in SCOPE_COMMIT_MODES:
            raise ValueError(f"SCOPE_COMMIT_MODE must be one of {sorted(SCOPE_COMMIT_MODES)}, got {value!r}")
        return mode

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance for FastAPI dependency injection."""

    return Settings()


__all__ = ["Settings", "get_settings", "DEFAULT_CORS_ORIGINS"]
