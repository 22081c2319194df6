from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field


def _resolve_project_root() -> Path:
    override = os.getenv("VPMS_HOME", "").strip()
    if override:
        return Path(override).expanduser().resolve()
    return Path.cwd().resolve()


def _default_database_url() -> str:
    explicit = os.getenv("VPMS_DATABASE_URL", "").strip() or os.getenv("DATABASE_URL", "").strip()
    if explicit:
        return explicit
    return f"sqlite:///{_resolve_project_root() / 'data' / 'vpms.db'}"


def _split_origins(raw: str) -> list[str]:
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


class Settings(BaseModel):
    database_url: str = Field(default_factory=_default_database_url)
    cors_origins: list[str] = Field(default_factory=lambda: _split_origins(os.getenv("CORS_ORIGIN", "*")))
    host: str = Field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = Field(default_factory=lambda: int(os.getenv("PORT", "4000")))
    service_name: str = Field(default_factory=lambda: os.getenv("VPMS_SERVICE_NAME", "VPMS Backend"))

    @property
    def allow_all_origins(self) -> bool:
        return "*" in self.cors_origins


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
