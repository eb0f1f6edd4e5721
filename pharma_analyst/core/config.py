"""Environment configuration for the analysis service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_KNOWLEDGE_SOURCES = CONFIG_DIR / "knowledge_sources.yaml"
DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")


def _float_env(key: str, default: float) -> float:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"{key} must be a number, got {value!r}") from exc


@dataclass(frozen=True)
class Settings:
    knowledge_sources_path: Path
    notebook_url: str | None
    notebook_token: str | None
    notebook_timeout: float
    cors_origins: tuple[str, ...]


def load_settings() -> Settings:
    """Build settings from the current process environment."""

    sources_env = os.getenv("PHARMA_ANALYST_KNOWLEDGE_SOURCES")
    sources_path = Path(sources_env).expanduser().resolve() if sources_env else DEFAULT_KNOWLEDGE_SOURCES

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = tuple(origin.strip() for origin in origins_env.split(",") if origin.strip())

    return Settings(
        knowledge_sources_path=sources_path,
        notebook_url=os.getenv("PHARMA_ANALYST_NOTEBOOK_URL") or None,
        notebook_token=os.getenv("PHARMA_ANALYST_NOTEBOOK_TOKEN") or None,
        notebook_timeout=_float_env("PHARMA_ANALYST_NOTEBOOK_TIMEOUT", 60.0),
        cors_origins=origins or DEFAULT_CORS_ORIGINS,
    )


__all__ = ["CONFIG_DIR", "DEFAULT_KNOWLEDGE_SOURCES", "Settings", "load_settings"]
