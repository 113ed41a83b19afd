"""
Database URL resolution for the member import service.
"""

from __future__ import annotations

import os
from pathlib import Path

SUPPORTED_URL_PREFIXES: tuple[str, ...] = ("postgresql", "sqlite")

_ENV_FILES: tuple[str, ...] = (".env", ".env.local")


def load_env_files() -> None:
    """
    Copy KEY=VALUE lines from `.env` and `.env.local` at the project root
    into the process environment. Variables already set win.
    """

    project_root = Path(__file__).resolve().parents[1]
    for env_path in (project_root / name for name in _ENV_FILES):
        if not env_path.is_file():
            continue
        for line in env_path.read_text(encoding="utf-8").splitlines():
            key, sep, value = line.strip().partition("=")
            key = key.strip()
            if not sep or not key or key.startswith("#"):
                continue
            os.environ.setdefault(key, value.strip().strip("\"'"))


def normalize_database_url(url: str) -> str:
    """Point bare postgres URLs at the psycopg (v3) driver."""

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix) :]
    return url


def is_supported_database_url(url: str) -> bool:
    return url.startswith(SUPPORTED_URL_PREFIXES)


def resolve_database_url() -> str:
    """
    Return ``DATABASE_URL`` (environment or `.env` files), normalized.

    PostgreSQL in production; a ``sqlite:///`` URL works for local runs.
    """

    load_env_files()
    url = os.getenv("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("No database URL configured. Set DATABASE_URL.")
    return normalize_database_url(url)
