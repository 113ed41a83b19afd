"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class MemberImportSettings:
    """
    Runtime settings for bulk member imports and job bookkeeping.
    """

    progress_chunk_size: int = 50
    progress_queue_size: int = 10
    max_batch_size: int = 50_000
    reaper_grace_seconds: float = 60.0
    password_salt: str = ""
    default_phone_country: str = "ES"


@dataclass(frozen=True)
class ImportNotificationSettings:
    """
    Where completion summaries of asynchronous imports are sent.

    Without a webhook URL summaries are only logged.
    """

    webhook_url: str | None = None
    timeout_seconds: float = 10.0


@lru_cache(maxsize=1)
def get_member_import_settings() -> MemberImportSettings:
    """
    Return cached member import settings from environment variables.
    """

    return MemberImportSettings(
        progress_chunk_size=max(1, _get_int_env("MEMBER_IMPORT_PROGRESS_CHUNK_SIZE", 50)),
        progress_queue_size=max(1, _get_int_env("MEMBER_IMPORT_PROGRESS_QUEUE_SIZE", 10)),
        max_batch_size=max(1, _get_int_env("MEMBER_IMPORT_MAX_BATCH_SIZE", 50_000)),
        reaper_grace_seconds=max(0.0, _get_float_env("MEMBER_IMPORT_REAPER_GRACE_SECONDS", 60.0)),
        password_salt=_get_str_env("MEMBER_PASSWORD_SALT", ""),
        default_phone_country=_get_str_env("DEFAULT_PHONE_COUNTRY", "ES").upper(),
    )


@lru_cache(maxsize=1)
def get_import_notification_settings() -> ImportNotificationSettings:
    """
    Return completion notification settings from environment variables.
    """

    return ImportNotificationSettings(
        webhook_url=_get_optional_str_env("MEMBER_IMPORT_NOTIFY_WEBHOOK_URL"),
        timeout_seconds=max(1.0, _get_float_env("MEMBER_IMPORT_NOTIFY_TIMEOUT_SECONDS", 10.0)),
    )
