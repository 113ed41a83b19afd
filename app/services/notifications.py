"""
app/services/notifications.py

Completion notifiers for asynchronous member imports.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import requests

from app.config import ImportNotificationSettings, get_import_notification_settings
from app.domain.member_import import ImportProgress

logger = logging.getLogger(__name__)


class ImportCompletionNotifier(Protocol):
    def notify(
        self,
        *,
        org_address: str,
        job_type: str,
        progress: ImportProgress,
        notify_email: str | None = None,
    ) -> None:
        ...


def build_completion_payload(
    *,
    org_address: str,
    job_type: str,
    progress: ImportProgress,
    notify_email: str | None,
) -> dict[str, Any]:
    return {
        "job_id": progress.job_id,
        "job_type": job_type,
        "org_address": org_address,
        "total": progress.total,
        "added": progress.added,
        "error_count": len(progress.errors),
        "errors": list(progress.errors),
        "notify_email": notify_email,
    }


class LoggingImportNotifier:
    def notify(
        self,
        *,
        org_address: str,
        job_type: str,
        progress: ImportProgress,
        notify_email: str | None = None,
    ) -> None:
        logger.info(
            "Import job completed id=%s type=%s org=%s total=%s added=%s errors=%s notify_email=%s",
            progress.job_id,
            job_type,
            org_address,
            progress.total,
            progress.added,
            len(progress.errors),
            notify_email,
        )


class WebhookImportNotifier:
    """
    POSTs a JSON completion summary to a webhook.

    Single attempt. A non-2xx response raises ``requests.HTTPError`` so the
    caller can log it; redelivery is up to the receiving side.
    """

    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self._url = url
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def notify(
        self,
        *,
        org_address: str,
        job_type: str,
        progress: ImportProgress,
        notify_email: str | None = None,
    ) -> None:
        payload = build_completion_payload(
            org_address=org_address,
            job_type=job_type,
            progress=progress,
            notify_email=notify_email,
        )
        response = self._session.post(self._url, json=payload, timeout=self._timeout_seconds)
        response.raise_for_status()
        logger.info(
            "Import completion webhook delivered id=%s status=%s",
            progress.job_id,
            response.status_code,
        )


def build_import_notifier(settings: ImportNotificationSettings | None = None) -> ImportCompletionNotifier:
    resolved = settings or get_import_notification_settings()
    if resolved.webhook_url:
        return WebhookImportNotifier(url=resolved.webhook_url, timeout_seconds=resolved.timeout_seconds)
    return LoggingImportNotifier()
