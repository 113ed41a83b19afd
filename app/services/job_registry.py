"""
app/services/job_registry.py

In-process registry of the latest progress per import job, and the reaper
that evicts finished entries after a grace period.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from app.domain.member_import import ImportProgress

logger = logging.getLogger(__name__)


class JobRegistry:
    """
    Mapping of job id to its most recent snapshot.

    Each job has a single writer (its background consumer). Writes are
    serialized by a lock; reads are plain dict lookups of immutable
    snapshots and never block.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ImportProgress] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> ImportProgress | None:
        return self._entries.get(job_id)

    def put(self, job_id: str, snapshot: ImportProgress) -> None:
        with self._lock:
            self._entries[job_id] = snapshot

    def delete(self, job_id: str, *, only_if_complete: bool = False) -> bool:
        """
        Remove an entry. Missing keys are a no-op and return False.
        """

        with self._lock:
            snapshot = self._entries.get(job_id)
            if snapshot is None:
                return False
            if only_if_complete and not snapshot.completed:
                return False
            del self._entries[job_id]
            return True

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class JobReaper:
    """
    Schedules one-shot removal of completed registry entries.

    Uses an APScheduler ``BackgroundScheduler`` with a ``date`` trigger per
    job. Re-arming the same job replaces the pending removal.
    """

    def __init__(
        self,
        registry: JobRegistry,
        *,
        grace_seconds: float = 60.0,
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        self._registry = registry
        self._grace_seconds = grace_seconds
        self._scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self._lock = threading.Lock()

    @property
    def grace_seconds(self) -> float:
        return self._grace_seconds

    def schedule(self, job_id: str) -> bool:
        snapshot = self._registry.get(job_id)
        if snapshot is None or not snapshot.completed:
            logger.debug("Reaper skipped incomplete job id=%s", job_id)
            return False

        self._ensure_started()
        run_date = datetime.now(timezone.utc) + timedelta(seconds=self._grace_seconds)
        self._scheduler.add_job(
            self.reap,
            trigger="date",
            run_date=run_date,
            args=[job_id],
            id=f"reap-import-job-{job_id}",
            name=f"Reap import job {job_id}",
            replace_existing=True,
            misfire_grace_time=None,
        )
        logger.debug("Reaper armed id=%s run_at=%s", job_id, run_date.isoformat())
        return True

    def reap(self, job_id: str) -> bool:
        removed = self._registry.delete(job_id, only_if_complete=True)
        if removed:
            logger.info("Import job evicted from registry id=%s", job_id)
        return removed

    def shutdown(self) -> None:
        with self._lock:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)

    def _ensure_started(self) -> None:
        with self._lock:
            if not self._scheduler.running:
                self._scheduler.start()
