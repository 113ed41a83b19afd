"""
Member import façade: sync/async submission, job tracking and status lookup.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable, Sequence
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.config import MemberImportSettings, get_member_import_settings
from app.domain.member_import import (
    ImportProgress,
    JobType,
    MemberImportBatch,
    MemberRecordInput,
    Pagination,
    new_job_id,
    parse_job_id,
    parse_job_type,
)
from app.services.bulk_member_writer import BulkMemberWriter
from app.services.errors import InvalidMemberError, JobNotFoundError
from app.services.job_registry import JobReaper, JobRegistry
from app.services.notifications import ImportCompletionNotifier, build_import_notifier
from app.services.progress_channel import ProgressChannel
from app.validators.member_validator import MemberRecordValidator
from db.models.import_job import ImportJob
from db.models.org_member import OrgMember
from db.models.organization import Organization
from db.repositories.import_job_repository import ImportJobRepository
from db.repositories.org_member_repository import OrgMemberRepository
from db.repositories.organization_repository import OrganizationRepository
from db.session import begin_write_transaction

logger = logging.getLogger(__name__)

MAX_PAGE_LIMIT = 100


class BackgroundJobSupervisor:
    """
    Runs one consumer thread per job and keeps track of how it ended.

    ``wait`` lets callers block until a job's consumer has finished, and
    ``failure`` exposes the exception that ended it, if any. Only the most
    recent ``max_failures`` failures are kept.
    """

    def __init__(self, max_failures: int = 256) -> None:
        self._threads: dict[str, threading.Thread] = {}
        self._failures: OrderedDict[str, BaseException] = OrderedDict()
        self._max_failures = max_failures
        self._lock = threading.Lock()

    def spawn(self, job_id: str, task: Callable[..., None], *args: Any) -> None:
        def _run() -> None:
            try:
                task(*args)
            except Exception as exc:
                logger.exception("Import job consumer crashed id=%s", job_id)
                with self._lock:
                    self._failures[job_id] = exc
                    while len(self._failures) > self._max_failures:
                        self._failures.popitem(last=False)

        thread = threading.Thread(target=_run, name=f"member-import-consumer-{job_id}", daemon=True)
        with self._lock:
            self._threads = {
                known_id: known for known_id, known in self._threads.items() if known.is_alive()
            }
            self._threads[job_id] = thread
        thread.start()

    def wait(self, job_id: str, timeout: float | None = None) -> bool:
        """Return True once the job's consumer is no longer running."""

        with self._lock:
            thread = self._threads.get(job_id)
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def wait_all(self, timeout: float | None = None) -> bool:
        with self._lock:
            threads = list(self._threads.values())
        for thread in threads:
            thread.join(timeout)
        return not any(thread.is_alive() for thread in threads)

    def failure(self, job_id: str) -> BaseException | None:
        with self._lock:
            return self._failures.get(job_id)

    def running_jobs(self) -> list[str]:
        with self._lock:
            return [job_id for job_id, thread in self._threads.items() if thread.is_alive()]


class MemberImportService:
    """
    Entry point for member imports.

    Synchronous submissions drain the writer's progress channel in the
    caller's thread. Asynchronous submissions get a job id right away and a
    supervised consumer that mirrors progress into the registry, records the
    final result in the job store, notifies, and arms the reaper.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | None = None,
        settings: MemberImportSettings | None = None,
        writer: BulkMemberWriter | None = None,
        validator: MemberRecordValidator | None = None,
        registry: JobRegistry | None = None,
        reaper: JobReaper | None = None,
        notifier: ImportCompletionNotifier | None = None,
        supervisor: BackgroundJobSupervisor | None = None,
    ) -> None:
        if session_factory is None:
            from db.session import get_session_factory

            self._session_factory = get_session_factory()
        else:
            self._session_factory = session_factory

        self._settings = settings or get_member_import_settings()
        self._validator = validator or MemberRecordValidator()
        self._writer = writer or BulkMemberWriter(
            session_factory=self._session_factory,
            validator=self._validator,
            settings=self._settings,
        )
        self.registry = registry or JobRegistry()
        self._reaper = reaper or JobReaper(self.registry, grace_seconds=self._settings.reaper_grace_seconds)
        self._notifier = notifier or build_import_notifier()
        self.supervisor = supervisor or BackgroundJobSupervisor()

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(
        self,
        org_address: str,
        records: Sequence[MemberRecordInput],
        *,
        async_mode: bool,
        notify_email: str | None = None,
        job_type: JobType = JobType.ORG_MEMBERS,
    ) -> ImportProgress | str:
        """
        Import ``records`` into the organization.

        Returns the final snapshot when ``async_mode`` is false, otherwise the
        new job id. An empty batch returns a zero snapshot in both modes and
        leaves no trace in the registry or the store.
        """

        if not records:
            return ImportProgress(total=0)

        channel = self._writer.start(org_address, records, self._settings.password_salt)
        if not async_mode:
            final = channel.drain()
            return final if final is not None else ImportProgress(total=len(records))

        job_id = new_job_id()
        self._precreate_job(job_id=job_id, job_type=job_type, org_address=org_address, total=len(records))
        self.registry.put(job_id, ImportProgress(total=len(records), job_id=job_id, org_address=org_address))
        self.supervisor.spawn(
            job_id,
            self._consume,
            job_id,
            org_address,
            job_type,
            channel,
            notify_email,
        )
        logger.info(
            "Import job accepted id=%s type=%s org=%s total=%s",
            job_id,
            job_type.value,
            org_address,
            len(records),
        )
        return job_id

    def submit_batch(
        self,
        batch: MemberImportBatch,
        *,
        async_mode: bool,
        notify_email: str | None = None,
    ) -> ImportProgress | str:
        return self.submit(batch.org_address, batch.records, async_mode=async_mode, notify_email=notify_email)

    def wait_for_job(self, job_id: str, timeout: float | None = None) -> bool:
        return self.supervisor.wait(job_id, timeout)

    def _precreate_job(self, *, job_id: str, job_type: JobType, org_address: str, total: int) -> None:
        try:
            with self._session_factory() as db:
                begin_write_transaction(db)
                ImportJobRepository(db).create_job(
                    job_id=job_id,
                    job_type=job_type.value,
                    org_address=org_address,
                    total=total,
                )
                db.commit()
        except SQLAlchemyError:
            logger.exception("Import job could not be pre-created, tracking in memory only id=%s", job_id)

    def _consume(
        self,
        job_id: str,
        org_address: str,
        job_type: JobType,
        channel: ProgressChannel,
        notify_email: str | None,
    ) -> None:
        final: ImportProgress | None = None
        for snapshot in channel:
            final = snapshot.with_job_id(job_id, org_address)
            self.registry.put(job_id, final)

        if final is None:
            logger.error("Import job channel closed without a snapshot id=%s", job_id)
            return

        persisted = True
        try:
            self._complete_job(job_id=job_id, job_type=job_type, org_address=org_address, progress=final)
        except Exception:
            persisted = False
            logger.exception("Failed to persist completed import job id=%s", job_id)

        try:
            self._notifier.notify(
                org_address=org_address,
                job_type=job_type.value,
                progress=final,
                notify_email=notify_email,
            )
        except Exception:
            logger.exception("Import completion notification failed id=%s", job_id)

        if persisted:
            self._reaper.schedule(job_id)
        else:
            logger.warning("Import job kept in registry because it is not in the store id=%s", job_id)

    def _complete_job(
        self,
        *,
        job_id: str,
        job_type: JobType,
        org_address: str,
        progress: ImportProgress,
    ) -> ImportJob:
        with self._session_factory() as db:
            try:
                begin_write_transaction(db)
                job = ImportJobRepository(db).complete_job(
                    job_id=job_id,
                    job_type=job_type.value,
                    org_address=org_address,
                    total=progress.total,
                    added=progress.added,
                    errors=progress.errors,
                )
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            return job

    # ------------------------------------------------------------------
    # Status and listing
    # ------------------------------------------------------------------

    def resolve(self, job_id: str, *, org_address: str | None = None) -> ImportProgress:
        """
        Current view of a job: the registry first, then the job store.

        With ``org_address`` a job owned by another organization is reported
        as not found.
        """

        normalized = parse_job_id(job_id)
        snapshot = self.registry.get(normalized)
        if snapshot is not None:
            if _owned_elsewhere(snapshot.org_address, org_address):
                raise JobNotFoundError(f"Import job not found: {normalized}")
            return snapshot

        with self._session_factory() as db:
            job = ImportJobRepository(db).get_job(normalized)
            if job is None or _owned_elsewhere(job.org_address, org_address):
                raise JobNotFoundError(f"Import job not found: {normalized}")
            return ImportProgress(
                job_id=job.job_id,
                org_address=job.org_address,
                total=job.total,
                added=job.added,
                errors=tuple(job.errors or ()),
                progress=100 if job.completed else 0,
            )

    def list_jobs(
        self,
        org_address: str,
        *,
        page: int = 1,
        limit: int = 10,
        job_type: JobType | str | None = None,
    ) -> tuple[Pagination, list[ImportJob]]:
        _check_page(page, limit)
        resolved_type = job_type if isinstance(job_type, JobType) else parse_job_type(job_type)
        with self._session_factory() as db:
            return ImportJobRepository(db).list_jobs(
                org_address,
                page=page,
                limit=limit,
                job_type=resolved_type.value if resolved_type else None,
            )

    # ------------------------------------------------------------------
    # Single members and organizations
    # ------------------------------------------------------------------

    def upsert_member(self, org_address: str, record: MemberRecordInput) -> str:
        with self._session_factory() as db:
            begin_write_transaction(db)
            organization = OrganizationRepository(db).ensure_exists(org_address)
            member, error = self._validator.validate(
                record,
                salt=self._settings.password_salt,
                default_country=organization.country or self._settings.default_phone_country,
            )
            if error is not None:
                raise InvalidMemberError(error)

            try:
                row = OrgMemberRepository(db).upsert_member(org_address, member)
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise InvalidMemberError(f"{record.label}: conflicts with an existing member") from exc
            logger.info("Member upserted org=%s id=%s", org_address, row.id)
            return row.id

    def list_members(
        self,
        org_address: str,
        *,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
    ) -> tuple[Pagination, list[OrgMember]]:
        _check_page(page, limit)
        with self._session_factory() as db:
            OrganizationRepository(db).ensure_exists(org_address)
            return OrgMemberRepository(db).list_members(org_address, page=page, limit=limit, search=search)

    def delete_members(self, org_address: str, *, member_ids: Sequence[str] | None = None) -> int:
        """Delete the listed members, or every member when ``member_ids`` is None."""

        with self._session_factory() as db:
            begin_write_transaction(db)
            OrganizationRepository(db).ensure_exists(org_address)
            deleted = OrgMemberRepository(db).delete_members(org_address, member_ids)
            db.commit()
            logger.info(
                "Members deleted org=%s count=%s all=%s",
                org_address,
                deleted,
                member_ids is None,
            )
            return deleted

    def create_organization(self, *, address: str, name: str, country: str | None = None) -> Organization:
        with self._session_factory() as db:
            begin_write_transaction(db)
            organization = OrganizationRepository(db).create(address=address, name=name, country=country)
            db.commit()
            logger.info("Organization registered address=%s", address)
            return organization

    def shutdown(self, timeout: float | None = 5.0) -> None:
        self._reaper.shutdown()
        if not self.supervisor.wait_all(timeout):
            logger.warning("Import consumers still running at shutdown jobs=%s", self.supervisor.running_jobs())


def _check_page(page: int, limit: int) -> None:
    if page < 1:
        raise ValueError("page must be >= 1")
    if not 1 <= limit <= MAX_PAGE_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")


def _owned_elsewhere(owner: str | None, org_address: str | None) -> bool:
    return org_address is not None and owner is not None and owner != org_address
