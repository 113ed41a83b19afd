"""
app/services/bulk_member_writer.py

Validates and persists a batch of member records on a producer thread,
streaming progress snapshots over a ProgressChannel.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.config import MemberImportSettings, get_member_import_settings
from app.domain.member_import import ImportProgress, MemberRecordInput
from app.services.errors import BatchTooLargeError, BulkImportStartError, UnknownOrganizationError
from app.services.progress_channel import ProgressChannel, closed_channel
from app.validators.member_validator import MemberRecordValidator
from db.repositories.errors import UpdateWouldCreateDuplicatesError
from db.repositories.org_member_repository import OrgMemberRepository
from db.repositories.organization_repository import OrganizationRepository
from db.session import begin_write_transaction

logger = logging.getLogger(__name__)


@dataclass
class _Tally:
    total: int
    added: int = 0
    processed: int = 0
    errors: list[str] = field(default_factory=list)

    def snapshot(self, progress: int) -> ImportProgress:
        return ImportProgress(
            total=self.total,
            added=self.added,
            errors=tuple(self.errors),
            progress=progress,
        )

    def intermediate_percent(self) -> int:
        return min(99, (self.processed * 100) // self.total)


class BulkMemberWriter:
    """
    Writes member batches for one organization.

    ``start`` raises only for batch-level problems. Everything that goes wrong
    with an individual record ends up as one entry in the snapshot errors.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session],
        validator: MemberRecordValidator | None = None,
        settings: MemberImportSettings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._validator = validator or MemberRecordValidator()
        self._settings = settings or get_member_import_settings()

    def start(
        self,
        org_address: str,
        records: Sequence[MemberRecordInput],
        salt: str,
    ) -> ProgressChannel:
        if not org_address or not org_address.strip():
            raise ValueError("org_address is required.")

        batch = tuple(records)
        if len(batch) > self._settings.max_batch_size:
            raise BatchTooLargeError(len(batch), self._settings.max_batch_size)
        if not batch:
            return closed_channel()

        session = self._session_factory()
        try:
            organization = OrganizationRepository(session).get(org_address)
            default_country = (
                organization.country if organization is not None and organization.country else None
            )
            session.rollback()
        except SQLAlchemyError as exc:
            session.close()
            logger.exception("Member import could not start org=%s", org_address)
            raise BulkImportStartError(f"Storage unavailable for organization {org_address}.") from exc

        if organization is None:
            session.close()
            raise UnknownOrganizationError(f"Organization not found: {org_address}")

        channel = ProgressChannel(maxsize=self._settings.progress_queue_size)
        producer = threading.Thread(
            target=self._produce,
            kwargs={
                "session": session,
                "org_address": org_address,
                "default_country": default_country or self._settings.default_phone_country,
                "records": batch,
                "salt": salt,
                "channel": channel,
            },
            name=f"member-import-writer-{org_address}",
            daemon=True,
        )
        logger.info("Member import started org=%s total=%s", org_address, len(batch))
        producer.start()
        return channel

    def _produce(
        self,
        *,
        session: Session,
        org_address: str,
        default_country: str,
        records: tuple[MemberRecordInput, ...],
        salt: str,
        channel: ProgressChannel,
    ) -> None:
        tally = _Tally(total=len(records))
        chunk_size = self._settings.progress_chunk_size
        repository = OrgMemberRepository(session)
        try:
            for chunk_start in range(0, len(records), chunk_size):
                chunk = records[chunk_start : chunk_start + chunk_size]
                self._write_chunk(
                    session=session,
                    repository=repository,
                    org_address=org_address,
                    default_country=default_country,
                    chunk=chunk,
                    salt=salt,
                    tally=tally,
                )
                if tally.processed < tally.total:
                    channel.put(tally.snapshot(tally.intermediate_percent()))
        except Exception:
            logger.exception(
                "Member import aborted org=%s processed=%s total=%s",
                org_address,
                tally.processed,
                tally.total,
            )
            for record in records[tally.processed :]:
                tally.errors.append(f"{record.label}: not processed, import aborted")
            tally.processed = tally.total
        finally:
            try:
                channel.put(tally.snapshot(100))
            finally:
                channel.close()
                session.close()
                logger.info(
                    "Member import finished org=%s total=%s added=%s errors=%s",
                    org_address,
                    tally.total,
                    tally.added,
                    len(tally.errors),
                )

    def _write_chunk(
        self,
        *,
        session: Session,
        repository: OrgMemberRepository,
        org_address: str,
        default_country: str,
        chunk: tuple[MemberRecordInput, ...],
        salt: str,
        tally: _Tally,
    ) -> None:
        # One entry per record, None while the record is pending commit.
        outcomes: list[str | None] = []
        begin_write_transaction(session)
        for record in chunk:
            try:
                outcomes.append(
                    self._write_record(
                        session=session,
                        repository=repository,
                        org_address=org_address,
                        default_country=default_country,
                        record=record,
                        salt=salt,
                    )
                )
            except Exception:
                logger.exception("Member record failed org=%s record=%s", org_address, record.label)
                outcomes.append(f"{record.label}: could not be processed")

        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Member import chunk commit failed org=%s size=%s", org_address, len(chunk))
            outcomes = [
                outcome if outcome is not None else f"{record.label}: could not be stored"
                for record, outcome in zip(chunk, outcomes)
            ]

        for outcome in outcomes:
            if outcome is None:
                tally.added += 1
            else:
                tally.errors.append(outcome)
        tally.processed += len(chunk)

    def _write_record(
        self,
        *,
        session: Session,
        repository: OrgMemberRepository,
        org_address: str,
        default_country: str,
        record: MemberRecordInput,
        salt: str,
    ) -> str | None:
        """Upsert one record inside its own savepoint; return its error, if any."""

        member, error = self._validator.validate(record, salt=salt, default_country=default_country)
        if error is not None:
            return error
        try:
            with session.begin_nested():
                repository.upsert_member(org_address, member)
        except UpdateWouldCreateDuplicatesError as exc:
            return f"{record.label}: update would create duplicates: {exc}"
        except IntegrityError:
            return f"{record.label}: conflicts with an existing member"
        except SQLAlchemyError as exc:
            logger.warning("Member upsert failed org=%s record=%s error=%s", org_address, record.label, exc)
            return f"{record.label}: could not be stored"
        return None
