"""
tests/test_member_import_service.py

End-to-end behaviour of MemberImportService on a temporary SQLite database.

Coverage
--------
- Sync, async and empty submissions
- Status resolution: registry, then job store, then not found
- Eviction by the reaper and fallback to the job store
- Completion side effects (store, notifier) and their failure isolation
- Job listing, single-member upsert, member search and deletion
- Organization scoping of job status and non-blocking store reads
"""

from __future__ import annotations

import threading
import time
from dataclasses import replace

import pytest
from sqlalchemy import func, select

from app.domain.member_import import ImportProgress, InvalidJobIdError, InvalidJobTypeError, MemberRecordInput
from app.services.bulk_member_writer import BulkMemberWriter
from app.services.errors import InvalidMemberError, JobNotFoundError, UnknownOrganizationError
from app.services.member_import_service import BackgroundJobSupervisor, MemberImportService
from app.services.progress_channel import ProgressChannel
from db.models.import_job import ImportJob
from db.repositories.errors import OrganizationNotFoundError, UpdateWouldCreateDuplicatesError
from db.repositories.org_member_repository import OrgMemberRepository
from db.repositories.types import NormalizedMember
from db.session import begin_write_transaction
from tests.conftest import OTHER_ORG_ADDRESS, RecordingNotifier, member_record, wait_until


def _job_rows(session_factory) -> int:
    with session_factory() as db:
        return db.scalar(select(func.count()).select_from(ImportJob))


class ManualWriter:
    """Writer stand-in whose channel the test feeds by hand."""

    def __init__(self) -> None:
        self.channel = ProgressChannel()

    def start(self, org_address, records, salt) -> ProgressChannel:
        return self.channel


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


class TestSubmit:
    def test_sync_two_valid_records(self, service: MemberImportService, organization: str) -> None:
        result = service.submit(organization, [member_record(0), member_record(1)], async_mode=False)

        assert isinstance(result, ImportProgress)
        assert result.added == 2
        assert result.errors == ()
        assert result.progress == 100

    def test_sync_three_malformed_records(self, service: MemberImportService, organization: str) -> None:
        records = [
            member_record(0, email="invalid-email"),
            member_record(1, phone="invalid-phone"),
            member_record(2, birth_date="invalid-birthdate"),
        ]
        result = service.submit(organization, records, async_mode=False)

        assert result.added == 0
        assert len(result.errors) == 3
        assert "invalid-email" in result.errors[0]
        assert "invalid-phone" in result.errors[1]
        assert "invalid-birthdate" in result.errors[2]

    @pytest.mark.parametrize("async_mode", [False, True])
    def test_empty_batch_leaves_no_trace(
        self, service: MemberImportService, organization: str, session_factory, async_mode: bool
    ) -> None:
        result = service.submit(organization, [], async_mode=async_mode)

        assert result == ImportProgress(total=0, added=0, errors=(), progress=0)
        assert result.job_id is None
        assert len(service.registry) == 0
        assert _job_rows(session_factory) == 0

    def test_async_start_error_issues_no_job(self, service: MemberImportService, session_factory) -> None:
        with pytest.raises(UnknownOrganizationError):
            service.submit("0xmissing", [member_record(0)], async_mode=True)

        assert len(service.registry) == 0
        assert _job_rows(session_factory) == 0

    def test_async_batch_then_reaper_fallback(
        self, service: MemberImportService, organization: str, notifier: RecordingNotifier
    ) -> None:
        job_id = service.submit(organization, [member_record(0), member_record(1)], async_mode=True)

        assert isinstance(job_id, str)
        assert len(job_id) == 32
        assert service.wait_for_job(job_id, timeout=10)
        assert service.supervisor.failure(job_id) is None

        before = service.resolve(job_id)
        assert (before.added, before.total, before.progress) == (2, 2, 100)
        assert before.job_id == job_id

        assert wait_until(lambda: job_id not in service.registry, timeout=5)
        after = service.resolve(job_id)
        assert (after.added, after.total, after.errors, after.progress) == (
            before.added,
            before.total,
            before.errors,
            100,
        )

        assert len(notifier.calls) == 1
        assert notifier.calls[0]["progress"].job_id == job_id
        assert notifier.calls[0]["job_type"] == "org_members"

    def test_concurrent_async_batches_are_independent(
        self, service: MemberImportService, organization: str
    ) -> None:
        first = service.submit(organization, [member_record(0)], async_mode=True)
        second = service.submit(organization, [member_record(1)], async_mode=True)

        assert first != second
        assert service.wait_for_job(first, timeout=10)
        assert service.wait_for_job(second, timeout=10)

        for job_id in (first, second):
            progress = service.resolve(job_id)
            assert (progress.added, progress.total, progress.errors) == (1, 1, ())

        pagination, jobs = service.list_jobs(organization)
        assert pagination.total_items == 2
        assert [job.job_id for job in jobs] == [second, first]
        assert all(job.completed for job in jobs)


# ---------------------------------------------------------------------------
# Job lifecycle with a hand-fed channel
# ---------------------------------------------------------------------------


class TestJobLifecycle:
    @pytest.fixture()
    def manual(self) -> ManualWriter:
        return ManualWriter()

    @pytest.fixture()
    def manual_service(self, session_factory, settings, notifier, organization, manual):
        svc = MemberImportService(
            session_factory=session_factory,
            settings=settings,
            notifier=notifier,
            writer=manual,
        )
        yield svc
        svc.shutdown()

    def test_in_flight_job_is_listed_and_resolved_from_registry(
        self, manual_service: MemberImportService, manual: ManualWriter, organization: str
    ) -> None:
        job_id = manual_service.submit(organization, [member_record(0), member_record(1)], async_mode=True)

        manual.channel.put(ImportProgress(total=2, added=1, progress=50))
        assert wait_until(lambda: manual_service.resolve(job_id).added == 1)
        assert manual_service.resolve(job_id).progress == 50

        _, jobs = manual_service.list_jobs(organization)
        assert [(job.job_id, job.completed) for job in jobs] == [(job_id, False)]

        manual.channel.put(ImportProgress(total=2, added=2, progress=100))
        manual.channel.close()
        assert manual_service.wait_for_job(job_id, timeout=10)

        _, jobs = manual_service.list_jobs(organization)
        assert jobs[0].completed is True
        assert jobs[0].added == 2

    def test_notifier_failure_does_not_fail_the_job(
        self, session_factory, settings, organization, manual: ManualWriter
    ) -> None:
        class BrokenNotifier:
            def notify(self, **kwargs) -> None:
                raise RuntimeError("smtp down")

        svc = MemberImportService(
            session_factory=session_factory,
            settings=settings,
            notifier=BrokenNotifier(),
            writer=manual,
        )
        try:
            job_id = svc.submit(organization, [member_record(0)], async_mode=True)
            manual.channel.put(ImportProgress(total=1, added=1, progress=100))
            manual.channel.close()

            assert svc.wait_for_job(job_id, timeout=10)
            assert svc.supervisor.failure(job_id) is None
            assert wait_until(lambda: job_id not in svc.registry, timeout=5)
            assert svc.resolve(job_id).added == 1
        finally:
            svc.shutdown()

    def test_store_failure_keeps_registry_entry(
        self, manual_service: MemberImportService, manual: ManualWriter, organization: str, monkeypatch
    ) -> None:
        def fail(**kwargs):
            raise RuntimeError("database gone")

        monkeypatch.setattr(manual_service, "_complete_job", fail)
        job_id = manual_service.submit(organization, [member_record(0)], async_mode=True)
        manual.channel.put(ImportProgress(total=1, added=1, progress=100))
        manual.channel.close()

        assert manual_service.wait_for_job(job_id, timeout=10)
        assert manual_service.supervisor.failure(job_id) is None
        assert manual_service.resolve(job_id).progress == 100
        assert job_id in manual_service.registry

    def test_completion_after_restart_mid_flight_reports_stored_counts(
        self, manual_service: MemberImportService, manual: ManualWriter, organization: str,
        session_factory, settings,
    ) -> None:
        job_id = manual_service.submit(organization, [member_record(0)], async_mode=True)

        restarted = MemberImportService(session_factory=session_factory, settings=settings)
        try:
            progress = restarted.resolve(job_id)
        finally:
            restarted.shutdown()
            manual.channel.put(ImportProgress(total=1, added=1, progress=100))
            manual.channel.close()
            manual_service.wait_for_job(job_id, timeout=10)

        assert progress.total == 1
        assert progress.added == 0
        assert progress.progress == 0


# ---------------------------------------------------------------------------
# Status resolution
# ---------------------------------------------------------------------------


class TestResolve:
    @pytest.mark.parametrize("raw", ["", "xyz", "a" * 31, "g" * 32, "a" * 33])
    def test_malformed_ids(self, service: MemberImportService, raw: str) -> None:
        with pytest.raises(InvalidJobIdError):
            service.resolve(raw)

    def test_unknown_id(self, service: MemberImportService) -> None:
        with pytest.raises(JobNotFoundError):
            service.resolve("f" * 32)

    def test_prefixed_uppercase_id_is_normalized(self, service: MemberImportService, organization: str) -> None:
        job_id = service.submit(organization, [member_record(0)], async_mode=True)
        assert service.wait_for_job(job_id, timeout=10)

        assert service.resolve("0x" + job_id.upper()).job_id == job_id

    def test_registry_wins_over_store(self, service: MemberImportService, organization: str) -> None:
        job_id = service.submit(organization, [member_record(0)], async_mode=True)
        assert service.wait_for_job(job_id, timeout=10)

        marker = ImportProgress(total=1, added=1, errors=("from registry",), progress=100, job_id=job_id)
        service.registry.put(job_id, marker)
        assert service.resolve(job_id) is marker

    def test_job_of_another_organization_is_not_found(
        self, service: MemberImportService, organization: str
    ) -> None:
        job_id = service.submit(organization, [member_record(0)], async_mode=True)
        assert service.wait_for_job(job_id, timeout=10)

        assert service.resolve(job_id, org_address=organization).job_id == job_id
        with pytest.raises(JobNotFoundError):
            service.resolve(job_id, org_address=OTHER_ORG_ADDRESS)

        assert wait_until(lambda: job_id not in service.registry, timeout=5)
        assert service.resolve(job_id, org_address=organization).added == 1
        with pytest.raises(JobNotFoundError):
            service.resolve(job_id, org_address=OTHER_ORG_ADDRESS)

    def test_store_read_does_not_wait_for_an_open_write(
        self, service: MemberImportService, organization: str, session_factory
    ) -> None:
        job_id = service.submit(organization, [member_record(0)], async_mode=True)
        assert service.wait_for_job(job_id, timeout=10)
        assert wait_until(lambda: job_id not in service.registry, timeout=5)

        writer = session_factory()
        try:
            begin_write_transaction(writer)
            OrgMemberRepository(writer).upsert_member(organization, NormalizedMember(member_number="HELD"))

            started = time.monotonic()
            progress = service.resolve(job_id)
            assert time.monotonic() - started < 1.0
            assert progress.progress == 100
        finally:
            writer.rollback()
            writer.close()


# ---------------------------------------------------------------------------
# Listing and single members
# ---------------------------------------------------------------------------


class TestListJobs:
    def test_invalid_type(self, service: MemberImportService, organization: str) -> None:
        with pytest.raises(InvalidJobTypeError):
            service.list_jobs(organization, job_type="groups")

    @pytest.mark.parametrize(("page", "limit"), [(0, 10), (1, 0), (1, 101)])
    def test_invalid_paging(self, service: MemberImportService, organization: str, page: int, limit: int) -> None:
        with pytest.raises(ValueError):
            service.list_jobs(organization, page=page, limit=limit)

    def test_type_filter(self, service: MemberImportService, organization: str) -> None:
        job_id = service.submit(organization, [member_record(0)], async_mode=True)
        assert service.wait_for_job(job_id, timeout=10)

        _, members_jobs = service.list_jobs(organization, job_type="org_members")
        _, census_jobs = service.list_jobs(organization, job_type="census_participants")
        assert [job.job_id for job in members_jobs] == [job_id]
        assert census_jobs == []


class TestSingleMember:
    def test_upsert_then_update(self, service: MemberImportService, organization: str) -> None:
        first_id = service.upsert_member(organization, member_record(0, name="Ada"))
        second_id = service.upsert_member(organization, member_record(0, name="Grace", phone=None))

        assert first_id == second_id
        _, members = service.list_members(organization)
        assert len(members) == 1
        assert members[0].name == "Grace"
        assert members[0].phone == "+34612340001"

    def test_invalid_member(self, service: MemberImportService, organization: str) -> None:
        with pytest.raises(InvalidMemberError) as excinfo:
            service.upsert_member(organization, member_record(0, email="invalid-email"))
        assert "invalid-email" in str(excinfo.value)

    def test_ambiguous_update(self, service: MemberImportService, organization: str) -> None:
        service.upsert_member(organization, member_record(0, member_number="A", national_id="N-A"))
        service.upsert_member(organization, member_record(1, member_number="B", national_id="N-B"))

        with pytest.raises(UpdateWouldCreateDuplicatesError):
            service.upsert_member(organization, member_record(2, member_number="A", national_id="N-B"))

    def test_unknown_organization(self, service: MemberImportService) -> None:
        with pytest.raises(OrganizationNotFoundError):
            service.upsert_member("0xmissing", member_record(0))

    def test_search(self, service: MemberImportService, organization: str) -> None:
        service.submit(
            organization,
            [
                member_record(0, name="Alice", email="alice@example.org"),
                member_record(1, name="Bob", email="bob@example.org"),
                member_record(2, name="Alicia", email="alicia@example.org"),
            ],
            async_mode=False,
        )

        pagination, members = service.list_members(organization, search="ALIC", limit=1)
        assert pagination.total_items == 2
        assert pagination.next_page == 2
        assert [member.name for member in members] == ["Alice"]

    def test_unencodable_password_is_an_invalid_member(self, service: MemberImportService, organization: str) -> None:
        with pytest.raises(InvalidMemberError) as excinfo:
            service.upsert_member(organization, member_record(0, password="\ud800"))
        assert str(excinfo.value) == "member M-0001: invalid password: not valid UTF-8 text"


class TestDeleteMembers:
    def test_delete_by_id(self, service: MemberImportService, organization: str) -> None:
        keep = service.upsert_member(organization, member_record(0))
        drop = service.upsert_member(organization, member_record(1))

        assert service.delete_members(organization, member_ids=[drop, "not-a-member"]) == 1
        _, members = service.list_members(organization)
        assert [member.id for member in members] == [keep]

    def test_empty_id_list_deletes_nothing(self, service: MemberImportService, organization: str) -> None:
        service.upsert_member(organization, member_record(0))
        assert service.delete_members(organization, member_ids=[]) == 0
        assert service.list_members(organization)[0].total_items == 1

    def test_delete_all_stays_inside_the_organization(
        self, service: MemberImportService, organization: str
    ) -> None:
        service.create_organization(address=OTHER_ORG_ADDRESS, name="Other Org", country="PT")
        service.upsert_member(organization, member_record(0))
        service.upsert_member(organization, member_record(1))
        other_id = service.upsert_member(OTHER_ORG_ADDRESS, member_record(0, phone="912345678"))

        assert service.delete_members(OTHER_ORG_ADDRESS, member_ids=[]) == 0
        assert service.delete_members(organization) == 2
        assert service.list_members(organization)[0].total_items == 0
        _, others = service.list_members(OTHER_ORG_ADDRESS)
        assert [member.id for member in others] == [other_id]

    def test_unknown_organization(self, service: MemberImportService) -> None:
        with pytest.raises(OrganizationNotFoundError):
            service.delete_members("0xmissing")


def test_supervisor_keeps_only_recent_failures() -> None:
    supervisor = BackgroundJobSupervisor(max_failures=2)

    def crash(reason: str) -> None:
        raise RuntimeError(reason)

    for job_id in ("job-1", "job-2", "job-3"):
        supervisor.spawn(job_id, crash, job_id)
        assert supervisor.wait(job_id, timeout=5)

    assert supervisor.failure("job-1") is None
    assert str(supervisor.failure("job-2")) == "job-2"
    assert str(supervisor.failure("job-3")) == "job-3"


def test_concurrent_status_reads_during_import(service: MemberImportService, organization: str) -> None:
    records: list[MemberRecordInput] = [member_record(i) for i in range(20)]
    records[5] = replace(records[5], email="invalid-email")
    job_id = service.submit(organization, records, async_mode=True)

    seen: list[ImportProgress] = []

    def poll() -> None:
        while not service.supervisor.wait(job_id, timeout=0):
            seen.append(service.resolve(job_id))

    readers = [threading.Thread(target=poll) for _ in range(3)]
    for reader in readers:
        reader.start()
    for reader in readers:
        reader.join(timeout=10)

    final = service.resolve(job_id)
    assert (final.added, len(final.errors), final.progress) == (19, 1, 100)
    for snapshot in seen:
        assert snapshot.added + len(snapshot.errors) <= snapshot.total == 20
