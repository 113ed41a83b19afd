"""
tests/conftest.py

Shared fixtures: a throwaway SQLite database per test, a seeded
organization and a member import service wired to both.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

import db.models  # noqa: F401 registers all ORM models on Base.metadata
from app.config import MemberImportSettings
from app.domain.member_import import ImportProgress, MemberRecordInput
from app.services.member_import_service import MemberImportService
from db.base import Base
from db.repositories.organization_repository import OrganizationRepository
from db.session import build_session_factory, create_db_engine

ORG_ADDRESS = "0xorg0000000000000000000000000000000000001"
OTHER_ORG_ADDRESS = "0xorg0000000000000000000000000000000000002"


class RecordingNotifier:
    """Collects completion notifications instead of sending them."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def notify(
        self,
        *,
        org_address: str,
        job_type: str,
        progress: ImportProgress,
        notify_email: str | None = None,
    ) -> None:
        self.calls.append(
            {
                "org_address": org_address,
                "job_type": job_type,
                "progress": progress,
                "notify_email": notify_email,
            }
        )


def member_record(position: int, **overrides: Any) -> MemberRecordInput:
    values: dict[str, Any] = {
        "member_number": f"M-{position + 1:04d}",
        "name": f"Name{position + 1}",
        "surname": "Doe",
        "email": f"member{position + 1}@example.org",
        "phone": f"61234{position + 1:04d}",
        "birth_date": "1990-05-17",
    }
    values.update(overrides)
    return MemberRecordInput(position=position, **values)


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture()
def engine(tmp_path) -> Iterator[Engine]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'members.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture()
def organization(session_factory: sessionmaker[Session]) -> str:
    with session_factory() as db:
        OrganizationRepository(db).create(address=ORG_ADDRESS, name="Test Org", country="ES")
        db.commit()
    return ORG_ADDRESS


@pytest.fixture()
def settings() -> MemberImportSettings:
    return MemberImportSettings(
        progress_chunk_size=2,
        progress_queue_size=4,
        max_batch_size=100,
        reaper_grace_seconds=0.2,
        password_salt="test-salt",
        default_phone_country="ES",
    )


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def service(
    session_factory: sessionmaker[Session],
    settings: MemberImportSettings,
    notifier: RecordingNotifier,
    organization: str,
) -> Iterator[MemberImportService]:
    svc = MemberImportService(session_factory=session_factory, settings=settings, notifier=notifier)
    yield svc
    svc.shutdown()
