from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker

from app.schemas.member_import import HealthResponse
from app.services.member_import_service import MemberImportService


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Only runs when the application builds its own service. Raises
    RuntimeError listing every missing or invalid variable so the operator
    can fix all problems in one restart cycle.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    if not os.getenv("DATABASE_URL", "").strip():
        errors.append("No database URL configured. Set DATABASE_URL.")

    webhook_url = os.getenv("MEMBER_IMPORT_NOTIFY_WEBHOOK_URL", "").strip()
    if webhook_url and not webhook_url.startswith(("http://", "https://")):
        errors.append("MEMBER_IMPORT_NOTIFY_WEBHOOK_URL must be an http(s) URL.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    if not os.getenv("MEMBER_PASSWORD_SALT", "").strip():
        logging.getLogger(__name__).warning("MEMBER_PASSWORD_SALT is not set; member passwords use an empty salt")


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db(session_factory: sessionmaker[Session]) -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema(session_factory: sessionmaker[Session]) -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 registers all ORM models on Base.metadata
    from db.base import Base

    with session_factory() as session:
        inspector = sa_inspect(session.get_bind())
        actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch, %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema on boot; stop import bookkeeping on exit."""
    service: MemberImportService | None = application.state.member_import_service
    if service is None:
        _validate_env()
        service = MemberImportService()
        application.state.member_import_service = service

    _check_db(service.session_factory)
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema(service.session_factory)
    logging.getLogger(__name__).info("Database schema validated")
    try:
        yield
    finally:
        service.shutdown()
        logging.getLogger(__name__).info("Member import service shut down")


def create_app(member_import_service: MemberImportService | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    No module-level app is built; ASGI servers should load this as a factory.
    """

    _configure_logging()

    application = FastAPI(
        title="Member Import API",
        version="1.0.0",
        lifespan=_lifespan,
    )
    application.state.member_import_service = member_import_service

    from app.api.routers import jobs_router, members_router, organizations_router

    application.include_router(organizations_router)
    application.include_router(members_router)
    application.include_router(jobs_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        service: MemberImportService = application.state.member_import_service
        return HealthResponse(
            status="ok",
            tracked_jobs=len(service.registry),
            running_jobs=len(service.supervisor.running_jobs()),
        )

    return application
