"""
app/services package marker.
"""

from app.services.bulk_member_writer import BulkMemberWriter
from app.services.errors import (
    BatchTooLargeError,
    BulkImportStartError,
    ChannelClosedError,
    InvalidMemberError,
    JobNotFoundError,
    MemberImportError,
    UnknownOrganizationError,
)
from app.services.job_registry import JobReaper, JobRegistry
from app.services.member_import_service import BackgroundJobSupervisor, MemberImportService
from app.services.notifications import (
    ImportCompletionNotifier,
    LoggingImportNotifier,
    WebhookImportNotifier,
    build_import_notifier,
)
from app.services.progress_channel import ProgressChannel

__all__ = [
    "BackgroundJobSupervisor",
    "BatchTooLargeError",
    "BulkImportStartError",
    "BulkMemberWriter",
    "ChannelClosedError",
    "ImportCompletionNotifier",
    "InvalidMemberError",
    "JobNotFoundError",
    "JobReaper",
    "JobRegistry",
    "LoggingImportNotifier",
    "MemberImportError",
    "MemberImportService",
    "ProgressChannel",
    "UnknownOrganizationError",
    "WebhookImportNotifier",
    "build_import_notifier",
]
