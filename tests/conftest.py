"""Shared fixtures for subportal tests."""

from datetime import datetime, timezone

import pytest

from subportal.admin import AdminSession
from subportal.config.settings import (
    AdminConfig,
    AppConfig,
    GateConfig,
    StorageConfig,
    SubmissionConfig,
)
from subportal.models import FileMetadata, SubmissionInput, SubmissionRecord
from subportal.storage import MemoryStore, SubmissionStore
from subportal.utils.scheduling import ManualScheduler


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def kv():
    return MemoryStore()


@pytest.fixture
def store(kv):
    return SubmissionStore(kv)


@pytest.fixture
def session(kv):
    return AdminSession(kv)


@pytest.fixture
def fast_config():
    """Default literals with every artificial delay removed."""
    return AppConfig(
        gate=GateConfig(login_latency=0.0),
        submission=SubmissionConfig(submission_latency=0.0, success_display_seconds=0.0),
        admin=AdminConfig(login_latency=0.0),
        storage=StorageConfig(backend="memory"),
    )


@pytest.fixture
def valid_input():
    return SubmissionInput(
        submitter_id="A-17",
        submitter_name="Alice",
        message="Quarterly report",
        file=FileMetadata(name="report.pdf", content_type="application/pdf", size=2048),
    )


def make_record(
    submitter_id: str,
    name: str,
    message: str,
    file_name: str = "",
    file_type: str = "",
    file_size: int = 0,
) -> SubmissionRecord:
    file = None
    if file_name:
        file = FileMetadata(name=file_name, content_type=file_type, size=file_size)
    return SubmissionRecord.create(
        SubmissionInput(
            submitter_id=submitter_id,
            submitter_name=name,
            message=message,
            file=file,
        ),
        now=datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def record_factory():
    return make_record
