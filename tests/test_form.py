"""Tests for the submission form lifecycle."""

import asyncio
from datetime import datetime, timezone

import pytest

from subportal.config.settings import SubmissionConfig
from subportal.models import SubmissionInput
from subportal.storage import MemoryStore, SubmissionStore
from subportal.upload import (
    REQUIRED_FIELDS_MESSAGE,
    SUBMIT_FAILED_MESSAGE,
    FormEvent,
    FormStatus,
    SubmissionForm,
)
from subportal.utils.result import SubmissionFailure, ValidationError
from subportal.utils.scheduling import AsyncioScheduler


@pytest.fixture
def form(store, scheduler):
    return SubmissionForm(store, SubmissionConfig(), scheduler)


class TestValidation:
    def test_missing_fields_write_nothing(self, form, store, scheduler):
        result = form.submit(SubmissionInput(submitter_id="1", submitter_name="Alice"))

        assert result.is_err()
        error = result.unwrap_err()
        assert isinstance(error, ValidationError)
        assert error.fields == ("message",)
        assert error.message == REQUIRED_FIELDS_MESSAGE

        assert form.status == FormStatus.ERROR
        assert form.message == "Please fill in all required fields"
        assert scheduler.pending == 0
        assert store.count() == 0

    def test_file_is_optional(self, form, store, scheduler):
        result = form.submit(SubmissionInput(submitter_id="1", submitter_name="A", message="m"))
        scheduler.advance(1.5)

        assert result.unwrap() is True
        assert store.list_all()[0].file_type == "No file"


class TestSubmit:
    def test_success_after_latency(self, form, store, scheduler, valid_input):
        assert form.submit(valid_input).unwrap() is True
        assert form.status == FormStatus.SUBMITTING
        assert not form.can_submit

        scheduler.advance(1.0)
        assert store.count() == 0

        scheduler.advance(0.5)
        assert form.status == FormStatus.SUCCESS
        record = store.list_all()[-1]
        assert record.submitter_id == "A-17"
        assert record.file_name == "report.pdf"
        assert record.file_type == "application/pdf"
        assert record.file_size == 2048

    def test_submit_while_in_flight_ignored(self, form, store, scheduler, valid_input):
        form.submit(valid_input)

        assert form.submit(valid_input).unwrap() is False
        scheduler.run_until_idle()

        assert store.count() == 1

    def test_auto_reset_after_display_window(self, form, scheduler, valid_input):
        events = []
        form.subscribe(lambda event, f: events.append(event))
        form.submit(valid_input)
        scheduler.advance(1.5)

        scheduler.advance(2.0)
        assert form.status == FormStatus.SUCCESS

        scheduler.advance(1.0)
        assert form.status == FormStatus.ENTRY
        assert form.values == SubmissionInput()
        assert events == [FormEvent.COMPLETED, FormEvent.RESET]

    def test_submit_another_resets_immediately(self, form, scheduler, valid_input):
        form.submit(valid_input)
        scheduler.advance(1.5)

        form.submit_another()

        assert form.status == FormStatus.ENTRY
        assert form.values == SubmissionInput()
        assert scheduler.pending == 0

    def test_stale_reset_does_not_clear_next_submission(self, form, store, scheduler, valid_input):
        form.submit(valid_input)
        scheduler.advance(1.5)

        form.submit(valid_input)
        scheduler.advance(1.5)
        assert form.status == FormStatus.SUCCESS
        assert store.count() == 2

        scheduler.advance(2.0)
        assert form.status == FormStatus.SUCCESS

    def test_clock_stamps_record(self, store, scheduler, valid_input):
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        form = SubmissionForm(store, SubmissionConfig(), scheduler, clock=lambda: moment)

        form.submit(valid_input)
        scheduler.advance(1.5)

        assert store.list_all()[0].created_at == "2024-01-02T03:04:05+00:00"

    def test_update_ignored_while_submitting(self, form, valid_input):
        form.update(submitter_name="Bob")
        assert form.values.submitter_name == "Bob"

        form.submit(valid_input)
        form.update(submitter_name="Carol")
        assert form.values.submitter_name == "Alice"


class TestStorageFailure:
    def test_failure_keeps_values_for_retry(self, scheduler, valid_input):
        store = SubmissionStore(MemoryStore(quota_bytes=10))
        form = SubmissionForm(store, SubmissionConfig(), scheduler)

        form.submit(valid_input)
        scheduler.advance(1.5)

        assert form.status == FormStatus.ERROR
        assert form.message == SUBMIT_FAILED_MESSAGE
        assert isinstance(form.last_error, SubmissionFailure)
        assert form.values == valid_input
        assert form.can_submit
        assert scheduler.pending == 0


class TestUnmount:
    def test_in_flight_submission_still_stored(self, form, store, scheduler, valid_input):
        form.submit(valid_input)
        form.unmount()

        scheduler.advance(1.5)

        assert store.count() == 1
        assert scheduler.pending == 0

    def test_unmount_cancels_reset(self, form, scheduler, valid_input):
        form.submit(valid_input)
        scheduler.advance(1.5)

        form.unmount()
        scheduler.advance(10.0)

        assert form.status == FormStatus.SUCCESS


class TestSubmitAndWait:
    def _config(self):
        return SubmissionConfig(submission_latency=0.0, success_display_seconds=0.0)

    def test_returns_stored_record(self, store, valid_input):
        async def run():
            form = SubmissionForm(store, self._config(), AsyncioScheduler())
            try:
                return await form.submit_and_wait(valid_input)
            finally:
                form.unmount()

        result = asyncio.run(run())

        assert result.unwrap() == store.list_all()[0]

    def test_returns_storage_failure(self, valid_input):
        store = SubmissionStore(MemoryStore(quota_bytes=10))

        async def run():
            form = SubmissionForm(store, self._config(), AsyncioScheduler())
            try:
                return await form.submit_and_wait(valid_input)
            finally:
                form.unmount()

        result = asyncio.run(run())

        assert result.is_err()
        assert result.unwrap_err().message == SUBMIT_FAILED_MESSAGE
