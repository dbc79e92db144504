"""Submission form lifecycle.

    ENTRY -> SUBMITTING -> SUCCESS -> (display window or "submit another") -> ENTRY
                        -> ERROR (storage failed, values kept for retry)
    ENTRY/ERROR -> ERROR when a required field is empty (nothing written)
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from enum import Enum, auto
from typing import Callable, Optional, Union

from subportal.config.settings import SubmissionConfig
from subportal.models import SubmissionInput, SubmissionRecord
from subportal.storage.submissions import SubmissionStore
from subportal.utils.logging import get_logger
from subportal.utils.result import (
    Err,
    Ok,
    Result,
    StorageError,
    SubmissionFailure,
    ValidationError,
)
from subportal.utils.scheduling import ScheduledTask, Scheduler

logger = get_logger("upload.form")

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"
SUBMIT_FAILED_MESSAGE = "An error occurred while submitting your data. Please try again."
SUCCESS_MESSAGE = "Your submission has been received."


class FormStatus(Enum):
    """Status of the submission form."""

    ENTRY = auto()
    SUBMITTING = auto()
    SUCCESS = auto()
    ERROR = auto()


class FormEvent(Enum):
    """Notifications published by the form."""

    COMPLETED = auto()  # The in-flight submission finished, either way
    RESET = auto()


FormListener = Callable[[FormEvent, "SubmissionForm"], None]
SubmitError = Union[ValidationError, SubmissionFailure]


class SubmissionForm:
    """
    One mounted instance of the submission form.

    The submit control is disabled while a submission is in flight, so a
    second submit() during that time is ignored. Once started, a submission
    always completes; unmount() only cancels the post-success reset.
    """

    def __init__(
        self,
        store: SubmissionStore,
        config: SubmissionConfig,
        scheduler: Scheduler,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize an empty form.

        Args:
            store: Where accepted submissions are appended
            config: Latency and success display window
            scheduler: Timer source
            clock: Timestamp source for new records (defaults to UTC now)
        """
        self.store = store
        self.config = config
        self.scheduler = scheduler
        self.clock = clock

        self.values = SubmissionInput()
        self.status = FormStatus.ENTRY
        self.message = ""
        self.last_record: Optional[SubmissionRecord] = None
        self.last_error: Optional[SubmitError] = None

        self._reset_task: Optional[ScheduledTask] = None
        self._mounted = True
        self._listeners: list[FormListener] = []

    @property
    def can_submit(self) -> bool:
        return self.status != FormStatus.SUBMITTING

    def subscribe(self, listener: FormListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: FormEvent) -> None:
        for listener in list(self._listeners):
            listener(event, self)

    def submit(self, values: SubmissionInput) -> Result[bool, ValidationError]:
        """
        Validate and start a submission.

        Returns:
            Ok(True) if the submission started, Ok(False) if one is already
            in flight, Err(ValidationError) if a required field is empty
        """
        if not self.can_submit:
            logger.debug("submit_ignored", reason="in_flight")
            return Ok(False)

        if self._reset_task is not None:
            self._reset_task.cancel()
            self._reset_task = None

        self.values = values
        self.message = ""
        self.last_error = None

        missing = values.missing_fields()
        if missing:
            error = ValidationError(message=REQUIRED_FIELDS_MESSAGE, fields=missing)
            self.status = FormStatus.ERROR
            self.message = error.message
            self.last_error = error
            logger.info("submission_invalid", missing=list(missing))
            return Err(error)

        self.status = FormStatus.SUBMITTING
        self.scheduler.call_later(self.config.submission_latency, self._complete)
        return Ok(True)

    def _complete(self) -> None:
        now = self.clock() if self.clock else None
        record = SubmissionRecord.create(self.values, now=now)

        try:
            self.store.append(record)
        except StorageError as e:
            logger.error("submission_store_failed", key=e.key, error=e.message)
            self.status = FormStatus.ERROR
            self.message = SUBMIT_FAILED_MESSAGE
            self.last_error = SubmissionFailure(message=SUBMIT_FAILED_MESSAGE, cause=e)
            self._emit(FormEvent.COMPLETED)
            return

        self.status = FormStatus.SUCCESS
        self.message = SUCCESS_MESSAGE
        self.last_record = record

        if self._mounted:
            self._reset_task = self.scheduler.call_later(
                self.config.success_display_seconds, self._auto_reset
            )

        self._emit(FormEvent.COMPLETED)

    def _auto_reset(self) -> None:
        self._reset_task = None
        if self._mounted and self.status == FormStatus.SUCCESS:
            self.reset()

    def submit_another(self) -> None:
        """Leave the confirmation straight away."""
        if self.status == FormStatus.SUCCESS:
            self.reset()

    def reset(self) -> None:
        """Clear entered values and return to ENTRY."""
        if self.status == FormStatus.SUBMITTING:
            return
        if self._reset_task is not None:
            self._reset_task.cancel()
            self._reset_task = None

        self.values = SubmissionInput()
        self.status = FormStatus.ENTRY
        self.message = ""
        self.last_error = None
        self._emit(FormEvent.RESET)

    def update(self, **fields) -> None:
        """Edit entered values in place (ignored while submitting)."""
        if self.can_submit:
            self.values = replace(self.values, **fields)

    def unmount(self) -> None:
        self._mounted = False
        if self._reset_task is not None:
            self._reset_task.cancel()
            self._reset_task = None

    async def submit_and_wait(
        self,
        values: SubmissionInput,
    ) -> Result[Optional[SubmissionRecord], SubmitError]:
        """
        Submit and wait on the running loop until the record is stored.

        Returns:
            Ok(record) when stored, Ok(None) if a submission was already in
            flight, or Err with the validation or storage failure
        """
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def on_event(event: FormEvent, form: "SubmissionForm") -> None:
            if event == FormEvent.COMPLETED and not future.done():
                future.set_result(None)

        unsubscribe = self.subscribe(on_event)
        try:
            started = self.submit(values)
            if started.is_err():
                return started
            if not started.unwrap():
                return Ok(None)

            await future
            if self.status == FormStatus.SUCCESS:
                return Ok(self.last_record)
            return Err(self.last_error)
        finally:
            unsubscribe()
