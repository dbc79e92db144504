"""Submission form."""

from subportal.upload.form import (
    REQUIRED_FIELDS_MESSAGE,
    SUBMIT_FAILED_MESSAGE,
    FormEvent,
    FormStatus,
    SubmissionForm,
)

__all__ = [
    "SubmissionForm",
    "FormStatus",
    "FormEvent",
    "REQUIRED_FIELDS_MESSAGE",
    "SUBMIT_FAILED_MESSAGE",
]
