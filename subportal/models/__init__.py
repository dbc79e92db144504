"""Data models for subportal."""

from subportal.models.submission import (
    NO_FILE_TYPE,
    FileMetadata,
    SubmissionInput,
    SubmissionRecord,
)

__all__ = [
    "NO_FILE_TYPE",
    "FileMetadata",
    "SubmissionInput",
    "SubmissionRecord",
]
