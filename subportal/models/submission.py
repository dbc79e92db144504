"""Data models for submissions and their optional file description."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

NO_FILE_TYPE = "No file"


@dataclass(frozen=True)
class FileMetadata:
    """
    Description of the file attached to a submission.

    Only metadata is kept; the bytes are never stored.

    Attributes:
        name: Original file name as sent by the browser
        content_type: MIME type (may be empty when the browser sends none)
        size: Size in bytes
    """

    name: str
    content_type: str
    size: int


@dataclass(frozen=True)
class SubmissionInput:
    """Values entered on the submission form."""

    submitter_id: str = ""
    submitter_name: str = ""
    message: str = ""
    file: Optional[FileMetadata] = None

    def missing_fields(self) -> tuple[str, ...]:
        """Names of required fields that are empty."""
        missing = []
        if not self.submitter_id:
            missing.append("submitter_id")
        if not self.submitter_name:
            missing.append("submitter_name")
        if not self.message:
            missing.append("message")
        return tuple(missing)


@dataclass(frozen=True)
class SubmissionRecord:
    """
    One stored submission.

    Records are immutable once created. The persisted JSON uses the short
    keys ``id``, ``name`` and ``timestamp`` for the submitter id, submitter
    name and creation time.

    Attributes:
        submitter_id: Identifier typed by the submitter (not unique)
        submitter_name: Submitter's name
        message: Free text
        file_name: Attached file name, empty if none
        file_type: MIME type, or "No file"
        file_size: Size in bytes, 0 if none
        created_at: ISO-8601 creation timestamp
    """

    submitter_id: str
    submitter_name: str
    message: str
    file_name: str = ""
    file_type: str = NO_FILE_TYPE
    file_size: int = 0
    created_at: str = ""

    @classmethod
    def create(
        cls,
        form: SubmissionInput,
        now: Optional[datetime] = None,
    ) -> "SubmissionRecord":
        """Build a record from validated form input, stamped with now (UTC)."""
        if now is None:
            now = datetime.now(timezone.utc)

        if form.file is not None:
            file_name = form.file.name
            file_type = form.file.content_type
            file_size = max(0, int(form.file.size))
        else:
            file_name = ""
            file_type = NO_FILE_TYPE
            file_size = 0

        return cls(
            submitter_id=form.submitter_id,
            submitter_name=form.submitter_name,
            message=form.message,
            file_name=file_name,
            file_type=file_type,
            file_size=file_size,
            created_at=now.isoformat(),
        )

    @property
    def has_file(self) -> bool:
        return bool(self.file_name)

    def to_dict(self) -> dict:
        """Convert to the persisted dictionary layout."""
        return {
            "id": self.submitter_id,
            "name": self.submitter_name,
            "message": self.message,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "fileSize": self.file_size,
            "timestamp": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubmissionRecord":
        """
        Create from the persisted dictionary layout.

        Raises:
            KeyError: If a required field is missing
            ValueError: If fileSize is not an integer
        """
        return cls(
            submitter_id=str(data["id"]),
            submitter_name=str(data["name"]),
            message=str(data["message"]),
            file_name=str(data.get("fileName") or ""),
            file_type=str(data.get("fileType") or NO_FILE_TYPE),
            file_size=int(data.get("fileSize") or 0),
            created_at=str(data.get("timestamp") or ""),
        )
