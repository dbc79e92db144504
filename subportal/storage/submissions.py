"""Append-only submission list kept under one key of the key-value store."""

from __future__ import annotations

import json

from subportal.models import SubmissionRecord
from subportal.storage.kv import KeyValueStore
from subportal.utils.logging import get_logger

logger = get_logger("storage.submissions")

SUBMISSIONS_KEY = "submissions"


class SubmissionStore:
    """
    Append-only record list.

    Records come back in insertion order, oldest first. There is no update
    or delete of individual records and no uniqueness on submitter id.
    """

    def __init__(self, kv: KeyValueStore, key: str = SUBMISSIONS_KEY) -> None:
        self.kv = kv
        self.key = key

    def _load_raw(self) -> list[dict]:
        """Read the stored JSON array, degrading to [] when absent or corrupt."""
        raw = self.kv.get(self.key)
        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("submissions_unparsable", key=self.key, error=str(e))
            return []

        if not isinstance(data, list):
            logger.warning("submissions_not_a_list", key=self.key)
            return []

        return data

    def append(self, record: SubmissionRecord) -> None:
        """
        Append a record and write the list back.

        Raises:
            StorageError: If the store rejects the write
        """
        entries = self._load_raw()
        entries.append(record.to_dict())
        self.kv.set(self.key, json.dumps(entries))

        logger.info(
            "submission_appended",
            submitter_id=record.submitter_id,
            has_file=record.has_file,
            total=len(entries),
        )

    def list_all(self) -> list[SubmissionRecord]:
        """
        Return every stored record, oldest first.

        A fresh list is built on each call. Entries that cannot be read as a
        record are skipped.
        """
        records = []
        for index, entry in enumerate(self._load_raw()):
            if not isinstance(entry, dict):
                logger.warning("submission_entry_skipped", index=index, reason="not_an_object")
                continue
            try:
                records.append(SubmissionRecord.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("submission_entry_skipped", index=index, reason=str(e))
        return records

    def count(self) -> int:
        return len(self.list_all())

    def clear(self) -> None:
        """Drop every stored submission (maintenance only)."""
        self.kv.remove(self.key)
        logger.info("submissions_cleared", key=self.key)
