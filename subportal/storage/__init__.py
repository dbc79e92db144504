"""Persistence for submissions and the admin session flag."""

from subportal.storage.kv import JsonFileStore, KeyValueStore, MemoryStore, open_store
from subportal.storage.submissions import SUBMISSIONS_KEY, SubmissionStore

__all__ = [
    "KeyValueStore",
    "JsonFileStore",
    "MemoryStore",
    "open_store",
    "SubmissionStore",
    "SUBMISSIONS_KEY",
]
