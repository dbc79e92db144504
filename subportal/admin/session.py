"""Persisted admin session flag."""

from __future__ import annotations

from subportal.storage.kv import KeyValueStore
from subportal.utils.logging import get_logger

logger = get_logger("admin.session")

ADMIN_SESSION_KEY = "adminAuthenticated"


class AdminSession:
    """Boolean flag stored as the string "true" under a fixed key."""

    def __init__(self, kv: KeyValueStore, key: str = ADMIN_SESSION_KEY) -> None:
        self.kv = kv
        self.key = key

    def is_authenticated(self) -> bool:
        return self.kv.get(self.key) == "true"

    def login(self) -> None:
        """
        Set the flag.

        Raises:
            StorageError: If the store rejects the write
        """
        self.kv.set(self.key, "true")
        logger.info("admin_session_started")

    def logout(self) -> None:
        """
        Clear the flag.

        Raises:
            StorageError: If the store rejects the write
        """
        self.kv.remove(self.key)
        logger.info("admin_session_cleared")
