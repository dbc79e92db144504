"""Admin dashboard view model: load, search and select submissions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from subportal.admin.guards import AdminGuard
from subportal.admin.session import AdminSession
from subportal.models import SubmissionRecord
from subportal.storage.submissions import SubmissionStore
from subportal.utils.logging import get_logger
from subportal.utils.result import Err, GuardError, Ok, Result

logger = get_logger("admin.dashboard")

ENTRY_ROUTE = "/"


@dataclass(frozen=True)
class SubmissionEntry:
    """A loaded record paired with its insertion index, used as selection key."""

    key: int
    record: SubmissionRecord


def matches(record: SubmissionRecord, term: str) -> bool:
    """
    Case-insensitive substring match on id, name, message and file name.

    An empty term matches every record.
    """
    needle = term.lower()
    return any(
        needle in value.lower()
        for value in (
            record.submitter_id,
            record.submitter_name,
            record.message,
            record.file_name,
        )
    )


def filter_entries(entries: list[SubmissionEntry], term: str) -> list[SubmissionEntry]:
    """Return the entries matching term, in their original order."""
    return [entry for entry in entries if matches(entry.record, term)]


class AdminDashboard:
    """
    Dashboard state for one mount.

    Submissions are read once on mount; new submissions show up on the next
    mount. Selection is tracked by insertion index so that narrowing or
    clearing the search keeps a record selected as long as it exists.
    """

    def __init__(self, store: SubmissionStore, session: AdminSession) -> None:
        self.store = store
        self.session = session
        self.guard = AdminGuard(session)

        self.entries: list[SubmissionEntry] = []
        self.search_term = ""
        self.selected_key: Optional[int] = None
        self.mounted = False

    def mount(self) -> Result[None, GuardError]:
        """
        Re-check the admin guard and load submissions.

        Returns:
            Ok(None) when loaded, Err(GuardError) when the visitor must be
            sent to the admin login
        """
        result = self.guard.check()
        if result.is_err():
            return result

        self.entries = [
            SubmissionEntry(key=index, record=record)
            for index, record in enumerate(self.store.list_all())
        ]
        self.mounted = True
        logger.info("dashboard_loaded", total=len(self.entries))
        return Ok(None)

    @property
    def total(self) -> int:
        return len(self.entries)

    def set_search(self, term: str) -> list[SubmissionEntry]:
        self.search_term = term or ""
        return self.visible

    @property
    def visible(self) -> list[SubmissionEntry]:
        """Entries matching the current search term."""
        return filter_entries(self.entries, self.search_term)

    def select(self, key: Optional[int]) -> Optional[SubmissionEntry]:
        """
        Select the entry with the given key.

        Unknown keys clear the selection.
        """
        if key is None or not 0 <= key < len(self.entries):
            self.selected_key = None
            return None

        self.selected_key = key
        return self.entries[key]

    @property
    def selected(self) -> Optional[SubmissionEntry]:
        if self.selected_key is None:
            return None
        return self.entries[self.selected_key]

    def logout(self) -> str:
        """
        Clear the admin session.

        Returns:
            Route to navigate to
        """
        self.session.logout()
        self.mounted = False
        return ENTRY_ROUTE


def load_dashboard(
    store: SubmissionStore,
    session: AdminSession,
    search: str = "",
    selected: Optional[int] = None,
) -> Result[AdminDashboard, GuardError]:
    """Mount a dashboard and apply search and selection in one go."""
    dashboard = AdminDashboard(store, session)
    result = dashboard.mount()
    if result.is_err():
        return Err(result.unwrap_err())

    dashboard.set_search(search)
    dashboard.select(selected)
    return Ok(dashboard)
