"""Admin session, login, guard and dashboard."""

from subportal.admin.dashboard import (
    AdminDashboard,
    SubmissionEntry,
    filter_entries,
    load_dashboard,
    matches,
)
from subportal.admin.guards import ADMIN_LOGIN_ROUTE, AdminGuard, require_admin
from subportal.admin.login import INVALID_CREDENTIALS_MESSAGE, AdminLogin
from subportal.admin.session import ADMIN_SESSION_KEY, AdminSession

__all__ = [
    "AdminSession",
    "ADMIN_SESSION_KEY",
    "AdminGuard",
    "require_admin",
    "ADMIN_LOGIN_ROUTE",
    "AdminLogin",
    "INVALID_CREDENTIALS_MESSAGE",
    "AdminDashboard",
    "SubmissionEntry",
    "filter_entries",
    "load_dashboard",
    "matches",
]
