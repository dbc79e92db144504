"""Admin session guard.

The guard runs twice for the dashboard: once on the route and again when the
view mounts. Both return a Result so the caller decides how to redirect.
"""

from __future__ import annotations

from subportal.admin.session import AdminSession
from subportal.utils.logging import get_logger
from subportal.utils.result import Err, ExitCode, GuardError, Ok, Result

logger = get_logger("admin.guards")

ADMIN_LOGIN_ROUTE = "/admin-login"


class AdminGuard:
    """Capability check on the persisted admin session flag."""

    def __init__(self, session: AdminSession, redirect_to: str = ADMIN_LOGIN_ROUTE) -> None:
        """
        Initialize the guard.

        Args:
            session: Admin session to check
            redirect_to: Route to send unauthenticated visitors to
        """
        self.session = session
        self.redirect_to = redirect_to

    def check(self) -> Result[None, GuardError]:
        """
        Check that an admin is logged in.

        Returns:
            Ok(None) if authenticated, Err(GuardError) with the redirect
            target otherwise
        """
        if not self.session.is_authenticated():
            error = GuardError(
                code=ExitCode.GUARD_ADMIN_SESSION,
                message="Admin login required",
                redirect_to=self.redirect_to,
            )
            logger.warning(
                "guard_failed",
                guard="admin_session",
                code=error.code,
                redirect_to=error.redirect_to,
            )
            return Err(error)

        logger.debug("guard_passed", guard="admin_session")
        return Ok(None)


def require_admin(session: AdminSession) -> Result[None, GuardError]:
    """Convenience function to run the admin guard."""
    return AdminGuard(session).check()
