"""Fixed-credential admin login."""

from __future__ import annotations

import asyncio

from subportal.admin.session import AdminSession
from subportal.config.settings import AdminConfig
from subportal.utils.logging import get_logger
from subportal.utils.result import Err, LoginError, Ok, Result
from subportal.utils.scheduling import Scheduler

logger = get_logger("admin.login")

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials. Please try again."


class AdminLogin:
    """
    Literal comparison of a username and password against configuration.

    Same shape as the entry gate: the username ignores case, the password
    must match exactly. This is a demo boundary, not authentication.
    """

    def __init__(self, config: AdminConfig, session: AdminSession, scheduler: Scheduler) -> None:
        self.config = config
        self.session = session
        self.scheduler = scheduler

    def check_credentials(self, username: str, password: str) -> bool:
        return (
            username.lower() == self.config.username.lower()
            and password == self.config.password
        )

    def login(self, username: str, password: str) -> Result[None, LoginError]:
        """
        Verify credentials and set the session flag immediately.

        Raises:
            StorageError: If the session flag cannot be written
        """
        if not self.check_credentials(username, password):
            logger.info("admin_login_rejected")
            return Err(LoginError(message=INVALID_CREDENTIALS_MESSAGE))

        self.session.login()
        return Ok(None)

    async def login_and_wait(self, username: str, password: str) -> Result[None, LoginError]:
        """Like login(), after the configured processing delay."""
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        task = self.scheduler.call_later(self.config.login_latency, future.set_result, None)
        try:
            await future
        finally:
            task.cancel()
        return self.login(username, password)
