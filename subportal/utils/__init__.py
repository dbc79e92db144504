"""Utility modules for subportal."""

from subportal.utils.atomic import AtomicWriteError, atomic_write_json, atomic_write_text
from subportal.utils.logging import (
    configure_logging,
    get_logger,
    set_request_id,
    set_view,
)
from subportal.utils.result import (
    ConfigError,
    Err,
    ExitCode,
    GuardError,
    LoginError,
    Ok,
    Result,
    StorageError,
    SubmissionFailure,
    ValidationError,
)
from subportal.utils.scheduling import (
    AsyncioScheduler,
    ManualScheduler,
    ScheduledTask,
    Scheduler,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "set_request_id",
    "set_view",
    # Results and errors
    "Ok",
    "Err",
    "Result",
    "ValidationError",
    "SubmissionFailure",
    "GuardError",
    "LoginError",
    "ConfigError",
    "StorageError",
    "ExitCode",
    # Atomic writes
    "AtomicWriteError",
    "atomic_write_text",
    "atomic_write_json",
    # Scheduling
    "Scheduler",
    "ScheduledTask",
    "AsyncioScheduler",
    "ManualScheduler",
]
