"""Ok/Err values for outcomes the user can cause.

A missing form field, a wrong password or a bad config file is an ordinary
answer, not a crash, so these come back as ``Err``. Storage I/O failures and
invalid state transitions raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


class ResultError(Exception):
    """unwrap() on an Err, or unwrap_err() on an Ok."""


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ResultError(f"Expected Err, got Ok({self.value!r})")


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ResultError(f"Expected Ok, got Err({self.error!r})")

    def unwrap_err(self) -> E:
        return self.error


Result = Union[Ok[T], Err[E]]


@dataclass(frozen=True)
class ValidationError:
    """A required form field is empty."""

    message: str
    fields: tuple[str, ...] = ()

    def __str__(self) -> str:
        if self.fields:
            return f"{self.message} (missing: {', '.join(self.fields)})"
        return self.message


@dataclass(frozen=True)
class SubmissionFailure:
    """A valid submission could not be stored."""

    message: str
    cause: Exception | None = None

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} ({self.cause})"
        return self.message


@dataclass(frozen=True)
class GuardError:
    """A protected view was refused; redirect_to says where to go instead."""

    code: int
    message: str
    redirect_to: str = "/"

    def __str__(self) -> str:
        return f"{self.message} -> {self.redirect_to}"


@dataclass(frozen=True)
class LoginError:
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ConfigError:
    field: str
    message: str

    def __str__(self) -> str:
        return f"Config error in '{self.field}': {self.message}"


class StorageError(Exception):
    """The key-value store refused a write (I/O failure or quota)."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        self.message = message
        super().__init__(f"Storage write failed for '{key}': {message}")


class ExitCode:
    """CLI exit statuses."""

    SUCCESS = 0
    GENERAL_ERROR = 1

    # Admin access (10-19)
    GUARD_ADMIN_SESSION = 10
    GUARD_LOGIN = 11

    # Submission and setup (20-29)
    VALIDATION_FAILED = 20
    STORAGE_FAILED = 21
    CONFIG_INVALID = 22
