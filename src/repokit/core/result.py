"""
Result types and error hierarchy for repokit.

This module provides:
1. Result[T, E] type for explicit error handling
2. Domain-specific exception hierarchy

Usage:
    from repokit.core.result import Ok, Err, Result, ProcessError

    def run_step() -> Result[None, ProcessError]:
        if failed:
            return Err(ProcessError("git init returned with code 1", command="git", exit_code=1))
        return Ok(None)

    match run_step():
        case Ok(_):
            ...
        case Err(err):
            print(err.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound=Exception)
F = TypeVar("F", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Represents a successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return the contained value (ignores default for Ok)."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply a function to the contained value."""
        return Ok(fn(self.value))

    def and_then(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain operations that may fail."""
        return fn(self.value)


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Represents a failed result containing an error."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the contained error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        """Return the default value."""
        return default

    def map(self, fn: Callable[[T], U]) -> Err[E]:
        """No-op for Err - returns self unchanged."""
        return self

    def and_then(self, fn: Callable[[T], Result[U, E]]) -> Err[E]:
        """Short-circuit for Err - returns self unchanged."""
        return self


# Type alias for Result
Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class RepokitError(Exception):
    """Base exception for all repokit errors.

    Carries a human-readable message plus an optional context mapping that is
    rendered after the message for diagnostics.
    """

    def __init__(self, message: str, *, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ValidationError(RepokitError):
    """Raised when user input fails a prompt validator.

    Recovered locally by asking the question again; never fails a run.
    """


class ProcessError(RepokitError):
    """Raised when an external command exits non-zero or cannot be started.

    Attributes:
        command: The executable that was run.
        exit_code: Process exit code, or None when the process never ran.
        spawn_failure: True if the process could not be started at all.
        timed_out: True if the process was killed after exceeding its timeout.
        stderr: Captured stderr chunks, when any were collected.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str,
        exit_code: int | None = None,
        spawn_failure: bool = False,
        timed_out: bool = False,
        stderr: list[str] | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.command = command
        self.exit_code = exit_code
        self.spawn_failure = spawn_failure
        self.timed_out = timed_out
        self.stderr = stderr or []


class ConfigMissingError(RepokitError):
    """Raised when required external configuration is absent.

    Examples:
    - git user.name not configured
    - hosting CLI not installed
    """


class GraphError(RepokitError):
    """Raised for a malformed task graph (unknown dependency, cycle)."""


class ScaffoldError(RepokitError):
    """Raised when the template generator cannot produce the project."""


__all__ = [
    # Result types
    "Ok",
    "Err",
    "Result",
    # Error hierarchy
    "RepokitError",
    "ValidationError",
    "ProcessError",
    "ConfigMissingError",
    "GraphError",
    "ScaffoldError",
]
