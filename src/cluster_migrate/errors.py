"""Failure taxonomy shared by the pipeline and the migration commands."""

from __future__ import annotations

from typing import Any, List, Optional

TIMEOUT_GUIDANCE = (
    "please ensure that you are using Hazelcast's migration cluster distribution "
    "and your DMT configuration points to that cluster"
)


class ClusterMigrateError(Exception):
    """Base class for errors raised by cluster-migrate itself."""


class IgnorableError(ClusterMigrateError):
    """A stage failure that is recorded but does not abort the pipeline."""

    def __init__(self, cause: BaseException):
        super().__init__(str(cause))
        self.cause = cause


def ignore_error(exc: BaseException) -> IgnorableError:
    return IgnorableError(exc)


class UserCancelledError(ClusterMigrateError):
    def __init__(self, message: str = "cancelled by user"):
        super().__init__(message)


class ContextCancelledError(UserCancelledError):
    def __init__(self, message: str = "context cancelled"):
        super().__init__(message)


class DeadlineExceededError(ClusterMigrateError):
    def __init__(self, message: str = "deadline exceeded"):
        super().__init__(message)


class MigrationTimeoutError(ClusterMigrateError):
    """A bounded wait ran out before the remote cluster made progress."""

    def __init__(self, reason: str = "migration could not be completed: reached timeout while reading status"):
        super().__init__(f"{reason}: {TIMEOUT_GUIDANCE}")
        self.reason = reason


class StatusNotFoundError(ClusterMigrateError):
    def __init__(self, message: str = "migration status not found"):
        super().__init__(message)


class StageFailure:
    """Record of one stage that failed without aborting the run."""

    def __init__(self, index: int, stage: Any, error: BaseException):
        self.index = index
        self.stage = stage
        self.error = error

    @property
    def message(self) -> str:
        return f"{self.stage.failure_message}: {self.error}"

    def __repr__(self) -> str:
        return f"StageFailure(index={self.index}, message={self.message!r})"


class StagesFailedError(ClusterMigrateError):
    """The pipeline ran to the end but some stages failed ignorably."""

    def __init__(self, failures: List[StageFailure], value: Any = None):
        self.failures = failures
        self.value = value
        if len(failures) == 1:
            message = failures[0].message
        else:
            message = f"{len(failures)} stages failed:\n" + "\n".join(
                f"* {failure.message}" for failure in failures
            )
        super().__init__(message)


class FinalizeError(ClusterMigrateError):
    def __init__(self, cause: BaseException):
        super().__init__(f"finalizing migration: {cause}")
        self.cause = cause


def join_bullets(lines: List[str]) -> str:
    return "* " + "\n* ".join(lines)


def is_user_cancelled(exc: Optional[BaseException]) -> bool:
    return isinstance(exc, (UserCancelledError, KeyboardInterrupt))


def is_timeout(exc: Optional[BaseException]) -> bool:
    return isinstance(exc, (MigrationTimeoutError, DeadlineExceededError, TimeoutError))


def make_error_string(exc: BaseException) -> str:
    text = str(exc)
    if is_timeout(exc):
        return f"TIMEOUT {text}".rstrip()
    if is_user_cancelled(exc):
        return f"CANCELLED {text or 'cancelled by user'}"
    if text and "a" <= text[0] <= "z":
        text = text[0].upper() + text[1:]
    return f"ERROR {text}"
