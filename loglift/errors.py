"""Exception taxonomy for the harvesting loop."""

from __future__ import annotations


class LogLiftError(Exception):
    """Base class for all loglift errors."""


class ConfigError(LogLiftError, ValueError):
    pass


class TransientSourceError(LogLiftError):
    """The remote log source rejected a request or was unavailable.

    Caught per cycle; the next scheduled cycle retries from the preserved
    checkpoint.
    """

    def __init__(self, message: str, *, file_name: str | None = None) -> None:
        super().__init__(message)
        self.file_name = file_name


class KeyDerivationError(LogLiftError):
    """A log file name carries no date-hour suffix to key its cursor on."""

    def __init__(self, file_name: str) -> None:
        super().__init__(f"No date-hour suffix in log file name: {file_name!r}")
        self.file_name = file_name


class StoreIOError(LogLiftError):
    """The checkpoint could not be written to durable storage."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class SchedulerStateError(LogLiftError, RuntimeError):
    pass
