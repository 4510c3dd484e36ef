"""Log source adapters."""

from loglift.sources.base import LogSource
from loglift.sources.directory import DirectoryLogSource
from loglift.sources.rds import RdsLogSource

__all__ = [
    "DirectoryLogSource",
    "LogSource",
    "RdsLogSource",
]
