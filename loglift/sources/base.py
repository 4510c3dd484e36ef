from __future__ import annotations

from typing import Protocol

from loglift.models import ChunkResponse, LogFileCandidate


class LogSource(Protocol):
    """Remote capability the fetch loop needs from a log provider.

    Implementations raise ``TransientSourceError`` for service-level failures;
    the caller retries on its next cycle.
    """

    instance_name: str

    def list_log_files(self, filename_contains: str, since_ms: int) -> list[LogFileCandidate]:
        """Return files written at or after ``since_ms`` whose name contains the filter."""
        ...

    def download(self, file_name: str, marker: str, number_of_lines: int) -> ChunkResponse:
        """Fetch at most ``number_of_lines`` lines of ``file_name`` starting at ``marker``."""
        ...
