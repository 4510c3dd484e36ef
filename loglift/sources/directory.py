"""Local directory of rotated log files as a log source.

Markers are byte offsets encoded as decimal strings. Only newline-terminated
lines are returned; a line still being written stays behind the marker until
it is complete.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from loglift.errors import ConfigError, TransientSourceError
from loglift.models import ChunkResponse, LogFileCandidate
from loglift.utils.logging import get_logger

logger = get_logger("loglift.sources.directory")


class DirectoryLogSource:
    def __init__(
        self,
        instance_name: str,
        root_path: Path,
        *,
        max_line_bytes: int = 1024 * 1024,
    ) -> None:
        self.instance_name = instance_name
        self.root_path = root_path
        self.max_line_bytes = max_line_bytes

    @classmethod
    def from_options(cls, instance_name: str, options: dict[str, Any]) -> DirectoryLogSource:
        root = options.get("root")
        if not root:
            raise ConfigError("source.options.root is required for the directory source")
        return cls(
            instance_name,
            Path(str(root)).expanduser(),
            max_line_bytes=int(options.get("max_line_bytes", 1024 * 1024)),
        )

    def list_log_files(self, filename_contains: str, since_ms: int) -> list[LogFileCandidate]:
        if not self.root_path.is_dir():
            raise TransientSourceError(f"Log directory not available: {self.root_path}")

        candidates: list[LogFileCandidate] = []
        try:
            for path in sorted(self.root_path.iterdir()):
                if not path.is_file() or filename_contains not in path.name:
                    continue
                stat = path.stat()
                last_written = stat.st_mtime_ns // 1_000_000
                if last_written < since_ms:
                    continue
                candidates.append(
                    LogFileCandidate(name=path.name, last_written=last_written, size=stat.st_size)
                )
        except OSError as exc:
            raise TransientSourceError(f"Failed to list {self.root_path}: {exc}") from exc
        return candidates

    def download(self, file_name: str, marker: str, number_of_lines: int) -> ChunkResponse:
        path = self.root_path / file_name
        offset = self._parse_marker(file_name, marker)
        lines: list[str] = []

        try:
            size = path.stat().st_size
            if offset > size:
                # Truncated underneath us; the file no longer matches the marker.
                logger.warning(
                    "Marker %s is past end of %s (size=%s); restarting at 0", offset, path, size
                )
                offset = 0
            with path.open("rb") as fh:
                fh.seek(offset)
                while len(lines) < number_of_lines:
                    raw_line = fh.readline(self.max_line_bytes + 1)
                    if not raw_line.endswith(b"\n"):
                        if len(raw_line) > self.max_line_bytes:
                            logger.warning("Skipping oversized line in %s at offset %s", path, offset)
                            offset = self._skip_line(fh)
                            continue
                        break
                    offset += len(raw_line)
                    lines.append(raw_line.decode("utf-8", errors="replace"))
        except OSError as exc:
            raise TransientSourceError(
                f"Failed to read {path} at marker {marker}: {exc}", file_name=file_name
            ) from exc

        return ChunkResponse(
            lines=lines,
            marker=str(offset),
            additional_data_pending=len(lines) >= number_of_lines and offset < size,
        )

    @staticmethod
    def _parse_marker(file_name: str, marker: str) -> int:
        try:
            offset = int(marker)
        except (TypeError, ValueError):
            offset = -1
        if offset < 0:
            logger.warning("Unusable marker %r for %s; restarting at 0", marker, file_name)
            return 0
        return offset

    def _skip_line(self, fh) -> int:
        while True:
            chunk = fh.readline(self.max_line_bytes)
            if not chunk or chunk.endswith(b"\n"):
                return fh.tell()
