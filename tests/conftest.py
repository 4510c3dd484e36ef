from __future__ import annotations

from dataclasses import dataclass, field

from loglift.errors import TransientSourceError
from loglift.models import ChunkResponse, LogFileCandidate


@dataclass(slots=True)
class ScriptedLogSource:
    """Serves fixed chunks per file, keyed by the marker each fetch starts at."""

    instance_name: str = "db-1"
    files: list[LogFileCandidate] = field(default_factory=list)
    chunks: dict[str, dict[str, ChunkResponse]] = field(default_factory=dict)
    fail_on: set[str] = field(default_factory=set)
    fail_listing: bool = False
    list_calls: list[tuple[str, int]] = field(default_factory=list)
    download_calls: list[tuple[str, str, int]] = field(default_factory=list)

    def add_file(self, name: str, last_written: int, chunks: list[ChunkResponse]) -> None:
        self.files.append(LogFileCandidate(name=name, last_written=last_written))
        by_marker: dict[str, ChunkResponse] = {}
        marker = "0"
        for chunk in chunks:
            by_marker[marker] = chunk
            marker = chunk.marker
        self.chunks[name] = by_marker

    def list_log_files(self, filename_contains: str, since_ms: int) -> list[LogFileCandidate]:
        self.list_calls.append((filename_contains, since_ms))
        if self.fail_listing:
            raise TransientSourceError("listing unavailable")
        return [
            item
            for item in self.files
            if filename_contains in item.name and item.last_written >= since_ms
        ]

    def download(self, file_name: str, marker: str, number_of_lines: int) -> ChunkResponse:
        self.download_calls.append((file_name, marker, number_of_lines))
        if file_name in self.fail_on:
            raise TransientSourceError("throttled", file_name=file_name)
        by_marker = self.chunks.get(file_name, {})
        if marker in by_marker:
            return by_marker[marker]
        return ChunkResponse(lines=[], marker=marker, additional_data_pending=False)


class ListQueue:
    def __init__(self) -> None:
        self.items: list = []

    def put(self, item) -> None:
        self.items.append(item)

    @property
    def messages(self) -> list[str]:
        return [item.message for item in self.items]
