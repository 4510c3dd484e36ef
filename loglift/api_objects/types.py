"""Type-safe summaries reported by the harvesting loop."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from loglift.constants import CYCLE_OK


@dataclass(slots=True)
class SkippedFile:
    file_name: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class CycleSummary:
    """Counters for one polling cycle."""

    source_instance: str
    started_at: datetime
    watermark_before: int
    watermark_after: int = 0
    ended_at: datetime | None = None
    status: str = CYCLE_OK
    files_listed: int = 0
    files_processed: int = 0
    chunks_fetched: int = 0
    lines_read: int = 0
    events_emitted: int = 0
    skipped_files: list[SkippedFile] = field(default_factory=list)
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == CYCLE_OK

    @property
    def duration_seconds(self) -> float:
        if self.ended_at is None:
            return 0.0
        return max(0.0, (self.ended_at - self.started_at).total_seconds())

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_instance": self.source_instance,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at is not None else None,
            "duration_seconds": self.duration_seconds,
            "watermark_before": self.watermark_before,
            "watermark_after": self.watermark_after,
            "files_listed": self.files_listed,
            "files_processed": self.files_processed,
            "chunks_fetched": self.chunks_fetched,
            "lines_read": self.lines_read,
            "events_emitted": self.events_emitted,
            "skipped_files": [item.to_dict() for item in self.skipped_files],
            "error_message": self.error_message,
        }
