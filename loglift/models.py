from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from loglift.constants import DEFAULT_CURSOR


def utc_now() -> datetime:
    return datetime.now(UTC)


def now_ms() -> int:
    return int(utc_now().timestamp() * 1000)


def ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=UTC)


@dataclass(slots=True)
class Checkpoint:
    """Durable harvesting progress: a global watermark plus per-file cursors."""

    watermark: int
    cursors: dict[str, str] = field(default_factory=dict)

    def cursor_for(self, key: str) -> str:
        """Return the stored cursor for ``key`` or ``DEFAULT_CURSOR`` if unseen."""
        return self.cursors.get(key, DEFAULT_CURSOR)

    def advance_cursor(self, key: str, token: str) -> None:
        self.cursors[key] = token

    def copy(self) -> Checkpoint:
        return Checkpoint(watermark=self.watermark, cursors=dict(self.cursors))

    def to_dict(self) -> dict[str, Any]:
        return {"watermark": self.watermark, "cursors": dict(self.cursors)}


@dataclass(slots=True)
class LogFileCandidate:
    name: str
    last_written: int
    size: int = 0


@dataclass(slots=True)
class ChunkResponse:
    lines: list[str]
    marker: str
    additional_data_pending: bool = False


@dataclass(slots=True)
class LogEvent:
    message: str
    source_instance: str
    log_file: str
    file_name: str
    cursor_key: str
    ts: datetime = field(default_factory=utc_now)
    tags: list[str] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.fields)
        payload.update(
            {
                "message": self.message,
                "source_instance": self.source_instance,
                "log_file": self.log_file,
                "file_name": self.file_name,
                "cursor_key": self.cursor_key,
                "ts": self.ts.isoformat(),
            }
        )
        if self.tags:
            payload["tags"] = list(self.tags)
        return payload
