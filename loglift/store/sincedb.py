"""File-backed checkpoint store.

The file holds two lines: the watermark as a decimal millisecond timestamp,
then the cursor mapping as a flat JSON object. Each half is parsed on its own
so a damaged cursor line never costs the watermark.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from loglift.errors import StoreIOError
from loglift.models import Checkpoint, now_ms
from loglift.utils.logging import get_logger

logger = get_logger("loglift.store.sincedb")


class SinceDbStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def location(self) -> str:
        return str(self.path)

    def load(self) -> Checkpoint:
        if not self.path.exists():
            logger.info("No checkpoint at %s; starting from now", self.path)
            return Checkpoint(watermark=now_ms())

        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.warning("Unreadable checkpoint at %s; starting from 0", self.path, exc_info=True)
            return Checkpoint(watermark=0)

        lines = content.strip().splitlines()
        if not lines:
            return Checkpoint(watermark=now_ms())

        watermark = _parse_watermark(lines[0])
        if watermark is None:
            logger.warning("Corrupt watermark in %s: %r; starting from 0", self.path, lines[0])
            return Checkpoint(watermark=0)

        cursors = _parse_cursors(lines[1] if len(lines) > 1 else "")
        if cursors is None:
            logger.warning("Corrupt cursor line in %s; keeping watermark=%s", self.path, watermark)
            cursors = {}
        return Checkpoint(watermark=watermark, cursors=cursors)

    def save(self, checkpoint: Checkpoint) -> None:
        payload = f"{int(checkpoint.watermark)}\n{json.dumps(checkpoint.cursors, sort_keys=True)}\n"
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise StoreIOError(
                f"Failed to write checkpoint to {self.path}: {exc}", path=str(self.path)
            ) from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)


def _parse_watermark(line: str) -> int | None:
    text = line.strip()
    if not text.isdigit():
        return None
    return int(text)


def _parse_cursors(line: str) -> dict[str, str] | None:
    if not line.strip():
        return {}
    try:
        raw: Any = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(raw, dict):
        return None
    cursors: dict[str, str] = {}
    for key, value in raw.items():
        if value is None or isinstance(value, (bool, dict, list)):
            return None
        cursors[str(key)] = str(value)
    return cursors
