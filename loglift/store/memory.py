from __future__ import annotations

from loglift.errors import StoreIOError
from loglift.models import Checkpoint, now_ms


class InMemoryCheckpointStore:
    """Process-local checkpoint store; progress does not survive a restart."""

    location = "memory"

    def __init__(self, initial: Checkpoint | None = None) -> None:
        self._saved: Checkpoint | None = initial.copy() if initial is not None else None
        self.save_count = 0
        self.fail_saves = False

    @property
    def saved(self) -> Checkpoint | None:
        return self._saved.copy() if self._saved is not None else None

    def load(self) -> Checkpoint:
        if self._saved is None:
            return Checkpoint(watermark=now_ms())
        return self._saved.copy()

    def save(self, checkpoint: Checkpoint) -> None:
        if self.fail_saves:
            raise StoreIOError("In-memory checkpoint store is failing saves", path=self.location)
        self._saved = checkpoint.copy()
        self.save_count += 1
