from __future__ import annotations

from typing import Protocol

from loglift.models import Checkpoint


class CheckpointStore(Protocol):
    location: str

    def load(self) -> Checkpoint: ...

    def save(self, checkpoint: Checkpoint) -> None: ...
