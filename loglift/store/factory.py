from __future__ import annotations

from loglift.config import AppConfig
from loglift.errors import ConfigError
from loglift.store.base import CheckpointStore
from loglift.store.memory import InMemoryCheckpointStore
from loglift.store.sincedb import SinceDbStore


def build_store(config: AppConfig) -> CheckpointStore:
    backend = config.store.backend.lower()

    if backend == "sincedb":
        return SinceDbStore(config.sincedb_path)
    if backend == "memory":
        return InMemoryCheckpointStore()

    raise ConfigError(f"Unsupported store backend: {config.store.backend}")
