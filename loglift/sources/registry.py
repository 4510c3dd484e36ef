from __future__ import annotations

from loglift.config import SourceConfig
from loglift.errors import ConfigError
from loglift.sources.base import LogSource
from loglift.sources.directory import DirectoryLogSource
from loglift.sources.rds import RdsLogSource

_BUILTINS: dict[str, type] = {
    "rds": RdsLogSource,
    "directory": DirectoryLogSource,
}


def build_source(config: SourceConfig) -> LogSource:
    source_cls = _BUILTINS.get(config.kind.lower())
    if source_cls is None:
        raise ConfigError(f"Unsupported source kind: {config.kind}")
    return source_cls.from_options(config.instance_name, config.options)
