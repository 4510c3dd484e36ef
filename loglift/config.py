from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from loglift.constants import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_NUMBER_OF_LINES,
    DEFAULT_POLLING_INTERVAL_SECONDS,
    SINCEDB_PREFIX,
)
from loglift.errors import ConfigError


@dataclass(slots=True)
class SourceConfig:
    instance_name: str
    log_file_name: str
    kind: str = "rds"
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class PollerConfig:
    polling_interval_seconds: float = DEFAULT_POLLING_INTERVAL_SECONDS
    number_of_lines: int = DEFAULT_NUMBER_OF_LINES
    run_on_start: bool = False


@dataclass(slots=True)
class StoreConfig:
    backend: str = "sincedb"
    sincedb_path: str | None = None


@dataclass(slots=True)
class EmitConfig:
    codec: str = "plain"
    tags: list[str] = field(default_factory=list)
    add_fields: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class OutputConfig:
    kind: str = "stdout"
    path: str | None = None


@dataclass(slots=True)
class LoggingConfig:
    level: str = DEFAULT_LOG_LEVEL


@dataclass(slots=True)
class AppConfig:
    source: SourceConfig
    poller: PollerConfig = field(default_factory=PollerConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    emit: EmitConfig = field(default_factory=EmitConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @staticmethod
    def default() -> AppConfig:
        return AppConfig(
            source=SourceConfig(
                instance_name="my-db-instance",
                log_file_name="error/postgresql.log",
                kind="rds",
                options={"region": "us-east-1"},
            )
        )

    @property
    def sincedb_path(self) -> Path:
        if self.store.sincedb_path:
            return Path(self.store.sincedb_path).expanduser()
        return default_sincedb_path(self.source.instance_name, self.source.log_file_name)


def default_sincedb_path(instance_name: str, log_file_name: str, home: Path | None = None) -> Path:
    """Derive a stable checkpoint location from the source identity and log filter."""
    digest = hashlib.md5(f"{instance_name}+{log_file_name}".encode("utf-8")).hexdigest()
    return (home or Path.home()) / f"{SINCEDB_PREFIX}{digest}"


def _require(raw: dict[str, Any], key: str, section: str) -> str:
    value = raw.get(key)
    if value is None or not str(value).strip():
        raise ConfigError(f"Missing required setting: {section}.{key}")
    return str(value)


def _positive_number(value: Any, name: str, cast=float):
    try:
        number = cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from exc
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return number


def config_from_dict(raw: dict[str, Any]) -> AppConfig:
    source_raw = raw.get("source") or {}
    poller_raw = raw.get("poller") or {}
    store_raw = raw.get("store") or {}
    emit_raw = raw.get("emit") or {}
    output_raw = raw.get("output") or {}
    logging_raw = raw.get("logging") or {}

    options = source_raw.get("options") or {}
    if not isinstance(options, dict):
        raise ConfigError("source.options must be a mapping")
    add_fields = emit_raw.get("add_fields") or {}
    if not isinstance(add_fields, dict):
        raise ConfigError("emit.add_fields must be a mapping")

    return AppConfig(
        source=SourceConfig(
            instance_name=_require(source_raw, "instance_name", "source"),
            log_file_name=_require(source_raw, "log_file_name", "source"),
            kind=str(source_raw.get("kind", "rds")),
            options=dict(options),
        ),
        poller=PollerConfig(
            polling_interval_seconds=_positive_number(
                poller_raw.get("polling_interval_seconds", DEFAULT_POLLING_INTERVAL_SECONDS),
                "poller.polling_interval_seconds",
            ),
            number_of_lines=_positive_number(
                poller_raw.get("number_of_lines", DEFAULT_NUMBER_OF_LINES),
                "poller.number_of_lines",
                cast=int,
            ),
            run_on_start=bool(poller_raw.get("run_on_start", False)),
        ),
        store=StoreConfig(
            backend=str(store_raw.get("backend", "sincedb")),
            sincedb_path=store_raw.get("sincedb_path"),
        ),
        emit=EmitConfig(
            codec=str(emit_raw.get("codec", "plain")),
            tags=[str(tag) for tag in emit_raw.get("tags") or []],
            add_fields=dict(add_fields),
        ),
        output=OutputConfig(
            kind=str(output_raw.get("kind", "stdout")),
            path=output_raw.get("path"),
        ),
        logging=LoggingConfig(level=str(logging_raw.get("level", DEFAULT_LOG_LEVEL))),
    )


def load_config(path: str | Path) -> AppConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed YAML in {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")
    return config_from_dict(raw)


def dump_default_config(path: str | Path) -> None:
    cfg = AppConfig.default()
    payload: dict[str, Any] = {
        "source": {
            "kind": cfg.source.kind,
            "instance_name": cfg.source.instance_name,
            "log_file_name": cfg.source.log_file_name,
            "options": cfg.source.options,
        },
        "poller": {
            "polling_interval_seconds": cfg.poller.polling_interval_seconds,
            "number_of_lines": cfg.poller.number_of_lines,
            "run_on_start": cfg.poller.run_on_start,
        },
        "store": {"backend": cfg.store.backend, "sincedb_path": cfg.store.sincedb_path},
        "emit": {
            "codec": cfg.emit.codec,
            "tags": cfg.emit.tags,
            "add_fields": cfg.emit.add_fields,
        },
        "output": {"kind": cfg.output.kind, "path": cfg.output.path},
        "logging": {"level": cfg.logging.level},
    }
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(payload, fh, sort_keys=False)
