"""Event sinks accepting decoded events from the emitter."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TextIO

from loglift.config import OutputConfig
from loglift.errors import ConfigError
from loglift.models import LogEvent


class JsonLinesSink:
    def __init__(self, stream: TextIO, *, owns_stream: bool = False) -> None:
        self.stream = stream
        self.owns_stream = owns_stream
        self.written = 0

    @classmethod
    def open(cls, path: str | Path) -> JsonLinesSink:
        out = Path(path).expanduser()
        out.parent.mkdir(parents=True, exist_ok=True)
        return cls(out.open("a", encoding="utf-8"), owns_stream=True)

    def put(self, item: LogEvent) -> None:
        self.stream.write(json.dumps(item.to_dict(), ensure_ascii=True, default=str) + "\n")
        self.stream.flush()
        self.written += 1

    def close(self) -> None:
        if self.owns_stream and not self.stream.closed:
            self.stream.close()


def build_sink(config: OutputConfig) -> JsonLinesSink:
    kind = config.kind.lower()

    if kind == "stdout":
        return JsonLinesSink(sys.stdout)
    if kind == "jsonl":
        if not config.path:
            raise ConfigError("output.path is required for the jsonl output")
        return JsonLinesSink.open(config.path)

    raise ConfigError(f"Unsupported output kind: {config.kind}")
