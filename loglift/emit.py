"""Line decoding and event forwarding."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol

from loglift.constants import JSON_PARSE_FAILURE_TAG
from loglift.errors import ConfigError
from loglift.models import LogEvent


@dataclass(slots=True)
class DecodedLine:
    message: str
    fields: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)


class LineCodec(Protocol):
    def decode(self, line: str) -> Iterator[DecodedLine]: ...


class EventQueue(Protocol):
    def put(self, item: LogEvent) -> None: ...


class PlainCodec:
    def decode(self, line: str) -> Iterator[DecodedLine]:
        yield DecodedLine(message=line.rstrip("\r\n"))


class JsonCodec:
    """Decodes one JSON object per line; other lines pass through tagged."""

    def decode(self, line: str) -> Iterator[DecodedLine]:
        text = line.rstrip("\r\n")
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            parsed = None

        if not isinstance(parsed, dict):
            yield DecodedLine(message=text, tags=[JSON_PARSE_FAILURE_TAG])
            return

        fields = dict(parsed)
        message = fields.pop("message", text)
        yield DecodedLine(message=str(message), fields=fields)


_CODECS: dict[str, type] = {
    "plain": PlainCodec,
    "json": JsonCodec,
}


def build_codec(name: str) -> LineCodec:
    codec_cls = _CODECS.get(name.lower())
    if codec_cls is None:
        raise ConfigError(f"Unsupported codec: {name}")
    return codec_cls()


class EventEmitter:
    def __init__(
        self,
        queue: EventQueue,
        *,
        source_instance: str,
        log_file: str,
        codec: LineCodec | None = None,
        tags: list[str] | None = None,
        add_fields: dict[str, Any] | None = None,
    ) -> None:
        self.queue = queue
        self.source_instance = source_instance
        self.log_file = log_file
        self.codec = codec or PlainCodec()
        self.tags = list(tags or [])
        self.add_fields = dict(add_fields or {})

    def emit_lines(self, lines: Iterable[str], *, file_name: str, cursor_key: str) -> int:
        """Decode ``lines`` and put every resulting event on the queue, in order."""
        emitted = 0
        for line in lines:
            for decoded in self.codec.decode(line):
                self.queue.put(self._decorate(decoded, file_name=file_name, cursor_key=cursor_key))
                emitted += 1
        return emitted

    def _decorate(self, decoded: DecodedLine, *, file_name: str, cursor_key: str) -> LogEvent:
        fields = dict(decoded.fields)
        for key, value in self.add_fields.items():
            fields.setdefault(key, value)
        tags = list(decoded.tags)
        tags.extend(tag for tag in self.tags if tag not in tags)
        return LogEvent(
            message=decoded.message,
            source_instance=self.source_instance,
            log_file=self.log_file,
            file_name=file_name,
            cursor_key=cursor_key,
            tags=tags,
            fields=fields,
        )
