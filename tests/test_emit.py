from __future__ import annotations

import io
import json
import queue
from pathlib import Path

import pytest

from loglift.config import OutputConfig
from loglift.constants import JSON_PARSE_FAILURE_TAG
from loglift.emit import EventEmitter, JsonCodec, PlainCodec, build_codec
from loglift.errors import ConfigError
from loglift.models import LogEvent
from loglift.sinks import JsonLinesSink, build_sink


def test_plain_codec_strips_line_endings() -> None:
    decoded = list(PlainCodec().decode("hello world\r\n"))
    assert [item.message for item in decoded] == ["hello world"]


def test_json_codec_splits_message_and_fields() -> None:
    decoded = list(JsonCodec().decode('{"message": "login", "user": "ada"}\n'))
    assert decoded[0].message == "login"
    assert decoded[0].fields == {"user": "ada"}
    assert decoded[0].tags == []


def test_json_codec_tags_unparseable_lines() -> None:
    decoded = list(JsonCodec().decode("plain text\n"))
    assert decoded[0].message == "plain text"
    assert decoded[0].tags == [JSON_PARSE_FAILURE_TAG]


def test_build_codec_rejects_unknown_names() -> None:
    assert isinstance(build_codec("JSON"), JsonCodec)
    with pytest.raises(ConfigError):
        build_codec("msgpack")


def test_emitter_decorates_and_forwards_in_order() -> None:
    sink: queue.Queue[LogEvent] = queue.Queue()
    emitter = EventEmitter(
        sink,
        source_instance="prod-db",
        log_file="error/postgresql.log",
        tags=["rds"],
        add_fields={"env": "prod"},
    )

    count = emitter.emit_lines(
        ["first\n", "second\n"],
        file_name="error/postgresql.log.2024-01-01-00",
        cursor_key="2024-01-01-00",
    )

    assert count == 2
    events = [sink.get_nowait(), sink.get_nowait()]
    assert [event.message for event in events] == ["first", "second"]
    payload = events[0].to_dict()
    assert payload["source_instance"] == "prod-db"
    assert payload["log_file"] == "error/postgresql.log"
    assert payload["file_name"] == "error/postgresql.log.2024-01-01-00"
    assert payload["env"] == "prod"
    assert payload["tags"] == ["rds"]


def test_required_metadata_wins_over_decoded_fields() -> None:
    sink: queue.Queue[LogEvent] = queue.Queue()
    emitter = EventEmitter(sink, source_instance="real", log_file="app", codec=JsonCodec())
    emitter.emit_lines(['{"message": "m", "source_instance": "spoofed"}\n'],
                       file_name="app-2024-01-01-00", cursor_key="2024-01-01-00")

    assert sink.get_nowait().to_dict()["source_instance"] == "real"


def test_json_lines_sink_writes_one_object_per_event() -> None:
    stream = io.StringIO()
    sink = JsonLinesSink(stream)
    emitter = EventEmitter(sink, source_instance="db", log_file="app")
    emitter.emit_lines(["a\n", "b\n"], file_name="app-2024-01-01-00", cursor_key="2024-01-01-00")

    rows = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert [row["message"] for row in rows] == ["a", "b"]
    assert sink.written == 2


def test_build_sink_jsonl_appends_to_file(tmp_path: Path) -> None:
    out = tmp_path / "out" / "events.jsonl"
    sink = build_sink(OutputConfig(kind="jsonl", path=str(out)))
    EventEmitter(sink, source_instance="db", log_file="app").emit_lines(
        ["x\n"], file_name="app-2024-01-01-00", cursor_key="2024-01-01-00"
    )
    sink.close()

    assert json.loads(out.read_text(encoding="utf-8"))["message"] == "x"

    with pytest.raises(ConfigError):
        build_sink(OutputConfig(kind="jsonl"))
    with pytest.raises(ConfigError):
        build_sink(OutputConfig(kind="kafka"))
