from __future__ import annotations

import pytest
from conftest import ListQueue, ScriptedLogSource

from loglift.constants import CYCLE_OK, CYCLE_SOURCE_ERROR
from loglift.emit import EventEmitter
from loglift.engine import FetchCycleEngine
from loglift.errors import StoreIOError
from loglift.models import Checkpoint, ChunkResponse
from loglift.store.memory import InMemoryCheckpointStore
from loglift.store.sincedb import SinceDbStore


def _engine(source: ScriptedLogSource, store, queue: ListQueue, lines: int = 2) -> FetchCycleEngine:
    emitter = EventEmitter(queue, source_instance=source.instance_name, log_file="app")
    return FetchCycleEngine(source, store, emitter, log_file_name="app", number_of_lines=lines)


def test_cycle_drains_chunks_in_order_and_raises_watermark(tmp_path) -> None:
    source = ScriptedLogSource()
    source.add_file(
        "app-2024-01-01-00",
        last_written=5_000,
        chunks=[
            ChunkResponse(lines=["a\n", "b\n"], marker="m1", additional_data_pending=True),
            ChunkResponse(lines=["c\n"], marker="m2", additional_data_pending=False),
        ],
    )
    store = SinceDbStore(tmp_path / "sincedb")
    checkpoint = Checkpoint(watermark=1_000)
    queue = ListQueue()

    summary = _engine(source, store, queue).run_cycle(checkpoint)

    assert queue.messages == ["a", "b", "c"]
    assert checkpoint.cursors == {"2024-01-01-00": "m2"}
    assert checkpoint.watermark == 5_000
    assert summary.status == CYCLE_OK
    assert summary.chunks_fetched == 2
    assert summary.events_emitted == 3
    assert [call[1] for call in source.download_calls] == ["0", "m1"]

    reloaded = store.load()
    assert reloaded.watermark == 5_000
    assert reloaded.cursors == {"2024-01-01-00": "m2"}


def test_events_carry_source_metadata() -> None:
    source = ScriptedLogSource(instance_name="prod-db")
    source.add_file("app-2024-01-01-00", 10, [ChunkResponse(lines=["x\n"], marker="1")])
    queue = ListQueue()

    _engine(source, InMemoryCheckpointStore(), queue).run_cycle(Checkpoint(watermark=0))

    event = queue.items[0]
    assert event.source_instance == "prod-db"
    assert event.log_file == "app"
    assert event.file_name == "app-2024-01-01-00"
    assert event.cursor_key == "2024-01-01-00"


def test_rerun_without_new_data_is_idempotent() -> None:
    source = ScriptedLogSource()
    source.add_file("app-2024-01-01-00", 5_000, [ChunkResponse(lines=["a\n"], marker="m1")])
    store = InMemoryCheckpointStore()
    queue = ListQueue()
    engine = _engine(source, store, queue)
    checkpoint = Checkpoint(watermark=0)

    engine.run_cycle(checkpoint)
    assert queue.messages == ["a"]
    before = checkpoint.copy()

    summary = engine.run_cycle(checkpoint)

    assert queue.messages == ["a"]
    assert summary.events_emitted == 0
    assert checkpoint == before
    assert store.saved == before


def test_empty_listing_still_commits() -> None:
    source = ScriptedLogSource()
    store = InMemoryCheckpointStore()
    checkpoint = Checkpoint(watermark=42, cursors={"2024-01-01-00": "9"})

    summary = _engine(source, store, ListQueue()).run_cycle(checkpoint)

    assert summary.files_listed == 0
    assert store.save_count == 1
    assert store.saved == Checkpoint(watermark=42, cursors={"2024-01-01-00": "9"})


def test_listing_uses_original_watermark_and_filter() -> None:
    source = ScriptedLogSource()
    _engine(source, InMemoryCheckpointStore(), ListQueue()).run_cycle(Checkpoint(watermark=77))
    assert source.list_calls == [("app", 77)]


def test_empty_chunk_with_more_pending_advances_cursor() -> None:
    source = ScriptedLogSource()
    source.add_file(
        "app-2024-01-01-00",
        10,
        [
            ChunkResponse(lines=[], marker="m1", additional_data_pending=True),
            ChunkResponse(lines=["late\n"], marker="m2", additional_data_pending=False),
        ],
    )
    queue = ListQueue()
    checkpoint = Checkpoint(watermark=0)

    _engine(source, InMemoryCheckpointStore(), queue).run_cycle(checkpoint)

    assert queue.messages == ["late"]
    assert checkpoint.cursors["2024-01-01-00"] == "m2"


def test_file_without_date_suffix_is_skipped() -> None:
    source = ScriptedLogSource()
    source.add_file("app-current", 9_000, [ChunkResponse(lines=["bad\n"], marker="1")])
    source.add_file("app-2024-01-01-01", 3_000, [ChunkResponse(lines=["ok\n"], marker="2")])
    queue = ListQueue()
    checkpoint = Checkpoint(watermark=0)

    summary = _engine(source, InMemoryCheckpointStore(), queue).run_cycle(checkpoint)

    assert queue.messages == ["ok"]
    assert summary.status == CYCLE_OK
    assert [item.file_name for item in summary.skipped_files] == ["app-current"]
    # The skipped file's newer timestamp does not move the watermark.
    assert checkpoint.watermark == 3_000
    assert all(call[0] != "app-current" for call in source.download_calls)


def test_transient_error_keeps_progress_of_earlier_files() -> None:
    source = ScriptedLogSource()
    source.add_file("app-2024-01-01-00", 1_000, [ChunkResponse(lines=["a\n"], marker="a1")])
    source.add_file("app-2024-01-01-01", 2_000, [ChunkResponse(lines=["b\n"], marker="b1")])
    source.fail_on.add("app-2024-01-01-01")
    store = InMemoryCheckpointStore()
    queue = ListQueue()
    engine = _engine(source, store, queue)
    checkpoint = Checkpoint(watermark=500, cursors={"2024-01-01-01": "b0"})

    summary = engine.run_cycle(checkpoint)

    assert summary.status == CYCLE_SOURCE_ERROR
    assert "throttled" in (summary.error_message or "")
    assert queue.messages == ["a"]
    saved = store.saved
    assert saved is not None
    assert saved.cursors == {"2024-01-01-00": "a1", "2024-01-01-01": "b0"}
    assert saved.watermark == 1_000

    source.fail_on.clear()
    source.chunks["app-2024-01-01-01"]["b0"] = ChunkResponse(lines=["b\n"], marker="b1")
    source.download_calls.clear()

    resumed = engine.run_cycle(store.load())

    assert resumed.status == CYCLE_OK
    assert ("app-2024-01-01-01", "b0", 2) in source.download_calls
    assert queue.messages == ["a", "b"]
    assert store.saved.watermark == 2_000
    assert store.saved.cursors["2024-01-01-01"] == "b1"


def test_transient_error_never_lets_watermark_pass_an_unfinished_file() -> None:
    source = ScriptedLogSource()
    source.add_file("app-2024-01-01-05", 9_000, [ChunkResponse(lines=["new\n"], marker="n1")])
    source.add_file("app-2024-01-01-03", 4_000, [ChunkResponse(lines=["old\n"], marker="o1")])
    source.fail_on.add("app-2024-01-01-03")
    checkpoint = Checkpoint(watermark=1_000)

    _engine(source, InMemoryCheckpointStore(), ListQueue()).run_cycle(checkpoint)

    assert checkpoint.watermark == 4_000


def test_transient_error_ignores_unkeyable_files_when_bounding_watermark() -> None:
    source = ScriptedLogSource()
    source.add_file("app-2024-01-01-00", 2_000, [ChunkResponse(lines=["a\n"], marker="a1")])
    source.add_file("app-2024-01-01-01", 3_000, [ChunkResponse(lines=["b\n"], marker="b1")])
    source.add_file("app-current", 1_500, [ChunkResponse(lines=["c\n"], marker="c1")])
    source.fail_on.add("app-2024-01-01-01")
    checkpoint = Checkpoint(watermark=1_000)

    summary = _engine(source, InMemoryCheckpointStore(), ListQueue()).run_cycle(checkpoint)

    assert summary.status == CYCLE_SOURCE_ERROR
    # The undated file can never be drained, so it must not hold the watermark back.
    assert checkpoint.watermark == 2_000


def test_listing_failure_leaves_checkpoint_unchanged() -> None:
    source = ScriptedLogSource(fail_listing=True)
    store = InMemoryCheckpointStore()
    checkpoint = Checkpoint(watermark=123, cursors={"2024-01-01-00": "7"})

    summary = _engine(source, store, ListQueue()).run_cycle(checkpoint)

    assert summary.status == CYCLE_SOURCE_ERROR
    assert store.saved == Checkpoint(watermark=123, cursors={"2024-01-01-00": "7"})


def test_watermark_is_monotonic_across_cycles() -> None:
    source = ScriptedLogSource()
    source.add_file("app-2024-01-01-00", 2_000, [ChunkResponse(lines=["a\n"], marker="1")])
    engine = _engine(source, InMemoryCheckpointStore(), ListQueue())
    checkpoint = Checkpoint(watermark=5_000)

    seen = [checkpoint.watermark]
    engine.run_cycle(checkpoint)
    seen.append(checkpoint.watermark)
    source.fail_listing = True
    engine.run_cycle(checkpoint)
    seen.append(checkpoint.watermark)
    source.fail_listing = False
    source.add_file("app-2024-01-01-01", 8_000, [ChunkResponse(lines=["b\n"], marker="1")])
    engine.run_cycle(checkpoint)
    seen.append(checkpoint.watermark)

    assert seen == sorted(seen)
    assert seen[-1] == 8_000


def test_all_lines_emitted_once_regardless_of_chunking() -> None:
    lines = [f"line {i}\n" for i in range(7)]
    chunks = [
        ChunkResponse(lines=lines[i : i + 3], marker=str(i + 3), additional_data_pending=i + 3 < 7)
        for i in range(0, 7, 3)
    ]
    source = ScriptedLogSource()
    source.add_file("app-2024-02-10-12", 100, chunks)
    queue = ListQueue()
    engine = _engine(source, InMemoryCheckpointStore(), queue, lines=3)
    checkpoint = Checkpoint(watermark=0)

    engine.run_cycle(checkpoint)
    engine.run_cycle(checkpoint)

    assert queue.messages == [line.rstrip("\n") for line in lines]


def test_store_failure_propagates_after_cycle() -> None:
    source = ScriptedLogSource()
    source.add_file("app-2024-01-01-00", 10, [ChunkResponse(lines=["a\n"], marker="1")])
    store = InMemoryCheckpointStore()
    store.fail_saves = True
    queue = ListQueue()

    with pytest.raises(StoreIOError):
        _engine(source, store, queue).run_cycle(Checkpoint(watermark=0))

    assert queue.messages == ["a"]


def test_sink_failure_commits_progress_before_propagating() -> None:
    class BrokenQueue:
        def put(self, item) -> None:
            raise RuntimeError("queue closed")

    source = ScriptedLogSource()
    source.add_file("app-2024-01-01-00", 10, [ChunkResponse(lines=["a\n"], marker="1")])
    store = InMemoryCheckpointStore()
    emitter = EventEmitter(BrokenQueue(), source_instance="db-1", log_file="app")
    engine = FetchCycleEngine(source, store, emitter, log_file_name="app", number_of_lines=10)
    checkpoint = Checkpoint(watermark=0)

    with pytest.raises(RuntimeError):
        engine.run_cycle(checkpoint)

    # The chunk never reached the queue, so its cursor was not advanced.
    assert store.saved == Checkpoint(watermark=0, cursors={})
