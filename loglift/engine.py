"""One polling cycle: list new log files, drain them, commit the checkpoint."""

from __future__ import annotations

from loglift.api_objects.types import CycleSummary, SkippedFile
from loglift.constants import CYCLE_SOURCE_ERROR
from loglift.emit import EventEmitter
from loglift.errors import KeyDerivationError, TransientSourceError
from loglift.internal.events import EventBus
from loglift.models import Checkpoint, LogFileCandidate, ms_to_datetime, utc_now
from loglift.sources.base import LogSource
from loglift.store.base import CheckpointStore
from loglift.store.keys import derive_cursor_key
from loglift.utils.logging import debug_event, get_logger


class FetchCycleEngine:
    def __init__(
        self,
        source: LogSource,
        store: CheckpointStore,
        emitter: EventEmitter,
        *,
        log_file_name: str,
        number_of_lines: int,
        event_bus: EventBus | None = None,
    ) -> None:
        self.source = source
        self.store = store
        self.emitter = emitter
        self.log_file_name = log_file_name
        self.number_of_lines = number_of_lines
        self.event_bus = event_bus or EventBus()
        self.logger = get_logger("loglift.engine")

    def run_cycle(self, checkpoint: Checkpoint) -> CycleSummary:
        """Harvest everything new since ``checkpoint`` and persist the result.

        The checkpoint is mutated in place and always committed to the store
        before returning, including after a transient source failure. A
        ``StoreIOError`` from that commit propagates to the caller.
        """
        instance = self.source.instance_name
        original_watermark = checkpoint.watermark
        new_watermark = original_watermark
        summary = CycleSummary(
            source_instance=instance,
            started_at=utc_now(),
            watermark_before=original_watermark,
        )
        self.event_bus.emit("cycle.started", source=instance, watermark=original_watermark)
        self.logger.debug(
            "Finding %s for %s starting %s (%s) cursors=%s",
            self.log_file_name,
            instance,
            ms_to_datetime(original_watermark).isoformat(),
            original_watermark,
            checkpoint.cursors,
        )

        candidates: list[LogFileCandidate] = []
        drained_max: int | None = None
        index = 0
        try:
            candidates = self.source.list_log_files(self.log_file_name, original_watermark)
            summary.files_listed = len(candidates)

            for index, candidate in enumerate(candidates):
                try:
                    key = derive_cursor_key(candidate.name)
                except KeyDerivationError as exc:
                    self.logger.error(
                        "Skipping log file %s for %s: %s (watermark=%s)",
                        candidate.name,
                        instance,
                        exc,
                        new_watermark,
                    )
                    summary.skipped_files.append(SkippedFile(candidate.name, str(exc)))
                    self.event_bus.emit("file.skipped", source=instance, file=candidate.name)
                    continue

                if candidate.last_written > new_watermark:
                    new_watermark = candidate.last_written

                self._drain(checkpoint, candidate, key, summary)
                drained_max = max(drained_max or 0, candidate.last_written)
                summary.files_processed += 1

            checkpoint.watermark = new_watermark
        except TransientSourceError as exc:
            remaining = [item for item in candidates[index:] if _has_cursor_key(item.name)]
            checkpoint.watermark = _watermark_after_failure(
                original_watermark, drained_max, remaining
            )
            file_name = exc.file_name
            summary.status = CYCLE_SOURCE_ERROR
            summary.error_message = str(exc)
            self.logger.warning(
                "Caught source error for %s (file=%s cursor=%s watermark=%s); "
                "the next cycle resumes from the saved checkpoint",
                instance,
                file_name,
                _cursor_or_none(checkpoint, file_name),
                checkpoint.watermark,
                exc_info=True,
            )
            self.event_bus.emit(
                "cycle.source_error", source=instance, file=file_name, error=str(exc)
            )
        finally:
            summary.watermark_after = checkpoint.watermark
            summary.ended_at = utc_now()
            self.store.save(checkpoint)

        self.event_bus.emit("cycle.completed", source=instance, **_counters(summary))
        debug_event(self.logger, "cycle_completed", source=instance, **_counters(summary))
        return summary

    def _drain(
        self,
        checkpoint: Checkpoint,
        candidate: LogFileCandidate,
        key: str,
        summary: CycleSummary,
    ) -> None:
        instance = self.source.instance_name
        self.logger.debug("Downloading %s for %s", candidate.name, instance)
        more = True
        while more:
            response = self.source.download(
                candidate.name, checkpoint.cursor_for(key), self.number_of_lines
            )
            summary.chunks_fetched += 1
            summary.lines_read += len(response.lines)
            summary.events_emitted += self.emitter.emit_lines(
                response.lines, file_name=candidate.name, cursor_key=key
            )
            debug_event(
                self.logger,
                "chunk_fetched",
                instance=instance,
                file=candidate.name,
                current_marker=checkpoint.cursor_for(key),
                marker=response.marker,
                lines=len(response.lines),
                additional_data_pending=response.additional_data_pending,
            )
            checkpoint.advance_cursor(key, response.marker)
            more = response.additional_data_pending

        self.event_bus.emit(
            "file.drained", source=instance, file=candidate.name, cursor=checkpoint.cursor_for(key)
        )


def _watermark_after_failure(
    original: int,
    drained_max: int | None,
    remaining: list[LogFileCandidate],
) -> int:
    """Raise the watermark only as far as keeps every unfinished file listable."""
    if drained_max is None:
        return original
    bound = drained_max
    if remaining:
        bound = min(bound, min(item.last_written for item in remaining))
    return max(original, bound)


def _has_cursor_key(file_name: str) -> bool:
    try:
        derive_cursor_key(file_name)
    except KeyDerivationError:
        return False
    return True


def _cursor_or_none(checkpoint: Checkpoint, file_name: str | None) -> str | None:
    if file_name is None:
        return None
    try:
        return checkpoint.cursor_for(derive_cursor_key(file_name))
    except KeyDerivationError:
        return None


def _counters(summary: CycleSummary) -> dict[str, object]:
    return {
        "status": summary.status,
        "watermark": summary.watermark_after,
        "files_listed": summary.files_listed,
        "files_processed": summary.files_processed,
        "files_skipped": len(summary.skipped_files),
        "events_emitted": summary.events_emitted,
    }
