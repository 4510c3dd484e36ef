from __future__ import annotations

import argparse
import signal
import sys

from loglift.api_objects.types import CycleSummary
from loglift.config import AppConfig, dump_default_config, load_config
from loglift.emit import EventEmitter, EventQueue, build_codec
from loglift.engine import FetchCycleEngine
from loglift.errors import ConfigError, StoreIOError
from loglift.internal.events import EventBus, InternalEvent
from loglift.scheduler import PollScheduler
from loglift.sinks import build_sink
from loglift.sources.base import LogSource
from loglift.sources.registry import build_source
from loglift.store.base import CheckpointStore
from loglift.store.factory import build_store
from loglift.utils.display.terminal import (
    print_checkpoint,
    print_cycle_summary,
    print_cycle_summary_json,
    print_internal_events,
)
from loglift.utils.logging import get_logger, resolve_log_level, setup_logging


class Harvester:
    def __init__(
        self,
        config: AppConfig,
        *,
        source: LogSource | None = None,
        store: CheckpointStore | None = None,
        queue: EventQueue | None = None,
    ) -> None:
        self.config = config
        self.logger = get_logger("loglift.daemon")
        self.event_bus = EventBus()

        self.source = source or build_source(config.source)
        self.store = store or build_store(config)
        self._owned_sink = None
        if queue is None:
            self._owned_sink = build_sink(config.output)
            queue = self._owned_sink
        self.emitter = EventEmitter(
            queue,
            source_instance=config.source.instance_name,
            log_file=config.source.log_file_name,
            codec=build_codec(config.emit.codec),
            tags=config.emit.tags,
            add_fields=config.emit.add_fields,
        )
        self.engine = FetchCycleEngine(
            self.source,
            self.store,
            self.emitter,
            log_file_name=config.source.log_file_name,
            number_of_lines=config.poller.number_of_lines,
            event_bus=self.event_bus,
        )
        self.scheduler = PollScheduler(
            self.engine,
            self.store,
            interval_seconds=config.poller.polling_interval_seconds,
            run_on_start=config.poller.run_on_start,
        )
        self.logger.info(
            "Registered %s input instance=%s log_file=%s number_of_lines=%s checkpoint=%s",
            config.source.kind,
            config.source.instance_name,
            config.source.log_file_name,
            config.poller.number_of_lines,
            self.store.location,
        )

    def stop(self, *_args: object) -> None:
        self.event_bus.emit("run.stop_requested")
        self.scheduler.stop()

    def run_once(self) -> CycleSummary:
        try:
            return self.scheduler.run_once()
        finally:
            self.close()

    def run_forever(self, poll_timeout: float = 1.0) -> int:
        """Run the scheduler until stopped; returns a process exit status."""
        self.scheduler.start()
        try:
            # Join in slices so signal handlers get a chance to run.
            while not self.scheduler.join(poll_timeout):
                pass
        finally:
            self.close()
        if self.scheduler.error is not None:
            return 1
        return 0

    def close(self) -> None:
        if self._owned_sink is not None:
            self._owned_sink.close()

    def recent_events(self, limit: int = 100) -> list[InternalEvent]:
        return self.event_bus.recent(limit)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Harvest appended lines from rotated remote logs")
    parser.add_argument("--config", default="config.yaml", help="Path to YAML config")
    parser.add_argument("--init-config", action="store_true", help="Write default config and exit")
    parser.add_argument("--once", action="store_true", help="Run one polling cycle and exit")
    parser.add_argument(
        "--show-checkpoint", action="store_true", help="Print the stored checkpoint and exit"
    )
    parser.add_argument("--log-level", help="Override log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--json-summary", action="store_true", help="Print cycle summary as JSON")
    parser.add_argument("--events-limit", type=int, default=0, help="Print recent internal events")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    if args.init_config:
        dump_default_config(args.config)
        print(f"Wrote default config to {args.config}", file=sys.stderr)
        return 0

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    setup_logging(resolve_log_level(args.log_level, config.logging.level))

    if args.show_checkpoint:
        store = build_store(config)
        print_checkpoint(store.location, store.load())
        return 0

    harvester = Harvester(config)

    if args.once:
        try:
            summary = harvester.run_once()
        except StoreIOError:
            harvester.logger.exception("Checkpoint could not be saved")
            return 1
        except Exception:
            harvester.logger.exception("Cycle failed for %s", config.source.instance_name)
            return 1
        if args.json_summary:
            print_cycle_summary_json(summary)
        else:
            print_cycle_summary(summary)
        if args.events_limit > 0:
            print_internal_events(harvester.recent_events(args.events_limit))
        return 0

    signal.signal(signal.SIGINT, harvester.stop)
    signal.signal(signal.SIGTERM, harvester.stop)
    return harvester.run_forever()


if __name__ == "__main__":
    raise SystemExit(main())
