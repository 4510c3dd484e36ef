"""Fixed-interval polling on a single control thread."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum

from loglift.api_objects.types import CycleSummary
from loglift.engine import FetchCycleEngine
from loglift.errors import SchedulerStateError, StoreIOError
from loglift.models import Checkpoint
from loglift.store.base import CheckpointStore
from loglift.utils.logging import get_logger


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(slots=True)
class HarvestState:
    """Everything the control thread carries from one cycle to the next."""

    checkpoint: Checkpoint
    cycles_run: int = 0
    last_summary: CycleSummary | None = None


class PollScheduler:
    def __init__(
        self,
        engine: FetchCycleEngine,
        store: CheckpointStore,
        *,
        interval_seconds: float,
        run_on_start: bool = False,
    ) -> None:
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.run_on_start = run_on_start
        self.state = HarvestState(checkpoint=store.load())
        self.error: StoreIOError | None = None
        self.logger = get_logger("loglift.scheduler")

        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._status = SchedulerState.IDLE
        self._thread: threading.Thread | None = None

    @property
    def status(self) -> SchedulerState:
        with self._lock:
            return self._status

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self._status is SchedulerState.STOPPED:
                raise SchedulerStateError("Scheduler is stopped; build a new one to restart")
            if self._thread is not None:
                raise SchedulerStateError("Scheduler already started")
            self._thread = threading.Thread(
                target=self._run, name="loglift-poller", daemon=True
            )
        self.logger.info(
            "Polling %s every %ss", self.engine.source.instance_name, self.interval_seconds
        )
        self._thread.start()

    def stop(self) -> None:
        """Ask the control thread to exit; a cycle in progress runs to completion."""
        self._stop.set()
        if self._thread is None:
            self._set_status(SchedulerState.STOPPED)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the control thread; returns True once it has exited."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def run_once(self) -> CycleSummary:
        """Run a single cycle on the calling thread."""
        with self._lock:
            if self._thread is not None:
                raise SchedulerStateError("Cannot run a cycle while the control thread is active")
            if self._status is SchedulerState.STOPPED:
                raise SchedulerStateError("Scheduler is stopped")
        return self._cycle()

    def _run(self) -> None:
        try:
            if self.run_on_start and not self._tick():
                return
            # Event.wait returns True as soon as stop() is called.
            while not self._stop.wait(self.interval_seconds):
                if not self._tick():
                    return
        finally:
            self._set_status(SchedulerState.STOPPED)
            self.logger.info("Poller for %s stopped", self.engine.source.instance_name)

    def _tick(self) -> bool:
        try:
            self._cycle()
        except StoreIOError as exc:
            self.error = exc
            self.logger.exception("Checkpoint could not be saved; stopping the poller")
            return False
        except Exception:
            self.logger.exception(
                "Cycle failed for %s; retrying next interval", self.engine.source.instance_name
            )
        return not self._stop.is_set()

    def _cycle(self) -> CycleSummary:
        self._set_status(SchedulerState.RUNNING)
        try:
            summary = self.engine.run_cycle(self.state.checkpoint)
        finally:
            self.state.cycles_run += 1
            self._set_status(SchedulerState.IDLE)
        self.state.last_summary = summary
        return summary

    def _set_status(self, status: SchedulerState) -> None:
        with self._lock:
            if self._status is SchedulerState.STOPPED:
                return
            self._status = status
