"""Fixed-cadence update scheduler.

Runs a refresh job once at start and then on every wall-clock multiple of the
interval (a 300 s interval fires at :00, :05, :10, ...). At most one job runs
at a time: a trigger that arrives while a job is running is skipped, not
queued. Jobs run as their own tasks so a stalled job never delays the
schedule itself.
"""

import asyncio
import logging
import time
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 300


class SchedulerState(str, Enum):
    """Scheduler lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class UpdateScheduler:
    """Triggers a job at start and then at a fixed cadence, never overlapping."""

    def __init__(
        self,
        job: Callable[[], Awaitable[Any]],
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._job = job
        self.interval_seconds = interval_seconds
        self._clock = clock

        self._running = False
        self._stopped = True
        self._was_started = False
        self._loop_task: Optional[asyncio.Task] = None
        self._last_tick: Optional[int] = None
        self._job_task: Optional[asyncio.Task] = None

        self.last_run_at: Optional[datetime] = None
        self.last_result: Any = None
        self.last_error: Optional[str] = None
        self.completed_runs = 0
        self.skipped_triggers = 0

    @property
    def state(self) -> SchedulerState:
        if self._running:
            return SchedulerState.RUNNING
        if self._stopped and self._was_started:
            return SchedulerState.STOPPED
        return SchedulerState.IDLE

    @property
    def is_running(self) -> bool:
        return self._running

    def _next_tick(self, now: float) -> int:
        """Index of the next wall-clock multiple of the interval after now.

        Never returns a tick that has already fired, so waking slightly early
        (sleep runs on the loop's monotonic clock) cannot fire twice.
        """
        tick = int(now // self.interval_seconds) + 1
        if self._last_tick is not None and tick <= self._last_tick:
            tick = self._last_tick + 1
        return tick

    def seconds_until_next_tick(self) -> float:
        """Seconds until the next wall-clock multiple of the interval."""
        now = self._clock()
        return self._next_tick(now) * self.interval_seconds - now

    async def start(self) -> None:
        """Run the job immediately and start the cadence loop."""
        if self._loop_task is not None:
            return

        self._stopped = False
        self._was_started = True
        self.trigger()
        self._loop_task = asyncio.create_task(self._schedule_loop())
        logger.info(f"UpdateScheduler started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the cadence loop and cancel any in-flight job."""
        self._stopped = True

        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        if self._job_task and not self._job_task.done():
            self._job_task.cancel()
            try:
                await self._job_task
            except asyncio.CancelledError:
                pass
        self._job_task = None
        self._running = False
        logger.info("UpdateScheduler stopped")

    def trigger(self) -> Optional[asyncio.Task]:
        """Start a job unless one is already running.

        Returns:
            The job task, or None if the trigger was skipped
        """
        if self._running:
            self.skipped_triggers += 1
            logger.warning("Refresh still running, skipping this trigger")
            return None

        # Set before the task is scheduled so a second trigger in the same
        # loop iteration sees it.
        self._running = True
        self._job_task = asyncio.create_task(self._run_job())
        return self._job_task

    async def _run_job(self) -> None:
        try:
            self.last_result = await self._job()
            self.last_error = None
            self.completed_runs += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Refresh cycle failed: {e}")
        finally:
            self.last_run_at = datetime.utcnow()
            self._running = False

    async def _schedule_loop(self) -> None:
        """Background loop firing a trigger on every tick."""
        while not self._stopped:
            try:
                now = self._clock()
                tick = self._next_tick(now)
                await asyncio.sleep(tick * self.interval_seconds - now)
                self._last_tick = tick
                if not self._stopped:
                    self.trigger()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Scheduler loop error: {e}")
