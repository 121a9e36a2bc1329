"""Day rollover detection for the daily log cache."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from enum import StrEnum

from fittrack.services.daily_log_store import DailyLogStore
from fittrack.services.day_keys import LocalCalendar

_logger = logging.getLogger(__name__)


class RolloverTrigger(StrEnum):
    """Why a staleness check was requested."""

    TIMER = "timer"
    FOREGROUND = "foreground"


@dataclass
class RolloverMonitor:
    """Reloads the store once the cached log no longer belongs to today.

    A ticker and foreground notifications both push signals into one queue; a
    single consumer runs the check. Signals that arrive while one is already
    queued are coalesced.
    """

    store: DailyLogStore
    calendar: LocalCalendar
    interval_seconds: float = 60.0
    _signals: asyncio.Queue[RolloverTrigger] | None = field(default=None, init=False)
    _tasks: list[asyncio.Task[None]] = field(default_factory=list, init=False)

    @property
    def running(self) -> bool:
        """True between start() and stop()."""
        return bool(self._tasks)

    async def start(self) -> None:
        """Start the ticker and the consumer."""
        if self._tasks:
            return
        self._signals = asyncio.Queue(maxsize=1)
        self._tasks = [
            asyncio.create_task(self._tick()),
            asyncio.create_task(self._consume()),
        ]

    async def stop(self) -> None:
        """Cancel the ticker and the consumer."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._signals = None

    def notify_foreground(self) -> None:
        """Request a check because the app became visible again."""
        self._signal(RolloverTrigger.FOREGROUND)

    async def check_now(self) -> bool:
        """Reload the store if its log is stale. Returns True when it reloaded."""
        if self.store.user_id is None:
            return False
        day_key = self.store.today_log.day_key
        if not self.calendar.is_stale(day_key):
            return False
        _logger.info("New day detected (cached %s); reloading", day_key)
        await self.store.reload()
        return True

    def _signal(self, trigger: RolloverTrigger) -> None:
        if self._signals is None:
            return
        with contextlib.suppress(asyncio.QueueFull):
            self._signals.put_nowait(trigger)

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self._signal(RolloverTrigger.TIMER)

    async def _consume(self) -> None:
        signals = self._signals
        if signals is None:
            return
        while True:
            trigger = await signals.get()
            try:
                await self.check_now()
            except Exception:
                _logger.exception("Rollover check failed (trigger=%s)", trigger)
