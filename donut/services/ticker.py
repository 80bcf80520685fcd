# donut/services/ticker.py
from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Callable, List, Optional

from donut.core.countdown import CountdownEngine
from donut.core.errors import DonutError
from donut.core.models import CalendarEvent
from donut.infra.settings import (COUNTDOWN_INTERVAL, DEFAULT_TZ,
                                  SCROLL_INTERVAL, SYNC_INTERVAL)

logger = logging.getLogger(__name__)


class CountdownTicker:
    """Drives a CountdownEngine with three independent periodic tasks.

    - countdown: ``engine.recompute`` every second
    - sync:      refetch events every five minutes (blocking fetch runs in a thread)
    - scroll:    ``engine.advance`` every half second

    The tasks are not coordinated; a frame may briefly reflect the previous
    event list until a sync lands.
    """

    def __init__(
        self,
        engine: CountdownEngine,
        fetch: Callable[[], List[CalendarEvent]],
        *,
        clock: Callable[[], dt.datetime] = lambda: dt.datetime.now(DEFAULT_TZ),
        countdown_interval: float = COUNTDOWN_INTERVAL,
        sync_interval: float = SYNC_INTERVAL,
        scroll_interval: float = SCROLL_INTERVAL,
    ):
        self.engine = engine
        self.fetch = fetch
        self.clock = clock
        self.countdown_interval = countdown_interval
        self.sync_interval = sync_interval
        self.scroll_interval = scroll_interval
        self._tasks: List[asyncio.Task] = []

    async def sync_once(self) -> None:
        try:
            events = await asyncio.to_thread(self.fetch)
        except DonutError as e:
            logger.warning("Event sync failed: %s", e)
            self.engine.set_error(e.message)
            return
        # pylint: disable=broad-except
        except Exception as e:
            logger.exception("Event sync crashed")
            self.engine.set_error(f"Sync failed: {e}")
            return
        self.engine.set_events(events, self.clock())

    async def _every(self, interval: float, step) -> None:
        while True:
            await asyncio.sleep(interval)
            result = step()
            if asyncio.iscoroutine(result):
                await result

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._every(self.countdown_interval, lambda: self.engine.recompute(self.clock())), name="countdown"),
            asyncio.create_task(self._every(self.sync_interval, self.sync_once), name="sync"),
            asyncio.create_task(self._every(self.scroll_interval, self.engine.advance), name="scroll"),
        ]

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def run(self, duration: Optional[float] = None) -> None:
        """Initial sync, first frame, then tick until cancelled or ``duration`` elapses."""
        await self.sync_once()
        self.engine.advance()
        self.start()
        try:
            if duration is None:
                await asyncio.gather(*self._tasks)
            else:
                await asyncio.sleep(duration)
        finally:
            await self.stop()
