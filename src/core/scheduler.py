"""Periodic poll scheduler (core domain).

The scheduler owns a single asyncio task per instance. Each loop iteration
awaits the action before waiting for the next slot, so invocations of the
same scheduler never overlap: a slow action pushes the next tick back
instead of running beside it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

LOGGER = logging.getLogger(__name__)

Action = Callable[[], Awaitable[object]]


class PollScheduler:
    """Invoke an async action immediately and then every ``period`` seconds."""

    def __init__(
        self,
        name: str = "poll",
        on_error: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        self._name = name
        self._on_error = on_error
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._stragglers: set[asyncio.Task] = set()
        self.invocations = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(
        self,
        action: Action,
        period: float,
        is_active: Optional[Callable[[], bool]] = None,
    ) -> None:
        """Install the polling loop, replacing any loop already installed."""

        if period <= 0:
            raise ValueError(f"Poll period must be positive, got {period}")
        if self._task is not None:
            self.stop()

        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._task = asyncio.create_task(
            self._loop(action, period, is_active, stop_event),
            name=f"{self._name}-scheduler",
        )
        LOGGER.info("Scheduler %s started (period=%ss)", self._name, period)

    def stop(self) -> None:
        """Stop scheduling new invocations; an in-flight one runs to completion."""

        if self._task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        if not self._task.done():
            self._stragglers.add(self._task)
            self._task.add_done_callback(self._stragglers.discard)
        self._task = None
        self._stop_event = None
        LOGGER.info("Scheduler %s stopped", self._name)

    async def wait_closed(self) -> None:
        """Wait for loops stopped earlier to finish their in-flight invocation."""

        if self._stragglers:
            await asyncio.gather(*list(self._stragglers), return_exceptions=True)

    async def _loop(
        self,
        action: Action,
        period: float,
        is_active: Optional[Callable[[], bool]],
        stop_event: asyncio.Event,
    ) -> None:
        loop = asyncio.get_running_loop()
        while not stop_event.is_set():
            started = loop.time()
            if is_active is None or is_active():
                await self._invoke(action)
            else:
                LOGGER.debug("Scheduler %s tick suppressed (inactive)", self._name)

            if stop_event.is_set():
                break
            remaining = max(0.0, period - (loop.time() - started))
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                pass

    async def _invoke(self, action: Action) -> None:
        self.invocations += 1
        try:
            await action()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.exception("Scheduled action %s failed", self._name)
            if self._on_error is not None:
                self._on_error(exc)
