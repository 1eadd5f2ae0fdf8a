"""Lifecycle and status controller for the bridge.

The controller is the only writer of the run state outside of a tick. Start
and stop transitions are serialized by one lock, ticks by another. Every run
gets a fresh ledger and RunStats, so a tick still in flight from a previous
run can only touch the objects it started with.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from core.config import PipelineConfig
from core.errors import BridgeNotRunning, FeedError
from core.forwarder import Forwarder
from core.ledger import SeenLedger
from core.models import CommandResult, RunStats, StatusSnapshot, TickResult
from core.ports import DeliveryPort, FeedPort
from core.scheduler import PollScheduler

LOGGER = logging.getLogger(__name__)

INACTIVE_UPTIME = "inactive"


class BridgeState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_uptime(seconds: float) -> str:
    """Format a duration as hours, minutes and seconds."""

    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}h {minutes}m {secs}s"


class BridgeController:
    """Owns the running/stopped state machine of one feed-to-channel bridge."""

    def __init__(
        self,
        feed: FeedPort,
        delivery: DeliveryPort,
        config: Optional[PipelineConfig] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._feed = feed
        self._delivery = delivery
        self._config = config or PipelineConfig()
        self._clock = clock
        self._sleep = sleep
        self._forwarder = Forwarder(
            delivery,
            pacing_delay=self._config.pacing_delay,
            caption_chars=self._config.caption_chars,
            caption_placeholder=self._config.caption_placeholder,
            sleep=sleep,
        )
        self._scheduler = PollScheduler(name="feed-poll", on_error=self._record_error)
        self._state = BridgeState.STOPPED
        self._ledger = SeenLedger()
        self._stats = RunStats()
        self._transition_lock = asyncio.Lock()
        self._tick_lock = asyncio.Lock()

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def ledger(self) -> SeenLedger:
        return self._ledger

    @property
    def scheduler(self) -> PollScheduler:
        return self._scheduler

    async def start(self) -> bool:
        """Start the bridge; returns False when it was not stopped."""

        async with self._transition_lock:
            if self._state is not BridgeState.STOPPED:
                LOGGER.info("Start ignored, bridge is %s", self._state.value)
                return False

            LOGGER.info("Starting bridge")
            self._state = BridgeState.STARTING
            try:
                await self._feed.start()
                await self._delivery.start()

                ledger = SeenLedger()
                await self._seed(ledger)
                self._ledger = ledger
                self._stats = RunStats(
                    running=True,
                    started_at=self._clock(),
                    last_seen_id=ledger.highest_seen_id,
                )

                stats = self._stats
                self._scheduler.start(
                    self.tick,
                    self._config.poll_interval,
                    is_active=lambda: stats.running,
                )
                self._state = BridgeState.RUNNING
            except Exception:
                LOGGER.exception("Bridge failed to start, cleaning up")
                await self._cleanup()
                raise

            LOGGER.info("Bridge started, baseline id %s", self._ledger.highest_seen_id)
            return True

    async def stop(self) -> bool:
        """Stop the bridge; returns False when it was already stopped."""

        async with self._transition_lock:
            if self._state is BridgeState.STOPPED:
                return False
            LOGGER.info("Stopping bridge")
            self._state = BridgeState.STOPPING
            await self._cleanup()
            LOGGER.info("Bridge stopped")
            return True

    async def restart(self) -> None:
        await self.stop()
        # The destination session needs a moment to close before reopening.
        await self._sleep(self._config.restart_delay)
        await self.start()

    async def force_check(self) -> TickResult:
        """Run one tick outside the schedule, sharing dedup and pacing."""

        if self._state is not BridgeState.RUNNING:
            raise BridgeNotRunning("Bridge is not running")
        return await self._run_tick(raise_on_fetch_error=True)

    async def tick(self) -> TickResult:
        """Fetch one page and forward whatever is new."""

        return await self._run_tick(raise_on_fetch_error=False)

    async def _run_tick(self, raise_on_fetch_error: bool) -> TickResult:
        stats = self._stats
        ledger = self._ledger
        if not stats.running:
            return TickResult()

        async with self._tick_lock:
            if not stats.running:
                return TickResult()
            tick_time = self._clock()
            try:
                items = await self._feed.fetch_recent(self._config.page_size)
            except Exception as exc:
                LOGGER.warning("Feed fetch failed: %s", exc)
                stats.last_error = f"Feed fetch failed: {exc}"
                if raise_on_fetch_error:
                    raise FeedError(stats.last_error) from exc
                return TickResult()

            result = await self._forwarder.process(
                items,
                ledger,
                stats,
                tick_time,
                is_active=lambda: stats.running,
            )
            if result.new_items:
                LOGGER.info(
                    "Tick done: new=%s forwarded=%s images=%s failed=%s",
                    result.new_items,
                    result.items_forwarded,
                    result.images_sent,
                    result.images_failed,
                )
            return result

    def status(self) -> StatusSnapshot:
        stats = self._stats
        if stats.started_at is None:
            uptime = INACTIVE_UPTIME
        else:
            uptime = format_uptime((self._clock() - stats.started_at).total_seconds())
        return StatusSnapshot(
            state=self._state.value,
            running=stats.running,
            images_sent=stats.images_sent,
            started_at=stats.started_at,
            last_poll_at=stats.last_poll_at,
            last_seen_id=stats.last_seen_id,
            uptime=uptime,
            last_error=stats.last_error,
        )

    async def handle_command(self, action: str) -> CommandResult:
        """Run a control-plane command and describe the outcome."""

        action = (action or "").strip().lower()
        try:
            if action == "start":
                if await self.start():
                    return CommandResult(True, "Bridge started")
                return CommandResult(True, f"Bridge is already {self._state.value}")
            if action == "stop":
                if await self.stop():
                    return CommandResult(True, "Bridge stopped")
                return CommandResult(True, "Bridge is already stopped")
            if action == "restart":
                await self.restart()
                return CommandResult(True, "Bridge restarted")
            if action == "check":
                result = await self.force_check()
                return CommandResult(
                    True,
                    f"Check done: {result.items_forwarded} posts forwarded, "
                    f"{result.images_sent} images sent",
                    details={"items_forwarded": result.items_forwarded, "images_sent": result.images_sent},
                )
        except (BridgeNotRunning, FeedError) as exc:
            return CommandResult(False, str(exc))
        except Exception as exc:
            LOGGER.exception("Command %s failed", action)
            return CommandResult(False, str(exc) or exc.__class__.__name__)
        return CommandResult(False, f"Unknown action: {action or '<empty>'}")

    async def _seed(self, ledger: SeenLedger) -> None:
        try:
            items = await self._feed.fetch_recent(self._config.page_size)
        except Exception as exc:
            # Degrade to "forward everything from now on" instead of refusing to start.
            LOGGER.warning("Initial fetch failed, starting with an empty ledger: %s", exc)
            return
        ledger.seed(items)
        LOGGER.info("Ledger seeded with %s items", len(ledger))

    async def _cleanup(self) -> None:
        """Release everything a run holds; never raises."""

        self._scheduler.stop()
        for name, adapter in (("delivery", self._delivery), ("feed", self._feed)):
            try:
                await adapter.stop()
            except Exception:
                LOGGER.exception("Error while stopping %s adapter", name)
        self._ledger = SeenLedger()
        self._stats.running = False
        self._stats.started_at = None
        self._state = BridgeState.STOPPED

    def _record_error(self, exc: BaseException) -> None:
        self._stats.last_error = f"{exc.__class__.__name__}: {exc}"
