from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from core.config import PipelineConfig
from core.errors import BridgeNotRunning, ConfigurationError, FeedError
from core.lifecycle import BridgeController, BridgeState, format_uptime
from fakes import FakeClock, FakeDelivery, FakeFeed, FakeSleep, photo_item

CONFIG = PipelineConfig(poll_interval=60, page_size=10, pacing_delay=0.5, restart_delay=1.0)


def _controller(feed: FakeFeed, delivery: FakeDelivery, **kwargs) -> BridgeController:
    kwargs.setdefault("sleep", FakeSleep())
    return BridgeController(feed, delivery, CONFIG, **kwargs)


async def _shutdown(controller: BridgeController) -> None:
    await controller.stop()
    await controller.scheduler.wait_closed()


def test_start_twice_runs_one_scheduler() -> None:
    feed = FakeFeed([[photo_item(1)]])
    delivery = FakeDelivery()

    async def scenario():
        controller = _controller(feed, delivery)
        assert await controller.start() is True
        assert await controller.start() is False
        await asyncio.sleep(0.02)
        assert controller.state is BridgeState.RUNNING
        assert controller.scheduler.invocations == 1
        await _shutdown(controller)

    asyncio.run(scenario())

    assert feed.started == 1
    assert delivery.started == 1


def test_stop_when_stopped_is_a_successful_no_op() -> None:
    feed = FakeFeed()
    delivery = FakeDelivery()

    async def scenario():
        controller = _controller(feed, delivery)
        assert await controller.stop() is False
        return await controller.handle_command("stop")

    result = asyncio.run(scenario())

    assert result.success
    assert feed.stopped == 0
    assert delivery.stopped == 0


def test_seeding_prevents_backlog_forwarding() -> None:
    feed = FakeFeed([[photo_item(100), photo_item(101), photo_item(102)]])
    delivery = FakeDelivery()

    async def scenario():
        controller = _controller(feed, delivery)
        await controller.start()
        assert controller.ledger.highest_seen_id == 102
        assert controller.ledger.seen_ids == {100, 101, 102}
        await asyncio.sleep(0.02)
        result = await controller.force_check()
        await _shutdown(controller)
        return result

    result = asyncio.run(scenario())

    assert delivery.calls == []
    assert result.images_sent == 0
    # Seed fetch, immediate tick and the forced check.
    assert feed.fetches == 3


def test_failed_seed_fetch_degrades_to_empty_ledger() -> None:
    feed = FakeFeed([FeedError("wall unreachable"), [photo_item(5)]])
    delivery = FakeDelivery()

    async def scenario():
        controller = _controller(feed, delivery)
        await controller.start()
        assert controller.ledger.highest_seen_id == 0
        await asyncio.sleep(0.02)
        status = controller.status()
        await _shutdown(controller)
        return status

    status = asyncio.run(scenario())

    assert [url for url, _ in delivery.sent] == ["https://img/5/0"]
    assert status.images_sent == 1
    assert status.last_seen_id == 5


def test_configuration_error_aborts_start_and_cleans_up() -> None:
    feed = FakeFeed()
    delivery = FakeDelivery()
    delivery.start_error = ConfigurationError("Missing required configuration: TG_CHANNEL_ID")

    async def scenario():
        controller = _controller(feed, delivery)
        with pytest.raises(ConfigurationError):
            await controller.start()
        assert controller.state is BridgeState.STOPPED
        assert not controller.scheduler.running
        result = await controller.handle_command("start")
        return controller.status(), result

    status, result = asyncio.run(scenario())

    assert not status.running
    assert status.uptime == "inactive"
    assert not result.success
    assert "TG_CHANNEL_ID" in result.message
    assert feed.stopped == 2
    assert delivery.stopped == 2


def test_status_after_tick_counts_delivered_images() -> None:
    seed = [photo_item(10)]
    page = [photo_item(12, count=3), photo_item(11), photo_item(10)]
    feed = FakeFeed([seed, page])
    delivery = FakeDelivery()
    clock = FakeClock()

    async def scenario():
        controller = _controller(feed, delivery, clock=clock)
        await controller.start()
        before = controller.status()
        await asyncio.sleep(0.02)
        clock.now += timedelta(seconds=3723)
        after = controller.status()
        await _shutdown(controller)
        return before, after

    before, after = asyncio.run(scenario())

    assert before.images_sent == 0
    assert before.last_seen_id == 10
    assert after.images_sent - before.images_sent == 4
    assert after.last_seen_id == 12
    assert after.last_poll_at is not None
    assert after.uptime == "1h 2m 3s"
    assert after.state == "running"


def test_stop_clears_run_state() -> None:
    feed = FakeFeed([[photo_item(1)]])
    delivery = FakeDelivery()

    async def scenario():
        controller = _controller(feed, delivery)
        await controller.start()
        await asyncio.sleep(0.01)
        assert await controller.stop() is True
        await controller.scheduler.wait_closed()
        return controller

    controller = asyncio.run(scenario())

    status = controller.status()
    assert controller.state is BridgeState.STOPPED
    assert len(controller.ledger) == 0
    assert not status.running
    assert status.uptime == "inactive"
    assert feed.stopped == 1
    assert delivery.stopped == 1


def test_stop_errors_do_not_block_transition() -> None:
    feed = FakeFeed()
    delivery = FakeDelivery()
    delivery.stop_error = RuntimeError("session already closed")

    async def scenario():
        controller = _controller(feed, delivery)
        await controller.start()
        assert await controller.stop() is True
        await controller.scheduler.wait_closed()
        return controller

    controller = asyncio.run(scenario())

    assert controller.state is BridgeState.STOPPED
    assert feed.stopped == 1


def test_force_check_requires_running_bridge() -> None:
    async def scenario():
        controller = _controller(FakeFeed(), FakeDelivery())
        with pytest.raises(BridgeNotRunning):
            await controller.force_check()
        return await controller.handle_command("check")

    result = asyncio.run(scenario())

    assert not result.success


def test_force_check_forwards_new_items() -> None:
    feed = FakeFeed([[photo_item(1)], [photo_item(1)], [photo_item(3, count=2), photo_item(2)]])
    delivery = FakeDelivery()

    async def scenario():
        controller = _controller(feed, delivery)
        await controller.start()
        await asyncio.sleep(0.02)
        result = await controller.handle_command("check")
        await _shutdown(controller)
        return result

    result = asyncio.run(scenario())

    assert result.success
    assert result.details == {"items_forwarded": 2, "images_sent": 3}
    assert [url for url, _ in delivery.sent] == [
        "https://img/3/0",
        "https://img/3/1",
        "https://img/2/0",
    ]


def test_restart_waits_between_stop_and_start() -> None:
    feed = FakeFeed([[photo_item(1)]])
    delivery = FakeDelivery()
    sleep = FakeSleep()

    async def scenario():
        controller = _controller(feed, delivery, sleep=sleep)
        await controller.start()
        result = await controller.handle_command("restart")
        state = controller.state
        await _shutdown(controller)
        return result, state

    result, state = asyncio.run(scenario())

    assert result.success
    assert state is BridgeState.RUNNING
    assert sleep.delays == [1.0]
    assert feed.started == 2
    assert delivery.stopped == 2


def test_fetch_error_during_tick_is_recorded() -> None:
    feed = FakeFeed([[photo_item(1)], FeedError("timeout")])
    delivery = FakeDelivery()

    async def scenario():
        controller = _controller(feed, delivery)
        await controller.start()
        await asyncio.sleep(0.02)
        status = controller.status()
        await _shutdown(controller)
        return status

    status = asyncio.run(scenario())

    assert status.running
    assert status.last_poll_at is None
    assert status.last_seen_id == 1
    assert "timeout" in status.last_error


def test_unknown_command_is_rejected() -> None:
    async def scenario():
        controller = _controller(FakeFeed(), FakeDelivery())
        return await controller.handle_command("explode")

    result = asyncio.run(scenario())

    assert not result.success
    assert "explode" in result.message


def test_format_uptime() -> None:
    assert format_uptime(0) == "0h 0m 0s"
    assert format_uptime(59.9) == "0h 0m 59s"
    assert format_uptime(90061) == "25h 1m 1s"


def test_forced_check_during_slow_tick_does_not_duplicate() -> None:
    feed = FakeFeed([[photo_item(1)], [photo_item(2), photo_item(1)]])
    feed.delay = 0.03
    delivery = FakeDelivery()

    async def scenario():
        controller = _controller(feed, delivery)
        await controller.start()
        # Let the scheduled tick begin its slow fetch, then force another one.
        await asyncio.sleep(0.005)
        forced = await controller.force_check()
        await _shutdown(controller)
        return forced

    forced = asyncio.run(scenario())

    assert [url for url, _ in delivery.sent] == ["https://img/2/0"]
    assert forced.images_sent == 0


def test_forced_check_reports_feed_failure() -> None:
    feed = FakeFeed([[photo_item(1)], [photo_item(1)], FeedError("VK down")])
    delivery = FakeDelivery()

    async def scenario():
        controller = _controller(feed, delivery)
        await controller.start()
        await asyncio.sleep(0.02)
        with pytest.raises(FeedError):
            await controller.force_check()
        result = await controller.handle_command("check")
        status = controller.status()
        await _shutdown(controller)
        return result, status

    result, status = asyncio.run(scenario())

    assert not result.success
    assert result.message == "Feed fetch failed: VK down"
    assert status.running
    assert status.last_error == "Feed fetch failed: VK down"


def test_start_while_running_reports_current_state() -> None:
    feed = FakeFeed([[photo_item(1)]])
    delivery = FakeDelivery()

    async def scenario():
        controller = _controller(feed, delivery)
        first = await controller.handle_command("start")
        second = await controller.handle_command("start")
        await _shutdown(controller)
        return first, second

    first, second = asyncio.run(scenario())

    assert first.message == "Bridge started"
    assert second.success
    assert second.message == "Bridge is already running"
    assert delivery.started == 1


def test_stop_during_pacing_pause_sends_nothing_more() -> None:
    feed = FakeFeed([[photo_item(1)], [photo_item(4), photo_item(3), photo_item(2)]])
    delivery = FakeDelivery()
    config = PipelineConfig(poll_interval=60, page_size=10, pacing_delay=0.05)

    async def scenario():
        controller = BridgeController(feed, delivery, config, sleep=asyncio.sleep)
        await controller.start()
        # The first image goes out at once; stop lands inside the pause after it.
        await asyncio.sleep(0.01)
        await controller.stop()
        await controller.scheduler.wait_closed()
        return controller.status()

    status = asyncio.run(scenario())

    assert [url for url, _ in delivery.calls] == ["https://img/4/0"]
    assert not status.running
