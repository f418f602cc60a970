import asyncio

import pytest

from browser_server.session_manager.cleanup import CleanupScheduler, sweep
from browser_server.session_manager.errors import SessionNotFound


async def _sessions_with_idle_times(registry, clock, idle_times):
    """Create one session per idle time, oldest first, and move the clock to 'now'."""
    start = clock.now
    horizon = max(idle_times)
    records = []
    for idle in sorted(idle_times, reverse=True):
        clock.now = start + (horizon - idle)
        records.append(await registry.create())
    clock.now = start + horizon
    return records


@pytest.mark.asyncio
async def test_sweep_evicts_only_sessions_past_timeout(registry, clock):
    """Idle below, exactly at, and above the 300s threshold: only 'above' goes."""
    above, at, below = await _sessions_with_idle_times(registry, clock, [400, 300, 200])

    destroyed = await sweep(registry)

    assert destroyed == [above.id]
    assert above.browser.closed
    assert registry.get(at.id) is at
    assert registry.get(below.id) is below
    with pytest.raises(SessionNotFound):
        registry.get(above.id)


@pytest.mark.asyncio
async def test_sweep_with_explicit_now(registry, clock):
    record = await registry.create()

    assert await sweep(registry, now=clock.now + 300) == []
    assert await sweep(registry, now=clock.now + 301) == [record.id]


@pytest.mark.asyncio
async def test_sweep_on_empty_registry(registry):
    assert await sweep(registry) == []


@pytest.mark.asyncio
async def test_sweep_defers_busy_sessions(registry, clock):
    record = await registry.create()

    async with registry.lease(record.id):
        clock.advance(600)
        assert await sweep(registry) == []

    assert await sweep(registry) == [record.id]


@pytest.mark.asyncio
async def test_sweep_continues_after_a_teardown_failure(registry, clock, monkeypatch):
    first, second = await _sessions_with_idle_times(registry, clock, [900, 800])
    real_destroy = registry.destroy

    async def flaky_destroy(session_id):
        if session_id == first.id:
            raise RuntimeError("teardown exploded")
        return await real_destroy(session_id)

    monkeypatch.setattr(registry, "destroy", flaky_destroy)

    destroyed = await sweep(registry)

    assert destroyed == [second.id]
    assert second.browser.closed


@pytest.mark.asyncio
async def test_scheduler_sweeps_on_interval(registry, clock):
    record = await registry.create()
    clock.advance(301)
    scheduler = CleanupScheduler(registry, interval=0.01)

    scheduler.start()
    assert scheduler.is_running
    for _ in range(100):
        if registry.size == 0:
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert registry.size == 0
    assert record.browser.closed
    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_scheduler_stop_without_start(registry):
    scheduler = CleanupScheduler(registry, interval=60)
    await scheduler.stop()
    assert not scheduler.is_running


def test_scheduler_interval_must_be_positive(registry):
    with pytest.raises(ValueError):
        CleanupScheduler(registry, interval=0)
