import pytest

from browser_server.session_manager.errors import (
    CapacityExceeded,
    OperationFailed,
    SessionNotFound,
)


@pytest.mark.asyncio
async def test_admit_below_capacity(admission, registry):
    record = await admission.admit_and_create({"agent": "a"})

    assert registry.get(record.id) is record
    assert record.metadata["agent"] == "a"


@pytest.mark.asyncio
async def test_admit_at_capacity_reclaims_idle_session(admission, registry, clock):
    stale = await registry.create()
    clock.advance(301)
    fresh = [await registry.create(), await registry.create()]

    record = await admission.admit_and_create()

    assert registry.size == 3
    assert stale.browser.closed
    with pytest.raises(SessionNotFound):
        registry.get(stale.id)
    assert all(registry.get(r.id) is r for r in fresh + [record])


@pytest.mark.asyncio
async def test_admit_at_capacity_with_fresh_sessions_fails(admission, registry, clock):
    for _ in range(3):
        await registry.create()
    clock.advance(299)

    with pytest.raises(CapacityExceeded) as exc_info:
        await admission.admit_and_create()

    error = exc_info.value
    assert not isinstance(error, (SessionNotFound, OperationFailed))
    assert error.kind == "capacity_exceeded"
    assert error.max_sessions == 3
    assert str(error) == "Maximum session limit reached (3)"
    assert registry.size == 3
