import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from browser_server.session_manager.ephemeral import ephemeral_session
from browser_server.session_manager.errors import CapacityExceeded, OperationFailed


@pytest.mark.asyncio
async def test_temporary_session_is_destroyed_after_use(admission, registry):
    async with ephemeral_session(admission, registry) as session_id:
        record = registry.get(session_id)
        assert record.metadata["temporary"] is True

    assert registry.size == 0
    assert record.browser.closed


@pytest.mark.asyncio
async def test_temporary_session_is_destroyed_when_operation_fails(admission, registry, operations, launcher):
    launcher.page_fail_on = {"click": PlaywrightTimeoutError("Timeout 10000ms exceeded")}

    with pytest.raises(OperationFailed, match="Timeout 10000ms exceeded"):
        async with ephemeral_session(admission, registry) as session_id:
            await operations.click(session_id, "#does-not-exist")

    assert registry.size == 0
    assert registry.list() == []
    assert launcher.browsers[0].closed


@pytest.mark.asyncio
async def test_temporary_session_is_destroyed_on_unexpected_error(admission, registry):
    with pytest.raises(RuntimeError):
        async with ephemeral_session(admission, registry):
            raise RuntimeError("boom")

    assert registry.size == 0


@pytest.mark.asyncio
async def test_existing_session_passes_through(admission, registry, launcher):
    record = await registry.create()

    with pytest.raises(OperationFailed):
        async with ephemeral_session(admission, registry, record.id) as session_id:
            assert session_id == record.id
            raise OperationFailed("caller's problem")

    assert len(launcher.browsers) == 1
    assert registry.get(record.id) is record
    assert not record.browser.closed


@pytest.mark.asyncio
async def test_capacity_error_when_no_slot_for_temporary_session(admission, registry):
    for _ in range(3):
        await registry.create()

    with pytest.raises(CapacityExceeded):
        async with ephemeral_session(admission, registry):
            pass  # pragma: no cover

    assert registry.size == 3
