"""
Tests for refresh serialization.
"""
import asyncio

import pytest

from epg_guide.services.refresh_coordinator import RefreshCoordinator, RefreshSkipped


class TestRefreshCoordinator:

    @pytest.mark.asyncio
    async def test_returns_result(self):
        coordinator = RefreshCoordinator()

        async def refresh():
            return "done"

        assert await coordinator.execute(refresh) == "done"
        assert not coordinator.is_refreshing()

    @pytest.mark.asyncio
    async def test_concurrent_refresh_rejected(self):
        coordinator = RefreshCoordinator()
        release = asyncio.Event()

        async def slow_refresh():
            await release.wait()
            return "first"

        first = asyncio.create_task(coordinator.execute(slow_refresh))
        await asyncio.sleep(0)
        assert coordinator.is_refreshing()

        with pytest.raises(RefreshSkipped):
            await coordinator.execute(slow_refresh)

        release.set()
        assert await first == "first"

    @pytest.mark.asyncio
    async def test_errors_propagate_and_release_lock(self):
        coordinator = RefreshCoordinator()

        async def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await coordinator.execute(failing)
        assert not coordinator.is_refreshing()
