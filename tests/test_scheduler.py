"""
Тесты планировщика: закрытие просроченных попыток теста
"""

import pytest

pytestmark = [pytest.mark.asyncio, pytest.mark.unit]

from unittest.mock import AsyncMock, Mock

from academy.config import config
from academy.services import scheduler


async def test_expire_job_returns_count(monkeypatch):
    expire = AsyncMock(return_value=3)
    monkeypatch.setattr(scheduler.db, "expire_placement_attempts", expire)

    assert await scheduler.expire_placement_attempts() == 3
    expire.assert_awaited_once()


async def test_expire_job_survives_db_error(monkeypatch):
    monkeypatch.setattr(
        scheduler.db, "expire_placement_attempts", AsyncMock(side_effect=OSError("db down"))
    )

    assert await scheduler.expire_placement_attempts() == 0


async def test_setup_registers_sweep(monkeypatch):
    start = Mock()
    monkeypatch.setattr(scheduler.scheduler, "start", start)

    scheduler.setup_scheduler()

    job = scheduler.scheduler.get_job("expire_placement_attempts")
    assert job is not None
    assert job.trigger.interval.total_seconds() == config.PLACEMENT_EXPIRY_SWEEP_MINUTES * 60
    start.assert_called_once()

    scheduler.scheduler.remove_job("expire_placement_attempts")
