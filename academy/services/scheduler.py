"""
Планировщик задач — закрытие просроченных попыток теста
"""

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from academy.config import config
from academy.database import queries as db

logger = logging.getLogger(__name__)

# Глобальный планировщик
scheduler = AsyncIOScheduler(timezone=config.TIMEZONE)


async def expire_placement_attempts() -> int:
    """
    Job: пометить просроченные попытки теста как expired.
    TTL проверяется и при каждом ответе, job только наводит порядок в БД.
    """
    try:
        expired = await db.expire_placement_attempts(datetime.now(timezone.utc))
    except Exception as e:
        logger.error(f"Scheduler error in expire_placement_attempts: {e}")
        return 0

    if expired:
        logger.info(f"Scheduler: закрыто просроченных попыток: {expired}")
    return expired


def setup_scheduler():
    """Настройка планировщика"""

    scheduler.add_job(
        expire_placement_attempts,
        IntervalTrigger(minutes=config.PLACEMENT_EXPIRY_SWEEP_MINUTES),
        id="expire_placement_attempts",
        replace_existing=True
    )

    scheduler.start()
    logger.info("Scheduler запущен")


def shutdown_scheduler():
    """Остановка планировщика"""
    if scheduler.running:
        scheduler.shutdown()
    logger.info("Scheduler остановлен")
