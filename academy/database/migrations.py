"""
Автоматические миграции базы данных
"""

import logging
from pathlib import Path

from academy.database.connection import get_pool

logger = logging.getLogger(__name__)

# Путь к папке с миграциями
MIGRATIONS_DIR = Path(__file__).resolve().parent.parent.parent / "migrations"


def list_migrations(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    """SQL-файлы миграций в порядке применения (по имени)"""
    if not directory.exists():
        return []
    return sorted(directory.glob("*.sql"))


async def run_migrations(directory: Path = MIGRATIONS_DIR):
    """Выполнить все SQL-миграции из папки migrations/"""
    if not directory.exists():
        logger.warning(f"Папка миграций не найдена: {directory}")
        return

    sql_files = list_migrations(directory)
    if not sql_files:
        logger.info("Миграции не найдены")
        return

    pool = await get_pool()

    async with pool.acquire() as conn:
        for sql_file in sql_files:
            logger.info(f"Выполняю миграцию: {sql_file.name}")
            try:
                sql_content = sql_file.read_text(encoding="utf-8")
                await conn.execute(sql_content)
                logger.info(f"✓ Миграция {sql_file.name} выполнена")
            except Exception as e:
                # Повторный запуск на уже созданной схеме не считается ошибкой
                if "already exists" in str(e) or "duplicate key" in str(e):
                    logger.info(f"✓ Миграция {sql_file.name} уже применена")
                else:
                    logger.error(f"✗ Ошибка в {sql_file.name}: {e}")
                    raise
