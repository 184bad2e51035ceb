"""
Пул соединений PostgreSQL
"""

import asyncio
import json
from typing import Optional

import asyncpg

from academy.config import config


# Ошибки хранилища, при которых данные считаются недоступными
DATABASE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)

# Глобальный пул соединений
_pool: Optional[asyncpg.Pool] = None


async def init_connection(conn: asyncpg.Connection):
    """JSONB <-> dict/list без ручного json.dumps в каждом запросе"""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog"
    )


async def get_pool() -> asyncpg.Pool:
    """Получить пул соединений (создаёт при первом вызове)"""
    global _pool

    if _pool is None:
        _pool = await asyncpg.create_pool(
            config.DATABASE_URL,
            min_size=2,
            max_size=10,
            init=init_connection
        )

    return _pool


async def close_pool():
    """Закрыть пул соединений"""
    global _pool

    if _pool:
        await _pool.close()
        _pool = None
