"""
Управление подключением к базе данных.

Пул соединений PostgreSQL через asyncpg.
"""

import uuid
from typing import Optional

import asyncpg

from config import DATABASE_URL, get_logger

logger = get_logger(__name__)

# Глобальный пул соединений
_pool: Optional[asyncpg.Pool] = None


async def get_pool() -> asyncpg.Pool:
    """Получить пул соединений (создать если не существует)"""
    global _pool
    if _pool is None:
        try:
            _pool = await asyncpg.create_pool(DATABASE_URL)
            logger.info("✅ Пул соединений создан")
        except Exception as e:
            logger.error(f"❌ Ошибка создания пула соединений: {e}")
            raise
    return _pool


async def close_pool():
    """Закрыть пул соединений"""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("🔒 Пул соединений закрыт")


async def init_db():
    """Создать пул и применить схему"""
    pool = await get_pool()

    from .models import create_tables
    await create_tables(pool)

    logger.info("✅ База данных инициализирована")
    return pool


def row_to_dict(row) -> Optional[dict]:
    """Строка asyncpg → dict; UUID приводятся к строкам"""
    if row is None:
        return None
    return {
        key: str(value) if isinstance(value, uuid.UUID) else value
        for key, value in row.items()
    }


def parse_id(value) -> Optional[uuid.UUID]:
    """Идентификатор из callback/ввода → UUID (None если это не UUID)"""
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None
