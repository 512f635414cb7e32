"""
Запросы для работы с аккаунтами студентов (таблица student_users).
"""

from datetime import datetime
from typing import Optional, List

import asyncpg

from config import get_logger
from db.connection import get_pool, row_to_dict, parse_id
from db.errors import conflict_from

logger = get_logger(__name__)


async def get_account_by_telegram_id(telegram_id: str) -> Optional[dict]:
    """Аккаунт, привязанный к чату"""
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            'SELECT * FROM student_users WHERE telegram_id = $1', str(telegram_id)
        )
        return row_to_dict(row)


async def get_account_by_email(email: str) -> Optional[dict]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow('SELECT * FROM student_users WHERE email = $1', email)
        return row_to_dict(row)


async def get_accounts_by_username(username: str) -> List[dict]:
    """username не уникален — возвращаем все совпадения"""
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch('SELECT * FROM student_users WHERE username = $1', username)
        return [row_to_dict(row) for row in rows]


async def create_account(
    username: str,
    email: str,
    password_hash: str,
    telegram_id: str,
    telegram_username: Optional[str] = None,
    privacy_accepted: bool = False,
    privacy_accepted_at: Optional[datetime] = None,
) -> dict:
    """
    Создать аккаунт.

    Raises:
        ConflictError: telegram_id или email уже заняты
    """
    pool = await get_pool()
    async with pool.acquire() as conn:
        try:
            row = await conn.fetchrow('''
                INSERT INTO student_users
                (username, email, password, telegram_id, telegram_username,
                 privacy_accepted, privacy_accepted_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING *
            ''', username, email, password_hash, str(telegram_id), telegram_username,
                privacy_accepted, privacy_accepted_at)
        except asyncpg.UniqueViolationError as e:
            raise conflict_from(e) from e

    account = row_to_dict(row)
    logger.info(f"Создан аккаунт {account['id']} (telegram_id={telegram_id})")
    return account


async def delete_account(account_id: str) -> bool:
    """Удалить аккаунт (заявки удаляются каскадом)"""
    pool = await get_pool()
    async with pool.acquire() as conn:
        result = await conn.execute('DELETE FROM student_users WHERE id = $1', parse_id(account_id))
    return result.endswith(' 1')


async def get_linked_student_id(conn, account_id: str) -> Optional[str]:
    """id студента, уже привязанного к аккаунту (внутри транзакции)"""
    student_id = await conn.fetchval(
        'SELECT student_id FROM student_users WHERE id = $1', parse_id(account_id)
    )
    return str(student_id) if student_id else None


async def link_account_to_student(conn, account_id: str, student_id: str) -> bool:
    """Привязать аккаунт к записи студента, если привязки ещё нет (внутри транзакции)"""
    result = await conn.execute('''
        UPDATE student_users SET student_id = $2
        WHERE id = $1 AND student_id IS NULL
    ''', parse_id(account_id), parse_id(student_id))
    return result.endswith(' 1')
