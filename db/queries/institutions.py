"""
Запросы для учебных заведений (таблица institutions).
"""

from typing import Optional

from config import get_logger, InstitutionType
from db.connection import row_to_dict

logger = get_logger(__name__)


async def find_or_create_institution(conn, name: str, institution_type: Optional[str]) -> dict:
    """
    Найти учебное заведение по названию (и типу) или создать новое.

    Выполняется на переданном соединении, чтобы участвовать в транзакции.
    """
    institution = await _find(conn, name, institution_type)
    if institution:
        return institution

    row = await conn.fetchrow('''
        INSERT INTO institutions (name, type) VALUES ($1, $2) RETURNING *
    ''', name, institution_type or InstitutionType.UNIVERSITY.value)
    institution = row_to_dict(row)
    logger.info(f"Создано учебное заведение {institution['id']}: {name}")
    return institution


async def _find(conn, name: str, institution_type: Optional[str]) -> Optional[dict]:
    if institution_type:
        row = await conn.fetchrow(
            'SELECT * FROM institutions WHERE name = $1 AND type = $2 LIMIT 1',
            name, institution_type
        )
    else:
        row = await conn.fetchrow('SELECT * FROM institutions WHERE name = $1 LIMIT 1', name)
    return row_to_dict(row)
