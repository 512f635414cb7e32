"""
Запросы для записей студентов (таблица students).
"""

from datetime import date
from typing import Optional, List

from config import get_logger, StudentStatus
from db.connection import get_pool, row_to_dict, parse_id

logger = get_logger(__name__)

# Студенты, у которых практика ещё идёт или не началась
LIVE_STATUSES = [StudentStatus.PENDING.value, StudentStatus.ACTIVE.value]


async def get_student(student_id: str) -> Optional[dict]:
    """Студент вместе с названием учебного заведения из справочника"""
    key = parse_id(student_id)
    if key is None:
        return None

    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow('''
            SELECT s.*, i.name AS institution_title, i.type AS institution_type
            FROM students s
            LEFT JOIN institutions i ON i.id = s.institution_id
            WHERE s.id = $1
        ''', key)
        return row_to_dict(row)


async def insert_student_from_application(conn, application: dict, institution_id: str) -> dict:
    """Создать студента PENDING по заявке (внутри транзакции одобрения)"""
    row = await conn.fetchrow('''
        INSERT INTO students
        (last_name, first_name, middle_name, practice_type, institution_id,
         institution_name, course, email, phone, telegram_id, start_date, end_date,
         status, notes, privacy_accepted, privacy_accepted_at)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16)
        RETURNING *
    ''',
        application['last_name'], application['first_name'], application.get('middle_name'),
        application['practice_type'], parse_id(institution_id), application['institution_name'],
        application.get('course'), application.get('email'), application.get('phone'),
        application.get('telegram_id'), application['start_date'], application['end_date'],
        StudentStatus.PENDING.value, application.get('notes'),
        application.get('privacy_accepted', False), application.get('privacy_accepted_at'),
    )
    return row_to_dict(row)


async def update_student_from_application(conn, student_id: str, application: dict, institution_id: str) -> Optional[dict]:
    """
    Перенести данные повторно одобренной заявки в существующую запись студента
    (внутри транзакции одобрения). Статус студента не меняется.

    Returns:
        Обновлённый студент или None, если записи уже нет
    """
    row = await conn.fetchrow('''
        UPDATE students
        SET last_name = $2, first_name = $3, middle_name = $4, practice_type = $5,
            institution_id = $6, institution_name = $7, course = $8, email = $9,
            phone = $10, telegram_id = $11, start_date = $12, end_date = $13,
            notes = $14, updated_at = NOW()
        WHERE id = $1
        RETURNING *
    ''',
        parse_id(student_id),
        application['last_name'], application['first_name'], application.get('middle_name'),
        application['practice_type'], parse_id(institution_id), application['institution_name'],
        application.get('course'), application.get('email'), application.get('phone'),
        application.get('telegram_id'), application['start_date'], application['end_date'],
        application.get('notes'),
    )
    return row_to_dict(row)


async def get_assignable_students(limit: int = 30) -> List[dict]:
    """Студенты, которым можно назначить задание"""
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch('''
            SELECT * FROM students
            WHERE status = ANY($1::text[])
            ORDER BY last_name, first_name
            LIMIT $2
        ''', LIVE_STATUSES, limit)
        return [row_to_dict(row) for row in rows]


async def find_students_by_last_name(last_name: str) -> List[dict]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch('''
            SELECT * FROM students
            WHERE status = ANY($1::text[]) AND LOWER(last_name) = LOWER($2)
            ORDER BY last_name, first_name
        ''', LIVE_STATUSES, last_name.strip())
        return [row_to_dict(row) for row in rows]


async def get_students_for_reminders(today: date) -> List[dict]:
    """Студенты с Telegram, у которых практика ещё не закончилась"""
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch('''
            SELECT * FROM students
            WHERE status = ANY($1::text[])
              AND telegram_id IS NOT NULL
              AND end_date >= $2
        ''', LIVE_STATUSES, today)
        return [row_to_dict(row) for row in rows]


async def count_active_students(today: date) -> int:
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow('''
            SELECT COUNT(*) AS count FROM students
            WHERE status = $1 AND start_date <= $2 AND end_date >= $2
        ''', StudentStatus.ACTIVE.value, today)
        return row['count']


async def get_students_starting(day: date) -> List[dict]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch(
            'SELECT * FROM students WHERE start_date = $1 ORDER BY last_name', day
        )
        return [row_to_dict(row) for row in rows]


async def get_students_ending(day: date) -> List[dict]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch('''
            SELECT * FROM students
            WHERE end_date = $1 AND status = ANY($2::text[])
            ORDER BY last_name
        ''', day, LIVE_STATUSES)
        return [row_to_dict(row) for row in rows]
