"""
Запросы для заданий (таблица tasks).
"""

from datetime import datetime
from typing import Optional, List

from config import get_logger, TaskStatus
from db.connection import get_pool, row_to_dict, parse_id

logger = get_logger(__name__)


async def get_task(task_id: str) -> Optional[dict]:
    key = parse_id(task_id)
    if key is None:
        return None

    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow('SELECT * FROM tasks WHERE id = $1', key)
        return row_to_dict(row)


async def get_student_tasks(student_id: str, exclude_statuses: Optional[List[str]] = None) -> List[dict]:
    """Задания студента по возрастанию срока (без срока — в конце)"""
    excluded = [str(s) for s in (exclude_statuses or [TaskStatus.COMPLETED.value])]
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch('''
            SELECT * FROM tasks
            WHERE student_id = $1 AND NOT (status = ANY($2::text[]))
            ORDER BY deadline ASC NULLS LAST, created_at
        ''', parse_id(student_id), excluded)
        return [row_to_dict(row) for row in rows]


async def create_task(
    title: str,
    description: str,
    deadline: Optional[datetime],
    student_id: str,
    assigned_by: str,
    reference_link: Optional[str] = None,
    allow_late_submission: bool = True,
) -> dict:
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow('''
            INSERT INTO tasks
            (title, description, deadline, reference_link, allow_late_submission,
             student_id, assigned_by, status)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING *
        ''', title, description, deadline, reference_link, allow_late_submission,
            parse_id(student_id), str(assigned_by), TaskStatus.PENDING.value)

    task = row_to_dict(row)
    logger.info(f"Создано задание {task['id']} для студента {student_id}")
    return task
