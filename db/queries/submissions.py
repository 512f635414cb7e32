"""
Запросы для решений заданий (таблица task_submissions).

На пару (задание, студент) существует не больше одного решения:
повторная отправка перезаписывает предыдущую.
"""

from typing import Optional

from config import get_logger, SubmissionStatus, TaskStatus
from db.connection import get_pool, row_to_dict, parse_id

logger = get_logger(__name__)


async def get_submission(task_id: str, student_id: str) -> Optional[dict]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            'SELECT * FROM task_submissions WHERE task_id = $1 AND student_id = $2',
            parse_id(task_id), parse_id(student_id)
        )
        return row_to_dict(row)


async def submit_solution(
    task_id: str,
    student_id: str,
    solution_link: Optional[str],
    solution_description: Optional[str],
) -> dict:
    """Сохранить решение (SUBMITTED) и перевести задание в SUBMITTED"""
    pool = await get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            row = await conn.fetchrow('''
                INSERT INTO task_submissions
                (task_id, student_id, solution_link, solution_description, status, submitted_at)
                VALUES ($1, $2, $3, $4, $5, NOW())
                ON CONFLICT (task_id, student_id) DO UPDATE SET
                    solution_link = EXCLUDED.solution_link,
                    solution_description = EXCLUDED.solution_description,
                    status = EXCLUDED.status,
                    submitted_at = NOW()
                RETURNING *
            ''', parse_id(task_id), parse_id(student_id), solution_link,
                solution_description, SubmissionStatus.SUBMITTED.value)

            await conn.execute(
                'UPDATE tasks SET status = $2, updated_at = NOW() WHERE id = $1',
                parse_id(task_id), TaskStatus.SUBMITTED.value
            )

    logger.info(f"Решение задания {task_id} от студента {student_id} сохранено")
    return row_to_dict(row)
