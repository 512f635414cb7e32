"""
Запросы для заявок на практику (таблица practice_applications).

Одобрение и отклонение выполняются условным UPDATE ... WHERE status = 'PENDING':
из двух одновременных решений по одной заявке применяется только первое.
"""

from typing import Optional, List

from config import get_logger, ApplicationStatus
from db.connection import get_pool, row_to_dict, parse_id
from db.errors import NotFoundError
from db.queries.accounts import get_linked_student_id, link_account_to_student
from db.queries.institutions import find_or_create_institution
from db.queries.students import insert_student_from_application, update_student_from_application

logger = get_logger(__name__)

# Поля, которые можно менять через update_application
UPDATABLE_FIELDS = (
    'last_name', 'first_name', 'middle_name', 'practice_type', 'institution_type',
    'institution_name', 'course', 'email', 'phone', 'start_date', 'end_date',
    'status', 'rejection_reason', 'approved_by', 'notes',
)

APPLICATION_COLUMNS = (
    'last_name', 'first_name', 'middle_name', 'practice_type', 'institution_type',
    'institution_name', 'course', 'email', 'phone', 'telegram_id', 'start_date',
    'end_date', 'notes', 'privacy_accepted', 'privacy_accepted_at',
)


async def create_application(account_id: str, data: dict) -> dict:
    """Создать заявку PENDING для аккаунта"""
    values = [data.get(column) for column in APPLICATION_COLUMNS]
    placeholders = ', '.join(f'${i}' for i in range(2, len(APPLICATION_COLUMNS) + 2))

    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(f'''
            INSERT INTO practice_applications
            (student_user_id, {', '.join(APPLICATION_COLUMNS)}, status)
            VALUES ($1, {placeholders}, '{ApplicationStatus.PENDING.value}')
            RETURNING *
        ''', parse_id(account_id), *values)

    application = row_to_dict(row)
    logger.info(f"Создана заявка {application['id']} (аккаунт {account_id})")
    return application


async def get_application(application_id: str) -> Optional[dict]:
    key = parse_id(application_id)
    if key is None:
        return None

    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow('''
            SELECT a.*, u.telegram_id AS account_telegram_id
            FROM practice_applications a
            LEFT JOIN student_users u ON u.id = a.student_user_id
            WHERE a.id = $1
        ''', key)
        return row_to_dict(row)


async def get_account_applications(
    account_id: str,
    statuses: Optional[List[str]] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    """Заявки аккаунта, новые первыми"""
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch('''
            SELECT * FROM practice_applications
            WHERE student_user_id = $1
              AND ($2::text[] IS NULL OR status = ANY($2::text[]))
            ORDER BY created_at DESC
            LIMIT $3
        ''', parse_id(account_id), [str(s) for s in statuses] if statuses else None, limit)
        return [row_to_dict(row) for row in rows]


async def get_pending_applications(limit: int = 20) -> List[dict]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch('''
            SELECT * FROM practice_applications
            WHERE status = $1
            ORDER BY created_at
            LIMIT $2
        ''', ApplicationStatus.PENDING.value, limit)
        return [row_to_dict(row) for row in rows]


async def count_applications_by_status(status: str) -> int:
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            'SELECT COUNT(*) AS count FROM practice_applications WHERE status = $1', str(status)
        )
        return row['count']


async def update_application(application_id: str, **fields) -> Optional[dict]:
    """
    Обновить поля заявки.

    Returns:
        Обновлённая заявка или None, если заявки нет
    """
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Недопустимые поля заявки: {sorted(unknown)}")
    if not fields:
        return await get_application(application_id)

    assignments = ', '.join(f'{name} = ${i}' for i, name in enumerate(fields, start=2))
    values = [value.value if hasattr(value, 'value') else value for value in fields.values()]

    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(f'''
            UPDATE practice_applications
            SET {assignments}, updated_at = NOW()
            WHERE id = $1
            RETURNING *
        ''', parse_id(application_id), *values)
        return row_to_dict(row)


async def approve_application(application_id: str, approved_by: str) -> Optional[tuple[dict, dict]]:
    """
    Одобрить заявку: статус, учебное заведение, запись студента, привязка аккаунта.
    Всё в одной транзакции.

    Returns:
        (заявка, студент) или None, если заявка уже обработана

    Raises:
        NotFoundError: заявки нет
    """
    key = parse_id(application_id)
    if key is None:
        raise NotFoundError('application', application_id)

    pool = await get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            row = await conn.fetchrow('''
                UPDATE practice_applications
                SET status = $2, approved_by = $3, updated_at = NOW()
                WHERE id = $1 AND status = $4
                RETURNING *
            ''', key, ApplicationStatus.APPROVED.value, str(approved_by), ApplicationStatus.PENDING.value)

            if row is None:
                exists = await conn.fetchval('SELECT 1 FROM practice_applications WHERE id = $1', key)
                if not exists:
                    raise NotFoundError('application', application_id)
                return None

            application = row_to_dict(row)
            institution = await find_or_create_institution(
                conn, application['institution_name'], application.get('institution_type')
            )
            account_id = application.get('student_user_id')
            linked_id = await get_linked_student_id(conn, account_id) if account_id else None

            student = None
            if linked_id:
                # Повторное одобрение после редактирования
                student = await update_student_from_application(conn, linked_id, application, institution['id'])
            if student is None:
                student = await insert_student_from_application(conn, application, institution['id'])
                if account_id:
                    await link_account_to_student(conn, account_id, student['id'])

    logger.info(f"Заявка {application_id} одобрена ({approved_by}), студент {student['id']}")
    return application, student


async def reject_application(application_id: str, reason: str) -> Optional[dict]:
    """
    Отклонить заявку.

    Returns:
        Заявка или None, если заявка уже обработана

    Raises:
        NotFoundError: заявки нет
    """
    key = parse_id(application_id)
    if key is None:
        raise NotFoundError('application', application_id)

    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow('''
            UPDATE practice_applications
            SET status = $2, rejection_reason = $3, updated_at = NOW()
            WHERE id = $1 AND status = $4
            RETURNING *
        ''', key, ApplicationStatus.REJECTED.value, reason, ApplicationStatus.PENDING.value)

        if row is None:
            exists = await conn.fetchval('SELECT 1 FROM practice_applications WHERE id = $1', key)
            if not exists:
                raise NotFoundError('application', application_id)
            return None

    logger.info(f"Заявка {application_id} отклонена")
    return row_to_dict(row)
