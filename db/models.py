"""
Модели базы данных (SQL схемы).

Содержит CREATE TABLE и миграции.
"""

import asyncpg
from config import get_logger

logger = get_logger(__name__)


async def create_tables(pool: asyncpg.Pool):
    """Создание всех таблиц и применение миграций"""
    async with pool.acquire() as conn:
        # ═══════════════════════════════════════════════════════════
        # УЧЕБНЫЕ ЗАВЕДЕНИЯ
        # ═══════════════════════════════════════════════════════════
        await conn.execute('''
            CREATE TABLE IF NOT EXISTS institutions (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                name TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'UNIVERSITY',
                created_at TIMESTAMPTZ DEFAULT NOW()
            )
        ''')

        # ═══════════════════════════════════════════════════════════
        # СТУДЕНТЫ (создаются при одобрении заявки)
        # ═══════════════════════════════════════════════════════════
        await conn.execute('''
            CREATE TABLE IF NOT EXISTS students (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),

                -- ФИО
                last_name TEXT NOT NULL,
                first_name TEXT NOT NULL,
                middle_name TEXT,

                -- Практика
                practice_type TEXT NOT NULL,
                institution_id UUID REFERENCES institutions(id) ON DELETE SET NULL,
                institution_name TEXT,
                course INTEGER,
                start_date DATE NOT NULL,
                end_date DATE NOT NULL,
                status TEXT NOT NULL DEFAULT 'PENDING',
                supervisor TEXT,
                notes TEXT,

                -- Контакты
                email TEXT,
                phone TEXT,
                telegram_id TEXT,

                privacy_accepted BOOLEAN DEFAULT FALSE,
                privacy_accepted_at TIMESTAMPTZ,

                created_at TIMESTAMPTZ DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW()
            )
        ''')

        # ═══════════════════════════════════════════════════════════
        # АККАУНТЫ СТУДЕНТОВ
        # ═══════════════════════════════════════════════════════════
        await conn.execute('''
            CREATE TABLE IF NOT EXISTS student_users (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                username TEXT NOT NULL,
                email TEXT NOT NULL,
                password TEXT NOT NULL,
                telegram_id TEXT,
                telegram_username TEXT,
                student_id UUID REFERENCES students(id) ON DELETE SET NULL,

                privacy_accepted BOOLEAN DEFAULT FALSE,
                privacy_accepted_at TIMESTAMPTZ,

                created_at TIMESTAMPTZ DEFAULT NOW(),

                CONSTRAINT student_users_email_key UNIQUE (email),
                CONSTRAINT student_users_telegram_id_key UNIQUE (telegram_id)
            )
        ''')

        # ═══════════════════════════════════════════════════════════
        # ЗАЯВКИ НА ПРАКТИКУ
        # ═══════════════════════════════════════════════════════════
        await conn.execute('''
            CREATE TABLE IF NOT EXISTS practice_applications (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                student_user_id UUID REFERENCES student_users(id) ON DELETE CASCADE,

                last_name TEXT NOT NULL,
                first_name TEXT NOT NULL,
                middle_name TEXT,

                practice_type TEXT NOT NULL,
                institution_type TEXT,
                institution_name TEXT NOT NULL,
                course INTEGER NOT NULL DEFAULT 1,

                email TEXT,
                phone TEXT,
                telegram_id TEXT,

                start_date DATE NOT NULL,
                end_date DATE NOT NULL,

                status TEXT NOT NULL DEFAULT 'PENDING',
                rejection_reason TEXT,
                approved_by TEXT,
                notes TEXT,

                privacy_accepted BOOLEAN DEFAULT FALSE,
                privacy_accepted_at TIMESTAMPTZ,

                created_at TIMESTAMPTZ DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW()
            )
        ''')

        # ═══════════════════════════════════════════════════════════
        # ЗАДАНИЯ
        # ═══════════════════════════════════════════════════════════
        await conn.execute('''
            CREATE TABLE IF NOT EXISTS tasks (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                title TEXT NOT NULL,
                description TEXT,
                deadline TIMESTAMPTZ,
                reference_link TEXT,
                allow_late_submission BOOLEAN DEFAULT TRUE,
                student_id UUID REFERENCES students(id) ON DELETE CASCADE,
                assigned_by TEXT,
                status TEXT NOT NULL DEFAULT 'PENDING',
                created_at TIMESTAMPTZ DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW()
            )
        ''')

        # ═══════════════════════════════════════════════════════════
        # РЕШЕНИЯ ЗАДАНИЙ
        # ═══════════════════════════════════════════════════════════
        await conn.execute('''
            CREATE TABLE IF NOT EXISTS task_submissions (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                task_id UUID REFERENCES tasks(id) ON DELETE CASCADE,
                student_id UUID REFERENCES students(id) ON DELETE CASCADE,
                solution_description TEXT,
                solution_link TEXT,
                status TEXT NOT NULL DEFAULT 'SUBMITTED',
                submitted_at TIMESTAMPTZ DEFAULT NOW(),

                CONSTRAINT task_submissions_task_student_key UNIQUE (task_id, student_id)
            )
        ''')

        # ═══════════════════════════════════════════════════════════
        # МИГРАЦИИ ДЛЯ СУЩЕСТВУЮЩИХ ТАБЛИЦ
        # ═══════════════════════════════════════════════════════════
        migrations = [
            'ALTER TABLE practice_applications ADD COLUMN IF NOT EXISTS institution_type TEXT',
            'ALTER TABLE student_users ADD COLUMN IF NOT EXISTS telegram_username TEXT',
            'ALTER TABLE tasks ADD COLUMN IF NOT EXISTS reference_link TEXT',
            'ALTER TABLE tasks ADD COLUMN IF NOT EXISTS allow_late_submission BOOLEAN DEFAULT TRUE',
        ]

        for migration in migrations:
            try:
                await conn.execute(migration)
            except asyncpg.PostgresError as e:
                logger.warning(f"Миграция пропущена: {e}")

        # ═══════════════════════════════════════════════════════════
        # ИНДЕКСЫ
        # ═══════════════════════════════════════════════════════════
        await conn.execute('CREATE INDEX IF NOT EXISTS idx_applications_user ON practice_applications(student_user_id, created_at DESC)')
        await conn.execute('CREATE INDEX IF NOT EXISTS idx_applications_status ON practice_applications(status)')
        await conn.execute('CREATE INDEX IF NOT EXISTS idx_students_dates ON students(start_date, end_date)')
        await conn.execute('CREATE INDEX IF NOT EXISTS idx_tasks_student ON tasks(student_id, deadline)')

        logger.info("✅ Все таблицы созданы")
