"""
Модуль конфигурации бота.

Содержит:
- settings.py: все константы, токены, настройки
"""

from .settings import (
    # Токены и окружение
    BOT_TOKEN,
    DATABASE_URL,
    ENVIRONMENT,
    IS_DEVELOPMENT,
    ADMIN_CHAT_IDS,
    SUPPORT_CONTACTS,
    PRIVACY_POLICY_URL,
    validate_env,

    # Логирование
    get_logger,

    # Временная зона
    TIMEZONE,

    # Пути
    BASE_DIR,
    LOCALES_DIR,

    # Статусы и типы
    PracticeType,
    InstitutionType,
    ApplicationStatus,
    StudentStatus,
    TaskStatus,
    SubmissionStatus,
    PRACTICE_TYPE_NAMES,
    INSTITUTION_TYPE_NAMES,
    APPLICATION_STATUS_NAMES,
    STUDENT_STATUS_NAMES,
    TASK_STATUS_NAMES,
    PRACTICE_TYPE_SYNONYMS,

    # Валидация
    MIN_NAME_LENGTH,
    MIN_INSTITUTION_NAME_LENGTH,
    COURSE_MIN,
    COURSE_MAX,
    DATE_YEAR_MIN,
    DATE_YEAR_MAX,
    MIN_TASK_TITLE_LENGTH,
    MIN_TASK_DESCRIPTION_LENGTH,
    SKIP_SENTINEL,
    PLACEHOLDER_EMAIL_DOMAIN,

    # Уведомления
    DIGEST_HOUR,
    REMINDER_WINDOW_DAYS,
    DIGEST_INTERVAL_HOURS,

    # Polling
    POLLING_FATAL_RETRY_LIMIT,
    POLLING_FATAL_WINDOW_SEC,
    POLLING_RESTART_DELAY_SEC,
    POLLING_SETTLE_DELAY_SEC,
)

__all__ = [
    'BOT_TOKEN',
    'DATABASE_URL',
    'ENVIRONMENT',
    'IS_DEVELOPMENT',
    'ADMIN_CHAT_IDS',
    'SUPPORT_CONTACTS',
    'PRIVACY_POLICY_URL',
    'validate_env',
    'get_logger',
    'TIMEZONE',
    'BASE_DIR',
    'LOCALES_DIR',
    'PracticeType',
    'InstitutionType',
    'ApplicationStatus',
    'StudentStatus',
    'TaskStatus',
    'SubmissionStatus',
    'PRACTICE_TYPE_NAMES',
    'INSTITUTION_TYPE_NAMES',
    'APPLICATION_STATUS_NAMES',
    'STUDENT_STATUS_NAMES',
    'TASK_STATUS_NAMES',
    'PRACTICE_TYPE_SYNONYMS',
    'MIN_NAME_LENGTH',
    'MIN_INSTITUTION_NAME_LENGTH',
    'COURSE_MIN',
    'COURSE_MAX',
    'DATE_YEAR_MIN',
    'DATE_YEAR_MAX',
    'MIN_TASK_TITLE_LENGTH',
    'MIN_TASK_DESCRIPTION_LENGTH',
    'SKIP_SENTINEL',
    'PLACEHOLDER_EMAIL_DOMAIN',
    'DIGEST_HOUR',
    'REMINDER_WINDOW_DAYS',
    'DIGEST_INTERVAL_HOURS',
    'POLLING_FATAL_RETRY_LIMIT',
    'POLLING_FATAL_WINDOW_SEC',
    'POLLING_RESTART_DELAY_SEC',
    'POLLING_SETTLE_DELAY_SEC',
]
