"""
Настройки бота PracticeHub.

Все значения читаются из переменных окружения при импорте.
Проверка обязательных переменных вынесена в validate_env(),
чтобы модули можно было импортировать в тестах без токена.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from zoneinfo import ZoneInfo

# ============= ТОКЕНЫ И ОКРУЖЕНИЕ =============

BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
DATABASE_URL = os.getenv("DATABASE_URL")

ENVIRONMENT = os.getenv("ENVIRONMENT", os.getenv("NODE_ENV", "production")).lower()
IS_DEVELOPMENT = ENVIRONMENT == "development"

ADMIN_CHAT_IDS = [
    chat_id.strip()
    for chat_id in (os.getenv("ADMIN_CHAT_IDS") or os.getenv("ADMIN_CHAT_ID") or "").split(",")
    if chat_id.strip()
]

SUPPORT_CONTACTS = os.getenv(
    "SUPPORT_CONTACTS",
    "Email: support@practicehub.local\nТелефон: +7 (999) 123-45-67"
)
PRIVACY_POLICY_URL = os.getenv("PRIVACY_POLICY_URL", "https://your-domain.com/privacy")


def validate_env() -> None:
    """Проверяет обязательные переменные окружения."""
    if not BOT_TOKEN:
        raise ValueError("TELEGRAM_BOT_TOKEN не установлен!")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL не установлен!")


# ============= ЛОГИРОВАНИЕ =============

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if IS_DEVELOPMENT else "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def get_logger(name: str) -> logging.Logger:
    """Получить логгер модуля"""
    return logging.getLogger(name)


# ============= ВРЕМЕННАЯ ЗОНА =============

TIMEZONE = ZoneInfo(os.getenv("TIMEZONE", "Europe/Moscow"))

# ============= ПУТИ =============

BASE_DIR = Path(__file__).parent.parent
LOCALES_DIR = BASE_DIR / "locales"

# ============= СТАТУСЫ И ТИПЫ =============


class PracticeType(str, Enum):
    EDUCATIONAL = "EDUCATIONAL"
    PRODUCTION = "PRODUCTION"
    INTERNSHIP = "INTERNSHIP"

    @property
    def display_name(self) -> str:
        return PRACTICE_TYPE_NAMES[self]


class InstitutionType(str, Enum):
    COLLEGE = "COLLEGE"
    UNIVERSITY = "UNIVERSITY"

    @property
    def display_name(self) -> str:
        return INSTITUTION_TYPE_NAMES[self]


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class StudentStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class SubmissionStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


PRACTICE_TYPE_NAMES = {
    PracticeType.EDUCATIONAL: "Учебная",
    PracticeType.PRODUCTION: "Производственная",
    PracticeType.INTERNSHIP: "Стажировка",
}

INSTITUTION_TYPE_NAMES = {
    InstitutionType.COLLEGE: "Колледж",
    InstitutionType.UNIVERSITY: "Университет",
}

APPLICATION_STATUS_NAMES = {
    ApplicationStatus.PENDING: "Ожидает рассмотрения",
    ApplicationStatus.APPROVED: "✅ Одобрена",
    ApplicationStatus.REJECTED: "❌ Отклонена",
}

STUDENT_STATUS_NAMES = {
    StudentStatus.PENDING: "Ожидает",
    StudentStatus.ACTIVE: "Активна",
    StudentStatus.COMPLETED: "Завершена",
}

TASK_STATUS_NAMES = {
    TaskStatus.PENDING: "Новое",
    TaskStatus.IN_PROGRESS: "В работе",
    TaskStatus.SUBMITTED: "Решение отправлено",
    TaskStatus.UNDER_REVIEW: "На проверке",
    TaskStatus.COMPLETED: "Выполнено",
    TaskStatus.REJECTED: "Отклонено",
}

# Синонимы для текстового выбора типа практики
PRACTICE_TYPE_SYNONYMS = {
    'учебная': PracticeType.EDUCATIONAL,
    'учебная практика': PracticeType.EDUCATIONAL,
    'производственная': PracticeType.PRODUCTION,
    'производственная практика': PracticeType.PRODUCTION,
    'стажировка': PracticeType.INTERNSHIP,
    'стажерская': PracticeType.INTERNSHIP,
    '1': PracticeType.EDUCATIONAL,
    '2': PracticeType.PRODUCTION,
    '3': PracticeType.INTERNSHIP,
}

# ============= ЛИМИТЫ И ВАЛИДАЦИЯ =============

MIN_NAME_LENGTH = 2
MIN_INSTITUTION_NAME_LENGTH = 3
COURSE_MIN = 1
COURSE_MAX = 10
DATE_YEAR_MIN = 1900
DATE_YEAR_MAX = 2100
MIN_TASK_TITLE_LENGTH = 3
MIN_TASK_DESCRIPTION_LENGTH = 5
SKIP_SENTINEL = "-"

# Домен для email-заглушки, если студент не указал email
PLACEHOLDER_EMAIL_DOMAIN = "practicehub.local"

# ============= УВЕДОМЛЕНИЯ =============

DIGEST_HOUR = int(os.getenv("DIGEST_HOUR", "9"))
REMINDER_WINDOW_DAYS = 30
DIGEST_INTERVAL_HOURS = 24

# ============= POLLING =============

POLLING_FATAL_RETRY_LIMIT = 5
POLLING_FATAL_WINDOW_SEC = 60
POLLING_RESTART_DELAY_SEC = 30
POLLING_SETTLE_DELAY_SEC = 2
