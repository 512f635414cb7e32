"""
Валидация пользовательского ввода в диалогах.

Каждый валидатор возвращает нормализованное значение
или бросает ValidationError с ключом сообщения из locales.
"""

import re
from datetime import date, datetime, time
from typing import Optional

from config import (
    PRACTICE_TYPE_SYNONYMS,
    MIN_NAME_LENGTH,
    MIN_INSTITUTION_NAME_LENGTH,
    COURSE_MIN,
    COURSE_MAX,
    DATE_YEAR_MIN,
    DATE_YEAR_MAX,
    MIN_TASK_TITLE_LENGTH,
    MIN_TASK_DESCRIPTION_LENGTH,
    SKIP_SENTINEL,
    PracticeType,
)

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
DATE_RE = re.compile(r'^(\d{1,2})\.(\d{1,2})\.(\d{4})$')
DATETIME_RE = re.compile(r'^(\d{1,2}\.\d{1,2}\.\d{4})(\d{1,2}):(\d{2})$')
URL_RE = re.compile(r'(?:https?://|www\.)[^\s<>"]+', re.IGNORECASE)


class ValidationError(ValueError):
    """Некорректный ввод. key — ключ сообщения об ошибке в locales."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key


def is_skip(text: str) -> bool:
    return text.strip() == SKIP_SENTINEL


def validate_name(text: str, error_key: str) -> str:
    value = (text or "").strip()
    if len(value) < MIN_NAME_LENGTH:
        raise ValidationError(error_key)
    return value


def validate_middle_name(text: str) -> Optional[str]:
    """Отчество: "-" означает отсутствие, остальное принимается как есть."""
    if is_skip(text):
        return None
    return text.strip()


def validate_practice_type(text: str) -> PracticeType:
    """Тип практики по синониму или номеру 1–3."""
    value = (text or "").strip().lower()
    if value in PRACTICE_TYPE_SYNONYMS:
        return PRACTICE_TYPE_SYNONYMS[value]
    try:
        return PracticeType(value.upper())
    except ValueError:
        raise ValidationError('errors.practice_type')


def validate_institution_name(text: str) -> str:
    value = (text or "").strip()
    if len(value) < MIN_INSTITUTION_NAME_LENGTH:
        raise ValidationError('errors.institution_name')
    return value


def validate_course(text: str) -> int:
    try:
        course = int((text or "").strip())
    except ValueError:
        raise ValidationError('errors.course')
    if course < COURSE_MIN or course > COURSE_MAX:
        raise ValidationError('errors.course')
    return course


def validate_email(text: str) -> Optional[str]:
    if is_skip(text):
        return None
    value = text.strip()
    if not EMAIL_RE.match(value):
        raise ValidationError('errors.email')
    return value


def validate_phone(text: str) -> Optional[str]:
    if is_skip(text):
        return None
    return text.strip()


def parse_date(text: str) -> Optional[date]:
    """
    Разбирает дату строго в формате ДД.ММ.ГГГГ.

    Проверяет существование даты в календаре (31.02.2024 → None)
    и диапазон лет [1900, 2100].
    """
    if not text:
        return None

    normalized = re.sub(r'\s+', '', text)
    match = DATE_RE.match(normalized)
    if not match:
        return None

    day, month, year = (int(part) for part in match.groups())
    if not (DATE_YEAR_MIN <= year <= DATE_YEAR_MAX):
        return None

    try:
        parsed = date(year, month, day)
    except ValueError:
        return None

    if (parsed.day, parsed.month, parsed.year) != (day, month, year):
        return None
    return parsed


def format_date(value) -> str:
    """Форматирует дату как ДД.ММ.ГГГГ"""
    if value is None:
        return 'Не указано'
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime('%d.%m.%Y')


def validate_start_date(text: str) -> date:
    parsed = parse_date(text)
    if parsed is None:
        raise ValidationError('errors.start_date_format')
    return parsed


def validate_end_date(text: str, start_date: date) -> date:
    parsed = parse_date(text)
    if parsed is None:
        raise ValidationError('errors.end_date_format')
    if parsed <= start_date:
        raise ValidationError('errors.end_before_start')
    return parsed


def extract_url(text: str) -> Optional[str]:
    """Первая подстрока, похожая на ссылку."""
    match = URL_RE.search(text or "")
    return match.group(0).rstrip('.,;:!?)') if match else None


def parse_solution(text: str) -> tuple[Optional[str], Optional[str]]:
    """
    Разбирает решение задания: (ссылка, описание).

    Ссылка — первая найденная URL-подстрока, описание — остальной текст
    без ссылки. Пустой ввод без ссылки и описания отклоняется.
    """
    raw = (text or "").strip()
    link = extract_url(raw)

    description = raw
    if link:
        description = description.replace(link, ' ', 1)
    description = re.sub(r'\s+', ' ', description).strip()

    if not link and not description:
        raise ValidationError('errors.solution_empty')
    return link, description or None


def validate_task_title(text: str) -> str:
    value = (text or "").strip()
    if len(value) < MIN_TASK_TITLE_LENGTH:
        raise ValidationError('errors.task_title')
    return value


def validate_task_description(text: str) -> str:
    value = (text or "").strip()
    if len(value) < MIN_TASK_DESCRIPTION_LENGTH:
        raise ValidationError('errors.task_description')
    return value


def validate_deadline(text: str, now: datetime) -> datetime:
    """
    Дедлайн: ДД.ММ.ГГГГ (конец дня) или ДД.ММ.ГГГГ ЧЧ:ММ.

    now должен быть aware-datetime; дедлайн получает ту же временную зону
    и обязан быть строго в будущем.
    """
    normalized = re.sub(r'\s+', '', text or "")
    match = DATETIME_RE.match(normalized)
    if match:
        day_part, hour, minute = match.group(1), int(match.group(2)), int(match.group(3))
        if hour > 23 or minute > 59:
            raise ValidationError('errors.deadline_format')
        deadline_time = time(hour, minute)
    else:
        day_part = normalized
        deadline_time = time(23, 59)

    parsed = parse_date(day_part)
    if parsed is None:
        raise ValidationError('errors.deadline_format')

    deadline = datetime.combine(parsed, deadline_time, tzinfo=now.tzinfo)
    if deadline <= now:
        raise ValidationError('errors.deadline_past')
    return deadline


def validate_reference_link(text: str) -> Optional[str]:
    if is_skip(text):
        return None
    link = extract_url(text)
    if not link:
        raise ValidationError('errors.reference_link')
    return link
