"""
Вспомогательные функции для форматирования сообщений.

Содержит:
- now_local / today_local: текущее время в часовом поясе бота
- escape_md: экранирование динамических вставок для Markdown
- full_name: ФИО из записи заявки/студента
- days_remaining / pluralize_days: расчёт и склонение дней
- make_password_hash: пароль-заглушка для аккаунтов из бота
"""

import secrets
from datetime import date, datetime
from typing import Optional

import bcrypt

from config import TIMEZONE

# Символы, которые ломают разметку Telegram Markdown (legacy)
MARKDOWN_SPECIAL_CHARS = ('\\', '_', '*', '`', '[')


def now_local() -> datetime:
    """Текущее время в часовом поясе бота"""
    return datetime.now(TIMEZONE)


def today_local() -> date:
    """Текущая дата в часовом поясе бота"""
    return now_local().date()


def escape_md(value) -> str:
    """Экранирует пользовательский текст перед вставкой в Markdown-сообщение."""
    if value is None:
        return ''
    text = str(value)
    for char in MARKDOWN_SPECIAL_CHARS:
        text = text.replace(char, '\\' + char)
    return text


def full_name(record: dict) -> str:
    """Фамилия Имя Отчество"""
    parts = [record.get('last_name') or '', record.get('first_name') or '']
    name = ' '.join(parts).strip()
    if record.get('middle_name'):
        name += ' ' + record['middle_name']
    return name


def as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.astimezone(TIMEZONE).date() if value.tzinfo else value.date()
    return value


def days_remaining(end_date, today: Optional[date] = None) -> int:
    """Количество дней до даты окончания (обе даты без времени)."""
    today = today or today_local()
    return (as_date(end_date) - today).days


def pluralize_days(count: int) -> str:
    """день / дня / дней"""
    last_two = abs(count) % 100
    last = abs(count) % 10
    if 11 <= last_two <= 14:
        return 'дней'
    if last == 1:
        return 'день'
    if 2 <= last <= 4:
        return 'дня'
    return 'дней'


def truncate(text: Optional[str], limit: int = 200) -> str:
    if not text:
        return ''
    return text if len(text) <= limit else text[:limit] + '...'


def make_password_hash() -> str:
    """Случайный пароль для аккаунта, созданного через бота (вход в веб-панель через сброс)."""
    password = secrets.token_urlsafe(9)
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=10)).decode()
