"""
Ошибки слоя данных.

Движок различает три случая: запись не найдена, нарушена уникальность,
всё остальное. Исключения asyncpg наружу из db/ не выходят, кроме
непредвиденных (они доходят до границы обработки события).
"""

from typing import Optional

import asyncpg

# Колонки, уникальность которых движок объясняет пользователю отдельно
CONFLICT_TARGETS = ('telegram_id', 'email', 'username')


class PersistenceError(Exception):
    """Базовая ошибка слоя данных"""


class NotFoundError(PersistenceError):
    def __init__(self, entity: str, key):
        super().__init__(f"{entity} {key} не найден")
        self.entity = entity
        self.key = key


class ConflictError(PersistenceError):
    """
    Нарушение уникальности.

    target: 'telegram_id' | 'email' | 'username' | 'other'
    """

    def __init__(self, target: str, detail: Optional[str] = None):
        super().__init__(detail or f"Запись с таким {target} уже существует")
        self.target = target


def conflict_target(constraint_name: Optional[str]) -> str:
    """student_users_telegram_id_key → 'telegram_id'"""
    name = constraint_name or ''
    for target in CONFLICT_TARGETS:
        if target in name:
            return target
    return 'other'


def conflict_from(error: asyncpg.UniqueViolationError) -> ConflictError:
    return ConflictError(conflict_target(error.constraint_name), detail=str(error))
