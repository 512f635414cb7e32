"""
Модуль работы с базой данных.

Содержит:
- connection.py: пул соединений PostgreSQL
- models.py: описание таблиц (SQL schemas)
- errors.py: ошибки слоя данных (не найдено / конфликт / прочее)
- queries/: функции для работы с данными
- repository.py: фасад Repository для движка
"""

from .connection import (
    get_pool,
    close_pool,
    init_db,
)

from .models import create_tables

from .errors import (
    PersistenceError,
    NotFoundError,
    ConflictError,
)

from .repository import Repository

__all__ = [
    'get_pool',
    'close_pool',
    'init_db',
    'create_tables',
    'PersistenceError',
    'NotFoundError',
    'ConflictError',
    'Repository',
]
