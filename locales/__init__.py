"""
Тексты бота PracticeHub.

Все строки для пользователя лежат в ru.yaml и достаются по ключу через t().
"""

import yaml
from pathlib import Path
from typing import Any

_texts: dict = {}
_locales_dir = Path(__file__).parent

DEFAULT_LANGUAGE = 'ru'


def _load_texts():
    """Загрузить файл текстов"""
    global _texts
    file_path = _locales_dir / f"{DEFAULT_LANGUAGE}.yaml"
    with open(file_path, 'r', encoding='utf-8') as f:
        _texts = yaml.safe_load(f) or {}


def _get_nested(data: dict, keys: list[str]) -> Any:
    """Получить вложенное значение по списку ключей"""
    for key in keys:
        if isinstance(data, dict) and key in data:
            data = data[key]
        else:
            return None
    return data


def t(key: str, **kwargs) -> Any:
    """
    Получить текст по ключу.

    Args:
        key: Ключ текста (например, 'registration.ask_first_name')
        **kwargs: Переменные для подстановки в строку

    Returns:
        Строка (или вложенный словарь для групп ключей),
        сам ключ, если текст не найден

    Example:
        t('menu.register')                   # "📝 Зарегистрироваться на практику"
        t('registration.success', short_id='1a2b3c4d', identity='...')
    """
    if not _texts:
        _load_texts()

    value = _get_nested(_texts, key.split('.'))
    if value is None:
        return key

    if kwargs and isinstance(value, str):
        try:
            return value.format(**kwargs)
        except KeyError:
            return value
    return value


_load_texts()
