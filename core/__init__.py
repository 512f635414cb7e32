"""
Ядро бота: общие компоненты.

Содержит:
- session.py: состояния сценариев, черновики, Session
- storage.py: SessionStore — сессии чатов и замки
- callbacks.py: данные inline-кнопок
- validators.py: проверка пользовательского ввода
- helpers.py: даты, Markdown, форматирование
- keyboards.py: клавиатуры
- transport.py: события Telegram, отправка, перезапуск polling
- notifier.py: уведомления, устойчивые к сбоям доставки
- machine.py: ConversationEngine — маршрутизация событий
- scheduler.py: ежедневные напоминания и дайджест
"""

from .session import Flow, Session
from .storage import SessionStore
from .callbacks import CallbackAction, Callback, parse_callback
from .validators import ValidationError

__all__ = [
    'Flow',
    'Session',
    'SessionStore',
    'CallbackAction',
    'Callback',
    'parse_callback',
    'ValidationError',
]
