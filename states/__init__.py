"""
Сценарии диалога.

Содержит:
- base.py: базовый класс BaseFlow
- menu.py: команды и кнопки меню без состояния
- registration.py, edit.py: заявка на практику
- submission.py, task_creation.py: задания
- moderation.py: решения администратора по заявкам
- registry.py: регистрация всех сценариев в движке
"""

from .base import BaseFlow

__all__ = ['BaseFlow']
