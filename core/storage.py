"""
SessionStore — хранение сессий диалогов.

Сессии живут только в памяти процесса и теряются при перезапуске.
Для каждого чата есть свой asyncio.Lock: движок обрабатывает событие
чата целиком под этим замком, поэтому в один момент времени для чата
выполняется не больше одной мутации.

Использование:
    from core.storage import SessionStore

    store = SessionStore()

    async with store.lock(chat_id):
        session = store.get(chat_id)
        ...
        store.set(session)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from config import get_logger
from core.session import Session

logger = get_logger(__name__)


class SessionStore:
    """
    Хранилище сессий по chat_id.

    Сессии не истекают автоматически: удаляются по /cancel,
    при завершении сценария или после необработанной ошибки.
    """

    def __init__(self):
        self._sessions: dict[int, Session] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: dict[int, int] = {}

    def get(self, chat_id: int) -> Optional[Session]:
        return self._sessions.get(chat_id)

    def set(self, session: Session) -> None:
        self._sessions[session.chat_id] = session
        logger.debug(f"Session {session.chat_id}: {session.state.value}")

    def delete(self, chat_id: int) -> bool:
        """
        Удаляет сессию чата (и замок, если его никто не держит и не ждёт).

        Returns:
            True если сессия существовала
        """
        removed = self._sessions.pop(chat_id, None) is not None
        if removed:
            logger.debug(f"Session {chat_id} cleared")
        if chat_id not in self._lock_users:
            self._locks.pop(chat_id, None)
        return removed

    @asynccontextmanager
    async def lock(self, chat_id: int):
        """
        Эксклюзивный доступ к сессии чата на время обработки события.

        Замок чата без сессии удаляется, когда его отпускает последний
        ожидающий.
        """
        chat_lock = self._locks.setdefault(chat_id, asyncio.Lock())
        self._lock_users[chat_id] = self._lock_users.get(chat_id, 0) + 1
        try:
            async with chat_lock:
                yield
        finally:
            self._lock_users[chat_id] -= 1
            if not self._lock_users[chat_id]:
                del self._lock_users[chat_id]
                if chat_id not in self._sessions:
                    self._locks.pop(chat_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, chat_id: int) -> bool:
        return chat_id in self._sessions
