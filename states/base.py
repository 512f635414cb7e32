"""
Базовый класс для всех сценариев (flow) диалога.

Каждый сценарий — это отдельный файл в states/:
- registration.py — регистрация на практику
- edit.py — редактирование заявки
- submission.py — отправка решения задания
- task_creation.py — создание задания (администратор)
- moderation.py — одобрение/отклонение заявок (администратор)
- menu.py — команды и кнопки меню без состояния

Сценарий объявляет, на что он отвечает, через словари класса;
значения — имена методов:

    class MyFlow(BaseFlow):
        name = "my_flow"
        commands = {"my": "start"}
        menu_labels = {"menu.my": "start"}
        state_handlers = {MyState.WAITING_X: "on_x"}
        callbacks = {CallbackAction.MY_BUTTON: ("on_button", {MyState.WAITING_X})}

        async def start(self, event):
            ...

        async def on_x(self, session, event):
            ...

Движок (core.machine.ConversationEngine) сам находит обработчик
и вызывает его под замком чата.
"""

from abc import ABC
from typing import Optional

from config import ADMIN_CHAT_IDS, get_logger
from core.keyboards import menu_for
from core.session import Session, Flow
from core.validators import ValidationError
from locales import t

logger = get_logger(__name__)


class BaseFlow(ABC):
    """
    Базовый класс сценария.

    Атрибуты класса:
        name: Идентификатор сценария для логов
        flow: Сценарий сессии, состояния которого обрабатывает класс (или None)
        commands: slash-команда → метод(event)
        admin_commands: команды, доступные только администраторам
        menu_labels: ключ подписи кнопки меню → метод(event) (только вне сценария)
        admin_menu_labels: то же для кнопок администратора
        state_handlers: состояние → метод(session, event) для текста
        callbacks: CallbackAction → (метод(session, event), допустимые состояния или None)
        admin_callbacks: CallbackAction, доступные только администраторам
    """

    name: str = "base"
    flow: Optional[Flow] = None

    commands: dict = {}
    admin_commands: set = set()
    menu_labels: dict = {}
    admin_menu_labels: dict = {}
    state_handlers: dict = {}
    callbacks: dict = {}
    admin_callbacks: set = set()

    def __init__(self, transport, repo, notifier, store, admin_chat_ids=None):
        """
        Args:
            transport: Исходящая сторона Telegram (TelegramTransport)
            repo: Доступ к данным (db.Repository)
            notifier: NotificationDispatcher
            store: SessionStore
            admin_chat_ids: chat_id администраторов (строки)
        """
        self.transport = transport
        self.repo = repo
        self.notifier = notifier
        self.store = store
        self.admin_chat_ids = [str(chat_id) for chat_id in (
            ADMIN_CHAT_IDS if admin_chat_ids is None else admin_chat_ids
        )]

    # =========================================
    # Вспомогательные методы
    # =========================================

    def is_admin(self, chat_id) -> bool:
        return str(chat_id) in self.admin_chat_ids

    async def send(self, chat_id, text: str, markdown: bool = False, reply_markup=None):
        return await self.transport.send_message(chat_id, text, markdown=markdown, reply_markup=reply_markup)

    async def reprompt(self, chat_id, error: ValidationError, reply_markup=None):
        """Сообщение об ошибке ввода; состояние не меняется"""
        return await self.send(chat_id, t(error.key), reply_markup=reply_markup)

    async def menu(self, chat_id):
        """Постоянное меню для чата: зарегистрирован ли студент, администратор ли"""
        account = await self.repo.get_account_by_telegram_id(str(chat_id))
        return menu_for(registered=account is not None, is_admin=self.is_admin(chat_id))

    async def linked_student(self, chat_id) -> Optional[dict]:
        """Запись студента, привязанная к аккаунту чата (после одобрения заявки)"""
        account = await self.repo.get_account_by_telegram_id(str(chat_id))
        if not account or not account.get('student_id'):
            return None
        return await self.repo.get_student(account['student_id'])

    def start_session(self, chat_id, state, draft) -> Session:
        """Новая сессия сценария (заменяет текущую)"""
        session = Session(chat_id=chat_id, state=state, draft=draft)
        self.store.set(session)
        logger.info(f"[{self.name}] {chat_id}: начат сценарий ({state.value})")
        return session

    def advance(self, session: Session, state, **kwargs) -> None:
        session.advance(state, **kwargs)
        self.store.set(session)

    def finish(self, chat_id) -> None:
        """Сценарий завершён или отменён — сессия удаляется"""
        self.store.delete(chat_id)

    def __repr__(self) -> str:
        return f"<Flow: {self.name}>"
