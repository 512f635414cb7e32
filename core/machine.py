"""
ConversationEngine — маршрутизация событий чата по сценариям.

Управляет:
- Регистрацией сценариев (states/*)
- Глобальными slash-командами (в любом состоянии)
- Кнопками постоянного меню (только вне сценария)
- Текстом внутри сценария (обработчик текущего состояния)
- Нажатиями inline-кнопок (с проверкой ожидаемого состояния)

Использование:
    from core.machine import ConversationEngine
    from states.registry import register_all_flows

    engine = ConversationEngine(transport, Repository, notifier)
    register_all_flows(engine)

    await engine.handle_event(event)

Любое непредвиденное исключение внутри обработчика логируется,
пользователь получает общее сообщение об ошибке, сессия сбрасывается.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from aiogram.exceptions import TelegramBadRequest

from config import get_logger, ADMIN_CHAT_IDS, IS_DEVELOPMENT
from core.callbacks import CallbackAction
from core.keyboards import menu_for
from core.storage import SessionStore
from core.transport import EventKind, InboundEvent
from locales import t

logger = get_logger(__name__)

CANCEL_COMMAND = "cancel"


@dataclass
class Route:
    flow: object
    handler: Callable
    admin_only: bool = False
    states: Optional[frozenset] = None


class ConversationEngine:
    """Движок диалога: один экземпляр на бота"""

    def __init__(
        self,
        transport,
        repo,
        notifier,
        store: Optional[SessionStore] = None,
        admin_chat_ids=None,
        show_error_details: bool = IS_DEVELOPMENT,
    ):
        """
        Args:
            transport: TelegramTransport (или тестовая замена)
            repo: db.Repository (или тестовая замена)
            notifier: NotificationDispatcher
            store: SessionStore; по умолчанию новое пустое хранилище
            admin_chat_ids: chat_id администраторов
            show_error_details: добавлять тип и текст исключения к сообщению об ошибке
        """
        self.transport = transport
        self.repo = repo
        self.notifier = notifier
        self.store = store if store is not None else SessionStore()
        self.admin_chat_ids = [str(chat_id) for chat_id in (
            ADMIN_CHAT_IDS if admin_chat_ids is None else admin_chat_ids
        )]
        self.show_error_details = show_error_details

        self.flows: dict = {}
        self.commands: dict[str, Route] = {}
        self.menu_labels: dict[str, Route] = {}
        self.state_handlers: dict = {}
        self.callbacks: dict[CallbackAction, Route] = {}

    # =========================================
    # Регистрация
    # =========================================

    def register(self, flow) -> None:
        """Добавляет команды, кнопки и обработчики состояний сценария"""
        if flow.name in self.flows:
            logger.warning(f"Flow {flow.name} already registered, overwriting")
        self.flows[flow.name] = flow

        for command, method in flow.commands.items():
            self._add(self.commands, command, Route(
                flow, getattr(flow, method), admin_only=command in flow.admin_commands,
            ))

        for key, method in flow.menu_labels.items():
            self._add(self.menu_labels, t(key), Route(flow, getattr(flow, method)))
        for key, method in flow.admin_menu_labels.items():
            self._add(self.menu_labels, t(key), Route(flow, getattr(flow, method), admin_only=True))

        for state, method in flow.state_handlers.items():
            self._add(self.state_handlers, state, Route(flow, getattr(flow, method)))

        for action, (method, states) in flow.callbacks.items():
            self._add(self.callbacks, action, Route(
                flow,
                getattr(flow, method),
                admin_only=action in flow.admin_callbacks,
                states=frozenset(states) if states is not None else None,
            ))

        logger.debug(f"Registered flow: {flow.name}")

    def register_all(self, flows: list) -> None:
        for flow in flows:
            self.register(flow)

    @staticmethod
    def _add(table: dict, key, route: Route) -> None:
        if key in table:
            logger.warning(f"{key!r}: {table[key].flow.name} replaced by {route.flow.name}")
        table[key] = route

    def is_admin(self, chat_id) -> bool:
        return str(chat_id) in self.admin_chat_ids

    # =========================================
    # Обработка событий
    # =========================================

    async def handle_event(self, event: InboundEvent) -> None:
        """
        Главный метод: обрабатывает одно событие под замком чата.

        Ошибки обработчиков не пробрасываются: пользователь получает
        общее сообщение, сессия сбрасывается в IDLE.
        """
        async with self.store.lock(event.chat_id):
            try:
                await self._dispatch(event)
            except Exception as e:
                session = self.store.get(event.chat_id)
                state = session.state.value if session else "idle"
                logger.exception(f"❌ Ошибка обработки {event.kind.value} в чате {event.chat_id} ({state}): {e}")
                await self._fail(event, e)

    async def _dispatch(self, event: InboundEvent) -> None:
        if event.kind == EventKind.COMMAND:
            await self._on_command(event)
        elif event.kind == EventKind.CALLBACK:
            await self._on_callback(event)
        else:
            await self._on_text(event)

    async def _on_command(self, event: InboundEvent) -> None:
        chat_id = event.chat_id

        if event.command == CANCEL_COMMAND:
            self.store.delete(chat_id)
            account = await self.repo.get_account_by_telegram_id(str(chat_id))
            await self.transport.send_message(
                chat_id,
                t('cancel.done'),
                reply_markup=menu_for(registered=account is not None, is_admin=self.is_admin(chat_id)),
            )
            return

        route = self.commands.get(event.command)
        if route is None:
            logger.debug(f"{chat_id}: неизвестная команда /{event.command}")
            return

        if route.admin_only and not self.is_admin(chat_id):
            logger.warning(f"{chat_id}: попытка вызвать /{event.command} без прав администратора")
            await self.transport.send_message(chat_id, t('errors.no_rights'))
            return

        await route.handler(event)

    async def _on_text(self, event: InboundEvent) -> None:
        chat_id = event.chat_id
        session = self.store.get(chat_id)

        if session is None or session.is_idle:
            route = self.menu_labels.get(event.text.strip())
            if route is None:
                return
            if route.admin_only and not self.is_admin(chat_id):
                await self.transport.send_message(chat_id, t('errors.no_rights'))
                return
            await route.handler(event)
            return

        route = self.state_handlers.get(session.state)
        if route is None:
            # Шаг ждёт нажатия кнопки
            logger.debug(f"{chat_id}: текст в состоянии {session.state.value} проигнорирован")
            return
        await route.handler(session, event)

    async def _on_callback(self, event: InboundEvent) -> None:
        chat_id = event.chat_id
        await self._answer(event)

        callback = event.callback
        if callback is None:
            logger.debug(f"{chat_id}: неизвестные данные кнопки {event.callback_data!r}")
            return

        route = self.callbacks.get(callback.action)
        if route is None:
            return

        if route.admin_only and not self.is_admin(chat_id):
            logger.warning(f"{chat_id}: нажатие {callback.action.value} без прав администратора")
            await self.transport.send_message(chat_id, t('errors.no_rights_moderation'))
            return

        session = self.store.get(chat_id)
        if route.states is not None and (session is None or session.state not in route.states):
            logger.debug(f"{chat_id}: устаревшая кнопка {callback.action.value}")
            return

        await route.handler(session, event)

    async def _answer(self, event: InboundEvent) -> None:
        if not event.callback_id:
            return
        try:
            await self.transport.answer_callback(event.callback_id)
        except TelegramBadRequest as e:
            # query is too old
            logger.warning(f"Не удалось ответить на нажатие в чате {event.chat_id}: {e}")

    async def _fail(self, event: InboundEvent, error: Exception) -> None:
        text = t('errors.generic')
        if self.show_error_details:
            text += "\n\n" + t('errors.detail', type=type(error).__name__, detail=str(error))

        self.store.delete(event.chat_id)
        try:
            await self.transport.send_message(event.chat_id, text)
        except Exception as e:
            logger.error(f"Не удалось отправить сообщение об ошибке в чат {event.chat_id}: {e}")
