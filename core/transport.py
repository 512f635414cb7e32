"""
Транспорт Telegram: входящие события, исходящие сообщения, перезапуск polling.

Содержит:
- InboundEvent: событие чата, не зависящее от типов aiogram
- event_from_message / event_from_callback: разбор апдейтов aiogram
- TelegramTransport: отправка/редактирование сообщений через Bot
- RestartPolicy / PollingSupervisor: перезапуск после фатальных ошибок polling
"""

import asyncio
import time
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.enums import ChatAction, ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import Message, CallbackQuery

from config import (
    get_logger,
    POLLING_FATAL_RETRY_LIMIT,
    POLLING_FATAL_WINDOW_SEC,
    POLLING_RESTART_DELAY_SEC,
    POLLING_SETTLE_DELAY_SEC,
)
from core.callbacks import Callback, parse_callback

logger = get_logger(__name__)


# ============= ВХОДЯЩИЕ СОБЫТИЯ =============

class EventKind(str, Enum):
    COMMAND = "command"
    TEXT = "text"
    CALLBACK = "callback"


@dataclass
class InboundEvent:
    kind: EventKind
    chat_id: int
    text: str = ''
    command: Optional[str] = None
    callback: Optional[Callback] = None
    callback_data: Optional[str] = None
    callback_id: Optional[str] = None
    message_id: Optional[int] = None
    username: Optional[str] = None
    first_name: Optional[str] = None


def parse_command(text: str) -> Optional[str]:
    """'/start@practice_bot arg' → 'start'"""
    if not text.startswith('/'):
        return None
    head = text[1:].split(maxsplit=1)[0] if len(text) > 1 else ''
    return head.split('@', 1)[0].lower() or None


def event_from_message(message: Message) -> Optional[InboundEvent]:
    """Текстовое сообщение → InboundEvent (None для медиа без текста)."""
    if not message.text:
        return None

    text = message.text
    command = parse_command(text)
    user = message.from_user
    return InboundEvent(
        kind=EventKind.COMMAND if command else EventKind.TEXT,
        chat_id=message.chat.id,
        text=text,
        command=command,
        message_id=message.message_id,
        username=user.username if user else None,
        first_name=user.first_name if user else None,
    )


def event_from_callback(query: CallbackQuery) -> Optional[InboundEvent]:
    """Нажатие inline-кнопки → InboundEvent с разобранной командой."""
    if query.message is None:
        return None

    return InboundEvent(
        kind=EventKind.CALLBACK,
        chat_id=query.message.chat.id,
        callback=parse_callback(query.data),
        callback_data=query.data,
        callback_id=query.id,
        message_id=query.message.message_id,
        username=query.from_user.username if query.from_user else None,
        first_name=query.from_user.first_name if query.from_user else None,
    )


# ============= ИСХОДЯЩИЕ СООБЩЕНИЯ =============

class TelegramTransport:
    """
    Исходящая сторона бота.

    Ошибки Telegram пробрасываются вызывающему коду; терпимость к сбоям
    доставки обеспечивает NotificationDispatcher.
    """

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_message(self, chat_id, text: str, markdown: bool = False, reply_markup=None) -> Message:
        return await self.bot.send_message(
            chat_id,
            text,
            parse_mode=ParseMode.MARKDOWN if markdown else None,
            reply_markup=reply_markup,
        )

    async def edit_message(self, chat_id, message_id: int, text: str, markdown: bool = False, reply_markup=None):
        return await self.bot.edit_message_text(
            text=text,
            chat_id=chat_id,
            message_id=message_id,
            parse_mode=ParseMode.MARKDOWN if markdown else None,
            reply_markup=reply_markup,
        )

    async def remove_keyboard(self, chat_id, message_id: int) -> None:
        """Убирает inline-кнопки у сообщения (повторное нажатие невозможно)."""
        try:
            await self.bot.edit_message_reply_markup(chat_id=chat_id, message_id=message_id, reply_markup=None)
        except TelegramBadRequest as e:
            # "message is not modified" — кнопки уже убраны
            logger.warning(f"Не удалось убрать клавиатуру {chat_id}/{message_id}: {e}")

    async def answer_callback(self, callback_id: str, text: Optional[str] = None) -> None:
        await self.bot.answer_callback_query(callback_id, text=text)

    async def send_typing(self, chat_id) -> None:
        await self.bot.send_chat_action(chat_id, ChatAction.TYPING)

    async def get_bot_username(self) -> str:
        me = await self.bot.get_me()
        return me.username


# ============= ПЕРЕЗАПУСК POLLING =============

class RestartPolicy:
    """
    Ограничение автоматических перезапусков polling.

    Считает фатальные ошибки подряд. Счётчик сбрасывается, только если
    polling проработал без ошибок дольше окна. Больше лимита ошибок
    подряд: перезапуск запрещён, нужен оператор.
    """

    def __init__(
        self,
        limit: int = POLLING_FATAL_RETRY_LIMIT,
        window: float = POLLING_FATAL_WINDOW_SEC,
        clock=time.monotonic,
    ):
        self.limit = limit
        self.window = window
        self.clock = clock
        self.failures = 0

    def record_failure(self, uptime: float) -> bool:
        """
        Регистрирует фатальную ошибку.

        Args:
            uptime: сколько секунд polling проработал до ошибки

        Returns:
            True если перезапуск ещё разрешён
        """
        if uptime > self.window:
            self.reset()
        self.failures += 1
        return self.failures <= self.limit

    def reset(self) -> None:
        self.failures = 0


class PollingSupervisor:
    """
    Запускает long polling и перезапускает его после фатальных ошибок.

    Сетевые сбои и таймауты aiogram обрабатывает сам внутри start_polling
    (логирует и повторяет запрос). Исключение, вылетевшее из start_polling,
    считается фатальным.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        bot: Bot,
        policy: Optional[RestartPolicy] = None,
        restart_delay: float = POLLING_RESTART_DELAY_SEC,
        settle_delay: float = POLLING_SETTLE_DELAY_SEC,
        sleep=asyncio.sleep,
    ):
        self.dispatcher = dispatcher
        self.bot = bot
        self.policy = policy or RestartPolicy()
        self.restart_delay = restart_delay
        self.settle_delay = settle_delay
        self._sleep = sleep

    async def run(self) -> bool:
        """
        Returns:
            True при штатной остановке, False если лимит перезапусков исчерпан
        """
        while True:
            started = self.policy.clock()
            try:
                await self.dispatcher.start_polling(self.bot, handle_signals=False, close_bot_session=False)
                logger.info("Polling остановлен")
                return True
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if not self.policy.record_failure(self.policy.clock() - started):
                    logger.critical(
                        f"❌ Polling упал {self.policy.failures} раз подряд, "
                        f"автоперезапуск остановлен. Требуется вмешательство: {e}"
                    )
                    return False

                logger.error(
                    f"❌ Критическая ошибка polling ({self.policy.failures}/{self.policy.limit}): {e}. "
                    f"Перезапуск через {self.restart_delay}с"
                )
                await self._sleep(self.restart_delay)
                await self._stop_quietly()
                await self._sleep(self.settle_delay)
                logger.info("🔄 Polling перезапускается")

    async def _stop_quietly(self) -> None:
        with suppress(RuntimeError):
            await self.dispatcher.stop_polling()
