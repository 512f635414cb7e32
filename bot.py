"""
PracticeHub Bot — Telegram-бот для регистрации студентов на практику.

Регистрация и редактирование заявок, задания и решения,
модерация заявок администраторами, ежедневные напоминания.
Данные хранятся в PostgreSQL.
"""

import asyncio

from aiogram import Bot, Dispatcher, Router, F
from aiogram.types import Message, CallbackQuery, BotCommand

from config import get_logger, validate_env, BOT_TOKEN, ADMIN_CHAT_IDS
from core.machine import ConversationEngine
from core.notifier import NotificationDispatcher
from core.scheduler import build_scheduler
from core.storage import SessionStore
from core.transport import TelegramTransport, PollingSupervisor, event_from_message, event_from_callback
from db import init_db, close_pool, Repository
from locales import t
from states.registry import register_all_flows

logger = get_logger(__name__)

BOT_COMMANDS = ("start", "register", "my_practice", "tasks", "info", "link", "help", "cancel")


def build_router(engine: ConversationEngine) -> Router:
    """Все апдейты чата передаются движку"""
    router = Router()

    @router.message(F.text)
    async def on_message(message: Message):
        event = event_from_message(message)
        if event:
            await engine.handle_event(event)

    @router.callback_query()
    async def on_callback(callback: CallbackQuery):
        event = event_from_callback(callback)
        if event is None:
            await callback.answer()
            return
        await engine.handle_event(event)

    return router


# ============= ЗАПУСК =============

async def main():
    validate_env()

    # Инициализация БД
    await init_db()

    bot = Bot(token=BOT_TOKEN)
    transport = TelegramTransport(bot)
    notifier = NotificationDispatcher(transport)

    engine = ConversationEngine(transport, Repository, notifier, SessionStore(), ADMIN_CHAT_IDS)
    register_all_flows(engine)

    dp = Dispatcher()
    dp.include_router(build_router(engine))

    # Установка команд бота (Menu-кнопка)
    await bot.set_my_commands([
        BotCommand(command=command, description=t(f'commands.{command}'))
        for command in BOT_COMMANDS
    ])

    # Запуск планировщика
    scheduler = build_scheduler(Repository, notifier, ADMIN_CHAT_IDS)
    scheduler.start()

    logger.info("🚀 Бот запущен с PostgreSQL!")
    try:
        await PollingSupervisor(dp, bot).run()
    finally:
        scheduler.shutdown(wait=False)
        await bot.session.close()
        await close_pool()
        logger.info("Бот остановлен")


if __name__ == "__main__":
    asyncio.run(main())
