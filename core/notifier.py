"""
Доставка уведомлений.

NotificationDispatcher никогда не бросает исключений наружу:
результат каждой отправки возвращается как DeliveryResult.
Пользователь, заблокировавший бота, — ожидаемая ситуация,
она логируется на уровне INFO.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from aiogram.exceptions import TelegramForbiddenError

from config import get_logger

logger = get_logger(__name__)


@dataclass
class DeliveryResult:
    chat_id: str
    success: bool
    blocked: bool = False
    error: Optional[str] = None


class NotificationDispatcher:
    """Отправка сообщений одному или нескольким получателям через транспорт."""

    def __init__(self, transport):
        self.transport = transport

    async def send(self, chat_id, text: str, markdown: bool = True, reply_markup=None) -> DeliveryResult:
        try:
            await self.transport.send_message(chat_id, text, markdown=markdown, reply_markup=reply_markup)
            return DeliveryResult(chat_id=str(chat_id), success=True)
        except TelegramForbiddenError as e:
            logger.info(f"Получатель {chat_id} недоступен (бот заблокирован): {e}")
            return DeliveryResult(chat_id=str(chat_id), success=False, blocked=True, error=str(e))
        except Exception as e:
            logger.error(f"❌ Ошибка отправки уведомления {chat_id}: {e}")
            return DeliveryResult(chat_id=str(chat_id), success=False, error=str(e))

    async def send_bulk(
        self,
        chat_ids: Iterable,
        text: str,
        markdown: bool = True,
        reply_markup=None,
    ) -> list[DeliveryResult]:
        """Последовательная рассылка; сбой одного получателя не прерывает остальных."""
        results = []
        for chat_id in chat_ids:
            results.append(await self.send(chat_id, text, markdown=markdown, reply_markup=reply_markup))

        failed = [r for r in results if not r.success]
        if failed:
            logger.warning(f"Рассылка: доставлено {len(results) - len(failed)}/{len(results)}")
        return results
