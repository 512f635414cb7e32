"""
Модерация заявок (администратор).

Кнопки «Одобрить»/«Отклонить» под уведомлением о заявке и команда /pending.
Решение применяется условным обновлением: из двух одновременных нажатий
по одной заявке срабатывает только первое, второе получает «уже обработана».
"""

from typing import Optional

from config import get_logger, ApplicationStatus, PracticeType
from core.callbacks import CallbackAction
from core.helpers import escape_md, full_name
from core.keyboards import kb_moderation
from core.validators import format_date
from db.errors import NotFoundError
from locales import t
from states.base import BaseFlow

logger = get_logger(__name__)


def _practice_type_name(value) -> str:
    try:
        return PracticeType(value).display_name
    except ValueError:
        return str(value or '')


def application_prompt(application: dict, edited: bool = False) -> str:
    """Текст заявки для администратора (обычный текст, без разметки)"""
    params = dict(
        full_name=full_name(application),
        practice_type=_practice_type_name(application.get('practice_type')),
        institution_name=application.get('institution_name') or '',
        start_date=format_date(application.get('start_date')),
        end_date=format_date(application.get('end_date')),
        application_id=application['id'],
    )
    if edited:
        return t('moderation.edited_application', **params)
    consent = t('moderation.consent_yes') if application.get('privacy_accepted') else t('moderation.consent_no')
    return t('moderation.new_application', consent=consent, **params)


async def notify_admins_about_application(notifier, admin_chat_ids, application: dict, edited: bool = False):
    """Разослать заявку всем администраторам с кнопками решения"""
    if not admin_chat_ids:
        logger.warning(f"Заявка {application['id']}: список администраторов пуст")
        return []

    return await notifier.send_bulk(
        admin_chat_ids,
        application_prompt(application, edited=edited),
        markdown=False,
        reply_markup=kb_moderation(application['id']),
    )


def status_change_text(application: dict, status: str, reason: Optional[str] = None) -> Optional[str]:
    """Уведомление студента о решении по заявке (Markdown)"""
    params = dict(
        full_name=escape_md(full_name(application)),
        practice_type=escape_md(_practice_type_name(application.get('practice_type'))),
        institution_name=escape_md(application.get('institution_name')),
        start_date=format_date(application.get('start_date')),
        end_date=format_date(application.get('end_date')),
    )
    if status == ApplicationStatus.APPROVED:
        return t('moderation.status_approved', **params)
    if status == ApplicationStatus.REJECTED:
        return t('moderation.status_rejected', reason=escape_md(reason) if reason else t('moderation.no_reason'), **params)
    return None


async def notify_application_status_change(notifier, application: dict, status: str,
                                           reason: Optional[str] = None) -> bool:
    """
    Сообщить студенту о решении.

    Returns:
        True если сообщение доставлено
    """
    telegram_id = application.get('account_telegram_id') or application.get('telegram_id')
    if not telegram_id:
        logger.info(f"Заявка {application['id']}: нет telegram_id, уведомление не отправлено")
        return False

    text = status_change_text(application, status, reason)
    if not text:
        return False

    result = await notifier.send(telegram_id, text)
    if result.success:
        logger.info(f"Отправлено уведомление о статусе заявки {application['id']} пользователю {telegram_id}")
    return result.success


class ModerationFlow(BaseFlow):
    """Одобрение и отклонение заявок администратором"""

    name = "moderation"

    commands = {"pending": "show_pending"}
    admin_commands = {"pending"}
    admin_menu_labels = {"menu.pending": "show_pending"}

    callbacks = {
        CallbackAction.APPROVE_APPLICATION: ("on_approve", None),
        CallbackAction.REJECT_APPLICATION: ("on_reject", None),
    }
    admin_callbacks = {CallbackAction.APPROVE_APPLICATION, CallbackAction.REJECT_APPLICATION}

    async def show_pending(self, event) -> None:
        applications = await self.repo.get_pending_applications()
        if not applications:
            await self.send(event.chat_id, t('moderation.pending_empty'))
            return

        total = await self.repo.count_applications_by_status(ApplicationStatus.PENDING.value)
        await self.send(event.chat_id, t('moderation.pending_header', count=total))
        for application in applications:
            await self.send(
                event.chat_id,
                application_prompt(application),
                reply_markup=kb_moderation(application['id']),
            )

    async def on_approve(self, session, event) -> None:
        chat_id = event.chat_id
        application_id = event.callback.argument

        try:
            result = await self.repo.approve_application(application_id, str(chat_id))
        except NotFoundError:
            await self._reply_and_close(event, t('moderation.not_found'))
            return

        if result is None:
            await self._reply_and_close(event, t('moderation.already_processed'))
            return

        application, student = result
        await self._reply_and_close(event, t('moderation.approved', student_id=student['id']))

        application = await self.repo.get_application(application_id) or application
        await notify_application_status_change(self.notifier, application, ApplicationStatus.APPROVED)

    async def on_reject(self, session, event) -> None:
        application_id = event.callback.argument
        reason = t('moderation.reject_reason')

        try:
            application = await self.repo.reject_application(application_id, reason)
        except NotFoundError:
            await self._reply_and_close(event, t('moderation.not_found'))
            return

        if application is None:
            await self._reply_and_close(event, t('moderation.already_processed'))
            return

        await self._reply_and_close(event, t('moderation.rejected'))

        application = await self.repo.get_application(application_id) or application
        await notify_application_status_change(self.notifier, application, ApplicationStatus.REJECTED, reason)

    async def _reply_and_close(self, event, text: str) -> None:
        """Ответ администратору и удаление кнопок под заявкой"""
        await self.send(event.chat_id, text)
        if event.message_id:
            await self.transport.remove_keyboard(event.chat_id, event.message_id)
