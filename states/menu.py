"""
Команды и кнопки меню без состояния.

/start, /help, /info, /link, /test, /my_practice, а также кнопки
«ℹ️ Информация», «📞 Контакты», «📅 Моя практика», «🔔 Уведомления».
"""

import time
from datetime import date
from typing import Optional

from aiogram.exceptions import TelegramAPIError

from config import (
    get_logger,
    SUPPORT_CONTACTS,
    DIGEST_HOUR,
    PracticeType,
    ApplicationStatus,
    StudentStatus,
    APPLICATION_STATUS_NAMES,
    STUDENT_STATUS_NAMES,
)
from core.helpers import escape_md, full_name, today_local, days_remaining, pluralize_days, now_local
from core.validators import format_date
from locales import t
from states.base import BaseFlow

logger = get_logger(__name__)

NEAREST_DEADLINES_LIMIT = 3


def _practice_type_name(value) -> str:
    try:
        return PracticeType(value).display_name
    except ValueError:
        return str(value or '')


def days_line(end_date, today: date) -> str:
    days = days_remaining(end_date, today)
    if days > 0:
        return t('practice.days_left', days=days)
    if days == 0:
        return t('practice.ends_today')
    return t('practice.finished', days=-days, days_word=pluralize_days(-days))


def format_student_info(student: dict, today: date) -> str:
    """Карточка практики одобренного студента (Markdown)"""
    try:
        status = STUDENT_STATUS_NAMES[StudentStatus(student['status'])]
    except ValueError:
        status = student['status']

    text = t(
        'practice.student',
        full_name=escape_md(full_name(student)),
        practice_type=escape_md(_practice_type_name(student.get('practice_type'))),
        institution_name=escape_md(student.get('institution_title') or student.get('institution_name')),
        course=student.get('course') or t('common.not_specified_m'),
        status=status,
        start_date=format_date(student.get('start_date')),
        end_date=format_date(student.get('end_date')),
        days_line=days_line(student['end_date'], today),
    )
    if student.get('supervisor'):
        text += '\n' + t('practice.supervisor', supervisor=escape_md(student['supervisor']))
    if student.get('notes'):
        text += '\n' + t('practice.notes', notes=escape_md(student['notes']))
    return text


def format_application_info(application: dict) -> str:
    """Статус последней заявки (Markdown)"""
    status = ApplicationStatus(application['status'])

    if status == ApplicationStatus.REJECTED and application.get('rejection_reason'):
        status_message = t(
            'practice.status_message.REJECTED_REASON',
            reason=escape_md(application['rejection_reason']),
        )
    else:
        status_message = t(f'practice.status_message.{status.value}')

    return t(
        'practice.application',
        full_name=escape_md(full_name(application)),
        practice_type=escape_md(_practice_type_name(application.get('practice_type'))),
        institution_name=escape_md(application.get('institution_name')),
        start_date=format_date(application.get('start_date')),
        end_date=format_date(application.get('end_date')),
        status=APPLICATION_STATUS_NAMES[status],
        status_message=status_message,
    )


def format_notifications(student: dict, tasks: list[dict], today: date) -> str:
    """Сводка «🔔 Уведомления»: остаток практики и ближайшие сроки"""
    end_date = student['end_date']
    days = days_remaining(end_date, today)
    if days > 0:
        practice_line = t(
            'notifications.practice_left',
            days=days, days_word=pluralize_days(days), end_date=format_date(end_date),
        )
    elif days == 0:
        practice_line = t('notifications.practice_today')
    else:
        practice_line = t('notifications.practice_finished', end_date=format_date(end_date))

    with_deadline = [task for task in tasks if task.get('deadline')]
    with_deadline.sort(key=lambda task: task['deadline'])
    tz = now_local().tzinfo
    lines = [
        t(
            'notifications.deadline_item',
            title=escape_md(task['title']),
            deadline=task['deadline'].astimezone(tz).strftime('%d.%m.%Y %H:%M'),
        )
        for task in with_deadline[:NEAREST_DEADLINES_LIMIT]
    ]

    return t(
        'notifications.summary',
        practice_line=practice_line,
        deadlines='\n'.join(lines) if lines else t('notifications.no_deadlines'),
    )


class MenuFlow(BaseFlow):
    """Справочные команды и кнопки постоянного меню"""

    name = "menu"

    commands = {
        "start": "cmd_start",
        "help": "cmd_help",
        "info": "cmd_info",
        "link": "cmd_link",
        "test": "cmd_test",
        "my_practice": "show_practice",
    }
    menu_labels = {
        "menu.info": "cmd_info",
        "menu.contacts": "show_contacts",
        "menu.my_practice": "show_practice",
        "menu.notifications": "show_notifications",
    }

    async def cmd_start(self, event) -> None:
        chat_id = event.chat_id
        self.finish(chat_id)

        name = event.first_name or t('start.default_name')
        account = await self.repo.get_account_by_telegram_id(str(chat_id))

        if account:
            hint = 'start.hint_practice' if account.get('student_id') else 'start.hint_registered'
            text = f"{t('start.welcome_back', name=name)}\n\n{t(hint)}"
        else:
            text = t('start.welcome_new', name=name)

        if self.is_admin(chat_id):
            text += f"\n\n{t('start.admin_hint')}"

        await self.send(chat_id, text, reply_markup=await self.menu(chat_id))

    async def cmd_help(self, event) -> None:
        chat_id = event.chat_id
        account = await self.repo.get_account_by_telegram_id(str(chat_id))

        parts = [t('help.base'), t('help.registered') if account else t('help.unregistered')]
        if self.is_admin(chat_id):
            parts.append(t('help.admin'))
        await self.send(chat_id, '\n'.join(parts))

    async def cmd_info(self, event) -> None:
        await self.send(event.chat_id, t('info'))

    async def show_contacts(self, event) -> None:
        await self.send(event.chat_id, t('contacts', contacts=escape_md(SUPPORT_CONTACTS)), markdown=True)

    async def cmd_link(self, event) -> None:
        try:
            username = await self.transport.get_bot_username()
        except TelegramAPIError as e:
            logger.error(f"Не удалось получить информацию о боте: {e}")
            await self.send(event.chat_id, t('link.error'))
            return

        await self.send(
            event.chat_id,
            t('link.text', link=escape_md(f"https://t.me/{username}"), username=escape_md(username)),
            markdown=True,
        )

    async def cmd_test(self, event) -> None:
        started = time.monotonic()
        await self.transport.send_typing(event.chat_id)
        ms = int((time.monotonic() - started) * 1000)
        await self.send(event.chat_id, t('test', ms=ms), markdown=True)

    async def show_practice(self, event) -> None:
        chat_id = event.chat_id
        text, markdown = await self._practice_text(chat_id)
        await self.send(chat_id, text, markdown=markdown, reply_markup=await self.menu(chat_id))

    async def _practice_text(self, chat_id) -> tuple[str, bool]:
        account = await self.repo.get_account_by_telegram_id(str(chat_id))
        if not account:
            return t('practice.none_unregistered'), False

        student: Optional[dict] = None
        if account.get('student_id'):
            student = await self.repo.get_student(account['student_id'])
        if student:
            return format_student_info(student, today_local()), True

        applications = await self.repo.get_account_applications(account['id'], limit=1)
        if not applications:
            return t('practice.none_registered'), False
        return format_application_info(applications[0]), True

    async def show_notifications(self, event) -> None:
        chat_id = event.chat_id

        student = await self.linked_student(chat_id)
        if not student:
            await self.send(chat_id, t('notifications.not_student', hour=DIGEST_HOUR))
            return

        tasks = await self.repo.get_student_tasks(student['id'])
        await self.send(chat_id, format_notifications(student, tasks, today_local()), markdown=True)
