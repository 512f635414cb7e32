"""
Сценарий: Создание задания (администратор).

Вход: /new_task или кнопка «➕ Новое задание»
Шаги: студент (кнопка или фамилия) → название → описание → срок
      → ссылка на материалы → подтверждение
Выход: задание PENDING («Новое»), студент получает уведомление
"""

from config import get_logger
from core.callbacks import CallbackAction
from core.helpers import escape_md, full_name, now_local
from core.keyboards import kb_task_students, kb_confirm_task
from core.session import Flow, CreationState, CreationDraft
from core.validators import (
    ValidationError,
    validate_task_title,
    validate_task_description,
    validate_deadline,
    validate_reference_link,
)
from locales import t
from states.base import BaseFlow

logger = get_logger(__name__)

S = CreationState


def creation_summary(draft: CreationDraft) -> str:
    """Итог перед созданием (обычный текст)"""
    return t(
        'creation.confirmation',
        student=draft.student_name,
        title=draft.title,
        description=draft.description,
        deadline=draft.deadline.strftime('%d.%m.%Y %H:%M'),
        link=draft.reference_link or t('common.dash'),
    )


def student_notice(task: dict) -> str:
    link_line = ''
    if task.get('reference_link'):
        link_line = t('creation.student_notice_link', link=escape_md(task['reference_link'])) + '\n'
    return t(
        'creation.student_notice',
        title=escape_md(task['title']),
        description=escape_md(task['description']),
        deadline=task['deadline'].astimezone(now_local().tzinfo).strftime('%d.%m.%Y %H:%M'),
        link_line=link_line,
    )


class TaskCreationFlow(BaseFlow):
    """Назначение задания студенту"""

    name = "task_creation"
    flow = Flow.CREATION

    commands = {"new_task": "start"}
    admin_commands = {"new_task"}
    admin_menu_labels = {"menu.new_task": "start"}

    state_handlers = {
        S.WAITING_STUDENT: "on_student_name",
        S.WAITING_TITLE: "on_title",
        S.WAITING_DESCRIPTION: "on_description",
        S.WAITING_DEADLINE: "on_deadline",
        S.WAITING_REFERENCE_LINK: "on_reference_link",
    }

    callbacks = {
        CallbackAction.NEW_TASK_STUDENT: ("on_student_button", {S.WAITING_STUDENT}),
        CallbackAction.NEW_TASK_CONFIRM: ("on_confirm", {S.CONFIRMING}),
        CallbackAction.NEW_TASK_CANCEL: ("on_cancel", set(CreationState)),
    }
    admin_callbacks = {
        CallbackAction.NEW_TASK_STUDENT,
        CallbackAction.NEW_TASK_CONFIRM,
        CallbackAction.NEW_TASK_CANCEL,
    }

    async def start(self, event) -> None:
        chat_id = event.chat_id

        students = await self.repo.get_assignable_students()
        if not students:
            await self.send(chat_id, t('creation.no_students'))
            return

        self.start_session(chat_id, S.WAITING_STUDENT, CreationDraft())
        await self.send(chat_id, t('creation.choose_student'), reply_markup=kb_task_students(students))

    # =========================================
    # Выбор студента
    # =========================================

    async def on_student_button(self, session, event) -> None:
        student = await self.repo.get_student(event.callback.argument)
        if not student:
            await self.send(event.chat_id, t('creation.student_gone'))
            return
        await self._select_student(session, event.chat_id, student)

    async def on_student_name(self, session, event) -> None:
        chat_id = event.chat_id
        matches = await self.repo.find_students_by_last_name(event.text)

        if not matches:
            await self.send(chat_id, t('creation.student_not_found'))
            return
        if len(matches) > 1:
            await self.send(chat_id, t('creation.several_students'), reply_markup=kb_task_students(matches))
            return

        await self._select_student(session, chat_id, matches[0])

    async def _select_student(self, session, chat_id, student: dict) -> None:
        draft = session.draft
        draft.student_id = student['id']
        draft.student_name = full_name(student)
        draft.student_telegram_id = student.get('telegram_id')

        self.advance(session, S.WAITING_TITLE)
        await self.send(chat_id, t('creation.ask_title', student=escape_md(draft.student_name)), markdown=True)

    # =========================================
    # Поля задания
    # =========================================

    async def on_title(self, session, event) -> None:
        try:
            session.draft.title = validate_task_title(event.text)
        except ValidationError as e:
            await self.reprompt(event.chat_id, e)
            return

        self.advance(session, S.WAITING_DESCRIPTION)
        await self.send(event.chat_id, t('creation.ask_description'), markdown=True)

    async def on_description(self, session, event) -> None:
        try:
            session.draft.description = validate_task_description(event.text)
        except ValidationError as e:
            await self.reprompt(event.chat_id, e)
            return

        self.advance(session, S.WAITING_DEADLINE)
        await self.send(event.chat_id, t('creation.ask_deadline'), markdown=True)

    async def on_deadline(self, session, event) -> None:
        try:
            session.draft.deadline = validate_deadline(event.text, now_local())
        except ValidationError as e:
            await self.reprompt(event.chat_id, e)
            return

        self.advance(session, S.WAITING_REFERENCE_LINK)
        await self.send(event.chat_id, t('creation.ask_reference_link'), markdown=True)

    async def on_reference_link(self, session, event) -> None:
        try:
            session.draft.reference_link = validate_reference_link(event.text)
        except ValidationError as e:
            await self.reprompt(event.chat_id, e)
            return

        self.advance(session, S.CONFIRMING)
        await self.send(event.chat_id, creation_summary(session.draft), reply_markup=kb_confirm_task())

    # =========================================
    # Подтверждение
    # =========================================

    async def on_confirm(self, session, event) -> None:
        chat_id = event.chat_id
        draft = session.draft

        task = await self.repo.create_task(
            title=draft.title,
            description=draft.description,
            deadline=draft.deadline,
            student_id=draft.student_id,
            assigned_by=str(chat_id),
            reference_link=draft.reference_link,
            allow_late_submission=True,
        )
        self.finish(chat_id)
        logger.info(f"[task_creation] {chat_id}: задание {task['id']} для студента {draft.student_id}")

        await self.send(
            chat_id,
            t('creation.created', title=draft.title, student=draft.student_name),
            reply_markup=await self.menu(chat_id),
        )

        if not draft.student_telegram_id:
            await self.send(chat_id, t('creation.created_no_telegram'))
            return

        await self.notifier.send(draft.student_telegram_id, student_notice(task))

    async def on_cancel(self, session, event) -> None:
        self.finish(event.chat_id)
        await self.send(event.chat_id, t('creation.cancelled'), reply_markup=await self.menu(event.chat_id))
