"""
Сценарий: Отправка решения задания.

Вход: кнопка «📤 Отправить решение» под заданием (/tasks, «📋 Мои задания»)
Шаги: одно сообщение со ссылкой и/или описанием
Выход: решение SUBMITTED, задание SUBMITTED, уведомление администраторам
"""

from config import get_logger, TaskStatus, TASK_STATUS_NAMES
from core.callbacks import CallbackAction
from core.helpers import escape_md, full_name, now_local, truncate
from core.keyboards import kb_submit_task
from core.session import Flow, SubmissionState, SubmissionDraft
from core.validators import ValidationError, parse_solution
from locales import t
from states.base import BaseFlow

logger = get_logger(__name__)


def format_deadline(deadline) -> str:
    if deadline is None:
        return t('tasks.no_deadline')
    return deadline.astimezone(now_local().tzinfo).strftime('%d.%m.%Y %H:%M')


def is_late_submission_refused(task: dict, now) -> bool:
    """Срок прошёл и поздняя сдача явно запрещена (None считается разрешением)"""
    deadline = task.get('deadline')
    if deadline is None or now <= deadline:
        return False
    return task.get('allow_late_submission') is False


def task_card(task: dict, now) -> str:
    """Карточка задания для студента (Markdown)"""
    try:
        status = TASK_STATUS_NAMES[TaskStatus(task['status'])]
    except ValueError:
        status = task['status']

    text = t(
        'tasks.item',
        title=escape_md(task['title']),
        description=escape_md(truncate(task.get('description'), 500)),
        deadline=format_deadline(task.get('deadline')),
        status=status,
    )
    if task.get('reference_link'):
        text += '\n' + t('tasks.item_link', link=escape_md(task['reference_link']))
    if task.get('deadline') and now > task['deadline']:
        text += '\n' + t('tasks.item_overdue')
    return text


class SubmissionFlow(BaseFlow):
    """Список заданий студента и приём решений"""

    name = "submission"
    flow = Flow.SUBMISSION

    commands = {"tasks": "show_tasks"}
    menu_labels = {"menu.my_tasks": "show_tasks"}

    state_handlers = {
        SubmissionState.WAITING_SOLUTION: "on_solution",
    }

    callbacks = {
        CallbackAction.SUBMIT_TASK: ("on_submit", None),
    }

    async def show_tasks(self, event) -> None:
        chat_id = event.chat_id

        student = await self.linked_student(chat_id)
        if not student:
            await self.send(chat_id, t('tasks.not_student'))
            return

        tasks = await self.repo.get_student_tasks(student['id'])
        if not tasks:
            await self.send(chat_id, t('tasks.empty'))
            return

        now = now_local()
        await self.send(chat_id, t('tasks.header', count=len(tasks)), markdown=True)
        for task in tasks:
            await self.send(chat_id, task_card(task, now), markdown=True, reply_markup=kb_submit_task(task))

    async def on_submit(self, session, event) -> None:
        chat_id = event.chat_id

        task = await self.repo.get_task(event.callback.argument)
        if not task:
            await self.send(chat_id, t('submission.task_gone'))
            return

        student = await self.linked_student(chat_id)
        if not student or task.get('student_id') != student['id']:
            await self.send(chat_id, t('submission.not_student'))
            return

        self.start_session(
            chat_id,
            SubmissionState.WAITING_SOLUTION,
            SubmissionDraft(task_id=task['id'], task_title=task['title']),
        )
        prompt = t('submission.ask_solution', title=task['title'])
        if await self.repo.get_submission(task['id'], student['id']):
            prompt += '\n\n' + t('submission.resubmit_note')
        await self.send(chat_id, prompt)

    async def on_solution(self, session, event) -> None:
        chat_id = event.chat_id

        try:
            link, description = parse_solution(event.text)
        except ValidationError as e:
            await self.reprompt(chat_id, e)
            return

        task = await self.repo.get_task(session.draft.task_id)
        student = await self.linked_student(chat_id)
        if not task or not student:
            self.finish(chat_id)
            await self.send(chat_id, t('submission.task_gone'))
            return

        if is_late_submission_refused(task, now_local()):
            self.finish(chat_id)
            await self.send(
                chat_id,
                t('submission.late_forbidden', deadline=format_deadline(task['deadline'])),
                reply_markup=await self.menu(chat_id),
            )
            return

        await self.repo.submit_solution(task['id'], student['id'], link, description)
        self.finish(chat_id)

        await self.send(
            chat_id,
            t('submission.saved', title=task['title']),
            reply_markup=await self.menu(chat_id),
        )

        if self.admin_chat_ids:
            await self.notifier.send_bulk(
                self.admin_chat_ids,
                t(
                    'submission.admin_notice',
                    student=escape_md(full_name(student)),
                    title=escape_md(task['title']),
                    link=escape_md(link) if link else t('common.dash'),
                    description=escape_md(truncate(description, 500)) if description else t('common.dash'),
                ),
            )
