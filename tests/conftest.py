"""
Общие фикстуры: хранилище в памяти вместо PostgreSQL и транспорт,
записывающий исходящие сообщения вместо Telegram.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from itertools import count
from typing import Any, Optional

import pytest

from config import ApplicationStatus, StudentStatus, TaskStatus, SubmissionStatus, TIMEZONE
from core.callbacks import Callback, CallbackAction
from core.machine import ConversationEngine
from core.notifier import NotificationDispatcher
from core.storage import SessionStore
from core.transport import EventKind, InboundEvent
from db.errors import ConflictError, NotFoundError
from db.queries.applications import UPDATABLE_FIELDS
from states.registry import register_all_flows

STUDENT_CHAT = 1001
OTHER_CHAT = 1002
ADMIN_CHAT = 9001


# ============= ХРАНИЛИЩЕ В ПАМЯТИ =============

class InMemoryRepository:
    """Те же методы, что у db.Repository, поверх словарей"""

    def __init__(self):
        self.accounts: dict[str, dict] = {}
        self.applications: dict[str, dict] = {}
        self.students: dict[str, dict] = {}
        self.tasks: dict[str, dict] = {}
        self.submissions: dict[tuple, dict] = {}
        self._seq = count(1)

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    def _stamp(self) -> int:
        return next(self._seq)

    # --- аккаунты ---

    async def get_account_by_telegram_id(self, telegram_id):
        return next((dict(a) for a in self.accounts.values() if a['telegram_id'] == str(telegram_id)), None)

    async def get_account_by_email(self, email):
        return next((dict(a) for a in self.accounts.values() if a['email'] == email), None)

    async def get_accounts_by_username(self, username):
        return [dict(a) for a in self.accounts.values() if a['username'] == username]

    async def create_account(self, username, email, password_hash, telegram_id, telegram_username=None,
                             privacy_accepted=False, privacy_accepted_at=None):
        for account in self.accounts.values():
            if account['telegram_id'] == str(telegram_id):
                raise ConflictError('telegram_id')
            if account['email'] == email:
                raise ConflictError('email')

        account = {
            'id': self._new_id(),
            'username': username,
            'email': email,
            'password': password_hash,
            'telegram_id': str(telegram_id),
            'telegram_username': telegram_username,
            'privacy_accepted': privacy_accepted,
            'privacy_accepted_at': privacy_accepted_at,
            'student_id': None,
        }
        self.accounts[account['id']] = account
        return dict(account)

    async def delete_account(self, account_id):
        if self.accounts.pop(account_id, None) is None:
            return False
        for app_id in [k for k, a in self.applications.items() if a['student_user_id'] == account_id]:
            del self.applications[app_id]
        return True

    # --- заявки ---

    async def create_application(self, account_id, data):
        application = {
            'id': self._new_id(),
            'student_user_id': account_id,
            'status': ApplicationStatus.PENDING.value,
            'rejection_reason': None,
            'approved_by': None,
            'created_seq': self._stamp(),
            **data,
        }
        self.applications[application['id']] = application
        return dict(application)

    async def get_application(self, application_id):
        application = self.applications.get(application_id)
        if application is None:
            return None
        account = self.accounts.get(application['student_user_id'])
        return {**application, 'account_telegram_id': account['telegram_id'] if account else None}

    async def get_account_applications(self, account_id, statuses=None, limit=None):
        found = [
            dict(a) for a in self.applications.values()
            if a['student_user_id'] == account_id and (statuses is None or a['status'] in statuses)
        ]
        found.sort(key=lambda a: a['created_seq'], reverse=True)
        return found[:limit] if limit else found

    async def get_pending_applications(self, limit=20):
        pending = [dict(a) for a in self.applications.values() if a['status'] == ApplicationStatus.PENDING.value]
        return sorted(pending, key=lambda a: a['created_seq'])[:limit]

    async def count_applications_by_status(self, status):
        return sum(1 for a in self.applications.values() if a['status'] == str(status))

    async def update_application(self, application_id, **fields):
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown application fields: {', '.join(sorted(unknown))}")
        application = self.applications.get(application_id)
        if application is None:
            return None
        application.update(fields)
        return dict(application)

    async def approve_application(self, application_id, approved_by):
        application = self.applications.get(application_id)
        if application is None:
            raise NotFoundError('application', application_id)
        if application['status'] != ApplicationStatus.PENDING.value:
            return None

        application['status'] = ApplicationStatus.APPROVED.value
        application['approved_by'] = str(approved_by)
        account = self.accounts.get(application['student_user_id'])

        fields = dict(
            last_name=application['last_name'],
            first_name=application['first_name'],
            middle_name=application.get('middle_name'),
            practice_type=application['practice_type'],
            institution_name=application['institution_name'],
            course=application.get('course'),
            email=application.get('email'),
            phone=application.get('phone'),
            telegram_id=application.get('telegram_id'),
            start_date=application['start_date'],
            end_date=application['end_date'],
            notes=application.get('notes'),
        )
        linked = self.students.get(account.get('student_id')) if account else None
        if linked is not None:
            linked.update(fields)
            return dict(application), dict(linked)

        student = self.add_student(status=StudentStatus.PENDING.value, **fields)
        if account and account.get('student_id') is None:
            account['student_id'] = student['id']
        return dict(application), student

    async def reject_application(self, application_id, reason):
        application = self.applications.get(application_id)
        if application is None:
            raise NotFoundError('application', application_id)
        if application['status'] != ApplicationStatus.PENDING.value:
            return None
        application['status'] = ApplicationStatus.REJECTED.value
        application['rejection_reason'] = reason
        return dict(application)

    # --- студенты ---

    def add_student(self, **fields) -> dict:
        student = {
            'id': self._new_id(),
            'middle_name': None,
            'practice_type': 'EDUCATIONAL',
            'institution_name': 'Колледж связи',
            'course': 2,
            'telegram_id': None,
            'status': StudentStatus.ACTIVE.value,
            'supervisor': None,
            'notes': None,
            **fields,
        }
        self.students[student['id']] = student
        return dict(student)

    async def get_student(self, student_id):
        student = self.students.get(student_id)
        if student is None:
            return None
        return {**student, 'institution_title': student.get('institution_name')}

    def _live(self):
        live = (StudentStatus.PENDING.value, StudentStatus.ACTIVE.value)
        return [s for s in self.students.values() if s['status'] in live]

    async def get_assignable_students(self, limit=30):
        return sorted((dict(s) for s in self._live()), key=lambda s: (s['last_name'], s['first_name']))[:limit]

    async def find_students_by_last_name(self, last_name):
        wanted = last_name.strip().lower()
        return [dict(s) for s in self._live() if s['last_name'].lower() == wanted]

    async def get_students_for_reminders(self, today):
        return [dict(s) for s in self._live() if s.get('telegram_id') and s['end_date'] >= today]

    async def count_active_students(self, today):
        return sum(
            1 for s in self.students.values()
            if s['status'] == StudentStatus.ACTIVE.value and s['start_date'] <= today <= s['end_date']
        )

    async def get_students_starting(self, day):
        return [dict(s) for s in self.students.values() if s['start_date'] == day]

    async def get_students_ending(self, day):
        return [dict(s) for s in self._live() if s['end_date'] == day]

    # --- задания ---

    def add_task(self, **fields) -> dict:
        task = {
            'id': self._new_id(),
            'description': 'Описание задания',
            'deadline': None,
            'reference_link': None,
            'allow_late_submission': True,
            'status': TaskStatus.PENDING.value,
            'assigned_by': str(ADMIN_CHAT),
            **fields,
        }
        self.tasks[task['id']] = task
        return dict(task)

    async def get_task(self, task_id):
        task = self.tasks.get(task_id)
        return dict(task) if task else None

    async def get_student_tasks(self, student_id, exclude_statuses=None):
        excluded = exclude_statuses or [TaskStatus.COMPLETED.value]
        found = [dict(t) for t in self.tasks.values() if t['student_id'] == student_id and t['status'] not in excluded]
        far = datetime.max.replace(tzinfo=TIMEZONE)
        return sorted(found, key=lambda t: t['deadline'] or far)

    async def create_task(self, title, description, deadline, student_id, assigned_by,
                          reference_link=None, allow_late_submission=True):
        return self.add_task(
            title=title, description=description, deadline=deadline, student_id=student_id,
            assigned_by=str(assigned_by), reference_link=reference_link,
            allow_late_submission=allow_late_submission,
        )

    # --- решения ---

    async def get_submission(self, task_id, student_id):
        submission = self.submissions.get((task_id, student_id))
        return dict(submission) if submission else None

    async def submit_solution(self, task_id, student_id, solution_link, solution_description):
        submission = {
            'task_id': task_id,
            'student_id': student_id,
            'solution_link': solution_link,
            'solution_description': solution_description,
            'status': SubmissionStatus.SUBMITTED.value,
        }
        self.submissions[(task_id, student_id)] = submission
        self.tasks[task_id]['status'] = TaskStatus.SUBMITTED.value
        return dict(submission)


# ============= ТРАНСПОРТ =============

@dataclass
class Sent:
    chat_id: Any
    text: str
    markdown: bool = False
    reply_markup: Any = None


@dataclass
class RecordingTransport:
    """Записывает всё, что бот отправил бы в Telegram"""

    sent: list = field(default_factory=list)
    edited: list = field(default_factory=list)
    removed_keyboards: list = field(default_factory=list)
    answered: list = field(default_factory=list)
    typing: list = field(default_factory=list)
    username: str = "practice_hub_bot"

    async def send_message(self, chat_id, text, markdown=False, reply_markup=None):
        self.sent.append(Sent(chat_id, text, markdown, reply_markup))

    async def edit_message(self, chat_id, message_id, text, markdown=False, reply_markup=None):
        self.edited.append(Sent(chat_id, text, markdown, reply_markup))

    async def remove_keyboard(self, chat_id, message_id):
        self.removed_keyboards.append((chat_id, message_id))

    async def answer_callback(self, callback_id, text=None):
        self.answered.append(callback_id)

    async def send_typing(self, chat_id):
        self.typing.append(chat_id)

    async def get_bot_username(self):
        return self.username

    def texts(self, chat_id) -> list[str]:
        return [m.text for m in self.sent if str(m.chat_id) == str(chat_id)]

    def last(self, chat_id) -> Optional[Sent]:
        messages = [m for m in self.sent if str(m.chat_id) == str(chat_id)]
        return messages[-1] if messages else None

    def clear(self) -> None:
        self.sent.clear()
        self.edited.clear()
        self.removed_keyboards.clear()
        self.answered.clear()


# ============= СОБЫТИЯ =============

def command(chat_id, name: str, first_name: str = "Иван", username: Optional[str] = "ivan") -> InboundEvent:
    return InboundEvent(
        kind=EventKind.COMMAND, chat_id=chat_id, text=f"/{name}", command=name,
        first_name=first_name, username=username,
    )


def text(chat_id, value: str) -> InboundEvent:
    return InboundEvent(kind=EventKind.TEXT, chat_id=chat_id, text=value, username="ivan")


def press(chat_id, action: CallbackAction, argument=None, message_id: int = 500) -> InboundEvent:
    callback = Callback(action, None if argument is None else str(getattr(argument, 'value', argument)))
    return InboundEvent(
        kind=EventKind.CALLBACK,
        chat_id=chat_id,
        callback=callback,
        callback_data=callback.pack(),
        callback_id=f"cb-{chat_id}-{action.name}",
        message_id=message_id,
        username="ivan",
    )


# ============= ФИКСТУРЫ =============

@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def engine(repo, transport, store):
    engine = ConversationEngine(
        transport,
        repo,
        NotificationDispatcher(transport),
        store,
        admin_chat_ids=[ADMIN_CHAT],
        show_error_details=False,
    )
    register_all_flows(engine)
    return engine


@pytest.fixture
def register(engine):
    """Полная регистрация через диалог; возвращает созданную заявку"""

    async def _register(chat_id=STUDENT_CHAT, first_name="Иван", last_name="Петров",
                        email="ivan@example.com", start="01.09.2024", end="30.12.2024"):
        from config import PracticeType, InstitutionType

        steps = [
            command(chat_id, "register"),
            press(chat_id, CallbackAction.PRIVACY_ACCEPT),
            text(chat_id, first_name),
            text(chat_id, last_name),
            text(chat_id, "-"),
            press(chat_id, CallbackAction.PRACTICE_TYPE, PracticeType.PRODUCTION),
            press(chat_id, CallbackAction.INSTITUTION_TYPE, InstitutionType.UNIVERSITY),
            text(chat_id, "МГУ имени Ломоносова"),
            text(chat_id, "3"),
            text(chat_id, email),
            text(chat_id, "+79990000000"),
            text(chat_id, start),
            text(chat_id, end),
            press(chat_id, CallbackAction.CONFIRM_REGISTRATION),
        ]
        for event in steps:
            await engine.handle_event(event)

        account = await engine.repo.get_account_by_telegram_id(str(chat_id))
        applications = await engine.repo.get_account_applications(account['id'])
        return applications[0]

    return _register


@pytest.fixture
def approved_student(engine, register):
    """Зарегистрированный и одобренный студент; возвращает запись студента"""

    async def _approved(chat_id=STUDENT_CHAT, **kwargs):
        application = await register(chat_id, **kwargs)
        await engine.handle_event(press(ADMIN_CHAT, CallbackAction.APPROVE_APPLICATION, application['id']))
        account = await engine.repo.get_account_by_telegram_id(str(chat_id))
        return await engine.repo.get_student(account['student_id'])

    return _approved
