"""
Сессия диалога: состояние и черновик данных одного чата.

Каждый сценарий (flow) владеет своим перечислением состояний и своим
типом черновика. Тип черновика обязан соответствовать сценарию текущего
состояния — это проверяется при создании сессии и при каждом переходе.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from config import PracticeType, InstitutionType


class Flow(str, Enum):
    IDLE = "idle"
    REGISTRATION = "registration"
    EDIT = "edit"
    SUBMISSION = "submission"
    CREATION = "creation"


class IdleState(str, Enum):
    IDLE = "idle"


class RegistrationState(str, Enum):
    WAITING_PRIVACY_CONSENT = "waiting_privacy_consent"
    WAITING_FIRST_NAME = "waiting_first_name"
    WAITING_LAST_NAME = "waiting_last_name"
    WAITING_MIDDLE_NAME = "waiting_middle_name"
    WAITING_PRACTICE_TYPE = "waiting_practice_type"
    WAITING_INSTITUTION_TYPE = "waiting_institution_type"
    WAITING_INSTITUTION_NAME = "waiting_institution_name"
    WAITING_COURSE = "waiting_course"
    WAITING_EMAIL = "waiting_email"
    WAITING_PHONE = "waiting_phone"
    WAITING_START_DATE = "waiting_start_date"
    WAITING_END_DATE = "waiting_end_date"
    CONFIRMING = "confirming"


class EditState(str, Enum):
    WAITING_FIELD = "edit_waiting_field"
    WAITING_VALUE = "edit_waiting_value"
    WAITING_START_DATE = "edit_waiting_start_date"
    WAITING_END_DATE = "edit_waiting_end_date"


class SubmissionState(str, Enum):
    WAITING_SOLUTION = "waiting_solution"


class CreationState(str, Enum):
    WAITING_STUDENT = "task_waiting_student"
    WAITING_TITLE = "task_waiting_title"
    WAITING_DESCRIPTION = "task_waiting_description"
    WAITING_DEADLINE = "task_waiting_deadline"
    WAITING_REFERENCE_LINK = "task_waiting_reference_link"
    CONFIRMING = "task_confirming"


ConversationState = Union[IdleState, RegistrationState, EditState, SubmissionState, CreationState]


@dataclass
class RegistrationDraft:
    """Черновик заявки. Поле заполняется только после успешной валидации."""

    telegram_id: str
    telegram_username: Optional[str] = None
    privacy_accepted: bool = False
    privacy_accepted_at: Optional[datetime] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    middle_name: Optional[str] = None
    practice_type: Optional[PracticeType] = None
    institution_type: Optional[InstitutionType] = None
    institution_name: Optional[str] = None
    course: Optional[int] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class EditDraft:
    application_id: str
    field: Optional[str] = None
    start_date: Optional[date] = None


@dataclass
class SubmissionDraft:
    task_id: str
    task_title: str = ''


@dataclass
class CreationDraft:
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    student_telegram_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    reference_link: Optional[str] = None


Draft = Union[RegistrationDraft, EditDraft, SubmissionDraft, CreationDraft, None]

FLOW_BY_STATE_TYPE = {
    IdleState: Flow.IDLE,
    RegistrationState: Flow.REGISTRATION,
    EditState: Flow.EDIT,
    SubmissionState: Flow.SUBMISSION,
    CreationState: Flow.CREATION,
}

DRAFT_TYPE_BY_FLOW = {
    Flow.IDLE: type(None),
    Flow.REGISTRATION: RegistrationDraft,
    Flow.EDIT: EditDraft,
    Flow.SUBMISSION: SubmissionDraft,
    Flow.CREATION: CreationDraft,
}


def flow_of(state: ConversationState) -> Flow:
    return FLOW_BY_STATE_TYPE[type(state)]


@dataclass
class Session:
    chat_id: int
    state: ConversationState = IdleState.IDLE
    draft: Draft = None

    def __post_init__(self):
        self._check(self.state, self.draft)

    @property
    def flow(self) -> Flow:
        return flow_of(self.state)

    @property
    def is_idle(self) -> bool:
        return self.flow == Flow.IDLE

    def advance(self, state: ConversationState, draft: Draft = ...) -> None:
        """
        Переход в новое состояние.

        Черновик можно заменить при смене сценария; по умолчанию он сохраняется.
        """
        new_draft = self.draft if draft is ... else draft
        self._check(state, new_draft)
        self.state = state
        self.draft = new_draft

    @staticmethod
    def _check(state: ConversationState, draft: Draft) -> None:
        expected = DRAFT_TYPE_BY_FLOW[flow_of(state)]
        if not isinstance(draft, expected):
            raise ValueError(
                f"Draft {type(draft).__name__} does not match state {state.value}"
            )
