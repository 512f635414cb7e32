"""
Команды inline-кнопок.

Строка callback_data разбирается один раз на границе транспорта
в типизированную команду Callback(action, argument). Движок дальше
работает только с CallbackAction и не сравнивает строки.

Формат payload:
    privacy_accept                 — без аргумента
    app_approve_<application_id>   — префикс + аргумент
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import PracticeType, InstitutionType


class CallbackAction(str, Enum):
    # Регистрация
    PRIVACY_ACCEPT = "privacy_accept"
    PRIVACY_DECLINE = "privacy_decline"
    PRACTICE_TYPE = "practice_"
    INSTITUTION_TYPE = "institution_"
    CONFIRM_REGISTRATION = "confirm_registration"
    CANCEL_REGISTRATION = "cancel_registration"

    # Модерация
    APPROVE_APPLICATION = "app_approve_"
    REJECT_APPLICATION = "app_reject_"

    # Редактирование заявки
    EDIT_FIELD = "edit_field_"
    EDIT_PRACTICE_TYPE = "edit_practice_"
    EDIT_CANCEL = "edit_cancel"

    # Задания
    SUBMIT_TASK = "task_submit_"
    NEW_TASK_STUDENT = "newtask_student_"
    NEW_TASK_CONFIRM = "newtask_confirm"
    NEW_TASK_CANCEL = "newtask_cancel"

    @property
    def has_argument(self) -> bool:
        return self.value.endswith("_")


# Поля заявки, доступные для редактирования
EDITABLE_FIELDS = (
    "last_name",
    "first_name",
    "middle_name",
    "practice_type",
    "institution_name",
    "course",
    "email",
    "phone",
    "dates",
)

_ENUM_ARGUMENTS = {
    CallbackAction.PRACTICE_TYPE: PracticeType,
    CallbackAction.EDIT_PRACTICE_TYPE: PracticeType,
    CallbackAction.INSTITUTION_TYPE: InstitutionType,
}

# Длинные префиксы проверяются раньше коротких
_PREFIX_ACTIONS = sorted(
    (action for action in CallbackAction if action.has_argument),
    key=lambda action: len(action.value),
    reverse=True,
)


@dataclass(frozen=True)
class Callback:
    action: CallbackAction
    argument: Optional[str] = None

    def pack(self) -> str:
        return pack(self.action, self.argument)


def pack(action: CallbackAction, argument=None) -> str:
    """Собирает callback_data для кнопки."""
    if action.has_argument:
        if argument is None:
            raise ValueError(f"{action.name} requires an argument")
        value = argument.value if isinstance(argument, Enum) else str(argument)
        return f"{action.value}{value}"
    return action.value


def parse_callback(data: Optional[str]) -> Optional[Callback]:
    """
    Разбирает callback_data.

    Returns:
        Callback или None, если payload не распознан (устаревшая кнопка,
        неизвестный аргумент перечисления, пустой аргумент).
    """
    if not data:
        return None

    try:
        exact = CallbackAction(data)
    except ValueError:
        exact = None
    if exact is not None:
        # Префикс без аргумента — битая кнопка
        return None if exact.has_argument else Callback(exact)

    for action in _PREFIX_ACTIONS:
        if not data.startswith(action.value):
            continue
        argument = data[len(action.value):]
        if not argument:
            return None

        enum_type = _ENUM_ARGUMENTS.get(action)
        if enum_type is not None:
            try:
                enum_type(argument)
            except ValueError:
                return None
        if action == CallbackAction.EDIT_FIELD and argument not in EDITABLE_FIELDS:
            return None

        return Callback(action, argument)

    return None
