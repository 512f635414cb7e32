"""
Клавиатуры бота.

Постоянные меню (reply-клавиатуры) и inline-кнопки сценариев.
callback_data собирается только через core.callbacks.pack.
"""

from aiogram.types import (
    InlineKeyboardMarkup, InlineKeyboardButton,
    ReplyKeyboardMarkup, KeyboardButton,
)

from config import PracticeType, InstitutionType
from core.callbacks import CallbackAction, EDITABLE_FIELDS, pack
from core.helpers import full_name, truncate
from locales import t


def _reply(rows: list[list[str]]) -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=label) for label in row] for row in rows],
        resize_keyboard=True,
    )


def _button(text: str, action: CallbackAction, argument=None) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=pack(action, argument))


# ============= ПОСТОЯННЫЕ МЕНЮ =============

def kb_main_menu() -> ReplyKeyboardMarkup:
    """Меню незарегистрированного пользователя"""
    return _reply([
        [t('menu.register')],
        [t('menu.info'), t('menu.contacts')],
    ])


def kb_registered_menu(is_admin: bool = False) -> ReplyKeyboardMarkup:
    """Меню зарегистрированного студента (плюс кнопки администратора)"""
    rows = [
        [t('menu.my_practice')],
        [t('menu.edit_application'), t('menu.my_tasks')],
        [t('menu.notifications')],
        [t('menu.info'), t('menu.contacts')],
    ]
    if is_admin:
        rows.insert(0, [t('menu.new_task'), t('menu.pending')])
    return _reply(rows)


def kb_admin_menu() -> ReplyKeyboardMarkup:
    """Меню администратора без регистрации студента"""
    return _reply([
        [t('menu.new_task'), t('menu.pending')],
        [t('menu.info'), t('menu.contacts')],
    ])


def menu_for(registered: bool, is_admin: bool) -> ReplyKeyboardMarkup:
    if registered:
        return kb_registered_menu(is_admin)
    if is_admin:
        return kb_admin_menu()
    return kb_main_menu()


# ============= РЕГИСТРАЦИЯ =============

def kb_privacy_consent() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        _button(t('buttons.privacy_accept'), CallbackAction.PRIVACY_ACCEPT),
        _button(t('buttons.privacy_decline'), CallbackAction.PRIVACY_DECLINE),
    ]])


def kb_practice_types(action: CallbackAction = CallbackAction.PRACTICE_TYPE) -> InlineKeyboardMarkup:
    """Типы практики. action: PRACTICE_TYPE (регистрация) или EDIT_PRACTICE_TYPE"""
    return InlineKeyboardMarkup(inline_keyboard=[[
        _button(practice_type.display_name, action, practice_type)
        for practice_type in PracticeType
    ]])


def kb_institution_types() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        _button(institution_type.display_name, CallbackAction.INSTITUTION_TYPE, institution_type)
        for institution_type in InstitutionType
    ]])


def kb_confirm_registration() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [_button(t('buttons.confirm'), CallbackAction.CONFIRM_REGISTRATION)],
        [_button(t('buttons.cancel'), CallbackAction.CANCEL_REGISTRATION)],
    ])


# ============= МОДЕРАЦИЯ =============

def kb_moderation(application_id) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        _button(t('buttons.approve'), CallbackAction.APPROVE_APPLICATION, application_id),
        _button(t('buttons.reject'), CallbackAction.REJECT_APPLICATION, application_id),
    ]])


# ============= РЕДАКТИРОВАНИЕ =============

def kb_edit_fields() -> InlineKeyboardMarkup:
    """Поля заявки по два в ряд + отмена"""
    buttons = [
        _button(t(f'edit.fields.{field}'), CallbackAction.EDIT_FIELD, field)
        for field in EDITABLE_FIELDS
    ]
    rows = [buttons[i:i + 2] for i in range(0, len(buttons), 2)]
    rows.append([_button(t('buttons.cancel'), CallbackAction.EDIT_CANCEL)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def kb_edit_practice_types() -> InlineKeyboardMarkup:
    return kb_practice_types(CallbackAction.EDIT_PRACTICE_TYPE)


# ============= ЗАДАНИЯ =============

def kb_submit_task(task: dict) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        _button(
            t('buttons.submit_solution', title=truncate(task['title'], 30)),
            CallbackAction.SUBMIT_TASK,
            task['id'],
        )
    ]])


def kb_task_students(students: list[dict]) -> InlineKeyboardMarkup:
    """Студенты для назначения задания, по одному в ряд"""
    return InlineKeyboardMarkup(inline_keyboard=[
        [_button(full_name(student), CallbackAction.NEW_TASK_STUDENT, student['id'])]
        for student in students
    ])


def kb_confirm_task() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        _button(t('buttons.create_task'), CallbackAction.NEW_TASK_CONFIRM),
        _button(t('buttons.cancel'), CallbackAction.NEW_TASK_CANCEL),
    ]])
