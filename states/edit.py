"""
Сценарий: Редактирование заявки.

Вход: кнопка «✏️ Изменить заявку»
Шаги: выбор поля → новое значение
      (даты: дата начала → дата окончания, два явных состояния)
Выход: заявка обновлена; одобренная заявка возвращается на проверку
"""

from datetime import datetime

from config import get_logger, ApplicationStatus, APPLICATION_STATUS_NAMES, PracticeType
from core.callbacks import CallbackAction
from core.helpers import now_local
from core.keyboards import kb_edit_fields, kb_edit_practice_types
from core.session import Flow, EditState, EditDraft
from core.validators import (
    ValidationError,
    validate_name,
    validate_middle_name,
    validate_practice_type,
    validate_institution_name,
    validate_course,
    validate_email,
    validate_phone,
    validate_start_date,
    validate_end_date,
    format_date,
)
from locales import t
from states.base import BaseFlow
from states.moderation import notify_admins_about_application

logger = get_logger(__name__)

S = EditState

EDITABLE_STATUSES = (ApplicationStatus.PENDING.value, ApplicationStatus.APPROVED.value)

# Поле → проверка нового значения
FIELD_VALIDATORS = {
    'last_name': lambda text: validate_name(text, 'errors.last_name'),
    'first_name': lambda text: validate_name(text, 'errors.first_name'),
    'middle_name': validate_middle_name,
    'practice_type': lambda text: validate_practice_type(text).value,
    'institution_name': validate_institution_name,
    'course': validate_course,
    'email': validate_email,
    'phone': validate_phone,
}


def append_audit_note(notes, now: datetime) -> str:
    """Добавить к заметкам отметку о правке студентом"""
    note = t('edit.audit_note', timestamp=now.strftime('%d.%m.%Y %H:%M'))
    return f"{notes}\n{note}" if notes else note


class EditFlow(BaseFlow):
    """Изменение одного поля активной заявки"""

    name = "edit"
    flow = Flow.EDIT

    menu_labels = {"menu.edit_application": "start"}

    state_handlers = {
        S.WAITING_VALUE: "on_value",
        S.WAITING_START_DATE: "on_start_date",
        S.WAITING_END_DATE: "on_end_date",
    }

    callbacks = {
        CallbackAction.EDIT_FIELD: ("on_field", {S.WAITING_FIELD}),
        CallbackAction.EDIT_PRACTICE_TYPE: ("on_practice_type", {S.WAITING_VALUE}),
        CallbackAction.EDIT_CANCEL: ("on_cancel", set(EditState)),
    }

    async def start(self, event) -> None:
        chat_id = event.chat_id

        account = await self.repo.get_account_by_telegram_id(str(chat_id))
        applications = []
        if account:
            applications = await self.repo.get_account_applications(
                account['id'], statuses=list(EDITABLE_STATUSES), limit=1
            )
        if not applications:
            await self.send(chat_id, t('edit.no_application'))
            return

        application = applications[0]
        self.start_session(chat_id, S.WAITING_FIELD, EditDraft(application_id=application['id']))

        status = ApplicationStatus(application['status'])
        text = t('edit.choose_field', status=APPLICATION_STATUS_NAMES[status])
        if status == ApplicationStatus.APPROVED:
            text = f"{t('edit.approved_warning')}\n\n{text}"
        await self.send(chat_id, text, reply_markup=kb_edit_fields())

    async def on_field(self, session, event) -> None:
        field = event.callback.argument
        session.draft.field = field

        if field == 'dates':
            self.advance(session, S.WAITING_START_DATE)
            await self.send(event.chat_id, t('edit.ask.start_date'), markdown=True)
            return

        self.advance(session, S.WAITING_VALUE)
        reply_markup = kb_edit_practice_types() if field == 'practice_type' else None
        await self.send(event.chat_id, t(f'edit.ask.{field}'), markdown=True, reply_markup=reply_markup)

    async def on_practice_type(self, session, event) -> None:
        if session.draft.field != 'practice_type':
            return
        practice_type = PracticeType(event.callback.argument)
        await self._commit(session, event, {'practice_type': practice_type.value})

    async def on_value(self, session, event) -> None:
        field = session.draft.field
        validator = FIELD_VALIDATORS.get(field)
        if validator is None:
            logger.warning(f"[edit] {event.chat_id}: неизвестное поле {field}")
            self.finish(event.chat_id)
            return

        try:
            value = validator(event.text)
        except ValidationError as e:
            error_markup = kb_edit_practice_types() if field == 'practice_type' else None
            await self.reprompt(event.chat_id, e, reply_markup=error_markup)
            return

        await self._commit(session, event, {field: value})

    async def on_start_date(self, session, event) -> None:
        try:
            start_date = validate_start_date(event.text)
        except ValidationError as e:
            await self.reprompt(event.chat_id, e)
            return

        session.draft.start_date = start_date
        self.advance(session, S.WAITING_END_DATE)
        await self.send(event.chat_id, t('edit.ask.end_date'), markdown=True)

    async def on_end_date(self, session, event) -> None:
        try:
            end_date = validate_end_date(event.text, session.draft.start_date)
        except ValidationError as e:
            if e.key == 'errors.end_before_start':
                await self.send(
                    event.chat_id,
                    t('edit.end_before_current_start', start_date=format_date(session.draft.start_date)),
                )
            else:
                await self.reprompt(event.chat_id, e)
            return

        await self._commit(session, event, {'start_date': session.draft.start_date, 'end_date': end_date})

    async def on_cancel(self, session, event) -> None:
        self.finish(event.chat_id)
        await self.send(event.chat_id, t('edit.cancelled'), reply_markup=await self.menu(event.chat_id))

    async def _commit(self, session, event, fields: dict) -> None:
        """
        Сохранить изменения.

        Одобренная заявка возвращается в PENDING с отметкой в заметках,
        администраторы получают её повторно.
        """
        chat_id = event.chat_id
        field_label = t(f'edit.fields.{session.draft.field}')

        application = await self.repo.get_application(session.draft.application_id)
        if not application or application['status'] not in EDITABLE_STATUSES:
            self.finish(chat_id)
            await self.send(chat_id, t('edit.gone'), reply_markup=await self.menu(chat_id))
            return

        updates = dict(fields)
        needs_review = application['status'] == ApplicationStatus.APPROVED.value
        if needs_review:
            updates['status'] = ApplicationStatus.PENDING.value
            updates['notes'] = append_audit_note(application.get('notes'), now_local())

        updated = await self.repo.update_application(application['id'], **updates)
        self.finish(chat_id)
        logger.info(f"[edit] {chat_id}: заявка {application['id']} изменена ({', '.join(fields)})")

        key = 'edit.saved_review' if needs_review else 'edit.saved'
        await self.send(chat_id, t(key, field=field_label), reply_markup=await self.menu(chat_id))

        if needs_review:
            await notify_admins_about_application(
                self.notifier, self.admin_chat_ids, updated or application, edited=True
            )
