"""
Сценарий: Регистрация на практику.

Вход: /register или кнопка «📝 Зарегистрироваться на практику»
Шаги: согласие → имя → фамилия → отчество → тип практики → тип заведения →
      название заведения → курс → email → телефон → дата начала → дата окончания →
      подтверждение
Выход: заявка PENDING + уведомление администраторам
"""

from config import (
    get_logger,
    PRIVACY_POLICY_URL,
    PLACEHOLDER_EMAIL_DOMAIN,
    ApplicationStatus,
    PracticeType,
    InstitutionType,
)
from core.callbacks import CallbackAction
from core.helpers import escape_md, full_name, now_local, make_password_hash
from core.keyboards import (
    kb_privacy_consent,
    kb_practice_types,
    kb_institution_types,
    kb_confirm_registration,
    kb_registered_menu,
)
from core.session import Flow, RegistrationState, RegistrationDraft
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
from db.errors import ConflictError
from locales import t
from states.base import BaseFlow
from states.moderation import notify_admins_about_application

logger = get_logger(__name__)

S = RegistrationState

# Ответы на вопрос о согласии текстом (если кнопки недоступны)
CONSENT_ACCEPT_WORDS = ('да', 'принимаю')
CONSENT_DECLINE_WORDS = ('нет', 'не принимаю', 'отказываюсь')


def confirmation_text(draft: RegistrationDraft) -> str:
    """Сводка перед подтверждением (обычный текст, без разметки)"""
    return t(
        'registration.confirmation',
        full_name=full_name(vars(draft)),
        practice_type=draft.practice_type.display_name if draft.practice_type else t('common.not_specified_m'),
        institution_type=draft.institution_type.display_name if draft.institution_type else '',
        institution_name=draft.institution_name or '',
        course=draft.course,
        start_date=format_date(draft.start_date),
        end_date=format_date(draft.end_date),
        email=draft.email or t('common.not_specified_m'),
        phone=draft.phone or t('common.not_specified_m'),
    )


def application_data(draft: RegistrationDraft) -> dict:
    """Черновик → поля заявки для сохранения"""
    return {
        'last_name': draft.last_name,
        'first_name': draft.first_name,
        'middle_name': draft.middle_name,
        'practice_type': draft.practice_type.value,
        'institution_type': draft.institution_type.value,
        'institution_name': draft.institution_name,
        'course': draft.course,
        'email': draft.email,
        'phone': draft.phone,
        'telegram_id': draft.telegram_id,
        'start_date': draft.start_date,
        'end_date': draft.end_date,
        'notes': t('registration.note'),
        'privacy_accepted': draft.privacy_accepted,
        'privacy_accepted_at': draft.privacy_accepted_at,
    }


class RegistrationFlow(BaseFlow):
    """
    Пошаговая регистрация на практику.

    Каждое поле черновика заполняется только после успешной проверки.
    Ошибка ввода — повтор вопроса, состояние не меняется.
    """

    name = "registration"
    flow = Flow.REGISTRATION

    commands = {"register": "start"}
    menu_labels = {"menu.register": "start"}

    state_handlers = {
        S.WAITING_PRIVACY_CONSENT: "on_consent_text",
        S.WAITING_FIRST_NAME: "on_first_name",
        S.WAITING_LAST_NAME: "on_last_name",
        S.WAITING_MIDDLE_NAME: "on_middle_name",
        S.WAITING_PRACTICE_TYPE: "on_practice_type_text",
        S.WAITING_INSTITUTION_NAME: "on_institution_name",
        S.WAITING_COURSE: "on_course",
        S.WAITING_EMAIL: "on_email",
        S.WAITING_PHONE: "on_phone",
        S.WAITING_START_DATE: "on_start_date",
        S.WAITING_END_DATE: "on_end_date",
        # WAITING_INSTITUTION_TYPE и CONFIRMING — только кнопки
    }

    callbacks = {
        CallbackAction.PRIVACY_ACCEPT: ("on_privacy_accept", {S.WAITING_PRIVACY_CONSENT}),
        CallbackAction.PRIVACY_DECLINE: ("on_privacy_decline", {S.WAITING_PRIVACY_CONSENT}),
        CallbackAction.PRACTICE_TYPE: ("on_practice_type", {S.WAITING_PRACTICE_TYPE}),
        CallbackAction.INSTITUTION_TYPE: ("on_institution_type", {S.WAITING_INSTITUTION_TYPE}),
        CallbackAction.CONFIRM_REGISTRATION: ("on_confirm", {S.CONFIRMING}),
        CallbackAction.CANCEL_REGISTRATION: ("on_cancel", {S.CONFIRMING}),
    }

    async def start(self, event) -> None:
        """Начало регистрации: проверка активной заявки и запрос согласия"""
        chat_id = event.chat_id

        account = await self.repo.get_account_by_telegram_id(str(chat_id))
        if account:
            active = await self.repo.get_account_applications(
                account['id'],
                statuses=[ApplicationStatus.PENDING.value, ApplicationStatus.APPROVED.value],
                limit=1,
            )
            if active:
                await self.send(chat_id, t('registration.already_active'))
                return

        self.start_session(
            chat_id,
            S.WAITING_PRIVACY_CONSENT,
            RegistrationDraft(telegram_id=str(chat_id), telegram_username=event.username),
        )
        await self.send(
            chat_id,
            t('registration.privacy', url=escape_md(PRIVACY_POLICY_URL)),
            markdown=True,
            reply_markup=kb_privacy_consent(),
        )

    # =========================================
    # Согласие
    # =========================================

    async def on_privacy_accept(self, session, event) -> None:
        self._accept_consent(session)
        await self.transport.edit_message(
            event.chat_id, event.message_id, t('registration.ask_first_name'), markdown=True
        )

    async def on_privacy_decline(self, session, event) -> None:
        self.finish(event.chat_id)
        await self.transport.edit_message(event.chat_id, event.message_id, t('registration.privacy_declined'))
        await self.send(
            event.chat_id,
            t('registration.privacy_documents', url=PRIVACY_POLICY_URL),
            reply_markup=await self.menu(event.chat_id),
        )

    async def on_consent_text(self, session, event) -> None:
        text = event.text.strip().lower()

        # "не принимаю" содержит "принимаю": отказ проверяется первым
        if any(word in text for word in CONSENT_DECLINE_WORDS) or text == '❌':
            self.finish(event.chat_id)
            await self.send(
                event.chat_id,
                t('registration.privacy_declined'),
                reply_markup=await self.menu(event.chat_id),
            )
        elif any(word in text for word in CONSENT_ACCEPT_WORDS) or text == '✅':
            self._accept_consent(session)
            await self.send(event.chat_id, t('registration.ask_first_name'), markdown=True)
        else:
            await self.send(event.chat_id, t('registration.privacy_retry'))

    def _accept_consent(self, session) -> None:
        session.draft.privacy_accepted = True
        session.draft.privacy_accepted_at = now_local()
        self.advance(session, S.WAITING_FIRST_NAME)

    # =========================================
    # Поля анкеты
    # =========================================

    async def _step(self, session, event, field: str, validator, next_state, prompt_key: str,
                    reply_markup=None, error_markup=None) -> None:
        """Проверить ввод, записать поле черновика, перейти к следующему шагу"""
        try:
            value = validator(event.text)
        except ValidationError as e:
            await self.reprompt(event.chat_id, e, reply_markup=error_markup)
            return

        setattr(session.draft, field, value)
        self.advance(session, next_state)
        await self.send(event.chat_id, t(prompt_key), markdown=True, reply_markup=reply_markup)

    async def on_first_name(self, session, event) -> None:
        await self._step(
            session, event, 'first_name',
            lambda text: validate_name(text, 'errors.first_name'),
            S.WAITING_LAST_NAME, 'registration.ask_last_name',
        )

    async def on_last_name(self, session, event) -> None:
        await self._step(
            session, event, 'last_name',
            lambda text: validate_name(text, 'errors.last_name'),
            S.WAITING_MIDDLE_NAME, 'registration.ask_middle_name',
        )

    async def on_middle_name(self, session, event) -> None:
        await self._step(
            session, event, 'middle_name', validate_middle_name,
            S.WAITING_PRACTICE_TYPE, 'registration.ask_practice_type',
            reply_markup=kb_practice_types(),
        )

    async def on_practice_type_text(self, session, event) -> None:
        await self._step(
            session, event, 'practice_type', validate_practice_type,
            S.WAITING_INSTITUTION_TYPE, 'registration.ask_institution_type',
            reply_markup=kb_institution_types(),
            error_markup=kb_practice_types(),
        )

    async def on_practice_type(self, session, event) -> None:
        session.draft.practice_type = PracticeType(event.callback.argument)
        self.advance(session, S.WAITING_INSTITUTION_TYPE)
        await self.transport.edit_message(
            event.chat_id, event.message_id, t('registration.ask_institution_type'),
            markdown=True, reply_markup=kb_institution_types(),
        )

    async def on_institution_type(self, session, event) -> None:
        session.draft.institution_type = InstitutionType(event.callback.argument)
        self.advance(session, S.WAITING_INSTITUTION_NAME)
        await self.transport.edit_message(
            event.chat_id, event.message_id, t('registration.ask_institution_name'), markdown=True
        )

    async def on_institution_name(self, session, event) -> None:
        await self._step(
            session, event, 'institution_name', validate_institution_name,
            S.WAITING_COURSE, 'registration.ask_course',
        )

    async def on_course(self, session, event) -> None:
        await self._step(
            session, event, 'course', validate_course,
            S.WAITING_EMAIL, 'registration.ask_email',
        )

    async def on_email(self, session, event) -> None:
        await self._step(
            session, event, 'email', validate_email,
            S.WAITING_PHONE, 'registration.ask_phone',
        )

    async def on_phone(self, session, event) -> None:
        await self._step(
            session, event, 'phone', validate_phone,
            S.WAITING_START_DATE, 'registration.ask_start_date',
        )

    async def on_start_date(self, session, event) -> None:
        await self._step(
            session, event, 'start_date', validate_start_date,
            S.WAITING_END_DATE, 'registration.ask_end_date',
        )

    async def on_end_date(self, session, event) -> None:
        try:
            end_date = validate_end_date(event.text, session.draft.start_date)
        except ValidationError as e:
            await self.reprompt(event.chat_id, e)
            return

        session.draft.end_date = end_date
        self.advance(session, S.CONFIRMING)
        await self.send(
            event.chat_id,
            confirmation_text(session.draft),
            reply_markup=kb_confirm_registration(),
        )

    # =========================================
    # Подтверждение
    # =========================================

    async def on_cancel(self, session, event) -> None:
        self.finish(event.chat_id)
        await self.send(event.chat_id, t('registration.cancelled'), reply_markup=await self.menu(event.chat_id))

    async def on_confirm(self, session, event) -> None:
        """
        Сохранение регистрации.

        Перед созданием аккаунта удаляются прежние аккаунты с тем же chat_id,
        email или именем пользователя (повторная регистрация).
        """
        chat_id = event.chat_id
        draft = session.draft

        if not draft.privacy_accepted:
            self.finish(chat_id)
            await self.send(chat_id, t('registration.no_consent'), reply_markup=await self.menu(chat_id))
            return

        # Шаги могли быть пропущены повтором старых кнопок
        draft.practice_type = draft.practice_type or PracticeType.EDUCATIONAL
        draft.institution_type = draft.institution_type or InstitutionType.UNIVERSITY
        draft.course = draft.course or 1

        username = f"{draft.last_name or ''} {draft.first_name or ''}".strip()
        email = draft.email or f"telegram_{chat_id}@{PLACEHOLDER_EMAIL_DOMAIN}"

        await self._remove_previous_accounts(chat_id, email, username)

        try:
            account = await self.repo.create_account(
                username=username,
                email=email,
                password_hash=make_password_hash(),
                telegram_id=draft.telegram_id,
                telegram_username=draft.telegram_username,
                privacy_accepted=draft.privacy_accepted,
                privacy_accepted_at=draft.privacy_accepted_at,
            )
            application = await self.repo.create_application(account['id'], application_data(draft))
        except ConflictError as e:
            logger.warning(f"Регистрация {chat_id}: конфликт уникальности ({e.target})")
            self.finish(chat_id)
            await self.send(
                chat_id,
                t(f'registration.conflict.{e.target}'),
                reply_markup=await self.menu(chat_id),
            )
            return

        self.finish(chat_id)

        if draft.telegram_username:
            identity = t('registration.identity_username', username=draft.telegram_username)
        else:
            identity = t('registration.identity_chat', chat_id=chat_id)

        await self.send(
            chat_id,
            t('registration.success', short_id=application['id'][:8], identity=identity),
            reply_markup=kb_registered_menu(self.is_admin(chat_id)),
        )
        await notify_admins_about_application(self.notifier, self.admin_chat_ids, application)

    async def _remove_previous_accounts(self, chat_id, email: str, username: str) -> None:
        candidates = []

        by_telegram = await self.repo.get_account_by_telegram_id(str(chat_id))
        if by_telegram:
            candidates.append(by_telegram)
        by_email = await self.repo.get_account_by_email(email)
        if by_email:
            candidates.append(by_email)
        candidates.extend(await self.repo.get_accounts_by_username(username))

        removed = set()
        for account in candidates:
            if account['id'] in removed:
                continue
            await self.repo.delete_account(account['id'])
            removed.add(account['id'])
            logger.warning(
                f"Регистрация {chat_id}: удалён прежний аккаунт {account['id']} "
                f"(telegram_id={account.get('telegram_id')}, email={account.get('email')})"
            )
