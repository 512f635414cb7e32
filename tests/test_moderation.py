"""
Решения администратора по заявкам.
"""

import uuid

from config import ApplicationStatus, StudentStatus
from core.callbacks import CallbackAction
from locales import t
from tests.conftest import STUDENT_CHAT, OTHER_CHAT, ADMIN_CHAT, command, text, press


async def test_approve_creates_linked_student(engine, repo, transport, register):
    application = await register()
    transport.clear()

    await engine.handle_event(press(ADMIN_CHAT, CallbackAction.APPROVE_APPLICATION, application['id']))

    assert repo.applications[application['id']]['status'] == ApplicationStatus.APPROVED.value
    assert repo.applications[application['id']]['approved_by'] == str(ADMIN_CHAT)

    account = await repo.get_account_by_telegram_id(str(STUDENT_CHAT))
    student = await repo.get_student(account['student_id'])
    assert student['status'] == StudentStatus.PENDING.value
    assert student['last_name'] == "Петров"

    assert transport.texts(ADMIN_CHAT) == [t('moderation.approved', student_id=student['id'])]
    assert transport.removed_keyboards == [(ADMIN_CHAT, 500)]

    notice = transport.last(STUDENT_CHAT)
    assert notice.markdown is True
    assert "Ваша заявка одобрена" in notice.text


async def test_second_decision_is_refused(engine, repo, transport, register):
    application = await register()
    await engine.handle_event(press(ADMIN_CHAT, CallbackAction.APPROVE_APPLICATION, application['id']))
    transport.clear()

    await engine.handle_event(press(ADMIN_CHAT, CallbackAction.REJECT_APPLICATION, application['id']))
    await engine.handle_event(press(ADMIN_CHAT, CallbackAction.APPROVE_APPLICATION, application['id']))

    assert transport.texts(ADMIN_CHAT) == [t('moderation.already_processed')] * 2
    assert transport.texts(STUDENT_CHAT) == []
    assert repo.applications[application['id']]['status'] == ApplicationStatus.APPROVED.value
    assert len(repo.students) == 1


async def test_reject_notifies_student_with_reason(engine, repo, transport, register):
    application = await register()
    transport.clear()

    await engine.handle_event(press(ADMIN_CHAT, CallbackAction.REJECT_APPLICATION, application['id']))

    stored = repo.applications[application['id']]
    assert stored['status'] == ApplicationStatus.REJECTED.value
    assert stored['rejection_reason'] == t('moderation.reject_reason')
    assert transport.texts(ADMIN_CHAT) == [t('moderation.rejected')]
    assert t('moderation.reject_reason') in transport.last(STUDENT_CHAT).text
    assert repo.students == {}


async def test_unknown_application(engine, transport):
    await engine.handle_event(press(ADMIN_CHAT, CallbackAction.APPROVE_APPLICATION, uuid.uuid4()))
    assert transport.texts(ADMIN_CHAT) == [t('moderation.not_found')]


async def test_non_admin_cannot_moderate(engine, repo, transport, register):
    application = await register()
    transport.clear()

    await engine.handle_event(press(STUDENT_CHAT, CallbackAction.APPROVE_APPLICATION, application['id']))

    assert transport.texts(STUDENT_CHAT) == [t('errors.no_rights_moderation')]
    assert repo.applications[application['id']]['status'] == ApplicationStatus.PENDING.value


async def test_pending_command(engine, transport, register):
    application = await register()
    transport.clear()

    await engine.handle_event(command(ADMIN_CHAT, "pending"))

    texts = transport.texts(ADMIN_CHAT)
    assert texts[0] == t('moderation.pending_header', count=1)
    assert application['id'] in texts[1]


async def test_pending_command_requires_admin(engine, transport):
    await engine.handle_event(command(STUDENT_CHAT, "pending"))
    assert transport.texts(STUDENT_CHAT) == [t('errors.no_rights')]


async def test_reapproval_after_edit_updates_existing_student(engine, repo, transport, approved_student):
    student = await approved_student()
    account = await repo.get_account_by_telegram_id(str(STUDENT_CHAT))
    application = (await repo.get_account_applications(account['id']))[0]

    await engine.handle_event(text(STUDENT_CHAT, t('menu.edit_application')))
    await engine.handle_event(press(STUDENT_CHAT, CallbackAction.EDIT_FIELD, "phone"))
    await engine.handle_event(text(STUDENT_CHAT, "+70000000000"))
    assert repo.applications[application['id']]['status'] == ApplicationStatus.PENDING.value

    await engine.handle_event(press(ADMIN_CHAT, CallbackAction.APPROVE_APPLICATION, application['id']))

    assert list(repo.students) == [student['id']]
    assert repo.students[student['id']]['phone'] == "+70000000000"
    assert (await repo.get_account_by_telegram_id(str(STUDENT_CHAT)))['student_id'] == student['id']


async def test_pending_header_counts_all_applications(engine, repo, transport, register, monkeypatch):
    await register()
    await register(chat_id=OTHER_CHAT, email="other@example.com", last_name="Сидоров")
    monkeypatch.setattr(repo, 'get_pending_applications', _first_only(repo.get_pending_applications))
    transport.clear()

    await engine.handle_event(command(ADMIN_CHAT, "pending"))

    texts = transport.texts(ADMIN_CHAT)
    assert texts[0] == t('moderation.pending_header', count=2)
    assert len(texts) == 2


def _first_only(fetch):
    async def limited(limit=20):
        return (await fetch(limit))[:1]
    return limited
