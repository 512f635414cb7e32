"""
Создание задания администратором.
"""

from datetime import date

from core.callbacks import CallbackAction
from core.session import CreationState
from locales import t
from tests.conftest import STUDENT_CHAT, ADMIN_CHAT, command, text, press


def _student(repo, last_name, first_name="Анна", telegram_id=None):
    return repo.add_student(
        last_name=last_name, first_name=first_name, telegram_id=telegram_id,
        start_date=date(2024, 9, 1), end_date=date(2024, 12, 30),
    )


async def test_requires_admin(engine, transport):
    await engine.handle_event(command(STUDENT_CHAT, "new_task"))
    assert transport.texts(STUDENT_CHAT) == [t('errors.no_rights')]
    assert engine.store.get(STUDENT_CHAT) is None


async def test_no_students(engine, transport):
    await engine.handle_event(command(ADMIN_CHAT, "new_task"))
    assert transport.texts(ADMIN_CHAT) == [t('creation.no_students')]
    assert engine.store.get(ADMIN_CHAT) is None


async def test_full_creation_notifies_student(engine, repo, transport, approved_student):
    student = await approved_student()
    transport.clear()

    for event in [
        text(ADMIN_CHAT, t('menu.new_task')),
        press(ADMIN_CHAT, CallbackAction.NEW_TASK_STUDENT, student['id']),
        text(ADMIN_CHAT, "Отчёт по практике"),
        text(ADMIN_CHAT, "Подготовить отчёт о проделанной работе"),
        text(ADMIN_CHAT, "31.12.2099 18:00"),
        text(ADMIN_CHAT, "https://docs.example.com/report"),
    ]:
        await engine.handle_event(event)

    assert engine.store.get(ADMIN_CHAT).state == CreationState.CONFIRMING
    summary = transport.last(ADMIN_CHAT)
    assert summary.markdown is False
    assert "31.12.2099 18:00" in summary.text

    await engine.handle_event(press(ADMIN_CHAT, CallbackAction.NEW_TASK_CONFIRM))

    [task] = repo.tasks.values()
    assert task['title'] == "Отчёт по практике"
    assert task['student_id'] == student['id']
    assert task['allow_late_submission'] is True
    assert task['reference_link'] == "https://docs.example.com/report"
    assert (task['deadline'].hour, task['deadline'].minute) == (18, 0)
    assert task['assigned_by'] == str(ADMIN_CHAT)

    assert engine.store.get(ADMIN_CHAT) is None
    notice = transport.last(STUDENT_CHAT)
    assert notice.markdown is True
    assert "Отчёт по практике" in notice.text
    assert "https://docs.example.com/report" in notice.text


async def test_student_found_by_last_name(engine, repo, transport):
    _student(repo, "Иванова", "Анна")
    _student(repo, "Иванова", "Мария")
    sidorov = _student(repo, "Сидоров", "Пётр")

    await engine.handle_event(command(ADMIN_CHAT, "new_task"))

    await engine.handle_event(text(ADMIN_CHAT, "Кузнецов"))
    assert transport.last(ADMIN_CHAT).text == t('creation.student_not_found')

    await engine.handle_event(text(ADMIN_CHAT, "иванова"))
    several = transport.last(ADMIN_CHAT)
    assert several.text == t('creation.several_students')
    assert len(several.reply_markup.inline_keyboard) == 2
    assert engine.store.get(ADMIN_CHAT).state == CreationState.WAITING_STUDENT

    await engine.handle_event(text(ADMIN_CHAT, "Сидоров"))
    session = engine.store.get(ADMIN_CHAT)
    assert session.state == CreationState.WAITING_TITLE
    assert session.draft.student_id == sidorov['id']


async def test_deadline_in_past_is_rejected(engine, repo, transport):
    student = _student(repo, "Сидоров")
    for event in [
        command(ADMIN_CHAT, "new_task"),
        press(ADMIN_CHAT, CallbackAction.NEW_TASK_STUDENT, student['id']),
        text(ADMIN_CHAT, "Отчёт"),
        text(ADMIN_CHAT, "Описание отчёта"),
        text(ADMIN_CHAT, "01.01.2000"),
    ]:
        await engine.handle_event(event)

    assert transport.last(ADMIN_CHAT).text == t('errors.deadline_past')
    assert engine.store.get(ADMIN_CHAT).state == CreationState.WAITING_DEADLINE


async def test_student_without_telegram(engine, repo, transport):
    student = _student(repo, "Сидоров")
    for event in [
        command(ADMIN_CHAT, "new_task"),
        press(ADMIN_CHAT, CallbackAction.NEW_TASK_STUDENT, student['id']),
        text(ADMIN_CHAT, "Отчёт"),
        text(ADMIN_CHAT, "Описание отчёта"),
        text(ADMIN_CHAT, "31.12.2099"),
        text(ADMIN_CHAT, "-"),
        press(ADMIN_CHAT, CallbackAction.NEW_TASK_CONFIRM),
    ]:
        await engine.handle_event(event)

    [task] = repo.tasks.values()
    assert task['reference_link'] is None
    assert transport.last(ADMIN_CHAT).text == t('creation.created_no_telegram')


async def test_cancel_creation(engine, repo, transport):
    student = _student(repo, "Сидоров")
    await engine.handle_event(command(ADMIN_CHAT, "new_task"))
    await engine.handle_event(press(ADMIN_CHAT, CallbackAction.NEW_TASK_STUDENT, student['id']))
    await engine.handle_event(press(ADMIN_CHAT, CallbackAction.NEW_TASK_CANCEL))

    assert repo.tasks == {}
    assert engine.store.get(ADMIN_CHAT) is None
    assert transport.last(ADMIN_CHAT).text == t('creation.cancelled')
