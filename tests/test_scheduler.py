"""
Ежедневные напоминания и дайджест.
"""

from datetime import date, datetime, timedelta

from config import TIMEZONE
from core.helpers import pluralize_days
from core.notifier import NotificationDispatcher
from core.scheduler import (
    compute_first_run,
    reminder_text,
    digest_text,
    send_reminders,
    send_admin_digest,
    run_daily_notifications,
    build_scheduler,
    JOB_ID,
)
from locales import t
from tests.conftest import ADMIN_CHAT

TODAY = date(2024, 12, 1)


def test_first_run_today_or_tomorrow():
    morning = datetime(2024, 12, 1, 7, 30, tzinfo=TIMEZONE)
    assert compute_first_run(morning, 9) == datetime(2024, 12, 1, 9, 0, tzinfo=TIMEZONE)

    evening = datetime(2024, 12, 1, 9, 0, tzinfo=TIMEZONE)
    assert compute_first_run(evening, 9) == datetime(2024, 12, 2, 9, 0, tzinfo=TIMEZONE)


def test_pluralize_days():
    assert [pluralize_days(n) for n in (1, 2, 5, 11, 14, 21, 22, 25, 111)] == [
        'день', 'дня', 'дней', 'дней', 'дней', 'день', 'дня', 'дней', 'дней',
    ]


def test_reminder_templates():
    assert reminder_text(0, TODAY) == t('reminders.last_day', end_date="01.12.2024")
    assert reminder_text(1, TODAY) == t('reminders.one_day', end_date="01.12.2024")
    assert "*5 дней*" in reminder_text(5, TODAY)
    assert "*22 дня*" in reminder_text(22, TODAY)


def test_digest_lists_students():
    student = {'last_name': "Петров", 'first_name': "Иван", 'practice_type': "PRODUCTION",
               'institution_name': "МГУ"}
    text = digest_text(3, [student], [], [], [student])

    assert "Активных сейчас: 3" in text
    assert "Петров Иван — Производственная (МГУ)" in text
    assert "Начинают завтра: 0" in text


def _student(repo, end_date, telegram_id="1001", **fields):
    return repo.add_student(
        last_name="Петров", first_name="Иван", telegram_id=telegram_id,
        start_date=date(2024, 9, 1), end_date=end_date, **fields,
    )


async def test_reminders_window(repo, transport):
    _student(repo, TODAY, telegram_id="1")
    _student(repo, TODAY + timedelta(days=30), telegram_id="2")
    _student(repo, TODAY + timedelta(days=31), telegram_id="3")
    _student(repo, TODAY + timedelta(days=5), telegram_id=None)

    delivered = await send_reminders(repo, NotificationDispatcher(transport), TODAY)

    assert delivered == 2
    assert transport.texts("1") == [t('reminders.last_day', end_date="01.12.2024")]
    assert transport.texts("3") == []
    assert all(m.markdown for m in transport.sent)


async def test_admin_digest(repo, transport):
    _student(repo, TODAY)
    repo.add_student(last_name="Сидоров", first_name="Пётр",
                     start_date=TODAY + timedelta(days=1), end_date=TODAY + timedelta(days=60))

    results = await send_admin_digest(repo, NotificationDispatcher(transport), [ADMIN_CHAT], TODAY)

    assert [r.success for r in results] == [True]
    digest = transport.last(ADMIN_CHAT).text
    assert "Заканчивают сегодня: 1" in digest
    assert "Начинают завтра: 1" in digest
    assert "Сидоров Пётр" in digest


async def test_digest_runs_when_reminders_fail(repo, transport, monkeypatch):
    async def broken(today):
        raise RuntimeError("db down")

    monkeypatch.setattr(repo, 'get_students_for_reminders', broken)

    await run_daily_notifications(repo, NotificationDispatcher(transport), [ADMIN_CHAT])

    assert len(transport.texts(ADMIN_CHAT)) == 1


def test_build_scheduler_registers_daily_job(repo, transport):
    now = datetime(2024, 12, 1, 10, 0, tzinfo=TIMEZONE)
    scheduler = build_scheduler(repo, NotificationDispatcher(transport), [ADMIN_CHAT], now=now)

    job = scheduler.get_job(JOB_ID)
    assert job is not None
    assert job.trigger.interval == timedelta(hours=24)
    assert job.trigger.start_date == datetime(2024, 12, 2, 9, 0, tzinfo=TIMEZONE)


async def test_admin_digest_counts_pending_applications(repo, transport, register):
    await register()

    await send_admin_digest(repo, NotificationDispatcher(transport), [ADMIN_CHAT], TODAY)

    assert "Заявок на рассмотрении: 1" in transport.last(ADMIN_CHAT).text
