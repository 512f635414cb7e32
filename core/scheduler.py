"""
Ежедневные уведомления: напоминания студентам и дайджест администраторам.

Первый запуск — сегодня в DIGEST_HOUR:00 (или завтра, если время прошло),
дальше каждые 24 часа. Части задачи независимы: сбой напоминаний
не мешает дайджесту и наоборот.
"""

from datetime import date, datetime, time, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import (
    get_logger,
    TIMEZONE,
    DIGEST_HOUR,
    DIGEST_INTERVAL_HOURS,
    REMINDER_WINDOW_DAYS,
    ApplicationStatus,
    PracticeType,
)
from core.helpers import escape_md, full_name, days_remaining, pluralize_days, now_local, today_local
from core.validators import format_date
from locales import t

logger = get_logger(__name__)

JOB_ID = "daily_notifications"


def compute_first_run(now: datetime, hour: int = DIGEST_HOUR) -> datetime:
    """Ближайшее hour:00 не раньше now (в зоне now)"""
    first_run = datetime.combine(now.date(), time(hour, 0), tzinfo=now.tzinfo)
    if first_run <= now:
        first_run += timedelta(days=1)
    return first_run


def reminder_text(days: int, end_date) -> str:
    end = format_date(end_date)
    if days == 0:
        return t('reminders.last_day', end_date=end)
    if days == 1:
        return t('reminders.one_day', end_date=end)
    return t('reminders.many_days', days=days, days_word=pluralize_days(days), end_date=end)


def _digest_lines(students: list[dict]) -> str:
    if not students:
        return t('digest.empty')

    lines = []
    for student in students:
        try:
            practice_type = PracticeType(student.get('practice_type')).display_name
        except ValueError:
            practice_type = student.get('practice_type') or ''
        lines.append(t(
            'digest.item',
            name=escape_md(full_name(student)),
            practice_type=escape_md(practice_type),
            institution=escape_md(student.get('institution_name') or t('common.not_specified')),
        ))
    return '\n'.join(lines)


def digest_text(active: int, starts_today: list, starts_tomorrow: list,
                ends_today: list, ends_tomorrow: list, pending: int = 0) -> str:
    return t(
        'digest.text',
        active=active,
        pending=pending,
        starts_today_count=len(starts_today),
        starts_today=_digest_lines(starts_today),
        starts_tomorrow_count=len(starts_tomorrow),
        starts_tomorrow=_digest_lines(starts_tomorrow),
        ends_today_count=len(ends_today),
        ends_today=_digest_lines(ends_today),
        ends_tomorrow_count=len(ends_tomorrow),
        ends_tomorrow=_digest_lines(ends_tomorrow),
    )


async def send_reminders(repo, notifier, today: date) -> int:
    """
    Напоминания студентам об оставшихся днях практики.

    Returns:
        Количество доставленных напоминаний
    """
    students = await repo.get_students_for_reminders(today)
    delivered = 0

    for student in students:
        days = days_remaining(student['end_date'], today)
        if not 0 <= days <= REMINDER_WINDOW_DAYS:
            continue
        result = await notifier.send(student['telegram_id'], reminder_text(days, student['end_date']))
        if result.success:
            delivered += 1

    logger.info(f"📨 Напоминания: доставлено {delivered} из {len(students)}")
    return delivered


async def send_admin_digest(repo, notifier, admin_chat_ids, today: date) -> list:
    if not admin_chat_ids:
        logger.warning("Дайджест не отправлен: список администраторов пуст")
        return []

    tomorrow = today + timedelta(days=1)
    text = digest_text(
        active=await repo.count_active_students(today),
        pending=await repo.count_applications_by_status(ApplicationStatus.PENDING.value),
        starts_today=await repo.get_students_starting(today),
        starts_tomorrow=await repo.get_students_starting(tomorrow),
        ends_today=await repo.get_students_ending(today),
        ends_tomorrow=await repo.get_students_ending(tomorrow),
    )
    return await notifier.send_bulk(admin_chat_ids, text)


async def run_daily_notifications(repo, notifier, admin_chat_ids) -> None:
    """Задача планировщика"""
    today = today_local()
    logger.info(f"⏰ Ежедневные уведомления за {today}")

    try:
        await send_reminders(repo, notifier, today)
    except Exception as e:
        logger.exception(f"❌ Ошибка рассылки напоминаний: {e}")

    try:
        await send_admin_digest(repo, notifier, admin_chat_ids, today)
    except Exception as e:
        logger.exception(f"❌ Ошибка отправки дайджеста: {e}")


def build_scheduler(repo, notifier, admin_chat_ids, now: datetime = None) -> AsyncIOScheduler:
    """Планировщик с одной задачей; запускается вызывающим кодом (scheduler.start())"""
    first_run = compute_first_run(now or now_local(), DIGEST_HOUR)

    scheduler = AsyncIOScheduler(timezone=TIMEZONE)
    scheduler.add_job(
        run_daily_notifications,
        IntervalTrigger(hours=DIGEST_INTERVAL_HOURS, start_date=first_run, timezone=TIMEZONE),
        args=[repo, notifier, admin_chat_ids],
        id=JOB_ID,
        replace_existing=True,
    )
    logger.info(f"📅 Первый запуск уведомлений: {first_run:%d.%m.%Y %H:%M}")
    return scheduler
