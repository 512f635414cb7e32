"""
Разбор апдейтов, доставка уведомлений и перезапуск polling.
"""

from types import SimpleNamespace

from aiogram.exceptions import TelegramForbiddenError
from aiogram.methods import SendMessage

from core.callbacks import Callback, CallbackAction
from core.notifier import NotificationDispatcher
from core.transport import (
    EventKind,
    RestartPolicy,
    PollingSupervisor,
    parse_command,
    event_from_message,
    event_from_callback,
)


def _message(text, chat_id=42):
    return SimpleNamespace(
        text=text,
        chat=SimpleNamespace(id=chat_id),
        message_id=7,
        from_user=SimpleNamespace(username="ivan", first_name="Иван"),
    )


def test_parse_command():
    assert parse_command("/start") == "start"
    assert parse_command("/Start@practice_hub_bot payload") == "start"
    assert parse_command("start") is None
    assert parse_command("/") is None


def test_event_from_message():
    event = event_from_message(_message("/my_practice"))
    assert event.kind == EventKind.COMMAND
    assert event.command == "my_practice"
    assert event.chat_id == 42

    event = event_from_message(_message("Иван"))
    assert event.kind == EventKind.TEXT
    assert event.first_name == "Иван"

    assert event_from_message(_message(None)) is None


def test_event_from_callback():
    query = SimpleNamespace(
        id="q1",
        data="app_reject_abc",
        message=SimpleNamespace(chat=SimpleNamespace(id=9001), message_id=55),
        from_user=SimpleNamespace(username="admin", first_name="Админ"),
    )
    event = event_from_callback(query)

    assert event.kind == EventKind.CALLBACK
    assert event.callback == Callback(CallbackAction.REJECT_APPLICATION, "abc")
    assert event.callback_id == "q1"
    assert event.message_id == 55

    query.message = None
    assert event_from_callback(query) is None


# ============= УВЕДОМЛЕНИЯ =============

class FlakyTransport:
    def __init__(self, blocked=(), broken=()):
        self.blocked = {str(c) for c in blocked}
        self.broken = {str(c) for c in broken}
        self.delivered = []

    async def send_message(self, chat_id, text, markdown=False, reply_markup=None):
        if str(chat_id) in self.blocked:
            raise TelegramForbiddenError(
                method=SendMessage(chat_id=chat_id, text=text),
                message="Forbidden: bot was blocked by the user",
            )
        if str(chat_id) in self.broken:
            raise ConnectionError("network is unreachable")
        self.delivered.append(chat_id)


async def test_notifier_never_raises():
    transport = FlakyTransport(blocked=[2], broken=[3])
    notifier = NotificationDispatcher(transport)

    results = await notifier.send_bulk([1, 2, 3, 4], "Привет")

    assert [r.success for r in results] == [True, False, False, True]
    assert results[1].blocked is True
    assert results[2].blocked is False
    assert "unreachable" in results[2].error
    assert transport.delivered == [1, 4]


# ============= ПЕРЕЗАПУСК POLLING =============

class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.now += seconds


def test_restart_policy_counts_consecutive_failures():
    policy = RestartPolicy(limit=2, window=60, clock=FakeClock())

    assert policy.record_failure(uptime=1)
    assert policy.record_failure(uptime=1)
    assert not policy.record_failure(uptime=1)
    assert policy.failures == 3

    # Долгая работа без ошибок обнуляет счётчик
    assert policy.record_failure(uptime=61)
    assert policy.failures == 1

    policy.reset()
    assert policy.failures == 0


class FakeDispatcher:
    def __init__(self, failures, clock=None, uptime=0):
        self.failures = failures
        self.clock = clock
        self.uptime = uptime
        self.started = 0
        self.stopped = 0

    async def start_polling(self, bot, **kwargs):
        self.started += 1
        if self.clock is not None:
            self.clock.now += self.uptime
        if self.started <= self.failures:
            raise RuntimeError("Conflict: terminated by other getUpdates request")

    async def stop_polling(self):
        self.stopped += 1
        raise RuntimeError("Polling is not started")


def _supervisor(dispatcher, clock, sleeps=None):
    async def sleep(seconds):
        if sleeps is not None:
            sleeps.append(seconds)
        await clock.sleep(seconds)

    return PollingSupervisor(
        dispatcher, bot=None, policy=RestartPolicy(limit=5, window=60, clock=clock),
        restart_delay=30, settle_delay=2, sleep=sleep,
    )


async def test_supervisor_restarts_after_fatal_error():
    clock = FakeClock()
    sleeps = []
    dispatcher = FakeDispatcher(failures=2)

    assert await _supervisor(dispatcher, clock, sleeps).run() is True
    assert dispatcher.started == 3
    assert dispatcher.stopped == 2
    assert sleeps == [30, 2, 30, 2]


async def test_supervisor_gives_up_after_limit():
    clock = FakeClock()
    dispatcher = FakeDispatcher(failures=100)

    assert await _supervisor(dispatcher, clock).run() is False
    assert dispatcher.started == 6
    assert clock.now == 5 * 32


async def test_supervisor_keeps_restarting_when_polling_runs_long():
    clock = FakeClock()
    # Каждый запуск работает 2 минуты и только потом падает
    dispatcher = FakeDispatcher(failures=10, clock=clock, uptime=120)

    assert await _supervisor(dispatcher, clock).run() is True
    assert dispatcher.started == 11
