"""
Сессии чатов: соответствие черновика сценарию, хранилище и замки.
"""

import asyncio

import pytest

from core.session import (
    Flow,
    IdleState,
    RegistrationState,
    EditState,
    RegistrationDraft,
    EditDraft,
    Session,
)
from core.storage import SessionStore


def test_new_session_is_idle():
    session = Session(chat_id=1)
    assert session.is_idle
    assert session.flow == Flow.IDLE


def test_draft_must_match_flow():
    with pytest.raises(ValueError):
        Session(chat_id=1, state=RegistrationState.WAITING_FIRST_NAME, draft=None)

    session = Session(chat_id=1, state=RegistrationState.WAITING_FIRST_NAME,
                      draft=RegistrationDraft(telegram_id="1"))
    with pytest.raises(ValueError):
        session.advance(EditState.WAITING_FIELD)

    session.advance(EditState.WAITING_FIELD, draft=EditDraft(application_id="a"))
    assert session.flow == Flow.EDIT


def test_advance_keeps_draft():
    draft = RegistrationDraft(telegram_id="1", first_name="Иван")
    session = Session(chat_id=1, state=RegistrationState.WAITING_FIRST_NAME, draft=draft)
    session.advance(RegistrationState.WAITING_LAST_NAME)
    assert session.draft is draft

    session.advance(IdleState.IDLE, draft=None)
    assert session.is_idle


def test_store_get_set_delete():
    store = SessionStore()
    assert store.get(5) is None

    store.set(Session(chat_id=5, state=RegistrationState.WAITING_COURSE, draft=RegistrationDraft(telegram_id="5")))
    assert store.get(5).state == RegistrationState.WAITING_COURSE

    assert store.delete(5) is True
    assert store.delete(5) is False
    assert len(store) == 0


async def test_lock_serializes_events_of_one_chat():
    store = SessionStore()
    order = []

    async def worker(name):
        async with store.lock(7):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


async def test_lock_of_chat_without_session_is_dropped():
    store = SessionStore()

    async with store.lock(7):
        store.set(Session(chat_id=7, state=RegistrationState.WAITING_COURSE,
                          draft=RegistrationDraft(telegram_id="7")))
    assert 7 in store._locks

    async with store.lock(7):
        store.delete(7)
    assert store._locks == {}

    async with store.lock(8):
        pass
    assert store._locks == {}


async def test_lock_kept_while_another_event_waits():
    store = SessionStore()
    order = []
    release = asyncio.Event()

    async def first():
        async with store.lock(7):
            order.append("first")
            await release.wait()

    async def second():
        async with store.lock(7):
            order.append("second")

    first_task = asyncio.create_task(first())
    await asyncio.sleep(0)
    second_task = asyncio.create_task(second())
    await asyncio.sleep(0)

    store.delete(7)
    assert 7 in store._locks

    release.set()
    await asyncio.gather(first_task, second_task)
    assert order == ["first", "second"]
    assert store._locks == {}
