import asyncio
import json
import logging
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import AutoReconnect, DuplicateKeyError

from courier.jobs import unread_messages
from courier.repositories.message_repository import MessageRepository
from courier.repositories.thread_repository import ThreadRepository, pair_key
from courier.repositories.user_repository import UserRepository
from courier.services import message_service
from courier.services.message_service import (
    EmptyContentError,
    InvalidIdError,
    MessageService,
    SelfRecipientError,
)
from courier.utils.realtime_bus import NoopBus


def make_service(db, device_repo=None):
    return MessageService(MessageRepository(db), ThreadRepository(db), UserRepository(db), device_repo)


def test_pair_key_ignores_direction():
    assert pair_key("b", "a") == pair_key("a", "b") == "a:b"


def test_send_validates_in_order(db, users, run):
    service = make_service(db)
    with pytest.raises(InvalidIdError):
        run(service.send(users["alice"], "", ""))
    with pytest.raises(SelfRecipientError):
        run(service.send(users["alice"], users["alice"], ""))
    with pytest.raises(EmptyContentError):
        run(service.send(users["alice"], users["bob"], "<br>"))


def test_touch_thread_logs_and_swallows_database_errors(db, caplog, run):
    thread_repo = AsyncMock()
    thread_repo.upsert_latest.side_effect = AutoReconnect("connection lost")
    service = MessageService(MessageRepository(db), thread_repo, UserRepository(db))

    with caplog.at_level(logging.ERROR, logger="courier.services.message_service"):
        run(service.touch_thread({"_id": "m1", "userFrom": "a", "userTo": "b"}))

    assert "Could not update thread for message m1" in caplog.text


def test_touch_thread_updates_existing_thread_in_either_direction(db, users, run):
    service = make_service(db)
    first = run(service.send(users["alice"], users["bob"], "one"))
    run(service.touch_thread(first))
    reply = run(service.send(users["bob"], users["alice"], "two"))
    run(service.touch_thread(reply))

    threads = run(db["threads"].find({}).to_list(length=10))
    assert len(threads) == 1
    assert threads[0]["userFrom"] == users["bob"]
    assert str(threads[0]["message"]) == reply["_id"]
    assert threads[0]["pairKey"] == pair_key(users["alice"], users["bob"])


def test_publish_new_message_uses_local_sockets_without_redis(db, monkeypatch, run):
    sent = []

    async def fake_get_bus():
        return NoopBus()

    async def fake_send(user_id, payload):
        sent.append((user_id, json.loads(payload)))
        return 1

    monkeypatch.setattr(message_service, "get_bus", fake_get_bus)
    monkeypatch.setattr(message_service.manager, "send_personal_message", fake_send)

    message = {"_id": "m1", "userFrom": {"_id": "a"}, "userTo": {"_id": "b"}, "content": "<p>hi</p>"}
    run(make_service(db).publish_new_message(message))

    assert sent == [("b", {"type": "message", "message": message})]


class RecordingPush:

    enabled = True

    def __init__(self):
        self.calls = []

    async def send_fcm(self, tokens, title, body, data=None):
        self.calls.append({"tokens": tokens, "title": title, "body": body, "data": data})
        return len(tokens)


def test_notify_unread_pushes_once_per_recipient(monkeypatch, run):
    message_repo = AsyncMock()
    message_repo.find_unnotified.return_value = [
        {"_id": "m1", "userFrom": "alice", "userTo": "bob", "content": "<p>one</p>"},
        {"_id": "m2", "userFrom": "alice", "userTo": "bob", "content": "<p>two</p>"},
        {"_id": "m3", "userFrom": "alice", "userTo": "carol", "content": "<p>three</p>"},
    ]
    device_repo = AsyncMock()
    device_repo.get_tokens.side_effect = lambda user_id, platform=None: {"bob": ["bob-phone"]}.get(user_id, [])
    push = RecordingPush()
    monkeypatch.setattr(message_service, "get_push", lambda: push)

    service = MessageService(message_repo, AsyncMock(), AsyncMock(), device_repo)
    reminded = run(service.notify_unread(delay_minutes=10))

    assert reminded == 2
    assert push.calls == [{
        "tokens": ["bob-phone"],
        "title": "You have 2 unread messages",
        "body": "two …",
        "data": {"userFrom": "alice", "messageId": "m2"},
    }]
    message_repo.mark_notified.assert_any_await(["m1", "m2"])
    message_repo.mark_notified.assert_any_await(["m3"])


def test_notify_unread_with_nothing_pending(monkeypatch, run):
    message_repo = AsyncMock()
    message_repo.find_unnotified.return_value = []
    service = MessageService(message_repo, AsyncMock(), AsyncMock(), AsyncMock())
    assert run(service.notify_unread(delay_minutes=10)) == 0
    message_repo.mark_notified.assert_not_awaited()


def test_upsert_latest_retries_as_update_after_duplicate_key(run):
    collection = AsyncMock()
    collection.update_one.side_effect = [DuplicateKeyError("E11000 duplicate key error"), None]
    repo = ThreadRepository({"threads": collection})
    message = {"_id": str(ObjectId()), "userFrom": "b", "userTo": "a"}

    run(repo.upsert_latest(message))

    assert collection.update_one.await_count == 2
    first, second = collection.update_one.await_args_list
    assert first.args[0] == {"pairKey": "a:b"}
    assert first.kwargs == {"upsert": True}
    assert second.args[0] == {"pairKey": "a:b"}
    assert second.kwargs == {}
    assert second.args[1]["$set"]["message"] == ObjectId(message["_id"])


def test_reminder_loop_survives_a_failed_round(monkeypatch, caplog, run):
    rounds = []

    async def flaky_round(db):
        rounds.append(db)
        if len(rounds) == 1:
            raise InvalidId("'legacy' is not a valid ObjectId")
        raise asyncio.CancelledError()

    monkeypatch.setattr(unread_messages, "notify_unread_messages", flaky_round)

    with caplog.at_level(logging.ERROR, logger="courier.jobs.unread_messages"):
        with pytest.raises(asyncio.CancelledError):
            run(unread_messages.run_periodically("db", interval_seconds=0))

    assert len(rounds) == 2
    assert "Unread message reminders failed" in caplog.text
