import json
import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from fastapi.encoders import jsonable_encoder
from pymongo.errors import PyMongoError
from redis.exceptions import RedisError
from starlette.websockets import WebSocketDisconnect

from courier.repositories.device_repository import DeviceRepository
from courier.repositories.message_repository import MessageRepository
from courier.repositories.thread_repository import ThreadRepository
from courier.repositories.user_repository import UserRepository
from courier.utils import text
from courier.utils.notifications import get_push
from courier.utils.realtime_bus import get_bus, user_channel
from courier.utils.websocket_manager import manager


logger = logging.getLogger(__name__)


class MessagingError(Exception):
    """Base for errors the API reports back to the client."""

    status_code = 400
    key: Optional[str] = None
    message = "Snap! Something went wrong."


class InvalidIdError(MessagingError):
    key = "invalid-id"


class SelfRecipientError(MessagingError):
    status_code = 403
    message = "Recepient cannot be currently authenticated user."


class EmptyContentError(MessagingError):
    message = "Please write a message."


class RecipientNotFoundError(MessagingError):
    status_code = 404
    key = "not-found"


class MessageService:

    def __init__(
        self,
        message_repo: MessageRepository,
        thread_repo: ThreadRepository,
        user_repo: UserRepository,
        device_repo: Optional[DeviceRepository] = None,
    ) -> None:
        self._message_repo = message_repo
        self._thread_repo = thread_repo
        self._user_repo = user_repo
        self._device_repo = device_repo

    async def _with_profiles(self, docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Replace ``userFrom``/``userTo`` ids with mini profiles."""
        docs = list(docs)
        ids = {doc[field] for doc in docs for field in ("userFrom", "userTo")}
        profiles = await self._user_repo.get_mini_profiles(ids)
        for doc in docs:
            doc["userFrom"] = profiles.get(doc["userFrom"], {"_id": doc["userFrom"]})
            doc["userTo"] = profiles.get(doc["userTo"], {"_id": doc["userTo"]})
        return docs

    async def inbox(self, user_id: str, skip: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        total = await self._thread_repo.count_for_user(user_id)
        threads = await self._thread_repo.list_for_user(user_id, skip=skip, limit=limit)
        messages = await self._message_repo.get_by_ids(t["message"] for t in threads if t.get("message"))

        summaries = []
        for thread in threads:
            thread.pop("pairKey", None)
            message_id = str(thread.get("message", ""))
            latest = messages.get(message_id, {})
            thread["message"] = {"_id": message_id, "excerpt": text.excerpt(latest.get("content"))}
            # the sender has obviously read their own latest message
            if thread["userFrom"] == user_id:
                thread["read"] = True
            summaries.append(thread)
        return await self._with_profiles(summaries), total

    async def send(self, sender_id: str, user_to: Optional[str], content: Optional[str]) -> Dict[str, Any]:
        if not user_to or not ObjectId.is_valid(user_to):
            raise InvalidIdError()
        user_to = str(ObjectId(user_to))
        if user_to == sender_id:
            raise SelfRecipientError()
        if text.is_empty(content):
            raise EmptyContentError()
        if await self._user_repo.get_user_by_id(user_to) is None:
            raise RecipientNotFoundError()

        return await self._message_repo.create(sender_id, user_to, text.html(content))

    async def populate(self, message: Dict[str, Any]) -> Dict[str, Any]:
        populated = await self._with_profiles([dict(message)])
        return populated[0]

    async def touch_thread(self, message: Dict[str, Any]) -> None:
        """Move the pair's thread to ``message``. The message is already saved, so failures are only logged."""
        try:
            await self._thread_repo.upsert_latest(message)
        except PyMongoError:
            logger.exception("Could not update thread for message %s", message.get("_id"))

    async def publish_new_message(self, message: Dict[str, Any]) -> None:
        payload = json.dumps({"type": "message", "message": jsonable_encoder(message)})
        recipient = message["userTo"]["_id"] if isinstance(message["userTo"], dict) else message["userTo"]
        try:
            bus = await get_bus()
            if bus.enabled:
                await bus.publish(user_channel(recipient), payload)
            else:
                await manager.send_personal_message(recipient, payload)
        except (RedisError, RuntimeError, WebSocketDisconnect) as exc:
            logger.warning("Realtime delivery to %s failed: %s", recipient, exc)

    async def thread_with(self, user_id: str, other_id: str, skip: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        """Messages between two users, newest first, cleaned for output.

        Opening the thread marks it read when the newest message was addressed
        to ``user_id``.
        """
        if not other_id or not ObjectId.is_valid(other_id):
            raise InvalidIdError()
        other_id = str(ObjectId(other_id))

        total = await self._message_repo.count_between(user_id, other_id)
        messages = await self._message_repo.find_between(user_id, other_id, skip=skip, limit=limit)
        for message in messages:
            message["content"] = text.sanitize(message.get("content"))

        if messages and messages[0]["userTo"] == user_id:
            await self._thread_repo.mark_read(user_to=user_id, user_from=other_id)

        return await self._with_profiles(messages), total

    async def mark_read(self, user_id: str, message_ids: Optional[List[str]]) -> int:
        if not message_ids or not all(ObjectId.is_valid(mid) for mid in message_ids):
            raise InvalidIdError()
        modified = await self._message_repo.mark_read(message_ids, user_to=user_id)
        logger.debug("Marked %d of %d messages read for %s", modified, len(message_ids), user_id)
        return modified

    async def unread_count(self, user_id: str) -> int:
        return await self._thread_repo.count_unread(user_id)

    async def notify_unread(self, delay_minutes: int) -> int:
        """Push one reminder per recipient of messages left unread for ``delay_minutes``.

        Returns the number of recipients reminded.
        """
        if self._device_repo is None:
            raise RuntimeError("notify_unread needs a device repository")
        created_before = datetime.now(timezone.utc) - timedelta(minutes=delay_minutes)
        pending = await self._message_repo.find_unnotified(created_before)
        if not pending:
            return 0

        by_recipient: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for message in pending:
            by_recipient[message["userTo"]].append(message)

        push = get_push()
        for recipient, messages in by_recipient.items():
            tokens = await self._device_repo.get_tokens(recipient, platform="fcm")
            if tokens:
                latest = messages[-1]
                title = "You have an unread message" if len(messages) == 1 else f"You have {len(messages)} unread messages"
                await push.send_fcm(
                    tokens,
                    title,
                    text.excerpt(latest.get("content")),
                    data={"userFrom": latest["userFrom"], "messageId": latest["_id"]},
                )
            await self._message_repo.mark_notified([m["_id"] for m in messages])

        logger.info("Sent unread reminders to %d users for %d messages", len(by_recipient), len(pending))
        return len(by_recipient)
