import asyncio
import logging
from typing import Awaitable, Callable

import redis.asyncio as redis

from courier.config import REDIS_URL


logger = logging.getLogger(__name__)

MessageHandler = Callable[[str], Awaitable[None]]


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


class NoopSubscription:

    async def run(self) -> None:
        await asyncio.Future()

    async def cancel(self) -> None:
        return


class NoopBus:
    """Used when no Redis is configured; delivery falls back to local sockets."""

    enabled = False

    async def publish(self, channel: str, message: str) -> None:
        return

    async def subscribe(self, channel: str, on_message: MessageHandler) -> NoopSubscription:
        return NoopSubscription()


class RedisSubscription:

    def __init__(self, pubsub, channel: str, on_message: MessageHandler) -> None:
        self._pubsub = pubsub
        self._channel = channel
        self._on_message = on_message
        self._running = True

    async def run(self) -> None:
        while self._running:
            msg = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            if msg and msg.get("type") == "message":
                data = msg.get("data")
                if isinstance(data, bytes):
                    data = data.decode("utf-8")
                await self._on_message(data)

    async def cancel(self) -> None:
        self._running = False
        await self._pubsub.unsubscribe(self._channel)
        await self._pubsub.aclose()


class RedisBus:

    enabled = True

    def __init__(self, url: str) -> None:
        self._redis = redis.from_url(url)

    async def publish(self, channel: str, message: str) -> None:
        await self._redis.publish(channel, message)

    async def subscribe(self, channel: str, on_message: MessageHandler) -> RedisSubscription:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(channel)
        return RedisSubscription(pubsub, channel, on_message)


_bus = None


async def get_bus():
    global _bus
    if _bus is None:
        if REDIS_URL:
            _bus = RedisBus(REDIS_URL)
            logger.info("Realtime fan-out through Redis")
        else:
            _bus = NoopBus()
    return _bus
