"""Periodic reminders about messages nobody has read yet."""

import asyncio
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

from courier.config import UNREAD_NOTIFY_DELAY_MINUTES, UNREAD_NOTIFY_INTERVAL_SECONDS
from courier.repositories.device_repository import DeviceRepository
from courier.repositories.message_repository import MessageRepository
from courier.repositories.thread_repository import ThreadRepository
from courier.repositories.user_repository import UserRepository
from courier.services.message_service import MessageService


logger = logging.getLogger(__name__)


async def notify_unread_messages(db: AsyncIOMotorDatabase, delay_minutes: int = UNREAD_NOTIFY_DELAY_MINUTES) -> int:
    service = MessageService(
        MessageRepository(db),
        ThreadRepository(db),
        UserRepository(db),
        DeviceRepository(db),
    )
    return await service.notify_unread(delay_minutes)


async def run_periodically(db: AsyncIOMotorDatabase, interval_seconds: int = UNREAD_NOTIFY_INTERVAL_SECONDS) -> None:
    logger.info("Unread message reminders every %ss", interval_seconds)
    while True:
        try:
            await notify_unread_messages(db)
        except Exception:
            # a bad round must not end the task, nothing awaits it
            logger.exception("Unread message reminders failed, retrying next round")
        await asyncio.sleep(interval_seconds)
