from datetime import datetime, timezone
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from courier.models.device import DeviceDocument, PushPlatform


class DeviceRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["devices"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("userId", ASCENDING), ("platform", ASCENDING)])

    async def register(self, user_id: str, platform: PushPlatform, token: str) -> DeviceDocument:
        now = datetime.now(timezone.utc)
        await self.collection.update_one(
            {"userId": user_id, "platform": platform, "token": token},
            {"$set": {"lastSeenAt": now}},
            upsert=True,
        )
        return {"userId": user_id, "platform": platform, "token": token}

    async def get_tokens(self, user_id: str, platform: str | None = None) -> List[str]:
        query: Dict[str, Any] = {"userId": user_id}
        if platform:
            query["platform"] = platform
        cur = self.collection.find(query, {"token": 1})
        items = await cur.to_list(length=100)
        return [it["token"] for it in items]
