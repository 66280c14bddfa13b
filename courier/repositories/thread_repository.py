from datetime import datetime, timezone
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from courier.models.thread import ThreadDocument


def pair_key(user_a: str, user_b: str) -> str:
    """Key shared by both directions of a conversation between two users."""
    low, high = sorted([user_a, user_b])
    return f"{low}:{high}"


class ThreadRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["threads"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("pairKey", ASCENDING)], unique=True)
        await self.collection.create_index([("userFrom", ASCENDING), ("updated", DESCENDING)])
        await self.collection.create_index([("userTo", ASCENDING), ("updated", DESCENDING)])

    @staticmethod
    def _participating(user_id: str) -> Dict[str, Any]:
        return {"$or": [{"userFrom": user_id}, {"userTo": user_id}]}

    async def upsert_latest(self, message: Dict[str, Any]) -> None:
        """Point the thread of the message's user pair at ``message``, creating it if needed."""
        key = pair_key(message["userFrom"], message["userTo"])
        update = {
            "$set": {
                "userFrom": message["userFrom"],
                "userTo": message["userTo"],
                "message": ObjectId(message["_id"]),
                "read": False,
                "updated": datetime.now(timezone.utc),
            }
        }
        try:
            await self.collection.update_one({"pairKey": key}, update, upsert=True)
        except DuplicateKeyError:
            # lost an insert race for the same pair, the document exists now
            await self.collection.update_one({"pairKey": key}, update)

    async def list_for_user(self, user_id: str, skip: int = 0, limit: int = 20) -> List[ThreadDocument]:
        cur = (
            self.collection.find(self._participating(user_id))
            .sort([("updated", DESCENDING), ("_id", DESCENDING)])
            .skip(skip)
            .limit(limit)
        )
        items = await cur.to_list(length=limit)
        for it in items:
            it["_id"] = str(it.get("_id"))
        return items

    async def count_for_user(self, user_id: str) -> int:
        return await self.collection.count_documents(self._participating(user_id))

    async def mark_read(self, user_to: str, user_from: str) -> bool:
        # TODO: only write when the thread is still unread, this rewrites on every open
        result = await self.collection.update_one(
            {"userTo": user_to, "userFrom": user_from},
            {"$set": {"read": True}},
        )
        return result.matched_count > 0

    async def count_unread(self, user_id: str) -> int:
        return await self.collection.count_documents({"userTo": user_id, "read": False})
