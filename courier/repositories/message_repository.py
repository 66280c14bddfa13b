from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from courier.models.message import MessageDocument


class MessageRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["messages"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index(
            [("userFrom", ASCENDING), ("userTo", ASCENDING), ("created", DESCENDING)]
        )
        await self.collection.create_index(
            [("userTo", ASCENDING), ("read", ASCENDING), ("notified", ASCENDING)]
        )

    async def create(self, user_from: str, user_to: str, content: str) -> MessageDocument:
        doc: MessageDocument = {
            "userFrom": user_from,
            "userTo": user_to,
            "content": content,
            "read": False,
            "notified": False,
            "created": datetime.now(timezone.utc),
        }
        result = await self.collection.insert_one(doc)
        doc["_id"] = str(result.inserted_id)
        return doc

    @staticmethod
    def _between(user_id: str, other_id: str) -> Dict[str, Any]:
        return {
            "$or": [
                {"userFrom": user_id, "userTo": other_id},
                {"userFrom": other_id, "userTo": user_id},
            ]
        }

    async def find_between(self, user_id: str, other_id: str, skip: int = 0, limit: int = 20) -> List[MessageDocument]:
        """Messages exchanged between two users, newest first."""
        cur = (
            self.collection.find(self._between(user_id, other_id))
            .sort([("created", DESCENDING), ("_id", DESCENDING)])
            .skip(skip)
            .limit(limit)
        )
        items = await cur.to_list(length=limit)
        for it in items:
            it["_id"] = str(it.get("_id"))
        return items

    async def count_between(self, user_id: str, other_id: str) -> int:
        return await self.collection.count_documents(self._between(user_id, other_id))

    async def get_by_ids(self, message_ids: Iterable[ObjectId]) -> Dict[str, Dict[str, Any]]:
        ids = list(message_ids)
        if not ids:
            return {}
        cur = self.collection.find({"_id": {"$in": ids}})
        messages: Dict[str, Dict[str, Any]] = {}
        async for it in cur:
            it["_id"] = str(it["_id"])
            messages[it["_id"]] = it
        return messages

    async def mark_read(self, message_ids: List[str], user_to: str) -> int:
        # every clause is scoped to the recipient so nobody can flip someone else's messages
        clauses = [{"_id": ObjectId(message_id), "userTo": user_to} for message_id in message_ids]
        result = await self.collection.update_many({"$or": clauses}, {"$set": {"read": True}})
        return result.modified_count or 0

    async def find_unnotified(self, created_before: datetime, limit: int = 1000) -> List[MessageDocument]:
        cur = (
            self.collection.find({"read": False, "notified": False, "created": {"$lte": created_before}})
            .sort("created", ASCENDING)
            .limit(limit)
        )
        items = await cur.to_list(length=limit)
        for it in items:
            it["_id"] = str(it.get("_id"))
        return items

    async def mark_notified(self, message_ids: List[str]) -> int:
        if not message_ids:
            return 0
        result = await self.collection.update_many(
            {"_id": {"$in": [ObjectId(mid) for mid in message_ids]}},
            {"$set": {"notified": True}},
        )
        return result.modified_count or 0
