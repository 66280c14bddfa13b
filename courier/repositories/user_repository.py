from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from courier.models.user import USER_MINI_PROFILE_FIELDS, UserDocument


class UserRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db["users"]

    async def get_user_by_id(self, user_id: str) -> Optional[UserDocument]:

        if not ObjectId.is_valid(user_id):
            return None
        user = await self._collection.find_one({"_id": ObjectId(user_id)})
        if user:
            user["_id"] = str(user["_id"])  # normalize to string for API layer
        return user

    async def get_mini_profiles(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Map user id -> mini profile for every id that exists."""
        oids = [ObjectId(uid) for uid in set(user_ids) if ObjectId.is_valid(uid)]
        if not oids:
            return {}
        projection = {field: 1 for field in USER_MINI_PROFILE_FIELDS}
        cursor = self._collection.find({"_id": {"$in": oids}}, projection)
        profiles: Dict[str, Dict[str, Any]] = {}
        async for user in cursor:
            user["_id"] = str(user["_id"])
            profiles[user["_id"]] = user
        return profiles

    async def update_locale(self, user_id: str, locale: str) -> bool:
        result = await self._collection.update_one(
            {"_id": ObjectId(user_id)},
            {"$set": {"locale": locale, "updated": datetime.now(timezone.utc)}},
        )
        return result.matched_count > 0
