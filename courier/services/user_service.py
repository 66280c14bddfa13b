from typing import List, Optional

from courier.config import DEFAULT_LOCALE, SUPPORTED_LOCALES
from courier.models.user import USER_MINI_PROFILE_FIELDS
from courier.repositories.user_repository import UserRepository
from courier.schemas.user import UserProfile


class UserService:
    """Profile and interface language preferences of the signed in user"""

    def __init__(self, user_repository: UserRepository, supported_locales: Optional[List[str]] = None):
        self.user_repository = user_repository
        self.supported_locales = supported_locales or SUPPORTED_LOCALES

    def to_profile(self, user: dict) -> UserProfile:
        fields = {field: user.get(field) for field in USER_MINI_PROFILE_FIELDS if user.get(field) is not None}
        return UserProfile(
            id=user["_id"],
            email=user.get("email"),
            locale=user.get("locale") or DEFAULT_LOCALE,
            **fields,
        )

    async def update_locale(self, user_id: str, locale: str) -> UserProfile:
        """
        Save the interface language
        - locale must be one the site has been translated to
        - returns the updated profile
        """
        if locale not in self.supported_locales:
            raise ValueError(f"Unsupported locale: {locale}")

        updated = await self.user_repository.update_locale(user_id, locale)
        if not updated:
            raise LookupError(user_id)

        user = await self.user_repository.get_user_by_id(user_id)
        return self.to_profile(user)
