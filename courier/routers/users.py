from fastapi import APIRouter, Depends, HTTPException

from courier.config import DEFAULT_LOCALE, SUPPORTED_LOCALES
from courier.database.connection import mongo_db_dependency
from courier.repositories.user_repository import UserRepository
from courier.schemas.user import LocaleList, LocaleUpdate, UserProfile
from courier.services.user_service import UserService
from courier.utils.dependencies import get_current_user
from courier.utils.errors import get_error_message_by_key


router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(db = Depends(mongo_db_dependency)) -> UserService:
    return UserService(UserRepository(db))


@router.get("/me", response_model=UserProfile)
async def me(current_user: dict = Depends(get_current_user), service: UserService = Depends(get_user_service)):
    return service.to_profile(current_user)


@router.get("/locales", response_model=LocaleList)
async def locales():
    return LocaleList(locales=SUPPORTED_LOCALES, default=DEFAULT_LOCALE)


@router.put("/me/locale", response_model=UserProfile)
async def update_locale(body: LocaleUpdate, current_user: dict = Depends(get_current_user), service: UserService = Depends(get_user_service)):
    try:
        return await service.update_locale(current_user["_id"], body.locale)
    except ValueError:
        raise HTTPException(status_code=400, detail="Unsupported language.")
    except LookupError:
        raise HTTPException(status_code=404, detail=get_error_message_by_key("not-found"))
