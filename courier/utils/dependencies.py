from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from courier.database.connection import mongo_db_dependency
from courier.repositories.user_repository import UserRepository
from courier.utils.errors import get_error_message_by_key
from courier.utils.security import decode_access_token


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db = Depends(mongo_db_dependency),
) -> dict:
    forbidden = HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=get_error_message_by_key("forbidden"))
    if credentials is None:
        raise forbidden
    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.PyJWTError:
        raise forbidden
    user = await UserRepository(db).get_user_by_id(payload.get("sub", ""))
    if not user:
        raise forbidden
    return user
