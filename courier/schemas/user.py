from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr


class UserMiniProfile(BaseModel):

    id: str
    username: str
    displayName: Optional[str] = None
    avatarSource: Optional[str] = None
    avatarUploaded: bool = False
    emailHash: Optional[str] = None
    updated: Optional[datetime] = None


class UserProfile(UserMiniProfile):

    email: Optional[EmailStr] = None
    locale: Optional[str] = None


class LocaleUpdate(BaseModel):

    locale: str


class LocaleList(BaseModel):

    locales: List[str]
    default: str
