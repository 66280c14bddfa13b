from datetime import datetime
from typing import Optional, TypedDict


class UserDocument(TypedDict, total=False):

    _id: str
    username: str
    displayName: Optional[str]
    email: str
    locale: Optional[str]
    avatarSource: Optional[str]
    avatarUploaded: bool
    emailHash: Optional[str]
    updated: datetime


# Fields considered safe to embed in message and thread payloads
USER_MINI_PROFILE_FIELDS = (
    "username",
    "displayName",
    "avatarSource",
    "avatarUploaded",
    "emailHash",
    "updated",
)
