from datetime import datetime
from typing import Literal, TypedDict


PushPlatform = Literal["fcm", "webpush"]


class DeviceDocument(TypedDict, total=False):
    _id: str
    userId: str
    platform: PushPlatform
    token: str
    lastSeenAt: datetime
