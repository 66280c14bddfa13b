from typing import List, Literal, Optional

from pydantic import BaseModel, Field


# Missing or empty values are reported by the service with the same 400s as
# malformed ones.
class MessageCreate(BaseModel):

    userTo: Optional[str] = None
    content: Optional[str] = None


class MarkReadRequest(BaseModel):

    messageIds: Optional[List[str]] = None


class DeviceRegister(BaseModel):

    platform: Literal["fcm", "webpush"]
    token: str = Field(min_length=1)
