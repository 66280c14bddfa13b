from datetime import datetime
from typing import TypedDict

from bson import ObjectId


class ThreadDocument(TypedDict, total=False):
    _id: str
    # "<smaller user id>:<larger user id>", one thread per pair
    pairKey: str
    # direction of the most recent message
    userFrom: str
    userTo: str
    message: ObjectId
    read: bool
    updated: datetime
