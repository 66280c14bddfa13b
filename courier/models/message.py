from datetime import datetime
from typing import TypedDict


class MessageDocument(TypedDict, total=False):
    _id: str
    userFrom: str
    userTo: str
    # cleaned html
    content: str
    read: bool
    # set once an unread reminder was pushed
    notified: bool
    created: datetime
