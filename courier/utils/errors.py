import logging
import re

from fastapi import Request
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError


logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Snap! Something went wrong."

ERROR_MESSAGES = {
    "invalid-id": "Cannot interpret id.",
    "forbidden": "Forbidden.",
    "not-found": "Not found.",
    "conflict": "Conflict.",
    "default": DEFAULT_ERROR_MESSAGE,
}

_DUPLICATE_FIELD = re.compile(r"index: (?:\w+\.\$)?(?P<field>[A-Za-z]+)_")


def get_error_message_by_key(key: str) -> str:
    return ERROR_MESSAGES.get(key, DEFAULT_ERROR_MESSAGE)


def get_error_message(exc: Exception) -> str:
    """Translate a database error into a message safe to show to the client."""
    if isinstance(exc, DuplicateKeyError):
        match = _DUPLICATE_FIELD.search(str(exc))
        if match:
            return f"{match.group('field')} already exists."
        return get_error_message_by_key("conflict")
    return DEFAULT_ERROR_MESSAGE


async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": get_error_message(exc)})
