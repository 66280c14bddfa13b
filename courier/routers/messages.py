import asyncio
import logging
from typing import Any, Dict, List

import jwt
from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Request,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from courier.database.connection import mongo_db_dependency
from courier.repositories.device_repository import DeviceRepository
from courier.repositories.message_repository import MessageRepository
from courier.repositories.thread_repository import ThreadRepository
from courier.repositories.user_repository import UserRepository
from courier.schemas.message import MarkReadRequest, MessageCreate
from courier.services.message_service import MessageService, MessagingError
from courier.utils.dependencies import get_current_user
from courier.utils.errors import get_error_message_by_key
from courier.utils.pagination import Pagination, set_link_header
from courier.utils.realtime_bus import get_bus, user_channel
from courier.utils.security import decode_access_token
from courier.utils.websocket_manager import manager


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


def get_message_service(db = Depends(mongo_db_dependency)) -> MessageService:
    return MessageService(
        MessageRepository(db),
        ThreadRepository(db),
        UserRepository(db),
        DeviceRepository(db),
    )


def _http_error(exc: MessagingError) -> HTTPException:
    detail = get_error_message_by_key(exc.key) if exc.key else exc.message
    return HTTPException(status_code=exc.status_code, detail=detail)


@router.get("")
async def inbox(
    request: Request,
    response: Response,
    pagination: Pagination = Depends(),
    current_user: dict = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    threads, total = await service.inbox(current_user["_id"], skip=pagination.skip, limit=pagination.limit)
    set_link_header(request, response, pagination, total)
    return threads


@router.post("")
async def send_message(
    body: MessageCreate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    try:
        message = await service.send(current_user["_id"], body.userTo, body.content)
    except MessagingError as exc:
        raise _http_error(exc)

    populated = await service.populate(message)
    # the reply doesn't wait for the thread bookkeeping
    background_tasks.add_task(service.touch_thread, message)
    background_tasks.add_task(service.publish_new_message, populated)
    return populated


@router.get("/unread-count")
async def unread_count(current_user: dict = Depends(get_current_user), service: MessageService = Depends(get_message_service)):
    return {"unread": await service.unread_count(current_user["_id"])}


@router.put("/read")
async def mark_read(
    body: MarkReadRequest,
    current_user: dict = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    try:
        await service.mark_read(current_user["_id"], body.messageIds)
    except MessagingError as exc:
        raise _http_error(exc)
    return Response(status_code=status.HTTP_200_OK)


@router.websocket("/ws")
async def message_socket(websocket: WebSocket, db = Depends(mongo_db_dependency)):
    # browsers can't set headers on sockets, the token comes as ?token=...
    token = websocket.query_params.get("token")
    try:
        payload = decode_access_token(token or "")
    except jwt.PyJWTError:
        await websocket.close(code=4401)
        return
    user = await UserRepository(db).get_user_by_id(payload.get("sub", ""))
    if not user:
        await websocket.close(code=4403)
        return

    user_id = user["_id"]
    await manager.connect(user_id, websocket)
    bus = await get_bus()
    subscription = None
    sub_task = None
    if bus.enabled:
        subscription = await bus.subscribe(user_channel(user_id), websocket.send_text)
        sub_task = asyncio.create_task(subscription.run())
    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.debug("Socket closed for user %s", user_id)
    finally:
        manager.disconnect(user_id, websocket)
        if subscription is not None:
            await subscription.cancel()
            sub_task.cancel()


async def thread_by_user(
    user_id: str,
    request: Request,
    response: Response,
    pagination: Pagination = Depends(),
    current_user: dict = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> List[Dict[str, Any]]:
    """Load the messages with ``user_id``, marking the thread read on the way."""
    try:
        messages, total = await service.thread_with(
            current_user["_id"], user_id, skip=pagination.skip, limit=pagination.limit
        )
    except MessagingError as exc:
        raise _http_error(exc)
    set_link_header(request, response, pagination, total)
    return messages


@router.get("/{user_id}")
async def thread(messages: List[Dict[str, Any]] = Depends(thread_by_user)):
    return messages
