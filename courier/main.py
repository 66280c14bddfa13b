import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from pymongo.errors import PyMongoError

from courier.config import UNREAD_NOTIFY_INTERVAL_SECONDS
from courier.database.connection import close_mongo_connection, connect_to_mongo, get_database
from courier.jobs.unread_messages import run_periodically
from courier.logging_config import configure_logging
from courier.repositories.device_repository import DeviceRepository
from courier.repositories.message_repository import MessageRepository
from courier.repositories.thread_repository import ThreadRepository
from courier.routers.devices import router as devices_router
from courier.routers.messages import router as messages_router
from courier.routers.users import router as users_router
from courier.utils.errors import database_error_handler


@asynccontextmanager
async def lifespan(app: FastAPI):

    configure_logging()
    await connect_to_mongo()
    db = get_database()
    for repo in (MessageRepository(db), ThreadRepository(db), DeviceRepository(db)):
        await repo.ensure_indexes()

    reminders = None
    if UNREAD_NOTIFY_INTERVAL_SECONDS > 0:
        reminders = asyncio.create_task(run_periodically(db))
    try:
        yield
    finally:
        if reminders is not None:
            reminders.cancel()
        await close_mongo_connection()


app = FastAPI(title="Courier messaging API", lifespan=lifespan)

app.add_exception_handler(PyMongoError, database_error_handler)

app.include_router(messages_router)
app.include_router(users_router)
app.include_router(devices_router)


@app.get("/")
async def root():

    db = get_database()
    collections = await db.list_collection_names()
    return {"message": "Connected to MongoDB!", "collections": collections}
