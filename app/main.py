import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.config import settings
from app.routers import rooms, bookings, business_hours
from app.db import init_database

logging.basicConfig(level=settings.log_level.upper())


@asynccontextmanager
async def lifespan(_: FastAPI):
    "lifespan for initing database"
    init_database()
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Karaoke room booker",
    description="Multi-tenant karaoke room booking with conflict-free moves, swaps and resizes.",
    version="0.1.0",
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT",
    },
)


app.include_router(rooms.router)
app.include_router(bookings.router)
app.include_router(business_hours.router)
