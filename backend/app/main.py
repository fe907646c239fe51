from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.database import close_app_database, init_app_database
from app.core.logging import setup_logging
from app.modules.admin.router import router as admin_router
from app.modules.assistant.router import router as assistant_router
from app.modules.billing.router import router as billing_router

setup_logging()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_app_database()
    try:
        yield
    finally:
        close_app_database()


app = FastAPI(title="Committee Portal API", lifespan=lifespan)

app.include_router(assistant_router)
app.include_router(admin_router)
app.include_router(billing_router)
