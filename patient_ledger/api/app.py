"""Patient ledger FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from patient_ledger.api import ledger
from patient_ledger.api.errors import register_error_handlers
from patient_ledger.config import settings
from patient_ledger.models import Base
from patient_ledger.services import engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    logger.info("Patient ledger API starting (database=%s)", settings.database_url.split("://")[0])
    # Development databases; production schemas are managed by alembic
    Base.metadata.create_all(bind=engine)
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title=settings.api_title,
    description="Patient monthly billing ledger with carry-forward settlement",
    version=settings.api_version,
    lifespan=lifespan,
)

register_error_handlers(app)
app.include_router(ledger.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
