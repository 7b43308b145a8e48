"""FastAPI application setup for the beach conditions service."""

from fastapi import FastAPI

from .api import router as api_router
from .config import settings
from utils.logging_utils import setup_logging

setup_logging(level=settings.log_level, job_name="beach_conditions")

app = FastAPI(title="Beach Conditions")

# API routes
app.include_router(api_router, prefix="/v1")
