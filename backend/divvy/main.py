"""
FastAPI entrypoint for the Divvy budget API.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from divvy.core.config import settings
from divvy.core.logging_config import configure_logging
from divvy.api.router import api_router
from divvy.db.session import init_db

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} API")
    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("Database tables are up to date")
    yield
    logger.info(f"{settings.APP_NAME} API stopped")


app = FastAPI(
    title="Divvy API",
    description="Shared household expenses and personal budget tracking",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Service banner."""
    return {"message": f"{settings.APP_NAME} API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
