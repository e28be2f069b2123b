"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from db.tables import init_db
from server.dependencies import close_singletons, get_config
from server.middleware import RequestIDMiddleware
from server.routes import chat, chats, health
from utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup/shutdown logic."""
    logger.info("FastAPI server starting up")
    init_db()

    config = get_config()
    if not config.all_api_keys():
        logger.warning("Missing environment variables: ['API_KEYS']")
    config.validate()

    yield

    await close_singletons()
    logger.info("FastAPI server shutting down")


def create_app() -> FastAPI:
    """Factory function to create FastAPI application."""
    app = FastAPI(
        title="DeepSearch API",
        description="Rate-limited research agent that searches and reads the web before answering",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(chats.router)

    return app
