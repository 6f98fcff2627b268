"""FastAPI application entry point."""

import logging
import secrets
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from gamerooms import __version__
from gamerooms.api.rate_limit import limiter
from gamerooms.api.router import api_router
from gamerooms.rooms.manager import get_room_manager
from gamerooms.settings import get_settings

# Paths reachable without the shared secret
UNGATED_PATHS = {"/health"}


def setup_logging() -> None:
    """Configure logging for the application."""
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("gamerooms").setLevel(logging.DEBUG)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# Set up logging on import
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    manager = get_room_manager()
    logger.info(
        f"Starting game rooms server (storage={settings.storage_backend}, "
        f"games={manager.list_games()}, dev_mode={settings.dev_mode})"
    )
    if settings.api_secret_enabled:
        logger.info("Shared-secret gate enabled")

    yield

    logger.info("Shutting down game rooms server")
    if settings.storage_backend == "database":
        from gamerooms.db.session import get_engine

        await get_engine().dispose()


app = FastAPI(
    title="Game Rooms",
    description="Lobby API for multiplayer game rooms",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def require_api_secret(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Reject requests without the configured api-secret header."""
    settings = get_settings()
    if settings.api_secret_enabled and request.url.path not in UNGATED_PATHS:
        presented = request.headers.get("api-secret", "")
        if not secrets.compare_digest(presented.encode(), settings.api_secret.encode()):
            logger.warning(f"Rejected request to {request.url.path}: invalid API secret")
            return JSONResponse(status_code=403, content={"detail": "Invalid API secret"})

    return await call_next(request)


# CORS middleware (added after the secret gate so preflight requests pass)
# In dev mode, allow any origin. In production, allow the configured frontend URL.
settings = get_settings()
cors_origins = ["*"] if settings.dev_mode else [settings.frontend_url]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=not settings.dev_mode,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Game Rooms API", "version": __version__}


app.include_router(api_router)
