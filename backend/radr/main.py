"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from radr.config import settings
from radr.database import Base, engine
from radr.exceptions import RadrError
from radr.services.events import EventDispatcher
from radr.services.presence import PresenceStore

# Import routers
from radr.routers import users, groups, messages, presence

# Import all models so Base.metadata knows about them
from radr.models.user import User                          # noqa: F401
from radr.models.group import RadrGroup, RadrGroupMember   # noqa: F401
from radr.models.message import RadrMessage                # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Radr Groups",
    description="Location-triggered, end-to-end encrypted group messaging",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(groups.router, prefix="/api/radr", tags=["Groups"])
app.include_router(messages.router, prefix="/api/radr", tags=["Messages"])
app.include_router(presence.router, prefix="/api/radr", tags=["Presence"])


@app.exception_handler(RadrError)
async def radr_error_handler(request: Request, exc: RadrError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
def on_startup():
    """Create database tables (SQLite dev mode) and the app-scoped singletons."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    app.state.presence_store = PresenceStore(ttl_seconds=settings.PRESENCE_TTL_SECONDS)
    app.state.dispatcher = EventDispatcher()
    logger.info("Radr API started (presence TTL %ss)", settings.PRESENCE_TTL_SECONDS)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
