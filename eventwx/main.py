"""FastAPI application for the event weather dashboard: API routes, static page, refresh threads."""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from .api import router as api_router
from .config import settings
from .refresh import start_refresh_tasks
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="main")

_STATIC_DIR = Path(__file__).resolve().parent.parent / "static"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Keep the cached panels warm while the server runs."""
    stop_event = None
    if settings.refresh_enabled:
        stop_event, _threads = start_refresh_tasks()
    else:
        logger.info("Background refresh disabled")
    try:
        yield
    finally:
        if stop_event is not None:
            stop_event.set()


app = FastAPI(title="Event Weather Dashboard", lifespan=lifespan)

app.mount("/static", StaticFiles(directory=_STATIC_DIR), name="static")


@app.get("/", include_in_schema=False)
def serve_index():
    """Serve the dashboard page."""
    return FileResponse(_STATIC_DIR / "index.html")


app.include_router(api_router, prefix="/v1")
