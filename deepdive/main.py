"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deepdive import __version__
from deepdive.config import settings
from deepdive.database import init_db
from deepdive.routers import deep_analysis, settings as settings_router
from deepdive.services.ai.background import cleanup_stale_runs

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Deep Dive API",
    description="Triage new YouTube Shorts channels and write up the best ones",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(deep_analysis.router, prefix="/api/deep-analysis", tags=["deep-analysis"])
app.include_router(settings_router.router, prefix="/api", tags=["settings"])


@app.get("/")
async def root():
    return {"message": "Deep Dive API", "version": __version__}


@app.get("/health")
async def health():
    return {"status": "healthy", "llm_model": settings.llm_model}


@app.on_event("startup")
def prepare_database() -> None:
    """Create missing tables, then fail runs left open by a previous process."""
    init_db()
    cleaned = cleanup_stale_runs()
    if cleaned:
        logger.warning("Marked %s abandoned deep analysis runs as failed", cleaned)
