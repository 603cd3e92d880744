import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.logging_config import setup_logging
from app.exception_handlers import register_exception_handlers
from app.services.sync.orchestrator import build_sync_orchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    setup_logging()

    # Startup: wire the sync engine and start its dispatcher
    orchestrator = build_sync_orchestrator()
    await orchestrator.dispatcher.start()
    app.state.sync_orchestrator = orchestrator
    logger.info(f"Sync dispatcher started ({type(orchestrator.dispatcher).__name__})")

    yield

    # Shutdown: cancel in-process jobs (they are recorded as failed)
    logger.info("Stopping sync dispatcher...")
    await orchestrator.dispatcher.stop()


app = FastAPI(
    title="Taggit Backend API",
    description="Catalog of GitHub starred repositories with asynchronous sync jobs",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Adjust this for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Import and register routers
from app.api.routers import repositories, sync_jobs, health as queue_health
app.include_router(sync_jobs.router, prefix="/api")
app.include_router(repositories.router, prefix="/api")
app.include_router(queue_health.router, prefix="/api")


@app.get("/health")
async def health_check():
    """Root health check endpoint."""
    return {"status": "healthy"}


@app.get("/api/health")
async def api_health_check():
    """API health check endpoint."""
    return {"status": "healthy", "service": "repo-sync-api"}
