"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from artgen.core.config import get_settings
from artgen.core.logging import setup_logging

# Setup logging
logger = setup_logging("artgen")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize services at startup, clean up at shutdown."""
    settings = get_settings()
    try:
        from artgen.models.artwork import Mood
        from artgen.services.counter import create_counter
        from artgen.services.gatekeeper import Gatekeeper
        from artgen.services.generation import GenerationService

        app.state.generation_service = GenerationService(
            gatekeeper=Gatekeeper.from_settings(settings),
            counter=create_counter(settings),
            artworks_dir=Path(settings.artworks_dir),
            save_artifacts=settings.save_artifacts,
            default_mood=Mood(settings.default_mood),
            hash_algorithm=settings.fingerprint_algorithm,
            provenance_cache_size=settings.recent_log_size,
        )
        logger.info(
            "Services initialized successfully",
            extra={"counter_backend": settings.counter_backend},
        )
    except Exception as exc:
        logger.error(
            "Service initialization failed, running in degraded mode",
            exc_info=True,
            extra={"service": "main", "error_type": type(exc).__name__},
        )
        # Continue without services; endpoints return 503 until fixed

    yield


# Create FastAPI app
app = FastAPI(
    title="CSS Art Generator",
    description="Turns short text prompts into procedurally parameterized CSS portraits",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[f"http://localhost:{settings.frontend_port}"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
from artgen.api.generation import router as generation_router  # noqa: E402
from fastapi.staticfiles import StaticFiles  # noqa: E402

app.include_router(generation_router)

# Serve generated standalone documents at /artworks
_artworks_dir = Path(settings.artworks_dir)
_artworks_dir.mkdir(parents=True, exist_ok=True)
app.mount("/artworks", StaticFiles(directory=str(_artworks_dir)), name="artworks")

_INDEX_PATH = Path(__file__).parent / "templates" / "index.html"


@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    """Single-page prompt form with a live preview."""
    return HTMLResponse(_INDEX_PATH.read_text(encoding="utf-8"))


@app.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint.

    Reports initialization status of the generation service.
    Always returns HTTP 200; check `services.generation` for actual status.
    """
    svc = getattr(request.app.state, "generation_service", None)

    logger.info("Health check requested")
    return {
        "status": "ok",
        "version": app.version,
        "services": {
            "generation": "ok" if svc is not None else "unavailable",
        },
    }
