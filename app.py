"""
DeckCast Backend - Unified Application Entry Point
Mounts the narration and export service under a single FastAPI application
"""

from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from database import init_database
from services.narration import app as narration_module
from shared.utils import config, setup_logging

logger = setup_logging("deckcast-backend")

narration_app = narration_module.app

app = FastAPI(
    title="DeckCast Backend API",
    description="""
    Unified API for presentation narration and video export.

    All endpoints are documented below. Service routes are organized by tag.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Health",
            "description": "Service health and status endpoints",
        },
        {
            "name": "Narration",
            "description": "Speaker notes, narration and video export - mounted at /api/v1/narration",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes to exclude (internal FastAPI docs routes)
EXCLUDED_PATHS = {"/openapi.json", "/docs", "/docs/oauth2-redirect", "/redoc"}

# Include Narration routes with prefix
for route in narration_app.routes:
    if hasattr(route, "path") and hasattr(route, "endpoint"):
        # Skip internal documentation routes
        if route.path in EXCLUDED_PATHS:
            continue
        route_kwargs = {
            "path": f"/api/v1/narration{route.path}",
            "endpoint": route.endpoint,
            "methods": route.methods,
            "tags": ["Narration"],
        }
        if hasattr(route, "name"):
            route_kwargs["name"] = f"narration_{route.name}"
        if hasattr(route, "response_model"):
            route_kwargs["response_model"] = route.response_model
        app.add_api_route(**route_kwargs)

# Locally stored artifacts are served from the media root
media_root = Path(config.get("media_root", "./media"))
app.mount(
    config.get("media_url_prefix", "/media"),
    StaticFiles(directory=str(media_root), check_dir=False),
    name="media",
)

_worker_pool = None


@app.on_event("startup")
async def startup() -> None:
    global _worker_pool
    init_database()

    if config.get("run_embedded_workers", False):
        from services.worker import WorkerPool, build_handlers

        pipeline = narration_module.get_pipeline()
        _worker_pool = WorkerPool(pipeline.queue_manager, build_handlers(pipeline))
        _worker_pool.start()
        logger.info("Embedded worker pool started")


@app.on_event("shutdown")
async def shutdown() -> None:
    if _worker_pool is not None:
        await _worker_pool.stop()


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with service information and API navigation"""
    return {
        "service": "DeckCast Backend API",
        "version": "1.0.0",
        "services": {
            "narration": {
                "base_url": "/api/v1/narration",
                "health": "/api/v1/narration/health",
            },
        },
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json",
        },
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for all services"""
    return {
        "status": "healthy",
        "services": {
            "api_gateway": "operational",
            "narration": "operational",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting DeckCast Backend on http://0.0.0.0:8000")
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
