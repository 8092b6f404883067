#!/usr/bin/env python
"""FastAPI server for the SceneReel video generation API."""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Add src directory to Python path for imports
src_dir = Path(__file__).parent.parent
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import close_services
from api.job_store import close_job_store, get_job_store
from api.routers import content, core, videos
from utils.config import load_config, validate_config
from utils.logging import configure_server_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Open the job store on startup; close it and the service clients on shutdown."""
    config = load_config()
    configure_server_logging(config["log_level"], json_output=config["log_json"])
    for error in validate_config(config):
        logger.warning(f"Configuration problem: {error}")
    store = await get_job_store()
    await store.cleanup_old_jobs()
    logger.info(f"SceneReel API ready ({await store.get_job_count()} jobs on record)")
    try:
        yield
    finally:
        await close_services()
        await close_job_store()


app = FastAPI(title="SceneReel API", version="1.0.0", lifespan=lifespan)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],  # Vite default port
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(core.router)
app.include_router(content.router)
app.include_router(videos.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
