import argparse
import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db import database
from config import load_config
from routes import settings, stats, sessions, library, storage, ai  # Import routers

logger = logging.getLogger("curio")

def setup_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def prepare_storage() -> dict:
    """Load config, point the DB module at the configured file and create tables."""
    config = load_config()
    database.configure(config["server"]["db_path"])
    database.init_db()
    return config

# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: init DB and config
    prepare_storage()
    yield

app = FastAPI(title="Curio", description="Per-device data and model proxy for the Curio learning app", lifespan=lifespan)

# The mobile shell calls the API from its own origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(settings.router, prefix="/api/settings", tags=["settings"])
app.include_router(stats.router, prefix="/api/stats", tags=["stats"])
app.include_router(sessions.router, prefix="/api/sessions", tags=["sessions"])
app.include_router(library.router, prefix="/api/library", tags=["library"])
app.include_router(storage.router, prefix="/api", tags=["storage"])
app.include_router(ai.router, prefix="/api/ai", tags=["ai"])

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Curio API server")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    args = parser.parse_args()
    config = load_config()
    setup_logging(config["server"]["log_level"])
    if args.init:
        prepare_storage()
        logger.info("DB initialized and config copied to ~/.curio/")
        exit(0)
    # Run server
    uvicorn.run(
        "main:app",
        host=config["server"]["host"],
        port=config["server"]["port"],
        reload=args.dev,
        log_level=config["server"]["log_level"],
    )
