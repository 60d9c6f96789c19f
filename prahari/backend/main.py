"""
Prahari — Main FastAPI Application
Conflict-Signal Aggregation & Scoring Engine Backend
"""

import logging
import sys
import os

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from contextlib import asynccontextmanager
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from backend.config import settings
from backend.threat_service import build_service

# ─── Logging ───────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(name)-20s │ %(levelname)-7s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("prahari.main")

# ─── Globals ───────────────────────────────────────
service = build_service(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: close adapter HTTP clients on shutdown."""
    logger.info("═══════════════════════════════════════════════")
    logger.info("  PRAHARI — Conflict-Signal Aggregation Engine ")
    logger.info("  Version %s", settings.app_version)
    logger.info("═══════════════════════════════════════════════")

    yield

    logger.info("Shutting down Prahari...")
    await service.aclose()


# ─── FastAPI App ───────────────────────────────────
app = FastAPI(
    title="Prahari",
    description="Conflict-Signal Aggregation & Scoring Engine",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── REST Endpoints ───────────────────────────────
@app.get("/")
async def root():
    cached = service.cached
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "operational",
        "last_computed": cached.computed_at.isoformat() if cached else None,
        "serving_fallback": cached.from_fallback if cached else False,
    }


@app.get("/api/threats")
async def get_threats(refresh: bool = Query(False, description="Bypass the result cache")):
    """Get the current ordered threat list."""
    response = await service.query(force=refresh)
    return response.model_dump(by_alias=True, mode="json")


@app.get("/api/seeds")
async def get_seeds():
    """Get the seed baselines held by the decay tracker."""
    seeds = service.seed_snapshot()
    return {
        "count": len(seeds),
        "seeds": [s.model_dump(mode="json") for s in seeds],
    }


# ─── Run ───────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
