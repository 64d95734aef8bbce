import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fitcore.logging import setup_logging
from fitcore.settings import get_settings

from fitness_api.deps import check_database, check_redis, get_outbox_stores
from fitness_events.outbox import BackendStore

logger = logging.getLogger(__name__)

# Configure logging before the app exists
setup_logging()
settings = get_settings()

app = FastAPI(
    title="Fitness Outbox API",
    description="Health and outbox status of the fitness modular monolith",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"message": "Fitness Outbox API", "version": "0.1.0", "docs": "/docs"}


@app.get("/health")
async def health_check(
    database_ok: bool = Depends(check_database),
    redis_ok: bool = Depends(check_redis),
):
    """Reachability of both backends; 503 if either is down."""
    checks = {
        "database": "ok" if database_ok else "unavailable",
        "redis": "ok" if redis_ok else "unavailable",
    }
    healthy = database_ok and redis_ok
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "checks": checks},
    )


@app.get("/outbox/stats")
async def outbox_stats(stores: list[BackendStore] = Depends(get_outbox_stores)):
    """Pending / processed / poisoned counts for every backend."""
    backends = []
    for store in stores:
        try:
            backends.append((await store.stats()).to_dict())
        except Exception as e:
            logger.error(f"Could not read outbox stats for {store.name}: {e}", exc_info=True)
            backends.append({"backend": store.name, "error": str(e)})
    return {"backends": backends}
