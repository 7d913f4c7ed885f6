"""
LiveTest Cache - diagnostics API
Owns the process-wide cache manager: built at startup, sweeper stopped at shutdown
"""
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Query

from app.cache import get_cache_manager, shutdown_cache_manager

APP_VERSION = "v0.1.0"
APP_NAME = "LiveTest Cache"


@asynccontextmanager
async def lifespan(app: FastAPI):
    manager = get_cache_manager()
    manager.start_sweeper()
    try:
        yield
    finally:
        await shutdown_cache_manager()


app = FastAPI(
    title=APP_NAME,
    description="Read-through cache diagnostics for the LiveTest API client",
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.get("/health")
def health() -> Dict[str, Any]:
    """Liveness probe."""
    return {
        "status": "ok",
        "version": APP_VERSION,
        "sweeper_running": get_cache_manager().sweeper_running,
    }


@app.get("/cache/stats")
def cache_stats():
    """Get cache statistics."""
    return get_cache_manager().get_stats()


@app.post("/cache/sweep")
def cache_sweep():
    """Evict expired entries now instead of waiting for the next sweep."""
    return {"removed": get_cache_manager().sweep()}


@app.post("/cache/invalidate")
def cache_invalidate(pattern: str = Query(..., min_length=1, description="Substring of keys to drop")):
    """Invalidate every entry whose key contains pattern."""
    return {"pattern": pattern, "removed": get_cache_manager().invalidate_pattern(pattern)}


@app.delete("/cache/{key}")
def cache_delete(key: str):
    """Remove one entry from both tiers."""
    return {"key": key, "removed": get_cache_manager().delete(key)}


@app.delete("/cache")
def cache_clear():
    """Clear every entry, including persisted records."""
    return {"cleared": get_cache_manager().clear()}
