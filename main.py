# -*- coding: utf-8 -*-
"""
Vehicle Description Matcher - HTTP service

Matches free-text vehicle descriptions (classified-ad titles and the like)
against the in-memory vehicle catalog:
- POST /match parses the description and scores every catalog vehicle
- the catalog is loaded from MongoDB at startup and refreshed on an interval
- POST /admin/cache/reload forces a refresh (shared token in Authorization)
"""
import datetime
import logging
import os
import threading
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictStr
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from catalog import (
    CatalogCache, CatalogRefreshError, RefreshInProgressError, refresh_periodically
)
from description_parser import parse_description
from matcher import find_best_match, get_confidence_label, rank_vehicles
from mongodb_client import MongoCatalogSource, test_connection

load_dotenv()

logger = logging.getLogger(__name__)


# ============================================================================
# CONFIGURATION
# ============================================================================

HOST = os.environ.get('HOST', '0.0.0.0')
PORT = int(os.environ.get('PORT', '3000'))
REFRESH_INTERVAL = int(os.environ.get('CACHE_REFRESH_INTERVAL_MS', '600000')) / 1000  # seconds
ADMIN_TOKEN = os.environ.get('ADMIN_TOKEN', '')
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
VERSION = "1.0.0"


# ============================================================================
# CATALOG
# ============================================================================

catalog = CatalogCache(MongoCatalogSource())
_stop_refresh = threading.Event()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the catalog before serving, then keep it fresh in the background."""
    try:
        catalog.refresh()
    except CatalogRefreshError as e:
        logger.error(f"Failed to load cache: {e}")
        raise

    _stop_refresh.clear()
    refresh_thread = threading.Thread(
        target=refresh_periodically,
        args=(catalog, REFRESH_INTERVAL, _stop_refresh),
        name='catalog-refresh',
        daemon=True,
    )
    refresh_thread.start()
    yield

    logger.info("Graceful shutting down...")
    _stop_refresh.set()


# ============================================================================
# FASTAPI APPLICATION
# ============================================================================

app = FastAPI(
    title="Vehicle Description Matcher",
    description="Match free-text vehicle descriptions to catalog vehicles",
    version=VERSION,
    lifespan=lifespan,
)


class MatchRequest(BaseModel):
    description: StrictStr = Field(..., min_length=1)


class MatchResponse(BaseModel):
    input: str
    vehicleId: str
    confidence: int


class NoMatchResponse(BaseModel):
    input: str
    error: str = "No match"
    confidence: int = 0


class ExplainResponse(BaseModel):
    input: str
    attributes: Dict[str, Optional[str]]
    vehicleId: Optional[str] = None
    confidence: int = 0
    label: str
    candidates: List[Dict[str, Any]] = []


# Request logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start_time) * 1000

    logger.info(
        f'{request.method} {request.url.path} {response.status_code} '
        f'"{request.headers.get("user-agent", "-")}" {duration_ms:.1f} ms'
    )
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"[Match] Bad request, missing description: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Description (string) is required"})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "Route not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/status")
async def status():
    """Service status and catalog stats."""
    snapshot = catalog.current()

    last_refresh_str = None
    next_refresh_in = None
    if catalog.last_refresh_time:
        last_refresh_str = datetime.datetime.fromtimestamp(catalog.last_refresh_time).isoformat()
        elapsed = time.time() - catalog.last_refresh_time
        next_refresh_in = max(0, int(REFRESH_INTERVAL - elapsed))

    return {
        "status": "ok",
        "version": VERSION,
        "vehicle_count": len(snapshot.vehicles),
        "listing_count_keys": len(snapshot.listing_counts),
        "generation": snapshot.generation,
        "last_refresh": last_refresh_str,
        "next_refresh_in_seconds": next_refresh_in,
        "refresh_count": catalog.refresh_count,
        "last_error": catalog.last_error,
    }


@app.post("/match", response_model=MatchResponse, responses={404: {"model": NoMatchResponse}})
async def match(request: MatchRequest):
    """Match a description to the best catalog vehicle."""
    start = time.time()
    description = request.description
    logger.info(f'[Match] Received: "{description}"')

    attrs = parse_description(description)
    logger.debug(f"[Match] Parsed attrs: {attrs.as_dict()}")

    result = find_best_match(attrs, catalog.current())
    logger.debug(f"[Match] Result: {result.as_dict()}")

    if not result.vehicle_id:
        logger.warning("[Match] No vehicle found")
        return JSONResponse(status_code=404, content=NoMatchResponse(input=description).model_dump())

    duration_ms = (time.time() - start) * 1000
    logger.info(
        f"[Match] Matched vehicle={result.vehicle_id} confidence={result.confidence} "
        f"in {duration_ms:.1f}ms"
    )
    return MatchResponse(input=description, vehicleId=result.vehicle_id, confidence=result.confidence)


@app.post("/match/explain", response_model=ExplainResponse)
async def explain_match(request: MatchRequest, limit: int = 10):
    """Parsed attributes, the chosen vehicle and the top-scoring vehicles with breakdowns."""
    snapshot = catalog.current()
    attrs = parse_description(request.description)
    result = find_best_match(attrs, snapshot)

    return ExplainResponse(
        input=request.description,
        attributes=attrs.as_dict(),
        vehicleId=result.vehicle_id,
        confidence=result.confidence,
        label=get_confidence_label(result.confidence),
        candidates=rank_vehicles(attrs, snapshot, limit=max(0, limit)),
    )


@app.post("/admin/cache/reload")
def reload_cache(authorization: Optional[str] = Header(default=None)):
    """Force a catalog refresh. Requires Authorization == ADMIN_TOKEN."""
    if not ADMIN_TOKEN or authorization != ADMIN_TOKEN:
        return JSONResponse(status_code=403, content={"error": "Forbidden"})

    try:
        snapshot = catalog.refresh()
    except RefreshInProgressError:
        return JSONResponse(status_code=409, content={"error": "Reload already in progress"})
    except CatalogRefreshError as e:
        logger.error(f"Manual cache reload error: {e}")
        return JSONResponse(status_code=500, content={"error": "Reload failed", "details": str(e)})

    return {"status": "cache reloaded", "vehicles": len(snapshot.vehicles)}


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def main():
    """Run the matcher service."""
    configure_logging()

    logger.info("Testing MongoDB connection...")
    conn_test = test_connection()
    if conn_test.get('connected'):
        logger.info(
            f"Connected to MongoDB: {conn_test.get('database')} "
            f"({conn_test.get('vehicle_count', 0):,} vehicles, "
            f"{conn_test.get('listing_count', 0):,} listings)"
        )
    else:
        logger.warning(f"MongoDB connection failed: {conn_test.get('error')}")

    logger.info(f"Starting server at http://{HOST}:{PORT}")
    logger.info(f"Cache refresh interval: {REFRESH_INTERVAL:g} seconds")

    uvicorn.run(app, host=HOST, port=PORT, log_level="warning")


if __name__ == "__main__":
    main()
