import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Tuple
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from . import cache
from .config import settings
from .logging_setup import configure_logging
from .routers.measurements import router as measurements_router
from .routers.recommend import router as recommend_router
from .security import create_jwt


configure_logging()
logger = structlog.get_logger("fitrec")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    service = getattr(app.state, "measurement_service", None)
    if service is not None:
        await service.close()
        logger.info("measurement_service_closed")


app = FastAPI(title="Fit Recommendation Service", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Token bucket per client ip: ident -> (tokens, last refill time)
_buckets: Dict[str, Tuple[float, float]] = {}

# Past this many clients, buckets that have refilled are dropped
MAX_BUCKETS = 10000


class RateLimitExceeded(Exception):
    pass


def _prune_buckets(now: float, refill_rate: float, capacity: float) -> None:
    # A full bucket is the same as no bucket
    for ident, (tokens, last) in list(_buckets.items()):
        if tokens + refill_rate * (now - last) >= capacity:
            del _buckets[ident]


def _rate_limit(ident: str, requests_per_min: int, burst: int) -> None:
    refill_rate = requests_per_min / 60.0
    capacity = float(burst)
    now = time.time()
    if len(_buckets) > MAX_BUCKETS:
        _prune_buckets(now, refill_rate, capacity)
    tokens, last = _buckets.get(ident, (capacity, now))
    tokens = min(capacity, tokens + refill_rate * (now - last))
    if tokens < 1.0:
        raise RateLimitExceeded(ident)
    _buckets[ident] = (tokens - 1.0, now)


def _validate_config() -> None:
    strict = os.getenv("STRICT_CONFIG", "0") == "1"
    errors = []
    if not settings.api_key or settings.api_key == "change-me":
        errors.append("API_KEY must be set to a secure value")
    if settings.jwt_secret == "dev-secret":
        errors.append("JWT_SECRET must be set to a secure value")
    if settings.pose_provider.lower() in ("remote", "http") and not settings.pose_api_base:
        errors.append("POSE_API_BASE must be set for the remote pose provider")
    if settings.pose_timeout_seconds <= 0:
        errors.append("POSE_TIMEOUT_SECONDS must be positive")
    if not 0.0 <= settings.low_confidence_threshold <= 1.0:
        errors.append("LOW_CONFIDENCE_THRESHOLD must be within 0..1")
    if errors:
        if strict:
            raise RuntimeError("Configuration error: " + "; ".join(errors))
        for e in errors:
            logger.warning("config_warning", warning=e)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    request_id = uuid.uuid4().hex[:8]
    client_ip = request.client.host if request.client else "unknown"
    resp = None

    try:
        try:
            _rate_limit(client_ip, settings.rate_limit_per_min, settings.rate_limit_burst)
        except RateLimitExceeded:
            logger.warning("rate_limit_exceeded", client_ip=client_ip, request_id=request_id)
            resp = JSONResponse(status_code=429, content={"detail": "Too Many Requests"})
            return resp

        logger.info(
            "request_started",
            request_id=request_id,
            path=str(request.url.path),
            method=request.method,
            client_ip=client_ip,
            content_type=request.headers.get("content-type", "unknown"),
        )
        resp = await call_next(request)
        return resp
    finally:
        duration_ms = int((time.time() - start) * 1000)
        logger.info(
            "request_completed",
            request_id=request_id,
            path=str(request.url.path),
            method=request.method,
            status=getattr(resp, "status_code", 0) if resp else 0,
            duration_ms=duration_ms,
        )


@app.exception_handler(Exception)
async def handle_exceptions(request: Request, exc: Exception):
    request_id = uuid.uuid4().hex[:8]
    logger.error(
        "unhandled_exception",
        request_id=request_id,
        path=str(request.url.path),
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_code": "INTERNAL_ERROR",
            "request_id": request_id,
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        },
    )


@app.get("/v1/health")
async def health():
    return {"status": "ok"}


@app.get("/v1/debug/status")
async def debug_status():
    service = getattr(app.state, "measurement_service", None)
    return {
        "status": "ok",
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "pose": {
            "provider": settings.pose_provider,
            "timeout_seconds": settings.pose_timeout_seconds,
            "latest_token": service.latest_token if service else 0,
        },
        "cache": cache.stats(),
        "rate_limiting": {
            "requests_per_min": settings.rate_limit_per_min,
            "burst_capacity": settings.rate_limit_burst,
            "active_buckets": len(_buckets),
        },
    }


@app.post("/v1/auth/token")
async def issue_token():
    token = create_jwt("fit-client")
    return {"token": token}


# Routers under versioned prefix
app.include_router(recommend_router, prefix="/v1")
app.include_router(measurements_router, prefix="/v1")

# Validate configuration at import time (warnings by default; set STRICT_CONFIG=1 to enforce)
_validate_config()
