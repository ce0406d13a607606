"""
CleanQuote Pricing API v1.0
FastAPI backend for commercial cleaning service quotes: per-service pricing,
agreement totals with the Red/Green Line gate, async PostgreSQL persistence.
"""
import os
import time
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load .env before app.db reads DATABASE_URL (no-op if the file is missing)
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from app.db import db_configured
from app.services.logging_config import setup_logging
from app.services.middleware import RequestTimingMiddleware
from app.services.pricing_config import PricingConfigProvider
from app.services.pricing_errors import PersistenceFailure
from app.services.quote_engine import QuoteEngine

_log_level = os.getenv("LOG_LEVEL", "INFO")
_json_logs = os.getenv("LOG_FORMAT", "json").lower() != "text"
setup_logging(level=_log_level, json_output=_json_logs)
logger = logging.getLogger("cleanquote-api")

_PROCESS_START = time.monotonic()

# Startup validation
if not db_configured():
    logger.warning("MISSING env var: DATABASE_URL; saved agreements disabled (dev mode)")
if not os.getenv("PRICING_CONFIG_URL"):
    logger.info("Optional env var not set: PRICING_CONFIG_URL; using static pricing defaults")


@asynccontextmanager
async def lifespan(app: FastAPI):
    provider = PricingConfigProvider()
    app.state.pricing_provider = provider
    app.state.quote_engine = QuoteEngine(provider)

    if provider.base_url:
        sources = await provider.refresh_all()
        remote = sum(1 for s in sources.values() if s == "remote")
        logger.info(f"Pricing configs loaded: {remote}/{len(sources)} from remote store")

    from app.db import init_db
    await init_db()

    yield

    from app.db import engine
    await engine.dispose()


app = FastAPI(
    title="CleanQuote Pricing API",
    version="1.0.0",
    description="Service pricing and agreement totals for commercial cleaning quotes",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Security Headers Middleware
# ---------------------------------------------------------------------------
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# ---------------------------------------------------------------------------
# CORS: restricted to allowed origins from env
# ---------------------------------------------------------------------------
_cors_default = "http://localhost:3000,http://localhost:8000"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Requested-With", "X-Request-ID"],
)
app.add_middleware(SecurityHeadersMiddleware)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)


@app.exception_handler(PersistenceFailure)
async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
    # The computed quote goes back to the caller so nothing is lost on retry
    return JSONResponse(status_code=503, content={"detail": str(exc), "quote": exc.quote})


# Routers
from app.api.pricing_routes import router as pricing_router
from app.api.quote_routes import router as quote_router

app.include_router(pricing_router)
app.include_router(quote_router)


@app.get("/health")
async def health_check(request: Request):
    provider = getattr(request.app.state, "pricing_provider", None)
    return {
        "status": "active",
        "version": "1.0.0",
        "uptime_s": round(time.monotonic() - _PROCESS_START, 1),
        "db_configured": db_configured(),
        "pricing_config_url": bool(provider and provider.base_url),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
