import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from qclab.api.v1 import api_router
from qclab.config import settings
from qclab.core.error_handlers import register_error_handlers
from qclab.core.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from qclab.database import async_session_factory, engine

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuse to start with the default secret key in non-debug mode
    if not settings.DEBUG and settings.SECRET_KEY == "change-me-in-production":
        raise RuntimeError(
            "SECRET_KEY is still the default value. "
            "Set a strong SECRET_KEY env var before running in production."
        )
    logger.info("%s %s starting", settings.APP_NAME, settings.APP_VERSION)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# --- Middleware (outermost first) ---

app.add_middleware(SecurityHeadersMiddleware, enable_hsts=not settings.DEBUG)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

# --- Error handlers ---
register_error_handlers(app)

# --- Routes ---
app.include_router(api_router)


@app.get("/api/health")
async def health_check():
    """Health check: verifies database connectivity."""
    checks: dict = {"version": settings.APP_VERSION}
    healthy = True

    start = time.monotonic()
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = {
            "status": "ok",
            "latency_ms": round((time.monotonic() - start) * 1000, 1),
        }
    except (SQLAlchemyError, OSError) as exc:
        healthy = False
        logger.warning("Health check database query failed: %s", exc)
        checks["database"] = {"status": "error", "detail": str(exc)[:200]}

    checks["status"] = "healthy" if healthy else "degraded"
    return JSONResponse(content=checks, status_code=200 if healthy else 503)
