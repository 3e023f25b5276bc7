"""
main.py — Smartify Device-Financing API

Creates the FastAPI app, wires middleware, exception handlers and routers.
All business logic lives in services/; routers are thin.

Business Rules:
- Every response carries X-Request-ID (8 chars), X-API-Version and the
  OWASP security headers
- /api/v1/... is accepted as an alias of /api/...
- Every error, domain or framework, is rendered as ErrorResponse JSON
- Agent sessions ride on a signed cookie (SessionMiddleware)

Called by: uvicorn (smartify.main:app)
Depends on: config, database, logging_config, startup, routers/*
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text as sqltext
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .config import APP_VERSION, settings
from .database import SessionLocal
from .exceptions import WorkflowError
from .logging_config import setup_logging
from .rate_limit import limiter
from .schemas.errors import ErrorResponse

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    from .startup import run_startup_migrations

    run_startup_migrations()
    logger.info("Smartify v{} started (dev_mode={})", APP_VERSION, settings.dev_mode)
    yield
    logger.info("Smartify shutting down")


app = FastAPI(title="Smartify", version=APP_VERSION, lifespan=lifespan)
app.state.limiter = limiter
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    https_only=settings.app_url.startswith("https"),
    same_site="lax",
)


# ── Middleware ───────────────────────────────────────────────────────


@app.middleware("http")
async def api_version_middleware(request: Request, call_next):
    """Rewrite /api/v1/... to /api/... and tag every response with the API version."""
    path = request.scope["path"]
    if path.startswith("/api/v1/"):
        request.scope["path"] = "/api/" + path[len("/api/v1/"):]
    response = await call_next(request)
    response.headers["X-API-Version"] = "v1"
    return response


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag the request with a short id, bind it to the log context, add security headers."""
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# ── Exception handlers ───────────────────────────────────────────────


def _error(request: Request, status_code: int, message: str, detail: list | None = None, **extra):
    body = ErrorResponse(
        error=message,
        status_code=status_code,
        request_id=getattr(request.state, "request_id", ""),
        detail=detail,
    ).model_dump(exclude_none=True)
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    logger.info("{} {} -> {} {}", request.method, request.url.path, exc.status_code, exc.message)
    return _error(request, exc.status_code, exc.message, **exc.context)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error(request, exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    detail = [
        {"loc": list(e.get("loc", [])), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return _error(request, 422, "Validation error", detail=detail)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("Rate limit hit: {} {}", request.method, request.url.path)
    return _error(request, 429, f"Rate limit exceeded: {exc.detail}")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return _error(request, 500, "Internal server error")


# ── Health ───────────────────────────────────────────────────────────


def _db_ok() -> bool:
    db = SessionLocal()
    try:
        db.execute(sqltext("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Health check DB query failed: {}", e)
        return False
    finally:
        db.close()


@app.get("/health")
@app.get("/api/health")
async def health():
    db_ok = _db_ok()
    return JSONResponse(
        status_code=200 if db_ok else 503,
        content={
            "status": "ok" if db_ok else "degraded",
            "database": "connected" if db_ok else "disconnected",
            "version": APP_VERSION,
        },
    )


# ── Routers ──────────────────────────────────────────────────────────

from .routers.agent import router as agent_router  # noqa: E402
from .routers.applications import router as applications_router  # noqa: E402
from .routers.catalog import router as catalog_router  # noqa: E402
from .routers.numbers import router as numbers_router  # noqa: E402
from .routers.otp import router as otp_router  # noqa: E402

app.include_router(catalog_router)
app.include_router(otp_router)
app.include_router(applications_router)
app.include_router(agent_router)
app.include_router(numbers_router)
