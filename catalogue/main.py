# catalogue/main.py
from __future__ import annotations

import logging
import re
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, cast

from alembic.config import Config as AlembicConfig
from alembic.script import ScriptDirectory
from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import JSONResponse

from catalogue.core.logging import setup_logging
from catalogue.core.settings import settings
from catalogue.database import DEFAULT_SCHEMA, SessionLocal, get_db, init_db_if_requested
from catalogue.routers.product import router as products_router
from catalogue.services.product_import import ImportFileError, ImportRowError

APP_STARTED_MONO = time.monotonic()
APP_STARTED_TS = int(time.time())

# --- Logging ---
setup_logging(settings.LOG_LEVEL.upper())
logger = logging.getLogger("catalogue")

ROOT_PATH = settings.ROOT_PATH.strip() or None
OPENAPI_URL = None if settings.DISABLE_DOCS else "/openapi.json"
DOCS_URL = None if settings.DISABLE_DOCS else "/docs"
REDOC_URL = None if settings.DISABLE_DOCS else "/redoc"

STATIC_DIR = Path(__file__).resolve().parent / "static"

tags_metadata = [
    {"name": "health", "description": "Liveness/Readiness checks"},
    {"name": "products", "description": "Product CRUD, import & export"},
]

# --- Utilitare ---
_ident_re = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

def _safe_ident(name: str, fallback: str) -> str:
    if _ident_re.fullmatch(name or ""):
        return name
    logger.warning("Invalid SQL identifier from env: %r. Using fallback: %r", name, fallback)
    return fallback

ALEMBIC_VERSION_TABLE = _safe_ident(settings.ALEMBIC_VERSION_TABLE, "alembic_version")

def _get_req_id_from_headers(request: Request) -> str:
    # Prefer X-Request-ID, apoi X-Correlation-ID; dacă lipsesc, generează unul.
    return (
        request.headers.get("x-request-id")
        or request.headers.get("x-correlation-id")
        or uuid.uuid4().hex[:12]
    )

def _error(request: Request, code: int, detail) -> JSONResponse:
    return JSONResponse(
        status_code=code,
        content={"detail": detail},
        headers={"X-Request-ID": _get_req_id_from_headers(request)},
    )

# --- Middleware func (registered after app is created) ---
async def request_context_mw(request: Request, call_next):
    """
    - Generează/propagă X-Request-ID
    - Aplică headers de securitate
    - Limitează mărimea corpului când Content-Length e disponibil
    - Server-Timing / X-Process-Time
    """
    req_id = _get_req_id_from_headers(request)

    # Body-size guard (non-intruziv, pe Content-Length)
    if settings.MAX_BODY_SIZE_BYTES > 0:
        cl = request.headers.get("content-length")
        if cl is not None and cl.isdigit() and int(cl) > settings.MAX_BODY_SIZE_BYTES:
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"detail": "Payload too large", "max_bytes": settings.MAX_BODY_SIZE_BYTES},
                headers={"X-Request-ID": req_id},
            )

    start = time.perf_counter()
    response: Response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000

    response.headers.setdefault("X-Request-ID", req_id)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "same-origin")
    response.headers.setdefault("Cache-Control", "no-store")
    response.headers.setdefault("X-App-Version", settings.APP_VERSION)
    response.headers.setdefault("Server-Timing", f"app;dur={duration_ms:.1f}")
    response.headers.setdefault("X-Process-Time", f"{duration_ms:.1f}ms")
    return response

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: tabele (doar dacă e cerut explicit) + sanity check DB
    try:
        init_db_if_requested()
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
            logger.info("DB startup check OK (dialect=%s, schema=%s)", db.get_bind().dialect.name, DEFAULT_SCHEMA)
    except Exception:
        logger.exception("DB startup check FAILED")

    try:
        heads = _get_pkg_alembic_heads()
        logger.info("Alembic heads: %s", heads or [])
    except Exception as e:
        logger.warning("Nu pot obține Alembic heads (%s): %s", settings.ALEMBIC_CONFIG, e)

    yield

    logger.info("Shutting down %s", settings.APP_TITLE)

# --- App factory (create app BEFORE registering middleware) ---
app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    openapi_tags=tags_metadata,
    lifespan=lifespan,
    root_path=ROOT_PATH or "",
    docs_url=DOCS_URL,
    redoc_url=REDOC_URL,
    openapi_url=OPENAPI_URL,
)

app.middleware("http")(request_context_mw)
app.add_middleware(GZipMiddleware, minimum_size=1024)

# Trusted hosts (opțional): TRUSTED_HOSTS="localhost,127.0.0.1,.example.com"
if settings.trusted_hosts:
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=cast(Sequence[str], settings.trusted_hosts))  # type: ignore[arg-type]

# CORS din env: CORS_ORIGINS="http://localhost:3000,https://example.com"
if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "Server-Timing",
            "X-Process-Time",
            "Content-Disposition",  # pt. download xlsx
            "X-App-Version",
        ],
    )

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

# --- Exception handlers (ops-friendly) ---
@app.exception_handler(ImportFileError)
async def _import_file_handler(request: Request, exc: ImportFileError):
    return _error(request, status.HTTP_422_UNPROCESSABLE_ENTITY, {"file": [str(exc)]})

@app.exception_handler(ImportRowError)
async def _import_row_handler(request: Request, exc: ImportRowError):
    return _error(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {"message": "Import failed; no products were imported.", "row": exc.row, "error": exc.reason},
    )

@app.exception_handler(IntegrityError)
async def _integrity_handler(request: Request, exc: IntegrityError):
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None)
    mapping = {
        "23514": (status.HTTP_422_UNPROCESSABLE_ENTITY, "Check constraint violated."),
        "23502": (status.HTTP_422_UNPROCESSABLE_ENTITY, "Not-null constraint violated."),
        "22P02": (status.HTTP_400_BAD_REQUEST, "Invalid text representation."),
    }
    if pgcode in mapping:
        code, msg = mapping[pgcode]
        return JSONResponse(
            status_code=code,
            content={"detail": msg, "pgcode": pgcode},
            headers={"X-Request-ID": _get_req_id_from_headers(request)},
        )
    return _error(request, status.HTTP_400_BAD_REQUEST, "Integrity error.")

def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx poate conține excepții (ValueError din validatori) → nu sunt JSON-serializabile
    out = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        err.pop("input", None)
        out.append(err)
    return out

@app.exception_handler(RequestValidationError)
async def _validation_handler(request: Request, exc: RequestValidationError):
    return _error(request, status.HTTP_422_UNPROCESSABLE_ENTITY, jsonable_errors(exc))

# Prinde 404/405 Starlette și răspunde JSON unitar
@app.exception_handler(StarletteHTTPException)
async def _starlette_http_exc_handler(request: Request, exc: StarletteHTTPException):
    headers = dict(exc.headers or {})
    headers.setdefault("X-Request-ID", _get_req_id_from_headers(request))
    detail = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        detail = {"message": "Not Found", "path": str(request.url.path)}
    elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        detail = {"message": "Method Not Allowed", "path": str(request.url.path)}
    return JSONResponse(status_code=exc.status_code, content={"detail": detail}, headers=headers)

@app.exception_handler(HTTPException)
async def _http_exc_handler(request: Request, exc: HTTPException):
    return await _starlette_http_exc_handler(request, exc)

@app.exception_handler(Exception)
async def _unhandled_exc_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s", exc)
    return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")

# --- Helpers Alembic/health ---
def _version_table_ref() -> str:
    if DEFAULT_SCHEMA:
        return f'"{_safe_ident(DEFAULT_SCHEMA, "public")}"."{ALEMBIC_VERSION_TABLE}"'
    return f'"{ALEMBIC_VERSION_TABLE}"'

def _get_db_alembic_version(db: Session) -> Tuple[Optional[str], bool]:
    try:
        version = db.execute(
            text(f"SELECT version_num FROM {_version_table_ref()}")
        ).scalar_one_or_none()
        return version, True
    except Exception:
        db.rollback()
        return None, False

def _get_pkg_alembic_heads() -> List[str]:
    cfg = AlembicConfig(settings.ALEMBIC_CONFIG)
    script = ScriptDirectory.from_config(cfg)
    return list(script.get_heads())

# --- Routes: health ---
@app.get("/", tags=["health"])
def root():
    payload = {"name": settings.APP_TITLE, "version": settings.APP_VERSION}
    if settings.BUILD_SHA:
        payload["build_sha"] = settings.BUILD_SHA
    return payload

@app.get("/__version__", tags=["health"])
def version_meta():
    payload = {"app_version": settings.APP_VERSION, "started_at": APP_STARTED_TS}
    if settings.BUILD_SHA:
        payload["build_sha"] = settings.BUILD_SHA
    return payload

@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}

@app.get("/health/uptime", tags=["health"])
def health_uptime():
    return {"uptime_seconds": round(time.monotonic() - APP_STARTED_MONO, 3), "started_at": APP_STARTED_TS}

@app.get("/health/db", tags=["health"])
def health_db(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok", "db": "up", "dialect": db.get_bind().dialect.name}
    except Exception:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="DB not ready")

@app.get("/health/migrations", tags=["health"])
def health_migrations(db: Session = Depends(get_db)):
    version, present = _get_db_alembic_version(db)
    return {"alembic_version": version, "present": present}

# --- Routers ---
app.include_router(products_router)
