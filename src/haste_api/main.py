from __future__ import annotations

import logging
import traceback
from urllib.parse import urlsplit

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from haste_api.core.errors import APIError
from haste_api.core.request_context import get_request_id
from haste_api.routers.documents import router as documents_router
from haste_api.routers.health import router as health_router
from haste_api.services.document_handler import build_document_handler
from haste_api.services.static_documents import seed_static_documents
from haste_api.services.storage import build_redis_client
from haste_api.settings import get_settings


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("haste_api")


# -----------------------------------------------------------------------------
# CORS
# -----------------------------------------------------------------------------
def _cors_origins() -> list[str]:
    settings = get_settings()
    if settings.WEB_ORIGIN:
        return [origin.strip() for origin in settings.WEB_ORIGIN.split(",") if origin.strip()]
    if settings.HASTE_ENV.lower() == "production":
        return []
    return [
        "http://localhost:7777",
        "http://127.0.0.1:7777",
    ]


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------
app = FastAPI(title="Haste API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-haste-key", "x-haste-name", "x-haste-syntax", "x-haste-mimetype"],
)


# -----------------------------------------------------------------------------
# Exception handlers
# -----------------------------------------------------------------------------
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = get_request_id(request)
    logger.error(
        "Unhandled exception on %s %s request_id=%s\n%s",
        request.method,
        request.url.path,
        request_id,
        traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "path": request.url.path,
            "request_id": request_id,
        },
    )


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    request_id = get_request_id(request)
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Handled API error on %s %s request_id=%s code=%s details=%s",
        request.method,
        request.url.path,
        request_id,
        exc.code,
        exc.details,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.code,
            "message": exc.message,
            "details": exc.details,
            "request_id": request_id,
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = get_request_id(request)
    logger.info(
        "Validation error on %s %s request_id=%s",
        request.method,
        request.url.path,
        request_id,
    )
    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Invalid request payload",
            "details": exc.errors(),
            "request_id": request_id,
        },
    )


# -----------------------------------------------------------------------------
# Startup / shutdown (redis client, document handler, static documents)
# -----------------------------------------------------------------------------
@app.on_event("startup")
def startup_event() -> None:
    settings = get_settings()
    logger.info("Haste API starting")
    logger.info("HASTE_ENV=%s", settings.HASTE_ENV)
    logger.info("REDIS_HOST=%s", urlsplit(settings.redis_url).hostname)
    logger.info("EXPIRE_SECONDS=%s", settings.expire_seconds)
    logger.info("KEY_GENERATOR=%s", settings.HASTE_KEY_GENERATOR)
    if getattr(app.state, "document_handler", None) is None:
        app.state.redis_client = build_redis_client(settings)
        app.state.document_handler = build_document_handler(settings, app.state.redis_client)
    if settings.HASTE_DOCUMENTS:
        seeded = seed_static_documents(app.state.document_handler, settings.HASTE_DOCUMENTS)
        logger.info("Seeded %d static document(s)", len(seeded))


@app.on_event("shutdown")
def shutdown_event() -> None:
    client = getattr(app.state, "redis_client", None)
    if client is not None:
        client.close()


# -----------------------------------------------------------------------------
# Routers
# -----------------------------------------------------------------------------
app.include_router(health_router)
app.include_router(documents_router)


def run() -> None:
    settings = get_settings()
    uvicorn.run("haste_api.main:app", host=settings.HOST, port=settings.PORT)
