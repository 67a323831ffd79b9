from __future__ import annotations

from fastapi import APIRouter, Depends

from haste_api.routers.documents import get_document_handler
from haste_api.services.document_handler import DocumentHandler
from haste_api.settings import get_settings

router = APIRouter()


@router.get("/health")
def health(handler: DocumentHandler = Depends(get_document_handler)) -> dict[str, str | bool | int | None]:
    settings = get_settings()
    return {
        "status": "ok",
        "build_version": settings.HASTE_BUILD_VERSION or "dev",
        "key_generator": settings.HASTE_KEY_GENERATOR,
        "expire_seconds": settings.expire_seconds,
        "redis_reachable": handler.store.ping(),
    }
