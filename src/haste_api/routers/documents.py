from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from haste_api.core.codec import GENERIC_MIMETYPE, guess_mimetype, split_identifier, syntax_from_filename
from haste_api.core.errors import MissingDocument
from haste_api.core.request_context import log_context
from haste_api.schemas.api import DocumentInfo, ErrorResponse, StoreResponse
from haste_api.services.document_handler import DocumentHandler
from haste_api.settings import get_settings

router = APIRouter(tags=["documents"])
logger = logging.getLogger(__name__)

_READ_ERRORS = {
    404: {"model": ErrorResponse},
    406: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}
_WRITE_ERRORS = {
    400: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def get_document_handler(request: Request) -> DocumentHandler:
    return request.app.state.document_handler


def _is_static(identifier: str) -> bool:
    key, _ = split_identifier(identifier)
    static_keys = {split_identifier(name)[0] for name in get_settings().HASTE_DOCUMENTS}
    return key in static_keys


async def _store_upload(handler: DocumentHandler, upload: UploadFile) -> StoreResponse:
    filename = upload.filename or ""
    mimetype = upload.content_type or GENERIC_MIMETYPE
    if mimetype == GENERIC_MIMETYPE:
        mimetype = guess_mimetype(filename) or mimetype
    content = await upload.read()
    info = DocumentInfo(
        name=filename,
        size=len(content),
        syntax=syntax_from_filename(filename),
        mimetype=mimetype,
        encoding=upload.headers.get("content-transfer-encoding", "utf-8"),
    )
    key = await run_in_threadpool(handler.store_document, info, content, sniff_redirect=False)
    return StoreResponse(name=filename, key=key)


@router.post("/docs", response_model=StoreResponse, response_model_exclude_none=True, responses=_WRITE_ERRORS)
async def post_document(request: Request, handler: DocumentHandler = Depends(get_document_handler)) -> StoreResponse:
    content_type = request.headers.get("content-type", "")
    if content_type.split(";", 1)[0].strip().lower() == "multipart/form-data":
        form = await request.form()
        data_field = form.get("data")
        if isinstance(data_field, str):
            content = data_field.encode("utf-8")
        else:
            upload = next((value for value in form.values() if isinstance(value, UploadFile)), None)
            if upload is None:
                raise MissingDocument()
            response = await _store_upload(handler, upload)
            logger.info("Stored uploaded document", extra=log_context(request, key=response.key))
            return response
    else:
        content = await request.body()

    info = DocumentInfo(size=len(content))
    key = await run_in_threadpool(handler.store_document, info, content)
    logger.info("Stored document", extra=log_context(request, key=key))
    return StoreResponse(key=key)


@router.get("/docs/{identifier}", responses=_READ_ERRORS)
def get_document(
    identifier: str,
    request: Request,
    handler: DocumentHandler = Depends(get_document_handler),
) -> Response:
    document = handler.retrieve_document(
        identifier,
        accept=request.headers.get("accept"),
        is_static=_is_static(identifier),
    )
    location = document.redirect_location
    if location is not None:
        return Response(
            content=document.data,
            status_code=301,
            headers={**document.headers, "location": location},
        )
    return Response(content=document.data, headers=document.headers)


@router.head("/docs/{identifier}", responses=_READ_ERRORS)
def head_document(
    identifier: str,
    request: Request,
    handler: DocumentHandler = Depends(get_document_handler),
) -> Response:
    headers = handler.head_document(identifier, accept=request.headers.get("accept"))
    return Response(headers=headers)


@router.get("/recent", response_model=list[DocumentInfo])
def get_recent(handler: DocumentHandler = Depends(get_document_handler)) -> list[DocumentInfo]:
    return handler.list_recent()


@router.get("/keys/{keys}", response_model=list[DocumentInfo])
def get_keys(keys: str, handler: DocumentHandler = Depends(get_document_handler)) -> list[DocumentInfo]:
    return handler.get_metadata_for_keys(keys)
