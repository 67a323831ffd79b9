from __future__ import annotations

import logging
from pathlib import Path

from haste_api.core.codec import guess_mimetype, split_identifier, syntax_from_filename
from haste_api.core.errors import APIError
from haste_api.schemas.api import DocumentInfo
from haste_api.services.document_handler import DocumentHandler

logger = logging.getLogger(__name__)


def seed_static_documents(handler: DocumentHandler, documents: dict[str, str]) -> list[str]:
    """Store each configured ``name -> path`` document unless it already exists.

    Returns the keys that were written. Failures are logged and skipped.
    """
    stored: list[str] = []
    for name, path in documents.items():
        key, _ = split_identifier(name)
        try:
            if handler.store.exists(key):
                logger.info("Not storing static document as it already exists", extra={"doc_name": name})
                continue
            data = Path(path).read_bytes()
        except APIError:
            logger.exception("Failed to check static document", extra={"doc_name": name, "path": path})
            continue
        except OSError as exc:
            logger.error("Failed to load static document", extra={"doc_name": name, "path": path, "error": str(exc)})
            continue
        if not data:
            logger.error("Static document is empty", extra={"doc_name": name, "path": path})
            continue

        info = DocumentInfo(
            key=key,
            name=name,
            size=len(data),
            syntax=syntax_from_filename(path),
            mimetype=guess_mimetype(path) or "text/plain",
            encoding="utf-8",
        )
        try:
            handler.store_document(info, data, is_static=True, sniff_redirect=False)
        except APIError:
            logger.exception("Failed to store static document", extra={"doc_name": name, "path": path})
            continue
        logger.debug("Loaded static document", extra={"doc_name": name, "path": path})
        stored.append(key)
    return stored
