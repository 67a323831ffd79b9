from __future__ import annotations

import logging
import string
from dataclasses import dataclass, field
from urllib.parse import quote

import redis

from haste_api.core.codec import decode_payload, detect_url_redirect, encode_payload, split_identifier
from haste_api.core.errors import DocumentNotFound, DocumentTooLarge, KeyCollision, NotAcceptable, StoreError
from haste_api.core.keys import KeyGenerator, get_key_generator
from haste_api.schemas.api import URL_REDIRECT_MIMETYPE, DocumentInfo, DocumentKind
from haste_api.services.storage import DocumentStore, get_document_store
from haste_api.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_KEY_LENGTH = 10
DEFAULT_KEY_MAX_ATTEMPTS = 32

# Header values must stay latin-1; everything printable in ASCII passes through.
_HEADER_SAFE = string.punctuation + " "


def _header_value(value: str) -> str:
    return quote(value, safe=_HEADER_SAFE)


@dataclass(frozen=True)
class RetrievedDocument:
    info: DocumentInfo
    headers: dict[str, str]
    data: bytes = field(repr=False)

    @property
    def kind(self) -> DocumentKind:
        return self.info.kind

    @property
    def redirect_location(self) -> str | None:
        if self.kind is not DocumentKind.REDIRECT:
            return None
        return _header_value(self.data.decode("utf-8"))


def acceptable_types(mimetype: str) -> set[str]:
    acceptable = {mimetype, "*/*"}
    major, slash, _ = mimetype.partition("/")
    if slash:
        acceptable.add(f"{major}/*")
    return acceptable


def _refused(params: list[str]) -> bool:
    for param in params:
        name, _, value = param.partition("=")
        if name.strip().lower() == "q":
            try:
                return float(value.strip()) == 0
            except ValueError:
                return False
    return False


def accepts(accept: str, mimetype: str) -> bool:
    acceptable = acceptable_types(mimetype.lower())
    for media_range in accept.split(","):
        media_type, *params = media_range.split(";")
        if _refused(params):
            continue
        if media_type.strip().lower() in acceptable:
            return True
    return False


class DocumentHandler:
    def __init__(
        self,
        store: DocumentStore,
        key_generator: KeyGenerator,
        key_length: int = DEFAULT_KEY_LENGTH,
        max_length: int | None = None,
        key_max_attempts: int = DEFAULT_KEY_MAX_ATTEMPTS,
    ) -> None:
        self.store = store
        self.key_generator = key_generator
        self.key_length = key_length
        self.max_length = max_length
        self.key_max_attempts = key_max_attempts

    def store_document(
        self,
        info: DocumentInfo,
        raw: bytes,
        is_static: bool = False,
        sniff_redirect: bool = True,
    ) -> str:
        """Compress, encode and persist ``raw``; return the key it was stored under.

        Static documents are keyed by their name (minus any extension) and
        overwrite whatever was there. Everything else gets a fresh random key.
        """
        if sniff_redirect:
            url = detect_url_redirect(raw)
            if url is not None:
                raw = url.encode("utf-8")
                info = info.model_copy(update={"mimetype": URL_REDIRECT_MIMETYPE, "size": len(raw)})

        encoded = encode_payload(raw)
        if self.max_length and len(encoded) > self.max_length:
            raise DocumentTooLarge(len(encoded), self.max_length)

        if is_static:
            key, _ = split_identifier(info.name)
            self.store.set(key, info.model_copy(update={"key": key}), encoded, is_static=True)
            return key
        return self.choose_key(info, encoded)

    def choose_key(self, info: DocumentInfo, encoded: str) -> str:
        """Keep generating keys until one can be claimed atomically."""
        for _ in range(self.key_max_attempts):
            candidate = self.key_generator.create_key(self.key_length)
            try:
                self.store.set(candidate, info.model_copy(update={"key": candidate}), encoded, create_only=True)
            except KeyCollision:
                logger.debug("Key collision, regenerating", extra={"key": candidate})
                continue
            return candidate
        logger.error("Exhausted key attempts", extra={"attempts": self.key_max_attempts})
        raise StoreError(
            "Could not allocate a free document key",
            {"attempts": self.key_max_attempts, "key_length": self.key_length},
        )

    def retrieve_document(self, identifier: str, accept: str | None = None, is_static: bool = False) -> RetrievedDocument:
        key, url_type = split_identifier(identifier)
        stored = self.store.get(key, is_static=is_static)
        if stored.info is None:
            raise DocumentNotFound(key)
        info = stored.info.model_copy(update={"key": key})
        logger.debug("Retrieved document", extra={"key": key, "mimetype": info.mimetype})
        try:
            data = decode_payload(stored.data)
        except ValueError as exc:
            logger.error("Corrupt payload", extra={"key": key, "error": str(exc)})
            raise StoreError("Stored document could not be decoded", {"key": key}) from exc
        headers = self._get_doc_header(info, url_type, accept)
        headers["content-length"] = str(len(data))
        return RetrievedDocument(info=info, headers=headers, data=data)

    def head_document(self, identifier: str, accept: str | None = None) -> dict[str, str]:
        key, url_type = split_identifier(identifier)
        infos = self.store.get_metadata([key])
        if not infos:
            raise DocumentNotFound(key)
        return self._get_doc_header(infos[0].model_copy(update={"key": key}), url_type, accept)

    def _get_doc_header(self, info: DocumentInfo, url_type: str | None, accept: str | None) -> dict[str, str]:
        mimetype = url_type or info.mimetype
        negotiable = url_type is None and info.kind is DocumentKind.INLINE
        if negotiable and accept and not accepts(accept, mimetype):
            logger.warning(
                "Document content type is not allowed per request",
                extra={"requested": accept, "doctype": info.mimetype},
            )
            raise NotAcceptable(accept, info.mimetype)
        return {
            "content-type": mimetype,
            "content-length": str(info.size),
            "x-haste-key": _header_value(info.key),
            "x-haste-name": _header_value(info.name),
            "x-haste-size": str(info.size),
            "x-haste-syntax": _header_value(info.syntax),
            "x-haste-mimetype": info.mimetype,
            "x-haste-encoding": info.encoding,
            "x-haste-time": str(info.time),
        }

    def list_recent(self) -> list[DocumentInfo]:
        return self.store.get_recent()

    def get_metadata_for_keys(self, csv_keys: str) -> list[DocumentInfo]:
        keys = [key.strip() for key in csv_keys.split(",") if key.strip()]
        return self.store.get_metadata(keys)


def build_document_handler(settings: Settings, client: redis.Redis) -> DocumentHandler:
    return DocumentHandler(
        store=get_document_store(settings, client),
        key_generator=get_key_generator(settings.HASTE_KEY_GENERATOR, settings.HASTE_KEY_ALPHABET),
        key_length=settings.HASTE_KEY_LENGTH,
        max_length=settings.max_length,
        key_max_attempts=settings.HASTE_KEY_MAX_ATTEMPTS,
    )
