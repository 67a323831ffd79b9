from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class APIError(Exception):
    status_code: int
    code: str
    message: str
    details: dict[str, Any] | None = None


class DocumentNotFound(APIError):
    def __init__(self, key: str) -> None:
        super().__init__(404, "document_not_found", f"Couldn't find document with key {key}", {"key": key})


class DocumentTooLarge(APIError):
    def __init__(self, size: int, max_length: int) -> None:
        super().__init__(
            413,
            "document_too_large",
            f"Document exceeds maximum length of {max_length} bytes "
            f"(doc size is {size} bytes after gzip+base64)",
            {"size": size, "max_length": max_length},
        )


class NotAcceptable(APIError):
    def __init__(self, requested: str, mimetype: str) -> None:
        super().__init__(
            406,
            "not_acceptable",
            "Requested document does not support acceptable content-type",
            {"requested": requested, "mimetype": mimetype},
        )


class MissingDocument(APIError):
    def __init__(self) -> None:
        super().__init__(400, "missing_document", "Request did not contain a document")


class StoreError(APIError):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(503, "store_unavailable", message, details)


class KeyCollision(Exception):
    """Raised when a create-only write finds its key already claimed."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Key {key!r} is already taken")
        self.key = key
