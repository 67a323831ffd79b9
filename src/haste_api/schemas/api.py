from __future__ import annotations

import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

URL_REDIRECT_MIMETYPE = "url-redirect"


class DocumentKind(str, Enum):
    INLINE = "inline"
    REDIRECT = "redirect"


def _now_millis() -> int:
    return int(time.time() * 1000)


class DocumentInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str = ""
    name: str = ""
    size: int = Field(0, ge=0)
    syntax: str = ""
    mimetype: str = "text/plain"
    encoding: str = "utf-8"
    time: int = Field(default_factory=_now_millis)

    @property
    def kind(self) -> DocumentKind:
        if self.mimetype == URL_REDIRECT_MIMETYPE:
            return DocumentKind.REDIRECT
        return DocumentKind.INLINE


class StoreResponse(BaseModel):
    key: str
    name: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[dict] = None
    request_id: str
