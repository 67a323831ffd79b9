from __future__ import annotations

import base64
import binascii
import gzip
import mimetypes

GENERIC_MIMETYPE = "application/octet-stream"
_URL_SCHEMES = ("http://", "https://")
_SCHEME_PREFIX_BYTES = 8


def encode_payload(raw: bytes) -> str:
    return base64.b64encode(gzip.compress(raw)).decode("ascii")


def decode_payload(encoded: str) -> bytes:
    """Reverse :func:`encode_payload`.

    Raises ``ValueError`` when the stored string is not valid base64-wrapped gzip.
    """
    try:
        return gzip.decompress(base64.b64decode(encoded, validate=True))
    except (binascii.Error, OSError, EOFError) as exc:
        raise ValueError(f"Stored payload could not be decoded: {exc}") from exc


def detect_url_redirect(raw: bytes) -> str | None:
    """Return the URL when ``raw`` is a single line starting with an http(s) scheme.

    Only the first 8 bytes are inspected for the scheme; the whole buffer must
    then decode as UTF-8. Carriage returns are dropped and only a newline counts as
    a line break; a single trailing one is allowed.
    """
    prefix = raw[:_SCHEME_PREFIX_BYTES].decode("utf-8", errors="ignore").lower()
    if not prefix.startswith(_URL_SCHEMES):
        return None
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return None
    url = text.replace("\r", "")
    if url.endswith("\n"):
        url = url[:-1]
    if "\n" in url:
        return None
    return url


def split_identifier(identifier: str) -> tuple[str, str | None]:
    """Split ``abc123.txt`` into ``("abc123", "text/plain")``.

    The second element is the mimetype implied by the extension, or ``None`` when
    there is no extension or it maps to nothing more specific than octet-stream.
    """
    ext_index = identifier.rfind(".")
    if ext_index < 0:
        return identifier, None
    return identifier[:ext_index], guess_mimetype(identifier)


def guess_mimetype(filename: str) -> str | None:
    mimetype, _ = mimetypes.guess_type(filename, strict=False)
    if mimetype == GENERIC_MIMETYPE:
        return None
    return mimetype


def syntax_from_filename(filename: str) -> str:
    ext_index = filename.rfind(".")
    if ext_index > -1 and ext_index < len(filename) - 1:
        return filename[ext_index + 1 :]
    return ""
