from __future__ import annotations

from collections.abc import Iterator

import fakeredis
import pytest
from fastapi.testclient import TestClient

from haste_api.core.keys import RandomKeyGenerator
from haste_api.main import app
from haste_api.services.document_handler import DocumentHandler
from haste_api.services.storage import RedisDocumentStore
from haste_api.settings import get_settings

EXPIRE_SECONDS = 600
MAX_LENGTH = 4000


class SequenceKeyGenerator:
    """Hands out predetermined keys, then falls back to random ones."""

    def __init__(self, keys: list[str]) -> None:
        self._keys = list(keys)
        self._fallback = RandomKeyGenerator()
        self.calls = 0

    def create_key(self, length: int) -> str:
        self.calls += 1
        if self._keys:
            return self._keys.pop(0)
        return self._fallback.create_key(length)


@pytest.fixture()
def redis_server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest.fixture()
def redis_client(redis_server: fakeredis.FakeServer) -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(server=redis_server, decode_responses=True)


@pytest.fixture()
def store(redis_client: fakeredis.FakeRedis) -> RedisDocumentStore:
    return RedisDocumentStore(client=redis_client, expire=EXPIRE_SECONDS)


@pytest.fixture()
def handler(store: RedisDocumentStore) -> DocumentHandler:
    return DocumentHandler(store=store, key_generator=RandomKeyGenerator(), max_length=MAX_LENGTH)


@pytest.fixture()
def client(handler: DocumentHandler, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.delenv("HASTE_DOCUMENTS", raising=False)
    get_settings.cache_clear()
    app.state.document_handler = handler
    try:
        yield TestClient(app)
    finally:
        app.state.document_handler = None
        get_settings.cache_clear()
