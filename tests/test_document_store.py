from __future__ import annotations

import fakeredis
import pytest

from haste_api.core.errors import KeyCollision, StoreError
from haste_api.schemas.api import DocumentInfo
from haste_api.services.storage import RECENT_KEY, RECENT_LIMIT, RedisDocumentStore
from tests.conftest import EXPIRE_SECONDS


def _info(key: str, **overrides) -> DocumentInfo:
    return DocumentInfo(key=key, name=f"{key}.txt", size=5, **overrides)


def test_set_writes_metadata_payload_and_recent(store: RedisDocumentStore, redis_client) -> None:
    store.set("abc", _info("abc"), "payload")

    assert redis_client.get("data.abc") == "payload"
    assert DocumentInfo.model_validate_json(redis_client.get("info.abc")).name == "abc.txt"
    assert redis_client.lrange(RECENT_KEY, 0, -1) == ["abc"]

    stored = store.get("abc")
    assert stored.info == _info("abc").model_copy(update={"time": stored.info.time})
    assert stored.data == "payload"


def test_get_missing_key_is_empty(store: RedisDocumentStore) -> None:
    stored = store.get("nope")
    assert stored.info is None
    assert stored.data is None


def test_non_static_documents_expire(store: RedisDocumentStore, redis_client) -> None:
    store.set("abc", _info("abc"), "payload")
    assert 0 < redis_client.ttl("info.abc") <= EXPIRE_SECONDS
    assert 0 < redis_client.ttl("data.abc") <= EXPIRE_SECONDS


def test_static_documents_never_expire(store: RedisDocumentStore, redis_client) -> None:
    store.set("about", _info("about"), "payload", is_static=True)
    assert redis_client.ttl("info.about") == -1
    assert redis_client.ttl("data.about") == -1

    store.get("about", is_static=True)
    assert redis_client.ttl("info.about") == -1


def test_store_without_expire_sets_no_ttl(redis_client) -> None:
    store = RedisDocumentStore(client=redis_client, expire=None)
    store.set("abc", _info("abc"), "payload")
    assert redis_client.ttl("info.abc") == -1


def test_read_refreshes_ttl(store: RedisDocumentStore, redis_client) -> None:
    store.set("abc", _info("abc"), "payload")
    redis_client.expire("info.abc", 5)
    redis_client.expire("data.abc", 5)

    store.get("abc")

    assert redis_client.ttl("info.abc") > 5
    assert redis_client.ttl("data.abc") > 5


def test_recent_is_bounded_and_newest_first(store: RedisDocumentStore) -> None:
    keys = [f"doc{i}" for i in range(RECENT_LIMIT + 5)]
    for key in keys:
        store.set(key, _info(key), "payload")

    recent = store.get_recent()
    assert len(recent) == RECENT_LIMIT
    assert [info.key for info in recent] == list(reversed(keys))[:RECENT_LIMIT]


def test_rewriting_a_key_moves_it_to_front(store: RedisDocumentStore, redis_client) -> None:
    for key in ("a", "b", "c"):
        store.set(key, _info(key), "payload", is_static=True)
    store.set("a", _info("a"), "new payload", is_static=True)

    assert redis_client.lrange(RECENT_KEY, 0, -1) == ["a", "c", "b"]
    assert store.get("a", is_static=True).data == "new payload"


def test_get_metadata_skips_missing(store: RedisDocumentStore) -> None:
    store.set("a", _info("a"), "payload")
    store.set("b", _info("b"), "payload")

    infos = store.get_metadata(["a", "missing", "b"])
    assert sorted(info.key for info in infos) == ["a", "b"]
    assert store.get_metadata([]) == []


def test_create_only_refuses_existing_key(store: RedisDocumentStore, redis_client) -> None:
    store.set("abc", _info("abc"), "first")

    with pytest.raises(KeyCollision):
        store.set("abc", _info("abc"), "second", create_only=True)

    assert redis_client.get("data.abc") == "first"
    assert redis_client.lrange(RECENT_KEY, 0, -1) == ["abc"]


def test_create_only_writes_fresh_key(store: RedisDocumentStore) -> None:
    store.set("abc", _info("abc"), "payload", create_only=True)
    assert store.get("abc").data == "payload"


def test_wrong_recent_type_aborts_whole_write(store: RedisDocumentStore, redis_client) -> None:
    redis_client.set(RECENT_KEY, "not a list")

    with pytest.raises(StoreError):
        store.set("abc", _info("abc"), "payload")

    assert redis_client.exists("info.abc", "data.abc") == 0


def test_backend_failure_raises_store_error(redis_server: fakeredis.FakeServer, store: RedisDocumentStore) -> None:
    redis_server.connected = False

    with pytest.raises(StoreError) as excinfo:
        store.set("abc", _info("abc"), "payload")
    assert excinfo.value.status_code == 503

    with pytest.raises(StoreError):
        store.get("abc")
    with pytest.raises(StoreError):
        store.get_recent()
    assert store.ping() is False


def test_exists_and_ping(store: RedisDocumentStore) -> None:
    assert store.exists("abc") is False
    store.set("abc", _info("abc"), "payload")
    assert store.exists("abc") is True
    assert store.ping() is True


def test_create_only_loses_race_to_concurrent_writer(
    store: RedisDocumentStore,
    redis_server: fakeredis.FakeServer,
    redis_client,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    other = fakeredis.FakeRedis(server=redis_server, decode_responses=True)
    original_pipeline = redis_client.pipeline

    def racing_pipeline(*args, **kwargs):
        pipe = original_pipeline(*args, **kwargs)
        original_multi = pipe.multi

        def multi() -> None:
            other.mset({"info.abc": _info("abc").model_dump_json(), "data.abc": "theirs"})
            original_multi()

        pipe.multi = multi
        return pipe

    monkeypatch.setattr(redis_client, "pipeline", racing_pipeline)

    with pytest.raises(KeyCollision) as excinfo:
        store.set("abc", _info("abc"), "ours", create_only=True)

    assert excinfo.value.key == "abc"
    assert redis_client.get("data.abc") == "theirs"
    assert redis_client.lrange(RECENT_KEY, 0, -1) == []
