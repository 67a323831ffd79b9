from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import redis
from redis.exceptions import RedisError, WatchError

from haste_api.core.errors import KeyCollision, StoreError
from haste_api.schemas.api import DocumentInfo
from haste_api.settings import Settings

logger = logging.getLogger(__name__)

RECENT_KEY = "recent"
RECENT_LIMIT = 20


def _info_key(key: str) -> str:
    return f"info.{key}"


def _data_key(key: str) -> str:
    return f"data.{key}"


@dataclass(frozen=True)
class StoredDocument:
    info: DocumentInfo | None
    data: str | None


class DocumentStore(Protocol):
    def set(
        self,
        key: str,
        info: DocumentInfo,
        data: str,
        is_static: bool = False,
        create_only: bool = False,
    ) -> None:
        ...

    def get(self, key: str, is_static: bool = False) -> StoredDocument:
        ...

    def get_metadata(self, keys: list[str]) -> list[DocumentInfo]:
        ...

    def get_recent(self) -> list[DocumentInfo]:
        ...

    def exists(self, key: str) -> bool:
        ...

    def ping(self) -> bool:
        ...


@dataclass
class RedisDocumentStore:
    """Documents live under ``info.<key>`` (JSON metadata) and ``data.<key>``
    (gzip+base64 payload); ``recent`` holds the newest keys first.
    """

    client: redis.Redis
    expire: int | None = None

    def set(
        self,
        key: str,
        info: DocumentInfo,
        data: str,
        is_static: bool = False,
        create_only: bool = False,
    ) -> None:
        """Write metadata, payload and the recency entry in one MULTI/EXEC.

        With ``create_only`` both document keys are WATCHed and the write only
        commits if neither exists; otherwise :class:`KeyCollision` is raised and
        nothing is written.

        The ``recent`` type check runs before the transaction and is not
        WATCHed, so another client can still retype the key in between. EXEC
        reports that as a per-command failure, which is raised as
        :class:`StoreError`; only the commands queued before it will have
        applied.
        """
        info_key = _info_key(key)
        data_key = _data_key(key)
        info_json = info.model_dump_json()
        try:
            recent_type = self.client.type(RECENT_KEY)
            if recent_type not in ("list", "none"):
                logger.error("Recent index has wrong type", extra={"key": key, "recent_type": recent_type})
                raise StoreError("Recent index is not a list", {"key": key})
            with self.client.pipeline() as pipe:
                if create_only:
                    pipe.watch(info_key, data_key)
                    if pipe.exists(info_key, data_key):
                        pipe.unwatch()
                        raise KeyCollision(key)
                    pipe.multi()
                pipe.mset({info_key: info_json, data_key: data})
                if not is_static and self.expire:
                    pipe.expire(info_key, self.expire)
                    pipe.expire(data_key, self.expire)
                pipe.lrem(RECENT_KEY, 0, key)
                pipe.lpush(RECENT_KEY, key)
                pipe.ltrim(RECENT_KEY, 0, RECENT_LIMIT - 1)
                results = pipe.execute(raise_on_error=False)
        except WatchError as exc:
            raise KeyCollision(key) from exc
        except RedisError as exc:
            logger.exception("Redis transaction failed during set", extra={"key": key})
            raise StoreError("Some or all of the set operation failed", {"key": key}) from exc

        failures = [repr(result) for result in results if isinstance(result, Exception)]
        if failures:
            logger.error("Error during set", extra={"key": key, "failures": failures})
            raise StoreError("Some or all of the set operation failed", {"key": key})

    def get(self, key: str, is_static: bool = False) -> StoredDocument:
        """Fetch a document; a hit on a non-static document resets both TTLs."""
        info_key = _info_key(key)
        data_key = _data_key(key)
        try:
            info_json, data = self.client.mget(info_key, data_key)
            if info_json is None or data is None:
                return StoredDocument(info=None, data=None)
            if not is_static and self.expire:
                with self.client.pipeline() as pipe:
                    pipe.expire(info_key, self.expire)
                    pipe.expire(data_key, self.expire)
                    pipe.execute()
        except RedisError as exc:
            logger.exception("Redis read failed", extra={"key": key})
            raise StoreError("Failed to read document", {"key": key}) from exc
        return StoredDocument(info=DocumentInfo.model_validate_json(info_json), data=data)

    def get_metadata(self, keys: list[str]) -> list[DocumentInfo]:
        if not keys:
            return []
        try:
            info_strs = self.client.mget([_info_key(key) for key in keys])
        except RedisError as exc:
            logger.exception("Redis metadata lookup failed", extra={"keys": keys})
            raise StoreError("Failed to read document metadata") from exc
        return [DocumentInfo.model_validate_json(info) for info in info_strs if info is not None]

    def get_recent(self) -> list[DocumentInfo]:
        try:
            recent_keys = self.client.lrange(RECENT_KEY, 0, -1)
        except RedisError as exc:
            logger.exception("Redis recent lookup failed")
            raise StoreError("Failed to read recent documents") from exc
        return self.get_metadata(recent_keys)

    def exists(self, key: str) -> bool:
        try:
            return bool(self.client.exists(_info_key(key)))
        except RedisError as exc:
            logger.exception("Redis exists failed", extra={"key": key})
            raise StoreError("Failed to check document", {"key": key}) from exc

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError:
            return False


def build_redis_client(settings: Settings) -> redis.Redis:
    return redis.Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_timeout=settings.HASTE_REDIS_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.HASTE_REDIS_TIMEOUT_SECONDS,
    )


def get_document_store(settings: Settings, client: redis.Redis) -> RedisDocumentStore:
    return RedisDocumentStore(client=client, expire=settings.expire_seconds)
