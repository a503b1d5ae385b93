"""Shared store adapter — TTL-windowed Redis hash tables.

Each logical table is one Redis hash. Every write runs HSET (or HSETNX)
and EXPIRE inside one MULTI/EXEC so the table TTL is refreshed atomically
with the field it protects: a busy table never expires mid-burst and an
idle one clears itself after the window.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import redis

from request_labeler.config import Settings, settings
from request_labeler.errors import StoreError, StoreUnavailable
from request_labeler.metrics import STORE_ERRORS_TOTAL

logger = logging.getLogger(__name__)

_shared_store: SharedStore | None = None


def _text(value: str | bytes) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class SharedStore:
    """Thin wrapper over a redis client that speaks in tables and fields."""

    def __init__(self, client: redis.Redis, *, ttl_seconds: int | None = None) -> None:
        self._client = client
        self.ttl_seconds = int(settings.LABELER_TABLE_TTL_S if ttl_seconds is None else ttl_seconds)

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> SharedStore:
        client = redis.Redis.from_url(
            cfg.REDIS_URL,
            decode_responses=True,
            client_name=cfg.REDIS_CLIENT_NAME,
            socket_connect_timeout=cfg.REDIS_CONNECT_TIMEOUT_S,
            socket_timeout=cfg.REDIS_SOCKET_TIMEOUT_S,
        )
        return cls(client, ttl_seconds=cfg.LABELER_TABLE_TTL_S)

    @property
    def client(self) -> redis.Redis:
        return self._client

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as exc:
            STORE_ERRORS_TOTAL.labels(operation=operation, error_class=type(exc).__name__).inc()
            raise StoreUnavailable(operation, str(exc)) from exc
        except redis.exceptions.RedisError as exc:
            STORE_ERRORS_TOTAL.labels(operation=operation, error_class=type(exc).__name__).inc()
            raise StoreError(operation, str(exc)) from exc

    def exists(self, table: str, field: str) -> bool:
        with self._guard("exists"):
            return bool(self._client.hexists(table, field))

    def read_all(self, table: str) -> dict[str, str]:
        with self._guard("read_all"):
            rows = self._client.hgetall(table) or {}
        return {_text(k): _text(v) for k, v in rows.items()}

    def write_field(self, table: str, field: str, value: str) -> None:
        with self._guard("write_field"):
            pipe = self._client.pipeline(transaction=True)
            pipe.hset(table, field, value)
            pipe.expire(table, self.ttl_seconds)
            pipe.execute()

    def write_field_if_absent(self, table: str, field: str, value: str) -> bool:
        """HSETNX variant of :meth:`write_field`; True when the field was created."""
        with self._guard("write_field_if_absent"):
            pipe = self._client.pipeline(transaction=True)
            pipe.hsetnx(table, field, value)
            pipe.expire(table, self.ttl_seconds)
            created, _ = pipe.execute()
        return bool(created)

    def clear(self, table: str) -> None:
        with self._guard("clear"):
            self._client.delete(table)

    def close(self) -> None:
        try:
            self._client.close()
        except redis.exceptions.RedisError as exc:
            logger.warning("Shared store close failed: %s", exc)


def get_store() -> SharedStore:
    """Process-wide store; the underlying pool reconnects lazily."""
    global _shared_store
    if _shared_store is None:
        _shared_store = SharedStore.from_settings()
    return _shared_store
