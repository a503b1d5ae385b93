from __future__ import annotations

import fakeredis
import pytest

from request_labeler.errors import StoreError, StoreUnavailable
from request_labeler.store import SharedStore

TABLE = "request_logs"


def _store(ttl_seconds: int = 100800) -> SharedStore:
    return SharedStore(fakeredis.FakeRedis(decode_responses=True), ttl_seconds=ttl_seconds)


def _offline_store() -> SharedStore:
    server = fakeredis.FakeServer()
    server.connected = False
    return SharedStore(fakeredis.FakeRedis(server=server, decode_responses=True))


def test_write_field_sets_table_ttl() -> None:
    store = _store()
    store.write_field(TABLE, "abc", "{}")
    assert store.exists(TABLE, "abc") is True
    assert 0 < store.client.ttl(TABLE) <= 100800


def test_ttl_defaults_only_when_omitted() -> None:
    client = fakeredis.FakeRedis(decode_responses=True)
    assert SharedStore(client).ttl_seconds == 100800
    assert SharedStore(client, ttl_seconds=0).ttl_seconds == 0


def test_write_field_refreshes_ttl_on_every_write() -> None:
    store = _store()
    store.write_field(TABLE, "first", "{}")
    store.client.expire(TABLE, 10)
    store.write_field(TABLE, "second", "{}")
    assert store.client.ttl(TABLE) > 10


def test_write_field_if_absent_keeps_first_value() -> None:
    store = _store()
    assert store.write_field_if_absent(TABLE, "abc", "first") is True
    store.client.expire(TABLE, 10)
    assert store.write_field_if_absent(TABLE, "abc", "second") is False
    assert store.read_all(TABLE) == {"abc": "first"}
    assert store.client.ttl(TABLE) > 10


def test_read_all_and_clear() -> None:
    store = _store()
    store.write_field(TABLE, "a", "1")
    store.write_field(TABLE, "b", "2")
    assert store.read_all(TABLE) == {"a": "1", "b": "2"}

    store.clear(TABLE)
    assert store.read_all(TABLE) == {}
    assert store.exists(TABLE, "a") is False


def test_connection_faults_raise_store_unavailable() -> None:
    store = _offline_store()
    with pytest.raises(StoreUnavailable):
        store.exists(TABLE, "abc")
    with pytest.raises(StoreUnavailable):
        store.write_field(TABLE, "abc", "{}")
    with pytest.raises(StoreUnavailable):
        store.read_all(TABLE)


def test_command_faults_raise_store_error() -> None:
    store = _store()
    store.client.set(TABLE, "not a hash")
    with pytest.raises(StoreError) as exc_info:
        store.exists(TABLE, "abc")
    assert not isinstance(exc_info.value, StoreUnavailable)
    assert exc_info.value.operation == "exists"
