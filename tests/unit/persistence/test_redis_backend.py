"""Unit tests for RedisCacheBackend using fakeredis."""

from __future__ import annotations

import json
from unittest.mock import patch

import fakeredis
import pytest

from datadna.core.exceptions import CacheError
from datadna.persistence.redis_backend import RedisCacheBackend


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def backend(fake_server):
    with patch("redis.Redis", return_value=fakeredis.FakeRedis(server=fake_server, decode_responses=True)):
        return RedisCacheBackend(host="localhost", port=6379, db=0)


class TestGet:
    def test_returns_none_on_miss(self, backend):
        assert backend.get("nonexistent") is None

    def test_returns_stored_string(self, backend):
        data = {"suggested_table": "hc_staff", "suggested_column": "npi"}
        backend.setex("reasoning:abc", 300, json.dumps(data))
        assert backend.get("reasoning:abc") == json.dumps(data)


class TestSetex:
    def test_overwrites_existing_value(self, backend):
        backend.setex("k", 60, "old")
        backend.setex("k", 60, "new")
        assert backend.get("k") == "new"

    def test_sets_ttl(self, backend, fake_server):
        backend.setex("k", 60, "v")
        client = fakeredis.FakeRedis(server=fake_server)
        assert 0 < client.ttl("k") <= 60


class TestDelete:
    def test_removes_existing_key(self, backend):
        backend.setex("del_me", 60, "val")
        backend.delete("del_me")
        assert backend.get("del_me") is None

    def test_noop_on_missing_key(self, backend):
        backend.delete("never_existed")


class TestKeys:
    def test_lists_keys_by_prefix(self, backend):
        backend.setex("reasoning:a", 60, "1")
        backend.setex("reasoning:b", 60, "2")
        backend.setex("other:c", 60, "3")
        assert sorted(backend.keys("reasoning:")) == ["reasoning:a", "reasoning:b"]

    def test_ping(self, backend):
        assert backend.ping() is True


class TestErrorWrapping:
    def test_get_wraps_redis_error(self):
        b = RedisCacheBackend.__new__(RedisCacheBackend)
        b._client = None  # AttributeError on use
        with pytest.raises(CacheError):
            b.get("k")

    def test_keys_wraps_redis_error(self):
        b = RedisCacheBackend.__new__(RedisCacheBackend)
        b._client = None
        with pytest.raises(CacheError):
            b.keys("reasoning:")
