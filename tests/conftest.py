"""Pytest configuration and fixtures."""

import asyncio
from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient

from estate_shares.application import create_app
from estate_shares.core.config import Settings


class RecordingRedis:
    """In-memory stand-in for the redis.asyncio client calls the cache makes."""

    def __init__(self) -> None:
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


class SlowRecordingRedis(RecordingRedis):
    """RecordingRedis whose writes land only after a delay."""

    def __init__(self, delay: float = 0.1) -> None:
        super().__init__()
        self.delay = delay

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        await asyncio.sleep(self.delay)
        return await super().set(key, value, ex=ex)


class UnavailableRedis:
    """Redis client whose every call fails, like a server that went away."""

    async def get(self, key: str) -> Optional[str]:
        raise ConnectionError("redis unavailable")

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        raise ConnectionError("redis unavailable")

    async def delete(self, *keys: str) -> int:
        raise ConnectionError("redis unavailable")


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a fresh SQLite database per test."""
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'estate_shares.db'}")


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def fake_redis() -> RecordingRedis:
    return RecordingRedis()


@pytest.fixture
def cached_client(settings, fake_redis):
    with TestClient(create_app(settings, redis=fake_redis)) as test_client:
        yield test_client


@pytest.fixture
def slow_redis() -> SlowRecordingRedis:
    return SlowRecordingRedis()


@pytest.fixture
def slow_cached_client(settings, slow_redis):
    with TestClient(create_app(settings, redis=slow_redis)) as test_client:
        yield test_client


@pytest.fixture
def unavailable_cache_client(settings):
    with TestClient(create_app(settings, redis=UnavailableRedis())) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user named ``username`` with a derived email."""

    def _register(username: str) -> dict:
        response = client.post(
            "/users",
            json={"username": username, "email": f"{username}@example.com", "password": "pw"},
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _register


@pytest.fixture
def alice_property(client, register) -> dict:
    """A property created by alice with the default 100 shares."""
    register("alice")
    response = client.post(
        "/properties",
        json={"address": "1 Main St", "owner": "alice", "deedURL": "https://deeds.example/1"},
    )
    assert response.status_code == 200, response.text
    return response.json()
