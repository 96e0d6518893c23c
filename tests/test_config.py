import pytest

from estate_shares.core.config import Settings, get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    for name in ("APP_TITLE", "DATABASE_URL", "REDIS_URL", "CACHE_TTL_SECONDS",
                 "DEFAULT_PROPERTY_SHARES", "LOG_LEVEL", "SQL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings == Settings()
    assert settings.redis_url is None
    assert settings.default_property_shares == 100


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/estate")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("DEFAULT_PROPERTY_SHARES", "1000")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.database_url == "postgresql+asyncpg://u:p@db/estate"
    assert settings.redis_url == "redis://cache:6379/1"
    assert settings.cache_ttl_seconds == 60
    assert settings.default_property_shares == 1000
    assert settings.log_level == "DEBUG"


def test_blank_redis_url_disables_cache(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "  ")

    assert get_settings().redis_url is None


def test_non_integer_setting_is_rejected(monkeypatch):
    monkeypatch.setenv("CACHE_TTL_SECONDS", "soon")

    with pytest.raises(ValueError, match="CACHE_TTL_SECONDS"):
        get_settings()


def test_configured_default_shares_apply_to_new_properties(tmp_path):
    from fastapi.testclient import TestClient

    from estate_shares.application import create_app

    settings = Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'shares.db'}",
        default_property_shares=1000,
    )
    with TestClient(create_app(settings)) as client:
        client.post("/users", json={"username": "alice", "email": "a@example.com", "password": "pw"})
        response = client.post(
            "/properties", json={"address": "1 Main St", "owner": "alice", "deedURL": "deed"}
        )

    assert response.json()["tokenizedShares"] == {"alice": 1000}


def test_log_lines_carry_extras_and_request_id():
    import json
    import logging

    from estate_shares.core.logging_config import JsonLineFormatter, RequestIdFilter
    from estate_shares.middleware.request_id import request_id_ctx

    record = logging.makeLogRecord({
        "name": "estate_shares.test", "levelname": "INFO", "msg": "moved %s",
        "args": (5,), "property_id": "p-1",
    })
    token = request_id_ctx.set("req-9")
    try:
        RequestIdFilter().filter(record)
    finally:
        request_id_ctx.reset(token)

    line = json.loads(JsonLineFormatter().format(record))

    assert line["msg"] == "moved 5"
    assert line["property_id"] == "p-1"
    assert line["request_id"] == "req-9"
