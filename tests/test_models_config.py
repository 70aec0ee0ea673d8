"""Tests for domain models, the application registry, settings and logging setup."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from pydantic import ValidationError

from shop_appstore.applications import ApplicationRegistry
from shop_appstore.config import AppstoreSettings, get_settings
from shop_appstore.exceptions import InvalidUriError, UnknownApplicationError
from shop_appstore.logging_config import configure_logging
from shop_appstore.models import Application, ItemList, Token, parse_uri


class TestParseUri:
    @pytest.mark.parametrize(
        "value",
        ["https://shop.example.com", "http://shop.example.com:8080/store/", "  https://a.example.com  "],
    )
    def test_valid(self, value):
        uri = parse_uri(value)
        assert isinstance(uri, httpx.URL)
        assert uri.scheme in ("http", "https")

    @pytest.mark.parametrize(
        "value", ["not a url", "ftp://shop.example.com", "https://", "/relative/path", 42, None]
    )
    def test_invalid(self, value):
        with pytest.raises(InvalidUriError) as exc_info:
            parse_uri(value)
        assert exc_info.value.value == value


class TestItemList:
    def test_sequence_behaviour(self):
        items = ItemList([{"id": 1}, {"id": 2}], count=10, page=1, pages=5)
        assert len(items) == 2
        assert items[0] == {"id": 1}
        assert items[-1] == {"id": 2}
        assert list(items) == [{"id": 1}, {"id": 2}]
        assert items.count == 10

    def test_count_defaults_to_length(self):
        assert ItemList(["a", "b", "c"]).count == 3

    def test_append_and_remove(self):
        items: ItemList[dict] = ItemList()
        items.append({"id": 7})
        items.append({"id": 8})
        assert items.remove_at(0) == {"id": 7}
        assert items.ids() == [8]

    def test_ids_by_attribute(self):
        app = Application(code="a", appstore_secret="s")
        assert ItemList([app]).ids("code") == ["a"]


class TestToken:
    def test_expiry(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert Token("a").is_expired(now) is False
        assert Token("a", expires_at=now - timedelta(seconds=1)).is_expired(now) is True
        assert Token("a", expires_at=now + timedelta(hours=1)).is_expired(now) is False

    def test_secrets_hidden_from_repr(self):
        assert "top-secret" not in repr(Token("top-secret", "refresh-secret"))
        assert "top-secret" not in repr(Application(code="a", appstore_secret="top-secret"))


class TestApplicationRegistry:
    def test_get_and_has(self, application):
        registry = ApplicationRegistry([application])
        assert registry.has("test-app") is True
        assert registry.get("test-app") is application
        assert len(registry) == 1
        assert list(registry) == [application]

    def test_unknown(self):
        with pytest.raises(UnknownApplicationError) as exc_info:
            ApplicationRegistry().get("missing")
        assert exc_info.value.code == "missing"

    def test_duplicate_rejected(self, application):
        registry = ApplicationRegistry([application])
        with pytest.raises(ValueError):
            registry.register(Application(code="test-app", appstore_secret="other"))

    def test_unregister(self, application):
        registry = ApplicationRegistry([application])
        registry.unregister("test-app")
        assert registry.has("test-app") is False
        with pytest.raises(UnknownApplicationError):
            registry.unregister("test-app")

    def test_from_settings(self):
        settings = AppstoreSettings(
            applications=[
                {"code": "one", "appstore_secret": "s1", "client_id": "cid", "client_secret": "cs"},
                {"code": "two", "appstore_secret": "s2"},
            ]
        )
        registry = ApplicationRegistry.from_settings(settings)
        assert registry.get("one") == Application("one", "s1", "cid", "cs")
        assert registry.get("two").client_id == ""


class TestAppstoreSettings:
    def test_defaults(self, monkeypatch):
        for name in ("APPSTORE_RETRY_LIMIT", "APPSTORE_REDIS_URL", "APPSTORE_APPLICATIONS"):
            monkeypatch.delenv(name, raising=False)
        settings = AppstoreSettings()
        assert settings.applications == []
        assert settings.retry_limit == 3
        assert settings.default_retry_after == 1.0
        assert settings.redis_url == ""
        assert settings.webhook_path == "/appstore/billing"

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv(
            "APPSTORE_APPLICATIONS", json.dumps([{"code": "env-app", "appstore_secret": "env-secret"}])
        )
        monkeypatch.setenv("APPSTORE_RETRY_LIMIT", "5")
        settings = AppstoreSettings()
        assert settings.applications[0].code == "env-app"
        assert settings.retry_limit == 5

    def test_negative_retry_limit_rejected(self):
        with pytest.raises(ValidationError):
            AppstoreSettings(retry_limit=-1)

    def test_get_settings_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


class TestConfigureLogging:
    def test_single_handler(self):
        logger = configure_logging("DEBUG")
        configure_logging("INFO")
        marked = [h for h in logger.handlers if getattr(h, "_appstore_handler", False)]
        assert len(marked) == 1
        assert logger.level == logging.INFO
