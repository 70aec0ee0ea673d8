"""Webhook HTTP surface tests.

Verifies the full request flow through the FastAPI route:
- Form-encoded and JSON bodies reach the dispatcher
- Status codes: 200 ok, 400 bad input, 401 bad signature, 404 unknown app, 405 method
- No information disclosure in error responses
"""

from __future__ import annotations

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from shop_appstore.billing.dispatcher import Dispatcher
from shop_appstore.billing.registry import ResolverRegistry
from shop_appstore.config import AppstoreSettings
from shop_appstore.storage import DefaultShopFactory
from shop_appstore.webhooks.handlers import create_app, parse_body, register_appstore_routes

PATH = "/appstore/billing"


class ExplodingResolver:
    def resolve(self, message):
        raise RuntimeError("database password is hunter2")


@pytest.fixture()
def client(dispatcher):
    app = FastAPI()
    register_appstore_routes(app, dispatcher, PATH)
    return TestClient(app, raise_server_exceptions=False)


class TestWebhookRoute:
    def test_form_encoded_webhook_accepted(self, client, storage, signed_params, application):
        resp = client.post(PATH, data=signed_params())
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
        shop = storage.find_one_by_name_and_application("shop1234", application)
        assert shop.billing_state == "paid"

    def test_json_webhook_accepted(self, client, signed_params):
        resp = client.post(
            PATH,
            content=json.dumps(signed_params("uninstall")),
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 200

    def test_get_returns_405(self, client, signed_params):
        resp = client.get(PATH, params=signed_params())
        assert resp.status_code == 405
        assert resp.json() == {"status": "method_not_allowed"}

    def test_bad_signature_returns_401(self, client, signed_params):
        resp = client.post(PATH, data=signed_params(secret="forged"))
        assert resp.status_code == 401
        assert resp.json() == {"status": "unauthorized"}

    def test_unknown_application_returns_404(self, client, signed_params):
        resp = client.post(PATH, data=signed_params(application_code="ghost"))
        assert resp.status_code == 404

    def test_missing_parameter_returns_400(self, client, signed_params):
        params = signed_params()
        del params["shop"]
        resp = client.post(PATH, data=params)
        assert resp.status_code == 400
        assert resp.json() == {"status": "bad_request"}

    def test_unsupported_action_returns_400(self, client, signed_params):
        resp = client.post(PATH, data=signed_params("refund"))
        assert resp.status_code == 400

    def test_invalid_shop_url_returns_400(self, client, signed_params):
        resp = client.post(PATH, data=signed_params(shop_url="mailto:owner@example.com"))
        assert resp.status_code == 400

    def test_empty_body_returns_400(self, client):
        resp = client.post(PATH, content=b"")
        assert resp.status_code == 400

    def test_unexpected_error_hides_details(self, applications, storage, signed_params):
        dispatcher = Dispatcher(
            applications=applications,
            shop_repository=storage,
            shop_factory=DefaultShopFactory(),
            object_manager=storage,
            resolvers=ResolverRegistry({"billing_install": ExplodingResolver()}),
        )
        app = FastAPI()
        register_appstore_routes(app, dispatcher, PATH)

        resp = TestClient(app, raise_server_exceptions=False).post(PATH, data=signed_params())

        assert resp.status_code == 500
        assert resp.json() == {"status": "error"}
        assert "hunter2" not in resp.text
        assert len(storage) == 0

    def test_json_integral_float_verifies_like_php(self, client, signed_params):
        params = signed_params(amount="10")
        params["amount"] = 10.0
        resp = client.post(
            PATH, content=json.dumps(params), headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 200

    def test_json_nested_value_returns_400(self, client, storage, signed_params):
        params = signed_params()
        params["extra"] = {"nested": "1"}
        resp = client.post(
            PATH, content=json.dumps(params), headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert len(storage) == 0


class TestParseBody:
    def test_form(self):
        assert parse_body(b"a=1&b=&c=x%26y", "application/x-www-form-urlencoded") == {
            "a": "1",
            "b": "",
            "c": "x&y",
        }

    def test_json_object(self):
        assert parse_body(b'{"a": "1"}', "application/json; charset=utf-8") == {"a": "1"}

    @pytest.mark.parametrize("body", [b"[1, 2]", b"{not json", b"\xff\xfe"])
    def test_bad_json_is_empty(self, body):
        assert parse_body(body, "application/json") == {}

    def test_undecodable_form_is_empty(self):
        assert parse_body(b"\xff\xfe", "") == {}

    @pytest.mark.parametrize("body", [b'{"a": {"b": 1}}', b'{"a": "1", "b": [1, 2]}'])
    def test_nested_json_values_are_empty(self, body):
        assert parse_body(body, "application/json") == {}


class TestCreateApp:
    def test_routes_on_configured_path(self, signed_params):
        settings = AppstoreSettings(
            applications=[{"code": "test-app", "appstore_secret": "appstore-test-secret"}],
            redis_url="",
            webhook_path="/hooks/appstore",
        )
        client = TestClient(create_app(settings), raise_server_exceptions=False)

        assert client.post("/hooks/appstore", data=signed_params()).status_code == 200
        assert client.post(PATH, data=signed_params()).status_code == 404
