"""Webhook HTTP handler — FastAPI route for appstore billing callbacks.

The handler:
1. Reads the raw body (form-encoded, or a JSON object)
2. Hands a ``WebhookRequest`` to the ``Dispatcher``
3. Maps dispatch failures to status codes

Security contract:
- Never return error details to the caller (info disclosure)
- 401 only for signature failures
- Every webhook is audit-logged by the dispatcher
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import parse_qsl

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.concurrency import run_in_threadpool

from shop_appstore.billing.dispatcher import Dispatcher, create_dispatcher
from shop_appstore.config import AppstoreSettings, get_settings
from shop_appstore.exceptions import (
    ApplicationNotFoundError,
    InvalidPayloadSignatureError,
    InvalidRequestMethodError,
    InvalidUriError,
    UnableDispatchError,
    UnfulfilledRequirementsError,
    UnsupportedActionError,
)
from shop_appstore.logging_config import configure_logging
from shop_appstore.models import WebhookRequest

logger = logging.getLogger(__name__)

_ERROR_STATUS: tuple[tuple[type[Exception], int, str], ...] = (
    (InvalidRequestMethodError, 405, "method_not_allowed"),
    (InvalidPayloadSignatureError, 401, "unauthorized"),
    (ApplicationNotFoundError, 404, "not_found"),
    (UnfulfilledRequirementsError, 400, "bad_request"),
    (UnsupportedActionError, 400, "bad_request"),
    (InvalidUriError, 400, "bad_request"),
)


def _error_status(exc: Exception) -> tuple[int, str]:
    for exc_type, status_code, status in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code, status
    return 400, "bad_request"


def parse_body(body: bytes, content_type: str) -> dict[str, Any]:
    """Decode a webhook body into a flat parameter mapping.

    JSON is used when the content type says so and the body is an object;
    anything else is parsed as ``application/x-www-form-urlencoded``.
    Undecodable bodies, and JSON objects holding nested objects or arrays
    (which cannot be signed), yield an empty mapping; the requirements
    check then rejects the webhook.
    """
    if "json" in content_type.lower():
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}
        if not isinstance(data, dict) or any(isinstance(v, (dict, list)) for v in data.values()):
            return {}
        return data

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        return {}
    return dict(parse_qsl(text, keep_blank_values=True))


async def _handle_webhook(request: Request, dispatcher: Dispatcher) -> JSONResponse:
    body = await request.body()
    headers = {k.lower(): v for k, v in request.headers.items()}
    params = parse_body(body, headers.get("content-type", ""))

    webhook = WebhookRequest(method=request.method, params=params, headers=headers)
    try:
        await run_in_threadpool(dispatcher.dispatch, webhook)
    except (UnableDispatchError, InvalidUriError) as exc:
        status_code, status = _error_status(exc)
        logger.warning("Appstore webhook rejected: %s", type(exc).__name__)
        return JSONResponse({"status": status}, status_code=status_code)
    except Exception:
        logger.exception(
            "Failed to handle appstore webhook action=%s shop=%s",
            params.get("action", ""),
            params.get("shop", ""),
        )
        return JSONResponse({"status": "error"}, status_code=500)

    return JSONResponse({"status": "ok"}, status_code=200)


def register_appstore_routes(app: FastAPI, dispatcher: Dispatcher, path: str = "/appstore/billing") -> None:
    """Register the webhook endpoint on *app*.

    The route accepts any method so the dispatcher's POST check answers
    405 itself.
    """

    @app.api_route(path, methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def appstore_webhook(request: Request):
        """Receive appstore webhooks (signature-verified)."""
        return await _handle_webhook(request, dispatcher)

    logger.info("Appstore webhook route registered: %s", path)


def create_app(settings: AppstoreSettings | None = None, dispatcher: Dispatcher | None = None) -> FastAPI:
    """Standalone FastAPI app serving the appstore webhook."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(title="shop-appstore webhooks")
    register_appstore_routes(app, dispatcher or create_dispatcher(settings), settings.webhook_path)
    return app
