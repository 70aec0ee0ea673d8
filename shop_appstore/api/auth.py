"""OAuth token exchange against a shop's token endpoint."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from shop_appstore.api.client import api_url, raise_for_api_error, response_json
from shop_appstore.api.http import RetryingHttpClient
from shop_appstore.exceptions import AuthenticationFailedError
from shop_appstore.models import Shop, Token

logger = logging.getLogger(__name__)

TOKEN_PATH = "oauth/token"


class OAuthAuthenticator:
    """Exchanges install auth codes and refresh tokens for access tokens."""

    def __init__(self, http: RetryingHttpClient) -> None:
        self._http = http

    def fetch_token(self, shop: Shop, auth_code: str) -> Token:
        """Exchange the ``auth_code`` delivered with the install webhook."""
        return self._request_token(shop, {"grant_type": "authorization_code", "code": auth_code})

    def refresh_token(self, shop: Shop) -> Token:
        if shop.token is None or not shop.token.refresh_token:
            raise AuthenticationFailedError(
                error_code="missing_refresh_token",
                error_description=f"Shop {shop.name!r} has no refresh token",
            )
        return self._request_token(
            shop, {"grant_type": "refresh_token", "refresh_token": shop.token.refresh_token}
        )

    def _request_token(self, shop: Shop, form: dict[str, str]) -> Token:
        application = shop.application
        response = self._http.request(
            "POST",
            api_url(shop.uri, TOKEN_PATH),
            data={
                **form,
                "client_id": application.client_id,
                "client_secret": application.client_secret,
            },
        )
        if response.status_code in (400, 401, 403):
            raise AuthenticationFailedError.for_invalid_response_body(
                response_json(response), response.request, response
            )
        raise_for_api_error(response)

        body = response_json(response)
        if not isinstance(body, dict) or not body.get("access_token"):
            raise AuthenticationFailedError.for_invalid_response_body(
                body, response.request, response
            )

        expires_at = None
        if body.get("expires_in"):
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(body["expires_in"]))

        logger.info(
            "OAuth token issued shop=%s grant=%s", shop.name, form.get("grant_type")
        )
        return Token(
            access_token=str(body["access_token"]),
            refresh_token=str(body.get("refresh_token") or ""),
            expires_at=expires_at,
        )
