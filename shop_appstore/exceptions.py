"""Exception hierarchy for the appstore SDK.

Dispatch failures share ``UnableDispatchError`` and carry the inbound
request (and the application once it is known) for diagnostics.  Outbound
API failures share ``ApiError`` and carry the httpx request/response.

Nothing here is swallowed by the SDK; every error aborts the current
dispatch or API call and reaches the caller.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx

    from shop_appstore.models import Application, WebhookRequest


class AppstoreError(Exception):
    """Base class for every error raised by the SDK."""


class MissingParameterError(AppstoreError):
    """A required webhook parameter is absent or empty."""

    def __init__(self, parameter: str) -> None:
        super().__init__(f"Parameter {parameter!r} has not been defined")
        self.parameter = parameter


class InvalidUriError(AppstoreError, ValueError):
    """The ``shop_url`` value could not be parsed into a URI."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"Invalid shop URI: {value!r}")
        self.value = value


class InvalidMessageError(AppstoreError, TypeError):
    """A resolver received a message of the wrong type."""

    def __init__(self, expected: type, got: Any) -> None:
        super().__init__(
            f"Expected message of type {expected.__name__}, got {type(got).__name__}"
        )
        self.expected = expected
        self.got = got


class UnknownApplicationError(AppstoreError, LookupError):
    """No application is registered under the given code."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Application {code!r} is not registered")
        self.code = code


class StateMachineError(AppstoreError):
    """Base for state machine failures (unknown graph, bad transition)."""


class TransitionNotAllowedError(StateMachineError):
    """A transition cannot be applied from the object's current state."""

    def __init__(self, graph: str, transition: str, state: str | None) -> None:
        super().__init__(
            f"Transition {transition!r} of graph {graph!r} cannot be applied "
            f"from state {state!r}"
        )
        self.graph = graph
        self.transition = transition
        self.state = state


# ---------------------------------------------------------------------------
# Webhook dispatch
# ---------------------------------------------------------------------------


class DispatchErrorKind(Enum):
    """Classification of dispatch failures; values are the wire error codes."""

    INVALID_REQUEST_METHOD = 10
    INVALID_PAYLOAD_HASH = 11
    NOT_EXIST_APPLICATION = 12
    UNFULFILLED_REQUIREMENTS = 13
    NOT_SUPPORTED_ACTION = 14


class UnableDispatchError(AppstoreError):
    """Base exception for a webhook that could not be dispatched."""

    kind: DispatchErrorKind

    def __init__(
        self,
        message: str,
        request: WebhookRequest | None = None,
        application: Application | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.request = request
        self.application = application

    @property
    def code(self) -> int:
        return self.kind.value


class InvalidRequestMethodError(UnableDispatchError):
    """Webhook was not delivered with POST."""

    kind = DispatchErrorKind.INVALID_REQUEST_METHOD

    def __init__(self, request: WebhookRequest | None = None) -> None:
        super().__init__("Invalid request method", request)


class InvalidPayloadSignatureError(UnableDispatchError):
    """The ``hash`` parameter does not match the computed HMAC."""

    kind = DispatchErrorKind.INVALID_PAYLOAD_HASH

    def __init__(
        self,
        request: WebhookRequest | None = None,
        application: Application | None = None,
    ) -> None:
        super().__init__("Invalid payload hash", request, application)


class ApplicationNotFoundError(UnableDispatchError):
    """``application_code`` does not match a registered application."""

    kind = DispatchErrorKind.NOT_EXIST_APPLICATION

    def __init__(self, request: WebhookRequest | None = None) -> None:
        super().__init__("Application does not exist", request)


class UnfulfilledRequirementsError(UnableDispatchError):
    """A required parameter is missing; ``parameter`` names the first one."""

    kind = DispatchErrorKind.UNFULFILLED_REQUIREMENTS

    def __init__(self, parameter: str, request: WebhookRequest | None = None) -> None:
        super().__init__("Requirements have not been met", request)
        self.parameter = parameter


class UnsupportedActionError(UnableDispatchError):
    """Action is outside the whitelist or has no registered resolver."""

    kind = DispatchErrorKind.NOT_SUPPORTED_ACTION

    def __init__(self, action: str, request: WebhookRequest | None = None) -> None:
        super().__init__(f"Action {action!r} is not supported", request)
        self.action = action


# ---------------------------------------------------------------------------
# Outbound API
# ---------------------------------------------------------------------------


class ApiError(AppstoreError):
    """An outbound shop API call failed."""

    def __init__(
        self,
        message: str,
        request: httpx.Request | None = None,
        response: httpx.Response | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.request = request
        self.response = response

    @property
    def status_code(self) -> int | None:
        return self.response.status_code if self.response is not None else None


class AuthenticationFailedError(ApiError):
    """The OAuth token endpoint rejected the credentials.

    ``error_code`` and ``error_description`` are copied from the
    provider's JSON error body when present, otherwise ``None``.
    """

    CODE_INVALID_RESPONSE_BODY = 10

    def __init__(
        self,
        request: httpx.Request | None = None,
        response: httpx.Response | None = None,
        error_code: str | None = None,
        error_description: str | None = None,
    ) -> None:
        super().__init__("Authentication failed", request, response)
        self.code = self.CODE_INVALID_RESPONSE_BODY
        self.error_code = error_code
        self.error_description = error_description

    @classmethod
    def for_invalid_response_body(
        cls,
        body: Any,
        request: httpx.Request | None = None,
        response: httpx.Response | None = None,
    ) -> AuthenticationFailedError:
        error_code = None
        error_description = None
        if isinstance(body, dict):
            if body.get("error") is not None:
                error_code = str(body["error"])
            if body.get("error_description") is not None:
                error_description = str(body["error_description"])
        return cls(request, response, error_code, error_description)


class RetryExhaustedError(ApiError):
    """The API kept answering 429 after every allowed retry."""

    def __init__(
        self,
        attempts: int,
        request: httpx.Request | None = None,
        response: httpx.Response | None = None,
    ) -> None:
        super().__init__(
            f"Request still rate-limited after {attempts} attempts", request, response
        )
        self.attempts = attempts
