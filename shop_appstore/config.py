"""Appstore SDK configuration."""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ApplicationConfig(BaseModel):
    code: str
    appstore_secret: str
    client_id: str = ""
    client_secret: str = ""


class AppstoreSettings(BaseSettings):
    """Environment-driven settings (prefix ``APPSTORE_``).

    ``APPSTORE_APPLICATIONS`` is a JSON list, e.g.
    ``[{"code": "my-app", "appstore_secret": "s3cret"}]``.
    """

    applications: list[ApplicationConfig] = Field(default_factory=list)

    # Outbound HTTP
    retry_limit: int = Field(default=3, ge=0)
    default_retry_after: float = Field(default=1.0, ge=0)
    http_timeout: float = 30.0

    # Empty -> in-memory shop storage
    redis_url: str = ""

    webhook_path: str = "/appstore/billing"
    log_level: str = "INFO"

    model_config = {"env_prefix": "APPSTORE_", "env_file": ".env", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> AppstoreSettings:
    return AppstoreSettings()
