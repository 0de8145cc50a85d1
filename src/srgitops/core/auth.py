"""Connection settings and HTTP session creation for the schema registry.

This module resolves where the registry lives and how to authenticate
against it (explicit values first, then environment variables), and applies
small normalization rules such as sanitizing the URL.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import requests

from srgitops.core.errors import RegistryConfigError

URL_ENV = "SCHEMA_REGISTRY_URL"
USER_INFO_ENV = "SCHEMA_REGISTRY_BASIC_AUTH_USER_INFO"
BEARER_TOKEN_ENV = "SCHEMA_REGISTRY_BEARER_TOKEN"
TIMEOUT_ENV = "SCHEMA_REGISTRY_TIMEOUT"

_DEFAULT_TIMEOUT_SECONDS = 30.0
_CONTENT_TYPE = "application/vnd.schemaregistry.v1+json"


@dataclass(frozen=True)
class RegistryConfig:
    """Resolved connection settings for a schema registry."""

    url: str
    basic_auth_user_info: str | None = None
    bearer_token: str | None = None
    timeout: float = _DEFAULT_TIMEOUT_SECONDS


def _sanitize_url(url: str | None) -> str | None:
    """
    Normalize a registry URL.

    - Removes query strings
    - Removes trailing slashes
    """
    if not url:
        return url
    url = url.strip().split("?", 1)[0]
    return url.rstrip("/")


def _parse_timeout(raw: str | None) -> float:
    if raw is None or not raw.strip():
        return _DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError as exc:
        raise RegistryConfigError(f"Invalid {TIMEOUT_ENV}: '{raw}'") from exc
    if value <= 0:
        raise RegistryConfigError(f"{TIMEOUT_ENV} must be > 0")
    return value


def resolve_config(
    url: str | None = None,
    *,
    user_info: str | None = None,
    bearer_token: str | None = None,
) -> RegistryConfig:
    """
    Build a RegistryConfig from explicit values, falling back to the environment.

    Raises:
        RegistryConfigError: If no URL is configured, the user info is not in
                             the form `user:password`, or both basic auth and
                             a bearer token are given.
    """
    url = _sanitize_url(url or os.getenv(URL_ENV))
    if not url:
        raise RegistryConfigError(
            f"No schema registry URL configured. Use --registry or set {URL_ENV}."
        )
    if not url.startswith(("http://", "https://")):
        raise RegistryConfigError(f"Registry URL must use http or https: '{url}'")

    user_info = user_info or os.getenv(USER_INFO_ENV) or None
    bearer_token = bearer_token or os.getenv(BEARER_TOKEN_ENV) or None

    if user_info is not None and ":" not in user_info:
        raise RegistryConfigError("Basic auth user info must be in the form user:password")
    if user_info and bearer_token:
        raise RegistryConfigError("Use either basic auth or a bearer token, not both")

    return RegistryConfig(
        url=url,
        basic_auth_user_info=user_info,
        bearer_token=bearer_token,
        timeout=_parse_timeout(os.getenv(TIMEOUT_ENV)),
    )


def get_session(config: RegistryConfig) -> requests.Session:
    """Create a requests Session with registry headers and credentials applied."""
    session = requests.Session()
    session.headers.update({"Accept": _CONTENT_TYPE, "Content-Type": _CONTENT_TYPE})

    if config.basic_auth_user_info:
        user, password = config.basic_auth_user_info.split(":", 1)
        session.auth = (user, password)
    elif config.bearer_token:
        session.headers["Authorization"] = f"Bearer {config.bearer_token}"

    return session
