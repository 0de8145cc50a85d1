"""Application context management for the CLI."""

from dataclasses import dataclass

from srgitops.cli.common.exits import die
from srgitops.core.adapters.schemaregistry import SchemaRegistryAdapter
from srgitops.core.auth import RegistryConfig, get_session, resolve_config
from srgitops.core.errors import RegistryConfigError


@dataclass
class RegistryAppContext:
    """Application context holding the registry config and adapter."""

    config: RegistryConfig
    adapter: SchemaRegistryAdapter


def build_registry_context(
    url: str | None,
    *,
    user_info: str | None = None,
    bearer_token: str | None = None,
    normalize: bool = False,
) -> RegistryAppContext:
    """Build and return the application context with a configured registry adapter.

    Args:
        url: Registry URL; falls back to $SCHEMA_REGISTRY_URL.
        user_info: Optional basic auth credentials (user:password).
        bearer_token: Optional bearer token.
        normalize: Ask the registry to normalize schemas on lookup/registration.

    Returns:
        RegistryAppContext: Application context with configured adapter.
    """
    try:
        config = resolve_config(url, user_info=user_info, bearer_token=bearer_token)
    except RegistryConfigError as exc:
        die(str(exc), code=2)
    session = get_session(config)
    adapter = SchemaRegistryAdapter(
        session, config.url, timeout=config.timeout, normalize=normalize
    )
    return RegistryAppContext(config=config, adapter=adapter)
