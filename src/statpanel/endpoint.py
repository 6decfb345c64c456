"""Endpoint address resolution.

The address comes from a collaborator (a config lookup by default). The
supervisor only sees a zero-argument callable returning a URL string.
"""

from __future__ import annotations

from typing import Callable

from statpanel.config import Config
from statpanel.errors import EndpointUnavailable

EndpointResolver = Callable[[], str]


def static_resolver(url: str) -> EndpointResolver:
    """Resolver that always returns the given address."""

    def resolve() -> str:
        return url

    return resolve


def config_resolver(config: Config) -> EndpointResolver:
    """Resolver that reads the address from the loaded configuration."""

    def resolve() -> str:
        return config.connection.endpoint_url

    return resolve


def resolve(resolver: EndpointResolver) -> str:
    """Call a resolver and normalise every failure to EndpointUnavailable.

    Raises:
        EndpointUnavailable: If the resolver raises or returns an empty value
    """
    try:
        url = resolver()
    except EndpointUnavailable:
        raise
    except Exception as e:
        raise EndpointUnavailable(f"{type(e).__name__}: {e}") from e

    if not url:
        raise EndpointUnavailable("resolver returned no address")
    return url
