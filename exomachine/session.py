"""Exoscale API session bound to a zone's regional endpoint."""

import functools
from collections.abc import Callable
from typing import Any

from exoscale.api.v2 import Client

from .errors import APIError, ConfigurationError
from .utils import debug

ClientFactory = Callable[..., Any]


class Session:
    """Thin proxy over the Exoscale client.

    Every call is forwarded by keyword; whatever the client raises comes
    back as APIError so callers only deal with DriverError. A TypeError
    means the call itself was malformed and is raised as is.
    """

    def __init__(self, client: Any, zone: str | None = None) -> None:
        self.client = client
        self.zone = zone

    def __getattr__(self, name: str) -> Callable[..., Any]:
        method = getattr(self.client, name)

        @functools.wraps(method)
        def call(**kwargs):
            try:
                return method(**kwargs)
            except TypeError:
                raise
            except Exception as e:
                raise APIError(name, str(e)) from e

        return call

    def __repr__(self) -> str:
        return f"Session(zone={self.zone!r})"


def _build_client(
    factory: ClientFactory, api_key: str, api_secret: str, url: str | None
) -> Any:
    try:
        if url:
            return factory(api_key, api_secret, url=url)
        return factory(api_key, api_secret)
    except Exception as e:
        raise ConfigurationError(f"Unable to create Exoscale client: {e}") from e


def resolve_session(
    zone: str,
    api_key: str,
    api_secret: str,
    *,
    url: str | None = None,
    client_factory: ClientFactory | None = None,
) -> Session:
    """Resolve an authenticated session for the given zone.

    Lists the known zones (through the global endpoint, or ``url`` when
    given), picks the one named ``zone`` and rebinds a client to its
    ``api-endpoint``.

    :param zone: Zone name, e.g. 'ch-gva-2' (case-insensitive)
    :param api_key: Exoscale API key
    :param api_secret: Exoscale API secret
    :param url: Optional endpoint override used for the zone lookup
    :param client_factory: Callable building a client, defaults to exoscale's Client
    :return: Session bound to the zone endpoint
    :raises ConfigurationError: If credentials are missing or the zone is unknown
    """
    if not api_key or not api_secret:
        raise ConfigurationError("Exoscale API key and secret are required")

    factory = client_factory or Client
    lookup = Session(_build_client(factory, api_key, api_secret, url))

    zones = lookup.list_zones().get("zones", [])
    wanted = zone.strip().lower()
    match = next((z for z in zones if z.get("name", "").lower() == wanted), None)
    if match is None:
        known = ", ".join(z.get("name", "?") for z in zones)
        raise ConfigurationError(f"Unknown zone '{zone}' (available: {known})")

    endpoint = match.get("api-endpoint") or url
    debug(f"Zone {zone} = {endpoint}")
    return Session(
        _build_client(factory, api_key, api_secret, endpoint), match["name"]
    )
