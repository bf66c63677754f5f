"""Built-in provider profiles and the provider registry.

Two providers ship with oauthdesk:

* :data:`GITHUB` -- ``POST`` to the token endpoint with every parameter in
  the query string and an ``Accept: application/json`` header.
* :data:`PINGCODE` -- ``GET`` with query parameters and a
  ``Content-Type: application/json`` header. Its authorization URL carries
  only ``response_type`` and ``client_id``, and its refresh grant needs no
  client credentials at all.

Further profiles come from two places, merged by :class:`ProviderRegistry`:

1. The ``providers`` section of the global config.
2. Third-party packages declaring an entry point in the
   ``oauthdesk.providers`` group whose target is a
   :class:`~oauthdesk.models.ProviderProfile` (or a zero-argument callable
   returning one)::

       [project.entry-points."oauthdesk.providers"]
       gitea = "my_package.profiles:GITEA"
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Iterable, Optional

from oauthdesk.exceptions import ConfigurationError
from oauthdesk.models import (
    ExchangeMethod,
    GlobalConfig,
    ParamEncoding,
    ProviderProfile,
)

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "oauthdesk.providers"
"""The entry-point group name used for third-party provider discovery."""


GITHUB = ProviderProfile(
    name="github",
    display_name="GitHub",
    authorize_endpoint="https://github.com/login/oauth/authorize",
    token_endpoint="https://github.com/login/oauth/access_token",
    exchange_method=ExchangeMethod.POST,
    param_encoding=ParamEncoding.QUERY,
    scope="user",
    authorize_params=("client_id", "redirect_uri", "scope", "response_type"),
    code_grant_params=("client_id", "client_secret", "code", "redirect_uri", "grant_type"),
    refresh_grant_params=("client_id", "client_secret", "grant_type", "refresh_token"),
    required_params=("client_id", "client_secret", "code", "refresh_token"),
    headers={"Accept": "application/json"},
)

PINGCODE = ProviderProfile(
    name="pingcode",
    display_name="PingCode",
    authorize_endpoint="https://open.pingcode.com/oauth2/authorize",
    token_endpoint="https://open.pingcode.com/v1/auth/token",
    exchange_method=ExchangeMethod.GET,
    param_encoding=ParamEncoding.QUERY,
    authorize_params=("response_type", "client_id"),
    code_grant_params=("grant_type", "client_id", "client_secret", "code"),
    refresh_grant_params=("grant_type", "refresh_token"),
    required_params=("client_id", "client_secret", "code", "refresh_token"),
    headers={"Content-Type": "application/json"},
    default_token_type="Bearer",
)

BUILTIN_PROVIDERS: dict[str, ProviderProfile] = {
    GITHUB.name: GITHUB,
    PINGCODE.name: PINGCODE,
}


class ProviderRegistry:
    """Lookup table of provider profiles by name.

    Later registrations replace earlier ones, so the usual loading order --
    built-ins, then entry points, then the user's config -- lets a config
    file override a built-in endpoint (for example a self-hosted PingCode).

    Example::

        registry = ProviderRegistry.from_config(config)
        profile = registry.get("github")
    """

    def __init__(self, profiles: Optional[Iterable[ProviderProfile]] = None) -> None:
        self._profiles: dict[str, ProviderProfile] = {}
        for profile in BUILTIN_PROVIDERS.values() if profiles is None else profiles:
            self.register(profile)

    @classmethod
    def from_config(cls, config: GlobalConfig, discover: bool = True) -> ProviderRegistry:
        """Build a registry from built-ins, entry points and ``config.providers``.

        Args:
            config: The effective global configuration.
            discover: Whether to load the ``oauthdesk.providers`` entry points.

        Returns:
            A populated :class:`ProviderRegistry`.

        Raises:
            ConfigurationError: If a config entry's key differs from its
                profile's ``name``.
        """
        registry = cls()
        if discover:
            registry.discover()
        for key, profile in config.providers.items():
            if key != profile.name:
                raise ConfigurationError(
                    f"Provider config key '{key}' does not match profile name '{profile.name}'"
                )
            registry.register(profile)
        return registry

    def register(self, profile: ProviderProfile) -> None:
        """Register *profile*, replacing any profile with the same name."""
        if profile.name in self._profiles:
            logger.debug("Provider '%s' overridden", profile.name)
        self._profiles[profile.name] = profile

    def discover(self) -> list[str]:
        """Load provider profiles from the ``oauthdesk.providers`` entry points.

        Entry points that fail to load, or that do not yield a
        :class:`~oauthdesk.models.ProviderProfile`, are logged as warnings
        and skipped.

        Returns:
            Names of the profiles that were registered.
        """
        loaded: list[str] = []
        for ep in importlib.metadata.entry_points().select(group=ENTRY_POINT_GROUP):
            try:
                target = ep.load()
                profile = target() if callable(target) else target
            except Exception as exc:
                logger.warning("Failed to load provider '%s': %s", ep.name, exc)
                continue
            if not isinstance(profile, ProviderProfile):
                logger.warning(
                    "Entry point '%s' did not provide a ProviderProfile (got %s)",
                    ep.name,
                    type(profile).__name__,
                )
                continue
            self.register(profile)
            loaded.append(profile.name)
            logger.info("Loaded provider '%s' from %s", profile.name, ep.value)
        return loaded

    def get(self, name: str) -> ProviderProfile:
        """Retrieve a provider profile by name.

        Raises:
            ConfigurationError: If no profile is registered for *name*.
        """
        profile = self._profiles.get(name)
        if profile is None:
            available = ", ".join(self.names()) or "(none)"
            raise ConfigurationError(
                f"Unknown provider '{name}'. Available providers: {available}"
            )
        return profile

    def names(self) -> list[str]:
        """Return the registered provider names, sorted."""
        return sorted(self._profiles)

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def __iter__(self):
        return iter(self._profiles[name] for name in self.names())

    def __len__(self) -> int:
        return len(self._profiles)
