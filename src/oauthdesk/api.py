"""Host-facing facade: the commands a desktop application calls.

:class:`OAuthDesk` wires one host to a shared :class:`TokenExchanger`,
:class:`WorkerPool` and :class:`EventPublisher`, and hands out a
:class:`ProviderCommands` per provider. Those expose the two operations a
host invokes:

* :meth:`ProviderCommands.open_login_window` -- non-blocking; the outcome
  arrives later as a ``<provider>-access-token`` or
  ``<provider>-login-failed`` host event.
* :meth:`ProviderCommands.refresh_token` -- blocking; returns the provider's
  raw token document or raises.

Example::

    desk = OAuthDesk(host)
    host.listen("github-access-token", on_token)
    desk.provider("github").open_login_window(client_id, client_secret, redirect_uri)
    ...
    desk.close()
"""

from __future__ import annotations

import logging
from typing import Optional

from oauthdesk.host.base import HostApplication
from oauthdesk.models import GlobalConfig, LoginRequest, ProviderProfile
from oauthdesk.oauth.exchange import TokenExchanger
from oauthdesk.oauth.publisher import EventPublisher
from oauthdesk.oauth.session import LoginSession
from oauthdesk.oauth.workers import WorkerPool
from oauthdesk.providers import ProviderRegistry

logger = logging.getLogger(__name__)


class ProviderCommands:
    """The host commands for one provider.

    Instances are cheap and stateless apart from their references to the
    owning :class:`OAuthDesk`; obtain them with :meth:`OAuthDesk.provider`.
    """

    def __init__(self, desk: OAuthDesk, profile: ProviderProfile) -> None:
        self._desk = desk
        self.profile = profile

    def __repr__(self) -> str:
        return f"ProviderCommands({self.profile.name!r})"

    def open_login_window(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        redirect_timeout: Optional[float] = None,
    ) -> LoginSession:
        """Start a login and return immediately.

        Args:
            client_id: The registered client id.
            client_secret: The client secret.
            redirect_uri: The registered redirect URI; also the prefix that
                identifies the callback navigation.
            redirect_timeout: Overrides ``login.redirect_timeout`` from the
                configuration for this attempt.

        Returns:
            The started :class:`LoginSession`. Hosts may ignore it and rely
            on the published events.

        Raises:
            ConfigurationError: If the credentials or provider endpoints
                are unusable. Nothing is opened in that case.
        """
        request = LoginRequest(
            client_id=client_id, client_secret=client_secret, redirect_uri=redirect_uri
        )
        return self._desk.start_login(self.profile, request, redirect_timeout)

    def refresh_token(
        self,
        refresh_token: str,
        client_id: str = "",
        client_secret: str = "",
    ) -> str:
        """Exchange *refresh_token* and return the provider's raw response body.

        Blocks until the token endpoint answers. Each call makes its own
        request; nothing is cached.

        Raises:
            ConfigurationError: If a parameter the provider requires is empty.
            TransportError: On network-level failures.
            ProviderRejected: If the provider answers with a non-2xx status.
        """
        logger.info("Refreshing %s token", self.profile.name)
        return self._desk.exchanger.refresh_raw(
            self.profile, refresh_token, client_id, client_secret
        )


class OAuthDesk:
    """Entry point for embedding applications.

    Args:
        host: The embedding application.
        config: Effective configuration; defaults are used when omitted.
        exchanger: Token exchanger to share; one is created from
            ``config.request`` when omitted.
        pool: Worker pool to share; one of ``config.login.max_workers``
            threads is created when omitted.
        registry: Provider registry; built-ins, entry points and
            ``config.providers`` when omitted.

    Resources created here are released by :meth:`close`; injected ones are
    left to their owner.
    """

    def __init__(
        self,
        host: HostApplication,
        config: Optional[GlobalConfig] = None,
        exchanger: Optional[TokenExchanger] = None,
        pool: Optional[WorkerPool] = None,
        registry: Optional[ProviderRegistry] = None,
    ) -> None:
        self.host = host
        self.config = config or GlobalConfig()
        self._owns_exchanger = exchanger is None
        self._owns_pool = pool is None
        self.exchanger = exchanger or TokenExchanger(
            timeout=self.config.request.timeout,
            verify_ssl=self.config.request.verify_ssl,
        )
        self.pool = pool or WorkerPool(self.config.login.max_workers)
        self.registry = registry or ProviderRegistry.from_config(self.config)
        self.publisher = EventPublisher(host)
        self._closed = False

    def __enter__(self) -> OAuthDesk:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def provider(self, name: str) -> ProviderCommands:
        """Return the commands for provider *name*.

        Raises:
            ConfigurationError: If the provider is unknown.
        """
        return ProviderCommands(self, self.registry.get(name))

    def start_login(
        self,
        profile: ProviderProfile,
        request: LoginRequest,
        redirect_timeout: Optional[float] = None,
    ) -> LoginSession:
        """Create and start a :class:`LoginSession` for *profile*."""
        if self._closed:
            raise RuntimeError("OAuthDesk has been closed")
        login = self.config.login
        session = LoginSession(
            profile,
            request,
            self.host,
            self.exchanger,
            self.publisher,
            self.pool,
            redirect_timeout=(
                redirect_timeout if redirect_timeout is not None else login.redirect_timeout
            ),
            window_size=(login.window_width, login.window_height),
        )
        return session.start()

    def close(self, wait: bool = True) -> None:
        """Release the worker pool and HTTP client this facade created.

        Args:
            wait: Let running exchanges finish before returning.
        """
        if self._closed:
            return
        self._closed = True
        if self._owns_pool:
            self.pool.shutdown(wait=wait)
        if self._owns_exchanger:
            self.exchanger.close()
