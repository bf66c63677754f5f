"""Redirect observer -- turns surface navigations into a single redirect event.

The host reports navigations through a callback that must answer "allow or
block" immediately. :class:`RedirectObserver` adapts that callback shape into
a single-shot event stream: the first navigation whose URL starts with the
redirect URI becomes one :class:`~oauthdesk.models.RedirectEvent` delivered
to the consumer, and everything else passes through untouched.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional
from urllib.parse import urlsplit

from oauthdesk.host.base import LoginSurface
from oauthdesk.models import RedirectEvent

logger = logging.getLogger(__name__)


def _redact(url: str) -> str:
    """Strip the query string so codes never reach the log."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


class RedirectObserver:
    """Watch a login surface for the OAuth redirect.

    Matching is a plain string-prefix test against ``redirect_uri``, the
    same rule the provider applications were registered with. The first
    match is delivered to ``on_redirect`` and intercepted (the navigation is
    blocked); later navigations are allowed and ignored. If the user closes
    the surface before any match, ``on_closed`` is called instead.

    Both consumers run on the host's callback thread and must return
    quickly.

    Args:
        redirect_uri: The redirect URI prefix to match.
        on_redirect: Consumer of the single redirect event.
        on_closed: Called when the surface closes before a redirect.
    """

    def __init__(
        self,
        redirect_uri: str,
        on_redirect: Callable[[RedirectEvent], None],
        on_closed: Optional[Callable[[], None]] = None,
    ) -> None:
        self._redirect_uri = redirect_uri
        self._on_redirect = on_redirect
        self._on_closed = on_closed
        self._handled = False
        self._lock = threading.Lock()

    @property
    def handled(self) -> bool:
        """Whether the redirect has already been observed."""
        return self._handled

    def attach(self, surface: LoginSurface) -> None:
        """Register this observer's listeners on *surface*."""
        surface.on_navigation(self.handle_navigation)
        surface.on_closed(self.handle_closed)

    def matches(self, url: str) -> bool:
        """Return whether *url* is the OAuth callback."""
        return str(url).startswith(self._redirect_uri)

    def handle_navigation(self, url: str) -> bool:
        """Navigation listener: emit the redirect event on the first match.

        Returns:
            ``False`` for the matched redirect (intercepted), ``True`` for
            every other navigation.
        """
        if not self.matches(url):
            return True
        with self._lock:
            if self._handled:
                return True
            self._handled = True
        logger.debug("Redirect observed: %s", _redact(url))
        self._on_redirect(RedirectEvent(url=str(url)))
        return False

    def handle_closed(self) -> None:
        """Close listener: forward to ``on_closed`` unless the redirect was seen."""
        with self._lock:
            if self._handled:
                return
            self._handled = True
        logger.debug("Login surface closed before redirect")
        if self._on_closed is not None:
            self._on_closed()
