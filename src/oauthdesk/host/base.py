"""Abstract host interfaces: the login surface and the host application.

oauthdesk never creates windows itself. It talks to the embedding
application through two small interfaces:

- :class:`LoginSurface` -- a browser-like view that can be navigated to a
  URL, reports each navigation to a listener (which decides whether the
  navigation proceeds), reports when the user closes it, and can be closed.
- :class:`HostApplication` -- creates surfaces and delivers named events to
  whoever listens for them.

To embed oauthdesk in a GUI toolkit, subclass both and implement the
abstract methods. :mod:`oauthdesk.host.loopback` provides a ready-made
implementation backed by the system browser.

Surface callbacks may arrive on any thread (typically the toolkit's UI
thread). Listeners registered here must return quickly; oauthdesk's own
listeners only do string matching before handing work to a worker thread.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

NavigationListener = Callable[[str], bool]
"""Called with the target URL; returns ``True`` to let the navigation proceed."""

CloseListener = Callable[[], None]
"""Called once when the surface is closed by the user."""

EventHandler = Callable[[Any], None]
"""Receives the payload of a host event."""


class LoginSurface(ABC):
    """A navigable, closable browser-like view used for one login attempt.

    Subclasses implement :meth:`navigate` and :meth:`close` and call
    :meth:`_dispatch_navigation` / :meth:`_dispatch_closed` when the
    underlying view reports those events. Listener bookkeeping is handled
    here so every host behaves the same way.

    Args:
        label: Unique identifier of the surface within the host
            (e.g. ``"github_login"``).
        title: Window title shown to the user.
    """

    def __init__(self, label: str, title: str = "") -> None:
        self.label = label
        self.title = title
        self._navigation_listeners: list[NavigationListener] = []
        self._close_listeners: list[CloseListener] = []
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        """Whether the surface has been closed, by the user or by :meth:`close`."""
        return self._closed

    def on_navigation(self, listener: NavigationListener) -> None:
        """Register a listener consulted before every navigation."""
        self._navigation_listeners.append(listener)

    def on_closed(self, listener: CloseListener) -> None:
        """Register a listener called when the user closes the surface."""
        self._close_listeners.append(listener)

    @abstractmethod
    def navigate(self, url: str) -> None:
        """Show the surface and load *url*."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the surface programmatically.

        Implementations must be idempotent and must not invoke the close
        listeners: those report user-initiated closes only.
        """
        ...

    def _dispatch_navigation(self, url: str) -> bool:
        """Ask every navigation listener about *url*; any ``False`` blocks it."""
        allowed = True
        for listener in list(self._navigation_listeners):
            if not listener(url):
                allowed = False
        return allowed

    def _dispatch_closed(self) -> None:
        """Mark the surface closed by the user and notify close listeners once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for listener in list(self._close_listeners):
            listener()

    def _mark_closed(self) -> bool:
        """Mark the surface closed; return ``False`` if it already was."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            return True


class HostApplication(ABC):
    """The embedding application: creates surfaces and receives events.

    Event delivery (:meth:`emit` / :meth:`listen`) is implemented here as a
    thread-safe in-process dispatcher. Hosts that forward events elsewhere
    (a webview, an IPC channel) override :meth:`emit`.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._handlers_lock = threading.Lock()

    @abstractmethod
    def create_surface(
        self,
        label: str,
        title: str,
        width: int = 800,
        height: int = 600,
    ) -> LoginSurface:
        """Create a login surface without navigating it yet.

        Listeners are attached between creation and
        :meth:`LoginSurface.navigate`, so no navigation can be missed.
        """
        ...

    def listen(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Subscribe *handler* to *event*.

        Returns:
            A zero-argument function that removes the subscription.
        """
        with self._handlers_lock:
            self._handlers.setdefault(event, []).append(handler)

        def unlisten() -> None:
            with self._handlers_lock:
                handlers = self._handlers.get(event, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unlisten

    def emit(self, event: str, payload: Any) -> None:
        """Deliver *payload* to every handler subscribed to *event*.

        Handler exceptions propagate to the caller after all handlers ran;
        :class:`~oauthdesk.oauth.publisher.EventPublisher` logs them.
        """
        with self._handlers_lock:
            handlers = list(self._handlers.get(event, []))
        if not handlers:
            logger.debug("No listener for host event '%s'", event)
        first_error: Optional[BaseException] = None
        for handler in handlers:
            try:
                handler(payload)
            except Exception as exc:
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
