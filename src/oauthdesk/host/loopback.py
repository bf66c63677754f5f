"""System-browser host backed by a loopback HTTP server.

:class:`BrowserHost` lets oauthdesk run without a GUI toolkit. Each
:class:`LoopbackSurface` opens the authorization URL in the user's default
browser and serves the redirect URI on a local :class:`~http.server.HTTPServer`
bound to the redirect URI's host and port. Every request that reaches the
server is reported as a navigation to the full URL, so the same
:class:`~oauthdesk.oauth.observer.RedirectObserver` logic applies as with an
embedded webview.

A browser tab cannot report being closed, so sessions driven by this host
should use a redirect timeout.
"""

from __future__ import annotations

import logging
import threading
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional
from urllib.parse import urlsplit

from oauthdesk.exceptions import ConfigurationError
from oauthdesk.host.base import HostApplication, LoginSurface

logger = logging.getLogger(__name__)

_DONE_PAGE = (
    "<html><head><title>oauthdesk</title></head><body>"
    "<h2>Login received.</h2><p>You can close this window and return to the application.</p>"
    "</body></html>"
)
_NOT_FOUND_PAGE = "<html><body><h2>Not the login callback.</h2></body></html>"


class LoopbackSurface(LoginSurface):
    """A login surface made of the system browser plus a local callback server.

    Args:
        label: Surface label.
        title: Unused by the system browser; kept for logging.
        redirect_uri: An ``http://`` redirect URI on this machine, e.g.
            ``http://127.0.0.1:8765/callback``.
    """

    def __init__(self, label: str, title: str, redirect_uri: str) -> None:
        super().__init__(label, title)
        parts = urlsplit(redirect_uri)
        if parts.scheme != "http" or not parts.hostname:
            raise ConfigurationError(
                f"The browser host needs an http:// loopback redirect URI, got {redirect_uri!r}"
            )
        self._origin = f"{parts.scheme}://{parts.netloc}"
        self._address = (parts.hostname, parts.port or 80)
        self._server: Optional[HTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> tuple[str, int]:
        """``(host, port)`` the callback server listens on once navigated."""
        if self._server is not None:
            host, port = self._server.server_address[:2]
            return str(host), int(port)
        return self._address

    def navigate(self, url: str) -> None:
        if self._server is not None:
            raise RuntimeError(f"Surface '{self.label}' is already showing a page")
        try:
            self._server = HTTPServer(self._address, self._make_handler())
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot listen on {self._address[0]}:{self._address[1]} for the redirect: {exc}"
            ) from exc

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name=f"oauthdesk-{self.label}",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Callback server for '%s' listening on %s:%d", self.label, *self.address)

        # Open the browser in a separate thread to avoid blocking
        threading.Thread(target=webbrowser.open, args=(url,), daemon=True).start()

    def close(self) -> None:
        if not self._mark_closed():
            return
        if self._server is None:
            return
        if threading.current_thread() is self._thread:
            # shutdown() waits for serve_forever(), which is running this call
            threading.Thread(target=self._stop_server, daemon=True).start()
        else:
            self._stop_server()

    def _stop_server(self) -> None:
        server = self._server
        if server is None:
            return
        server.shutdown()
        server.server_close()
        logger.debug("Callback server for '%s' stopped", self.label)

    def _make_handler(self) -> type[BaseHTTPRequestHandler]:
        surface = self

        class CallbackHandler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                allowed = surface._dispatch_navigation(f"{surface._origin}{self.path}")
                status, page = (404, _NOT_FOUND_PAGE) if allowed else (200, _DONE_PAGE)
                body = page.encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Type", "text/html; charset=utf-8")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format: str, *args: Any) -> None:
                # Request lines carry the authorization code
                pass

        return CallbackHandler


class BrowserHost(HostApplication):
    """Host application that shows login pages in the system browser.

    Args:
        redirect_uri: The loopback redirect URI registered with the
            provider. Every surface this host creates serves it.
    """

    def __init__(self, redirect_uri: str) -> None:
        super().__init__()
        self.redirect_uri = redirect_uri

    def create_surface(
        self,
        label: str,
        title: str,
        width: int = 800,
        height: int = 600,
    ) -> LoopbackSurface:
        return LoopbackSurface(label, title, self.redirect_uri)
