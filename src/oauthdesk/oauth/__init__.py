"""The login flow: URL building, redirect observation, exchange and sessions.

Classes:
    :class:`LoginSession` -- one login attempt's state machine.
    :class:`TokenExchanger` -- code and refresh-token grants over :mod:`httpx`.
    :class:`RedirectObserver` -- turns surface navigations into one redirect event.
    :class:`EventPublisher` -- delivers outcomes to the host.
    :class:`WorkerPool` -- bounded threads for blocking exchanges.
"""

from oauthdesk.oauth.exchange import TokenExchanger, parse_token_response
from oauthdesk.oauth.observer import RedirectObserver
from oauthdesk.oauth.publisher import EventPublisher
from oauthdesk.oauth.session import LoginSession
from oauthdesk.oauth.urls import build_authorization_url, extract_code, extract_error
from oauthdesk.oauth.workers import WorkerPool

__all__ = [
    "EventPublisher",
    "LoginSession",
    "RedirectObserver",
    "TokenExchanger",
    "WorkerPool",
    "build_authorization_url",
    "extract_code",
    "extract_error",
    "parse_token_response",
]
