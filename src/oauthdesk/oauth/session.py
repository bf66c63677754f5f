"""Login session controller -- one authorization-code login from start to finish.

A :class:`LoginSession` owns a single login attempt. It opens a login
surface on the provider's authorization URL, waits for the redirect the
:class:`~oauthdesk.oauth.observer.RedirectObserver` reports, exchanges the
code on the shared :class:`~oauthdesk.oauth.workers.WorkerPool`, publishes
the result to the host and closes the surface::

    idle -> awaiting_redirect -> exchanging -> completed(success | failure)
                              \\-> completed(failure)    (no code, timeout)
                              \\-> completed(cancelled)  (surface closed)

Every outcome is reached exactly once. Callbacks from the host thread only
claim the session and hand work to the pool; nothing here blocks the host.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Optional

from oauthdesk.exceptions import ExchangeError, LoginCancelled, OAuthDeskError
from oauthdesk.host.base import HostApplication, LoginSurface
from oauthdesk.models import (
    AuthorizationCode,
    FailureNotice,
    LoginRequest,
    ProviderProfile,
    RedirectEvent,
    SessionOutcome,
    SessionState,
    TokenRecord,
)
from oauthdesk.oauth.exchange import GRANT_AUTHORIZATION_CODE, TokenExchanger, grant_params
from oauthdesk.oauth.observer import RedirectObserver
from oauthdesk.oauth.publisher import EventPublisher
from oauthdesk.oauth.urls import build_authorization_url, extract_code, extract_error
from oauthdesk.oauth.workers import WorkerPool

logger = logging.getLogger(__name__)


class LoginSession:
    """Drive one login attempt through its state machine.

    Args:
        profile: The provider being logged into.
        request: Client credentials and redirect URI.
        host: Creates the login surface and receives the published events.
        exchanger: Performs the code exchange.
        publisher: Delivers the outcome to the host.
        pool: Runs the exchange off the host thread.
        redirect_timeout: Seconds to wait for the redirect before failing
            with kind ``timeout``. ``None`` waits until the user closes the
            surface.
        window_size: ``(width, height)`` requested for the surface.
    """

    def __init__(
        self,
        profile: ProviderProfile,
        request: LoginRequest,
        host: HostApplication,
        exchanger: TokenExchanger,
        publisher: EventPublisher,
        pool: WorkerPool,
        redirect_timeout: Optional[float] = None,
        window_size: tuple[int, int] = (800, 600),
    ) -> None:
        self.profile = profile
        self.request = request
        self._host = host
        self._exchanger = exchanger
        self._publisher = publisher
        self._pool = pool
        self._redirect_timeout = redirect_timeout
        self._window_size = window_size

        self._lock = threading.RLock()
        self._done = threading.Event()
        self._state = SessionState.IDLE
        self._claimed = False
        self._outcome: Optional[SessionOutcome] = None
        self._token: Optional[TokenRecord] = None
        self._notice: Optional[FailureNotice] = None
        self._error: Optional[OAuthDeskError] = None
        self._surface: Optional[LoginSurface] = None
        self._timer: Optional[threading.Timer] = None
        self._authorization_url = ""

    def __repr__(self) -> str:
        return f"LoginSession(provider={self.profile.name!r}, state={self._state.value!r})"

    # ------------------------------------------------------------------ #
    # Read-only view
    # ------------------------------------------------------------------ #

    @property
    def label(self) -> str:
        """Surface label used for this provider's login window."""
        return f"{self.profile.name}_login"

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def outcome(self) -> Optional[SessionOutcome]:
        """How the session ended, ``None`` until it is completed."""
        return self._outcome

    @property
    def token(self) -> Optional[TokenRecord]:
        return self._token

    @property
    def notice(self) -> Optional[FailureNotice]:
        """The failure notice that was published, if any."""
        return self._notice

    @property
    def error(self) -> Optional[OAuthDeskError]:
        """The exchange error behind a failed session, when there was one."""
        return self._error

    @property
    def authorization_url(self) -> str:
        return self._authorization_url

    # ------------------------------------------------------------------ #
    # Control
    # ------------------------------------------------------------------ #

    def start(self) -> LoginSession:
        """Open the login surface and return without waiting for the user.

        Raises:
            ConfigurationError: If the request or profile cannot produce a
                valid authorization URL or code grant. Nothing is opened.
            RuntimeError: If the session was already started.
        """
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise RuntimeError(f"{self!r} has already been started")
            url = build_authorization_url(self.profile, self.request)
            # Everything but the code is known now; refuse early.
            grant_params(
                self.profile,
                tuple(n for n in self.profile.code_grant_params if n != "code"),
                {
                    "grant_type": GRANT_AUTHORIZATION_CODE,
                    "client_id": self.request.client_id,
                    "client_secret": self.request.client_secret,
                    "redirect_uri": self.request.redirect_uri,
                },
            )
            width, height = self._window_size
            surface = self._host.create_surface(
                self.label, f"{self.profile.title} login", width, height
            )
            observer = RedirectObserver(
                self.request.redirect_uri, self._on_redirect, self._on_surface_closed
            )
            observer.attach(surface)
            self._surface = surface
            self._authorization_url = url
            self._state = SessionState.AWAITING_REDIRECT
            if self._redirect_timeout is not None:
                self._timer = threading.Timer(self._redirect_timeout, self._on_timeout)
                self._timer.daemon = True
                self._timer.start()

        logger.info("Opening %s login surface", self.profile.name)
        try:
            surface.navigate(url)
        except Exception:
            with self._lock:
                self._claimed = True
            self._cancel_timer()
            surface.close()
            self._complete(SessionOutcome.CANCELLED)
            raise
        return self

    def cancel(self) -> bool:
        """Abandon the login while it still awaits the redirect.

        Returns:
            ``True`` if this call cancelled the session, ``False`` if it was
            already exchanging or completed.
        """
        if not self._claim():
            return False
        logger.info("%s login cancelled", self.profile.name)
        self._close_surface()
        self._complete(SessionOutcome.CANCELLED)
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the session completes; return whether it did."""
        return self._done.wait(timeout)

    def result(self, timeout: Optional[float] = None) -> TokenRecord:
        """Block until completion and return the token record.

        Raises:
            TimeoutError: If *timeout* elapses first.
            LoginCancelled: If the user closed the surface, or the provider
                redirected without a code.
            ExchangeError: If the exchange failed.
            OAuthDeskError: For timeouts and internal failures.
        """
        if not self.wait(timeout):
            raise TimeoutError(f"{self.profile.title} login did not complete in time")
        if self._outcome is SessionOutcome.SUCCESS and self._token is not None:
            return self._token
        if self._error is not None:
            raise self._error
        if self._notice is not None and self._notice.kind != "cancelled":
            raise OAuthDeskError(self._notice.message)
        message = self._notice.message if self._notice else "login window closed"
        raise LoginCancelled(f"{self.profile.title} login cancelled: {message}")

    # ------------------------------------------------------------------ #
    # Surface callbacks (host thread)
    # ------------------------------------------------------------------ #

    def _on_redirect(self, event: RedirectEvent) -> None:
        if not self._claim():
            return
        code = extract_code(event.url)
        if code is None:
            reason = "no code in redirect"
            provider_error = extract_error(event.url)
            if provider_error:
                reason = f"{reason} ({provider_error})"
            notice = self._failure("cancelled", reason)
            self._dispatch(self._finish_failure, notice)
            return
        with self._lock:
            self._state = SessionState.EXCHANGING
        self._dispatch(self._run_exchange, code)

    def _on_surface_closed(self) -> None:
        if not self._claim():
            return
        logger.info("%s login surface closed by the user", self.profile.name)
        self._complete(SessionOutcome.CANCELLED)

    def _on_timeout(self) -> None:
        if not self._claim():
            return
        logger.info("%s login timed out waiting for the redirect", self.profile.name)
        notice = self._failure(
            "timeout", f"no redirect within {self._redirect_timeout:g} seconds"
        )
        self._finish_failure(notice)

    # ------------------------------------------------------------------ #
    # Worker side
    # ------------------------------------------------------------------ #

    def _run_exchange(self, code: AuthorizationCode) -> None:
        try:
            record = self._exchanger.exchange_code(self.profile, self.request, code)
        except ExchangeError as exc:
            notice = self._failure(
                exc.kind,
                str(exc),
                status=getattr(exc, "status", None),
                body=getattr(exc, "body", None),
            )
            self._finish_failure(notice, exc)
            return
        except OAuthDeskError as exc:
            self._finish_failure(self._failure("internal", str(exc)), exc)
            return
        except Exception as exc:
            logger.exception("Unexpected error exchanging %s authorization code", self.profile.name)
            self._finish_failure(self._failure("internal", str(exc)))
            return

        with self._lock:
            self._token = record
        self._publisher.publish_token(self.profile, record)
        self._close_surface()
        self._complete(SessionOutcome.SUCCESS)

    def _finish_failure(
        self, notice: FailureNotice, error: Optional[OAuthDeskError] = None
    ) -> None:
        with self._lock:
            self._notice = notice
            self._error = error
        self._publisher.publish_failure(self.profile, notice)
        self._close_surface()
        self._complete(SessionOutcome.FAILURE)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _claim(self) -> bool:
        """Take the single transition out of ``awaiting_redirect``."""
        with self._lock:
            if self._claimed or self._state is not SessionState.AWAITING_REDIRECT:
                return False
            self._claimed = True
        self._cancel_timer()
        return True

    def _cancel_timer(self) -> None:
        timer = self._timer
        if timer is not None:
            timer.cancel()

    def _dispatch(self, fn, *args) -> None:
        """Run *fn* on the pool, or inline when the pool is gone."""
        try:
            future = self._pool.submit(fn, *args)
        except RuntimeError as exc:
            logger.warning("Worker pool unavailable, finishing %s login inline", self.profile.name)
            self._finish_failure(self._failure("internal", str(exc)))
            return
        future.add_done_callback(self._on_job_done)

    def _on_job_done(self, future: Future) -> None:
        # A job that never ran or escaped its handlers still completes the session
        if self._done.is_set():
            return
        if future.cancelled():
            message = "login work was cancelled before it ran"
        else:
            exc = future.exception()
            if exc is None:
                return
            message = str(exc) or type(exc).__name__
        self._finish_failure(self._failure("internal", message))

    def _failure(self, kind: str, message: str, **extra) -> FailureNotice:
        return FailureNotice(provider=self.profile.name, kind=kind, message=message, **extra)

    def _close_surface(self) -> None:
        surface = self._surface
        if surface is None or surface.closed:
            return
        try:
            surface.close()
        except Exception:
            logger.warning("Failed to close %s login surface", self.profile.name, exc_info=True)

    def _complete(self, outcome: SessionOutcome) -> None:
        with self._lock:
            if self._state is SessionState.COMPLETED:
                return
            self._state = SessionState.COMPLETED
            self._outcome = outcome
        logger.info("%s login completed: %s", self.profile.name, outcome.value)
        self._done.set()
