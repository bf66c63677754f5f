"""Shared test fixtures for oauthdesk.

Provides an in-memory host and login surface, isolated config directories,
output management, and helpers for faking token endpoints with
:class:`httpx.MockTransport`. These fixtures are discovered by pytest and
available to every test module without explicit imports.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from oauthdesk.host.base import HostApplication, LoginSurface
from oauthdesk.models import LoginRequest
from oauthdesk.oauth.exchange import TokenExchanger
from oauthdesk.oauth.publisher import EventPublisher
from oauthdesk.oauth.workers import WorkerPool
from oauthdesk.output import OutputFormat, OutputManager, reset_output, set_output


GITHUB_TOKEN_BODY = {
    "access_token": "tok1",
    "expires_in": 3600,
    "token_type": "bearer",
    "scope": "user",
    "refresh_token": "ref1",
    "refresh_token_expires_in": 86400,
}


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation. The CLI
    also detaches the package logger from the root logger, which would hide
    records from ``caplog`` in later tests.
    """
    yield
    reset_output()
    package_logger = logging.getLogger("oauthdesk")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


# ---------------------------------------------------------------------------
# Fake host
# ---------------------------------------------------------------------------


class FakeSurface(LoginSurface):
    """A login surface driven by the test instead of a real view."""

    def __init__(self, label: str, title: str = "", width: int = 800, height: int = 600) -> None:
        super().__init__(label, title)
        self.size = (width, height)
        self.navigated: list[str] = []
        self.close_calls = 0
        self.fail_navigate: Optional[Exception] = None

    def navigate(self, url: str) -> None:
        if self.fail_navigate is not None:
            raise self.fail_navigate
        self.navigated.append(url)

    def close(self) -> None:
        self.close_calls += 1
        self._mark_closed()

    # Test drivers

    def visit(self, url: str) -> bool:
        """Simulate the view navigating to *url*; return whether it was allowed."""
        return self._dispatch_navigation(url)

    def user_close(self) -> None:
        """Simulate the user closing the window."""
        self._dispatch_closed()


class FakeHost(HostApplication):
    """Host that creates :class:`FakeSurface` objects and records emitted events."""

    def __init__(self) -> None:
        super().__init__()
        self.surfaces: list[FakeSurface] = []
        self.events: list[tuple[str, Any]] = []
        self._event_cond = threading.Condition()

    def create_surface(
        self, label: str, title: str, width: int = 800, height: int = 600
    ) -> FakeSurface:
        surface = FakeSurface(label, title, width, height)
        self.surfaces.append(surface)
        return surface

    def emit(self, event: str, payload: Any) -> None:
        with self._event_cond:
            self.events.append((event, payload))
            self._event_cond.notify_all()
        super().emit(event, payload)

    @property
    def surface(self) -> FakeSurface:
        """The most recently created surface."""
        return self.surfaces[-1]

    def events_named(self, name: str) -> list[Any]:
        return [payload for event, payload in self.events if event == name]


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


# ---------------------------------------------------------------------------
# Token endpoint fakes
# ---------------------------------------------------------------------------


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


def json_response(status: int, body: Any) -> Callable[[httpx.Request], httpx.Response]:
    """Handler answering every request with *body* as JSON."""

    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=json.dumps(body).encode("utf-8"))

    return _handler


def text_response(status: int, text: str) -> Callable[[httpx.Request], httpx.Response]:
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text=text)

    return _handler


def make_exchanger(
    handler: Callable[[httpx.Request], httpx.Response],
) -> tuple[TokenExchanger, RecordingTransport]:
    transport = RecordingTransport(handler)
    return TokenExchanger(client=httpx.Client(transport=transport)), transport


@pytest.fixture
def github_token_endpoint() -> tuple[TokenExchanger, RecordingTransport]:
    """Exchanger whose token endpoint answers with the GitHub sample token."""
    exchanger, transport = make_exchanger(json_response(200, GITHUB_TOKEN_BODY))
    yield exchanger, transport
    exchanger._client.close()


# ---------------------------------------------------------------------------
# Session plumbing
# ---------------------------------------------------------------------------


@pytest.fixture
def pool() -> WorkerPool:
    workers = WorkerPool(max_workers=2)
    yield workers
    workers.shutdown(wait=True)


@pytest.fixture
def publisher(host: FakeHost) -> EventPublisher:
    return EventPublisher(host)


@pytest.fixture
def login_request() -> LoginRequest:
    return LoginRequest(
        client_id="cid",
        client_secret="sec",
        redirect_uri="http://localhost:8080/cb",
    )


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and XDG_DATA_HOME into tmp_path, forces the XDG
    code path, and clears every OAUTHDESK_* variable.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setattr("oauthdesk.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["OAUTHDESK_TIMEOUT", "OAUTHDESK_REDIRECT_TIMEOUT", "OAUTHDESK_MAX_WORKERS"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
