"""Exception hierarchy for oauthdesk.

All exceptions inherit from :class:`OAuthDeskError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oauthdesk.exit_codes`.
The top-level error handler in :func:`oauthdesk.app.main` catches
``OAuthDeskError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Synchronous operations (URL building, session start, token refresh) raise
these exceptions directly. Asynchronous login outcomes are converted into a
:class:`~oauthdesk.models.FailureNotice` and published to the host instead;
see :mod:`oauthdesk.oauth.session`.

Subclass hierarchy::

    OAuthDeskError (exit 1)
    +-- ConfigurationError     (exit 2)
    |   +-- MissingCredential  (exit 2)
    +-- LoginCancelled         (exit 130)
    +-- ExchangeError          (exit 3)
        +-- TransportError     (exit 6)
        +-- ProviderRejected   (exit 3)
        +-- MalformedResponse  (exit 5)
"""

from __future__ import annotations

from typing import Optional

from oauthdesk.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PROVIDER_ERROR,
)


class OAuthDeskError(Exception):
    """Base exception for all oauthdesk errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oauthdesk.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(OAuthDeskError):
    """Raised for malformed endpoints, empty required fields, unknown providers or bad config files.

    Always surfaced synchronously, before any network call is made.
    """

    exit_code = EXIT_INVALID_USAGE


class MissingCredential(ConfigurationError):
    """Raised when a command has no source for a required client credential.

    Args:
        label: The credential, e.g. ``"client id"``.
        provider: The provider the credential belongs to.
    """

    def __init__(self, label: str, provider: str):
        super().__init__(f"No {label} given for '{provider}'.")
        option = label.replace(" ", "-")
        key = label.replace(" ", "_")
        self.hint = (
            f"Pass --{option}, or run: oauthdesk config set "
            f"clients.{provider}.{key}_source env:VAR"
        )


class LoginCancelled(OAuthDeskError):
    """Raised by blocking callers when a login ended without a token.

    The core never raises this itself: a closed surface is a normal outcome
    of a :class:`~oauthdesk.oauth.session.LoginSession`. The CLI converts the
    cancelled outcome into this exception to exit with code 130.
    """

    exit_code = EXIT_CANCELLED


class ExchangeError(OAuthDeskError):
    """Base class for failures talking to a provider's token endpoint.

    The ``kind`` class attribute is the stable identifier copied into
    :attr:`~oauthdesk.models.FailureNotice.kind` when the failure is
    published to the host.
    """

    exit_code = EXIT_AUTH_FAILURE
    kind: str = "exchange"


class TransportError(ExchangeError):
    """Raised on network-level failures (timeout, DNS, TLS, connection refused).

    Not retried by the core; retry policy belongs to the host.
    """

    exit_code = EXIT_CONNECTION_ERROR
    kind = "transport"


class ProviderRejected(ExchangeError):
    """Raised when the token endpoint answers with a non-2xx HTTP status.

    Args:
        status: The HTTP status code returned by the provider.
        body: The raw response body, kept for diagnostics.
    """

    kind = "provider_rejected"

    def __init__(self, status: int, body: str, message: Optional[str] = None):
        super().__init__(message or f"Token endpoint returned HTTP {status}: {body}")
        self.status = status
        self.body = body


class MalformedResponse(ExchangeError):
    """Raised when a 2xx token response cannot be turned into a token record.

    Distinct from :class:`ProviderRejected` so the host can tell "the
    provider said no" from "the provider said yes but the answer is unusable".

    Args:
        message: What was wrong with the document.
        body: The raw response body, kept for diagnostics.
    """

    exit_code = EXIT_PROVIDER_ERROR
    kind = "malformed_response"

    def __init__(self, message: str, body: str = ""):
        super().__init__(message)
        self.body = body
