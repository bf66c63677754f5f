"""Canonical models shared across all oauthdesk modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Provider and request models** -- static provider identity and the
per-attempt credentials:
    :class:`ExchangeMethod`, :class:`ParamEncoding`, :class:`ProviderProfile`,
    and :class:`LoginRequest`.

**Flow models** -- values produced while a login runs:
    :class:`RedirectEvent`, :class:`AuthorizationCode`, :class:`TokenRecord`,
    :class:`FailureNotice`, :class:`SessionState`, and :class:`SessionOutcome`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`LoginConfig`, :class:`ClientConfig`, and
    :class:`GlobalConfig`.

Serialisable shapes use Pydantic v2. The two ephemeral values that never
leave the process (:class:`RedirectEvent` and :class:`AuthorizationCode`)
are frozen dataclasses.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


AUTHORIZE_PARAM_NAMES = ("client_id", "redirect_uri", "scope", "response_type")
"""Parameters a profile may place on its authorization URL."""

CODE_GRANT_PARAM_NAMES = ("grant_type", "client_id", "client_secret", "code", "redirect_uri")
"""Parameters a profile may send when exchanging an authorization code."""

REFRESH_GRANT_PARAM_NAMES = ("grant_type", "client_id", "client_secret", "refresh_token")
"""Parameters a profile may send when exchanging a refresh token."""

TOKEN_FIELDS = (
    "access_token",
    "token_type",
    "expires_in",
    "refresh_token",
    "refresh_token_expires_in",
    "scope",
)
"""Canonical token record fields, the keys of ``response_field_map``."""


# --- Provider profile ---


class ExchangeMethod(str, enum.Enum):
    """HTTP method used to call a provider's token endpoint."""

    GET = "GET"
    POST = "POST"


class ParamEncoding(str, enum.Enum):
    """Where token request parameters travel.

    Both built-in providers put every parameter in the query string, even
    GitHub's ``POST``. ``form`` and ``json`` exist for custom providers that
    follow :rfc:`6749` more closely.
    """

    QUERY = "query"
    FORM = "form"
    JSON = "json"


def _check_names(values: tuple[str, ...], allowed: tuple[str, ...], label: str) -> tuple[str, ...]:
    unknown = [v for v in values if v not in allowed]
    if unknown:
        raise ValueError(
            f"unknown {label} {unknown}; expected a subset of {list(allowed)}"
        )
    return values


class ProviderProfile(BaseModel):
    """Static identity of an OAuth provider.

    A profile captures every per-provider quirk of the authorization-code and
    refresh-token grants as data, so one exchange function serves all
    providers. Built-in profiles live in :mod:`oauthdesk.providers`; users
    can add their own under ``providers`` in the global config.

    Example::

        ProviderProfile(
            name="example",
            authorize_endpoint="https://id.example.com/authorize",
            token_endpoint="https://id.example.com/token",
            exchange_method=ExchangeMethod.POST,
            param_encoding=ParamEncoding.FORM,
        )
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(
        pattern=r"^[a-z0-9][a-z0-9_-]*$",
        description="Provider identifier; also the prefix of published event names",
    )
    display_name: str = ""
    authorize_endpoint: str = Field(description="Browser-navigated authorization URL")
    token_endpoint: str = Field(description="Code and refresh token exchange URL")
    exchange_method: ExchangeMethod = ExchangeMethod.POST
    param_encoding: ParamEncoding = ParamEncoding.QUERY
    scope: str = ""
    authorize_params: tuple[str, ...] = ("client_id", "redirect_uri", "scope", "response_type")
    code_grant_params: tuple[str, ...] = (
        "grant_type",
        "client_id",
        "client_secret",
        "code",
        "redirect_uri",
    )
    refresh_grant_params: tuple[str, ...] = (
        "grant_type",
        "client_id",
        "client_secret",
        "refresh_token",
    )
    required_params: tuple[str, ...] = Field(
        default=("client_id", "client_secret", "code", "refresh_token"),
        description="Parameters that must be non-empty whenever a grant sends them",
    )
    headers: dict[str, str] = Field(default_factory=lambda: {"Accept": "application/json"})
    response_field_map: dict[str, str] = Field(
        default_factory=dict,
        description="Canonical token field -> provider response field; unmapped fields keep their name",
    )
    default_token_type: str = ""

    @field_validator("authorize_params")
    @classmethod
    def _known_authorize_params(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _check_names(value, AUTHORIZE_PARAM_NAMES, "authorize_params")

    @field_validator("code_grant_params")
    @classmethod
    def _known_code_params(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _check_names(value, CODE_GRANT_PARAM_NAMES, "code_grant_params")

    @field_validator("refresh_grant_params")
    @classmethod
    def _known_refresh_params(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _check_names(value, REFRESH_GRANT_PARAM_NAMES, "refresh_grant_params")

    @field_validator("response_field_map")
    @classmethod
    def _known_token_fields(cls, value: dict[str, str]) -> dict[str, str]:
        _check_names(tuple(value), TOKEN_FIELDS, "response_field_map keys")
        return value

    @property
    def title(self) -> str:
        """Human-readable provider name, falling back to :attr:`name`."""
        return self.display_name or self.name

    def response_field(self, canonical: str) -> str:
        """Return the provider's response key for a canonical token field."""
        return self.response_field_map.get(canonical, canonical)

    @property
    def token_event(self) -> str:
        """Host event name carrying a successful :class:`TokenRecord`."""
        return f"{self.name}-access-token"

    @property
    def failure_event(self) -> str:
        """Host event name carrying a :class:`FailureNotice`."""
        return f"{self.name}-login-failed"


class LoginRequest(BaseModel):
    """Client credentials for one login attempt.

    ``redirect_uri`` is used twice: as a URL parameter for providers that
    accept one, and as the prefix that identifies the OAuth callback among
    the login surface's navigations.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str = ""
    redirect_uri: str

    def __repr__(self) -> str:
        return (
            f"LoginRequest(client_id={self.client_id!r}, client_secret='***', "
            f"redirect_uri={self.redirect_uri!r})"
        )

    __str__ = __repr__


# --- Flow values ---


@dataclass(frozen=True)
class RedirectEvent:
    """A navigation whose target starts with the configured redirect URI."""

    url: str


@dataclass(frozen=True)
class AuthorizationCode:
    """A single-use authorization code.

    The value is excluded from ``repr`` so that codes never end up in logs
    or tracebacks.
    """

    value: str = field(repr=False)

    def __str__(self) -> str:
        return "AuthorizationCode(***)"


class TokenRecord(BaseModel):
    """Normalised result of a successful token exchange.

    Optional provider fields default to ``""`` / ``0`` so that a provider
    omitting ``refresh_token`` or ``refresh_token_expires_in`` never aborts
    an otherwise successful exchange. Records are immutable: every refresh
    produces a new one.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = ""
    expires_in: int = Field(default=0, ge=0, le=2**64 - 1)
    refresh_token: str = ""
    refresh_token_expires_in: int = Field(default=0, ge=0, le=2**64 - 1)
    scope: str = ""

    def __repr__(self) -> str:
        return (
            f"TokenRecord(token_type={self.token_type!r}, expires_in={self.expires_in}, "
            f"has_refresh_token={bool(self.refresh_token)}, scope={self.scope!r})"
        )


class FailureNotice(BaseModel):
    """Published to the host when a login attempt ends without a token.

    ``kind`` is one of ``cancelled``, ``timeout``, ``transport``,
    ``provider_rejected``, ``malformed_response``, or ``internal``.
    ``status`` and ``body`` are set for ``provider_rejected`` (and ``body``
    for ``malformed_response``) to help diagnose the provider's answer.
    """

    provider: str
    kind: str
    message: str
    status: Optional[int] = None
    body: Optional[str] = None


class SessionState(str, enum.Enum):
    """Lifecycle states of a :class:`~oauthdesk.oauth.session.LoginSession`."""

    IDLE = "idle"
    AWAITING_REDIRECT = "awaiting_redirect"
    EXCHANGING = "exchanging"
    COMPLETED = "completed"


class SessionOutcome(str, enum.Enum):
    """How a completed login session ended."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings for token endpoint calls."""

    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")


class LoginConfig(BaseModel):
    """Login surface and worker settings."""

    redirect_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds to wait for the redirect before giving up; None waits until the surface closes",
    )
    max_workers: int = Field(default=4, ge=1, description="Worker threads for token exchanges")
    window_width: int = Field(default=800, gt=0)
    window_height: int = Field(default=600, gt=0)


class ClientConfig(BaseModel):
    """Stored client registration for one provider.

    Secrets are never stored inline: ``client_id_source`` and
    ``client_secret_source`` are credential sources resolved by
    :func:`~oauthdesk.config.resolve_credential`.
    """

    client_id_source: Optional[str] = Field(
        default=None, description="Credential source: env:VAR, file:/path, prompt, value:LITERAL"
    )
    client_secret_source: Optional[str] = None
    redirect_uri: Optional[str] = None


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/oauthdesk/config.json``.

    Loaded and saved by :func:`~oauthdesk.config.load_global_config` and
    :func:`~oauthdesk.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by environment variables or CLI
    flags. See :func:`~oauthdesk.config.resolve_config` for the full
    precedence chain.
    """

    request: RequestConfig = Field(default_factory=RequestConfig)
    login: LoginConfig = Field(default_factory=LoginConfig)
    providers: dict[str, ProviderProfile] = Field(
        default_factory=dict, description="Custom provider profiles keyed by name"
    )
    clients: dict[str, ClientConfig] = Field(
        default_factory=dict, description="Client registrations keyed by provider name"
    )
