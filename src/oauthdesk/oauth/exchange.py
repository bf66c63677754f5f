"""Token exchanger -- authorization-code and refresh-token grants.

:class:`TokenExchanger` performs the one network call of a login: it sends
the grant parameters to the provider's token endpoint exactly as the
:class:`~oauthdesk.models.ProviderProfile` describes (method, parameter
placement, headers) and turns the answer into a
:class:`~oauthdesk.models.TokenRecord` or a typed
:class:`~oauthdesk.exceptions.ExchangeError`.

:func:`parse_token_response` is the lenient, checked parser for token
documents: only ``access_token`` is mandatory, every other field falls back
to a default.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Optional

import httpx

from oauthdesk.exceptions import (
    ConfigurationError,
    MalformedResponse,
    ProviderRejected,
    TransportError,
)
from oauthdesk.models import (
    AuthorizationCode,
    LoginRequest,
    ParamEncoding,
    ProviderProfile,
    TokenRecord,
)
from oauthdesk.oauth.urls import check_endpoint

logger = logging.getLogger(__name__)

GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"

MAX_SECONDS = 2**64 - 1
"""Largest lifetime a token record carries; larger values count as unusable."""


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _as_seconds(value: Any) -> int:
    """Coerce a lifetime field to seconds in ``0..MAX_SECONDS``, 0 when unusable."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return 0
    if not isinstance(value, int) or value < 0 or value > MAX_SECONDS:
        return 0
    return value


def parse_token_response(profile: ProviderProfile, body: str) -> TokenRecord:
    """Normalise a successful token endpoint body into a :class:`TokenRecord`.

    Field names are looked up through ``profile.response_field_map``.
    ``token_type`` falls back to ``profile.default_token_type``; all other
    optional fields fall back to ``""`` or ``0``.

    Args:
        profile: The provider profile the body came from.
        body: The raw response text.

    Returns:
        The normalised token record.

    Raises:
        MalformedResponse: If the body is not a JSON object or carries no
            non-empty ``access_token``.
    """
    try:
        document = json.loads(body)
    except (json.JSONDecodeError, TypeError) as exc:
        raise MalformedResponse(f"Token response is not valid JSON: {exc}", body) from exc
    if not isinstance(document, dict):
        raise MalformedResponse(
            f"Token response must be a JSON object, got {type(document).__name__}", body
        )

    access_token = _as_str(document.get(profile.response_field("access_token")))
    if not access_token:
        error = document.get("error")
        detail = f" (provider error: {error})" if error else ""
        raise MalformedResponse(f"Token response missing 'access_token' field{detail}", body)

    return TokenRecord(
        access_token=access_token,
        token_type=_as_str(
            document.get(profile.response_field("token_type")), profile.default_token_type
        ),
        expires_in=_as_seconds(document.get(profile.response_field("expires_in"))),
        refresh_token=_as_str(document.get(profile.response_field("refresh_token"))),
        refresh_token_expires_in=_as_seconds(
            document.get(profile.response_field("refresh_token_expires_in"))
        ),
        scope=_as_str(document.get(profile.response_field("scope"))),
    )


def grant_params(
    profile: ProviderProfile,
    names: tuple[str, ...],
    values: dict[str, str],
) -> dict[str, str]:
    """Select the grant parameters the profile sends, in its order.

    Empty values are left out of the request unless the name is listed in
    ``profile.required_params``, in which case the request is refused before
    anything is sent.

    Raises:
        ConfigurationError: If a required parameter is empty.
    """
    params: dict[str, str] = {}
    for name in names:
        value = values.get(name, "")
        if value:
            params[name] = value
        elif name in profile.required_params:
            raise ConfigurationError(
                f"{profile.title} token request requires a non-empty '{name}'."
            )
    return params


class TokenExchanger:
    """Exchange authorization codes and refresh tokens for token records.

    One :class:`httpx.Client` is shared by every call; httpx clients are
    thread-safe, so a single exchanger serves all concurrent sessions. Use
    it as a context manager, or call :meth:`close`, to release the
    connection pool.

    Args:
        client: An existing client to use (tests pass one backed by
            :class:`httpx.MockTransport`). When given, the exchanger does
            not close it.
        timeout: Request timeout in seconds for the owned client.
        verify_ssl: Verify TLS certificates for the owned client.

    Example::

        with TokenExchanger(timeout=10) as exchanger:
            record = exchanger.refresh(PINGCODE, refresh_token)
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, verify=verify_ssl)

    def __enter__(self) -> TokenExchanger:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying client if this exchanger created it."""
        if self._owns_client:
            self._client.close()

    # ------------------------------------------------------------------ #
    # Grants
    # ------------------------------------------------------------------ #

    def exchange_code(
        self,
        profile: ProviderProfile,
        request: LoginRequest,
        code: AuthorizationCode,
    ) -> TokenRecord:
        """Exchange an authorization code for a token record.

        Args:
            profile: The provider profile.
            request: The login request the code was issued for.
            code: The single-use authorization code.

        Returns:
            The normalised :class:`TokenRecord`.

        Raises:
            ConfigurationError: If a required parameter is empty.
            TransportError: On network-level failures.
            ProviderRejected: On a non-2xx status.
            MalformedResponse: If the body is not a usable token document.
        """
        values = {
            "grant_type": GRANT_AUTHORIZATION_CODE,
            "client_id": request.client_id,
            "client_secret": request.client_secret,
            "code": code.value,
            "redirect_uri": request.redirect_uri,
        }
        params = grant_params(profile, profile.code_grant_params, values)
        response = self._send(profile, params, GRANT_AUTHORIZATION_CODE)
        return parse_token_response(profile, response.text)

    def refresh(
        self,
        profile: ProviderProfile,
        refresh_token: str,
        client_id: str = "",
        client_secret: str = "",
    ) -> TokenRecord:
        """Exchange a refresh token for a brand-new token record.

        Raises:
            ConfigurationError: If a required parameter is empty (GitHub
                needs client credentials, PingCode only the refresh token).
            TransportError: On network-level failures.
            ProviderRejected: On a non-2xx status.
            MalformedResponse: If the body is not a usable token document.
        """
        body = self.refresh_raw(profile, refresh_token, client_id, client_secret)
        return parse_token_response(profile, body)

    def refresh_raw(
        self,
        profile: ProviderProfile,
        refresh_token: str,
        client_id: str = "",
        client_secret: str = "",
    ) -> str:
        """Send a refresh-token grant and return the provider's raw body.

        Each call issues its own request; nothing is cached between calls.

        Returns:
            The response text of a 2xx answer, unparsed.

        Raises:
            ConfigurationError: If a required parameter is empty.
            TransportError: On network-level failures.
            ProviderRejected: On a non-2xx status.
        """
        values = {
            "grant_type": GRANT_REFRESH_TOKEN,
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
        }
        params = grant_params(profile, profile.refresh_grant_params, values)
        return self._send(profile, params, GRANT_REFRESH_TOKEN).text

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _send(
        self,
        profile: ProviderProfile,
        params: dict[str, str],
        grant: str,
    ) -> httpx.Response:
        """Send the grant request and map failures to exchange errors."""
        check_endpoint(profile.token_endpoint, "token endpoint")

        kwargs: dict[str, Any] = {"headers": dict(profile.headers)}
        if profile.param_encoding == ParamEncoding.FORM:
            kwargs["data"] = params
        elif profile.param_encoding == ParamEncoding.JSON:
            kwargs["json"] = params
        else:
            kwargs["params"] = params

        logger.debug(
            "%s %s grant -> %s %s",
            profile.name,
            grant,
            profile.exchange_method.value,
            profile.token_endpoint,
        )
        try:
            response = self._client.request(
                profile.exchange_method.value, profile.token_endpoint, **kwargs
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"{profile.title} token request failed: {exc}") from exc

        if not response.is_success:
            logger.info(
                "%s token endpoint rejected %s grant with HTTP %d",
                profile.name,
                grant,
                response.status_code,
            )
            raise ProviderRejected(response.status_code, response.text)
        return response
