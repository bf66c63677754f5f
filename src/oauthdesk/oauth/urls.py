"""Authorization URL building and redirect URL parsing.

Both halves are pure functions with no I/O:

* :func:`build_authorization_url` turns a
  :class:`~oauthdesk.models.ProviderProfile` and a
  :class:`~oauthdesk.models.LoginRequest` into the URL the login surface
  opens.
* :func:`extract_code` and :func:`extract_error` read the provider's answer
  from the redirect URL's query string.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from oauthdesk.exceptions import ConfigurationError
from oauthdesk.models import AuthorizationCode, LoginRequest, ProviderProfile


def validate_login_request(request: LoginRequest) -> None:
    """Raise :class:`ConfigurationError` if a required request field is empty."""
    if not request.client_id:
        raise ConfigurationError("client_id must not be empty")
    if not request.redirect_uri:
        raise ConfigurationError("redirect_uri must not be empty")


def check_endpoint(url: str, label: str = "endpoint") -> None:
    """Raise :class:`ConfigurationError` unless *url* is an absolute http(s) URL."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigurationError(f"Malformed {label}: {url!r}")


def build_authorization_url(profile: ProviderProfile, request: LoginRequest) -> str:
    """Build the provider authorization URL for one login attempt.

    Only the parameters named in ``profile.authorize_params`` are added, in
    that order. ``scope`` is skipped when the profile has none. Any query
    string already present on the endpoint is preserved.

    Args:
        profile: The provider profile.
        request: Client credentials and redirect URI for this attempt.

    Returns:
        The fully-qualified, percent-encoded authorization URL.

    Raises:
        ConfigurationError: If ``client_id`` or ``redirect_uri`` is empty,
            or the profile's authorize endpoint is malformed.
    """
    validate_login_request(request)
    check_endpoint(profile.authorize_endpoint, "authorize endpoint")

    values = {
        "client_id": request.client_id,
        "redirect_uri": request.redirect_uri,
        "scope": profile.scope,
        "response_type": "code",
    }
    params = [(name, values[name]) for name in profile.authorize_params if values[name]]

    parts = urlsplit(profile.authorize_endpoint)
    query = urlencode(params)
    if parts.query:
        query = f"{parts.query}&{query}" if query else parts.query
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _first_param(url: str, name: str) -> Optional[str]:
    values = parse_qs(urlsplit(url).query, keep_blank_values=True).get(name)
    if not values:
        return None
    return values[0]


def extract_code(url: str) -> Optional[AuthorizationCode]:
    """Return the authorization code carried by a redirect URL.

    Args:
        url: The redirect URL observed on the login surface.

    Returns:
        The first ``code`` query parameter, or ``None`` when it is missing
        or empty. ``None`` means the user denied or cancelled consent; it is
        not an error.
    """
    value = _first_param(url, "code")
    if not value:
        return None
    return AuthorizationCode(value)


def extract_error(url: str) -> Optional[str]:
    """Return the provider's ``error`` (and ``error_description``) from a redirect URL.

    Returns:
        ``"error"`` or ``"error: description"``, or ``None`` when the
        redirect carries no error.
    """
    error = _first_param(url, "error")
    if not error:
        return None
    description = _first_param(url, "error_description")
    if description:
        return f"{error}: {description}"
    return error
