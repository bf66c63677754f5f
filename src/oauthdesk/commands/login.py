"""Login commands -- run a browser login, refresh a token, print an authorize URL.

These are single commands registered directly on the root app:

* ``oauthdesk login PROVIDER`` drives a full :class:`~oauthdesk.oauth.session.LoginSession`
  through the system browser and prints the resulting token record.
* ``oauthdesk refresh PROVIDER REFRESH_TOKEN`` exchanges a refresh token.
* ``oauthdesk authorize-url PROVIDER`` prints the authorization URL without
  opening anything.

Client ids and secrets are given as credential sources (``env:VAR``,
``file:PATH``, ``prompt`` or ``value:TEXT``) so they never have to appear
in shell history. Sources missing on the command line come from
``clients.<provider>`` in the global config.
"""

from __future__ import annotations

from typing import Optional

import typer

from oauthdesk.exceptions import MissingCredential, OAuthDeskError
from oauthdesk.models import ClientConfig, GlobalConfig
from oauthdesk.output import debug, error, format_response, info, print_data, success, suggest

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8765/callback"
"""Redirect URI used when neither the command line nor the config names one."""

DEFAULT_CLI_REDIRECT_TIMEOUT = 300.0
"""Seconds ``login`` waits for the redirect when no timeout is configured."""

_SOURCE_HELP = "Credential source: env:VAR, file:PATH, prompt or value:TEXT."


def _client_config(config: GlobalConfig, provider: str) -> ClientConfig:
    return config.clients.get(provider) or ClientConfig()


def _credential(source: Optional[str], label: str, provider: str, required: bool) -> str:
    from oauthdesk.config import resolve_credential

    if not source:
        if required:
            raise MissingCredential(label, provider)
        return ""
    return resolve_credential(source)


def _fail(exc: OAuthDeskError) -> typer.Exit:
    """Report *exc* on stderr and return the exit to raise."""
    error(str(exc))
    if isinstance(exc, MissingCredential):
        suggest(exc.hint)
    return typer.Exit(code=exc.exit_code)


def login_command(
    provider: str = typer.Argument(help="Provider name, e.g. 'github' or 'pingcode'."),
    client_id: Optional[str] = typer.Option(None, "--client-id", help=_SOURCE_HELP),
    client_secret: Optional[str] = typer.Option(None, "--client-secret", help=_SOURCE_HELP),
    redirect_uri: Optional[str] = typer.Option(
        None, "--redirect-uri", help="Registered loopback redirect URI."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Seconds to wait for the browser redirect."
    ),
) -> None:
    """Log in through the system browser and print the token record.

    Opens the provider's consent page, waits for the redirect on a local
    callback server, exchanges the code and writes the token record to
    stdout.

    Raises:
        typer.Exit: With the error's exit code on failure, or 130 when the
            login is cancelled.

    Example::

        oauthdesk login github --client-id env:GH_CLIENT_ID --client-secret env:GH_SECRET
        oauthdesk --json login pingcode | jq -r .access_token
    """
    from oauthdesk.api import OAuthDesk
    from oauthdesk.config import resolve_config
    from oauthdesk.host.loopback import BrowserHost
    from oauthdesk.providers import ProviderRegistry

    try:
        config = resolve_config(cli_redirect_timeout=timeout)
        registry = ProviderRegistry.from_config(config)
        profile = registry.get(provider)
        client = _client_config(config, profile.name)
        resolved_id = _credential(
            client_id or client.client_id_source, "client id", profile.name, True
        )
        resolved_secret = _credential(
            client_secret or client.client_secret_source, "client secret", profile.name, False
        )
        uri = redirect_uri or client.redirect_uri or DEFAULT_REDIRECT_URI
        redirect_timeout = config.login.redirect_timeout or DEFAULT_CLI_REDIRECT_TIMEOUT

        host = BrowserHost(uri)
        with OAuthDesk(host, config=config, registry=registry) as desk:
            session = desk.provider(profile.name).open_login_window(
                resolved_id, resolved_secret, uri, redirect_timeout=redirect_timeout
            )
            info(f"Opening the {profile.title} login page in your browser...")
            info(f"If it does not open, visit: {session.authorization_url}")
            debug(f"Waiting up to {redirect_timeout:g}s for {uri}")
            try:
                record = session.result()
            finally:
                session.cancel()
    except OAuthDeskError as exc:
        raise _fail(exc) from None

    success(f"Logged in to {profile.title}.")
    format_response(record.model_dump())


def refresh_command(
    provider: str = typer.Argument(help="Provider name."),
    refresh_token: str = typer.Argument(help="The refresh token to exchange."),
    client_id: Optional[str] = typer.Option(None, "--client-id", help=_SOURCE_HELP),
    client_secret: Optional[str] = typer.Option(None, "--client-secret", help=_SOURCE_HELP),
    raw: bool = typer.Option(
        False, "--raw", help="Print the provider's response body unchanged."
    ),
) -> None:
    """Exchange a refresh token for a new token record.

    GitHub needs the client credentials; PingCode only the refresh token.
    With ``--raw`` the provider's document is printed exactly as received.

    Example::

        oauthdesk refresh pingcode "$REFRESH_TOKEN"
        oauthdesk refresh github "$REFRESH_TOKEN" --client-id env:GH_ID --client-secret env:GH_SECRET
    """
    from oauthdesk.config import resolve_config
    from oauthdesk.oauth.exchange import TokenExchanger, parse_token_response
    from oauthdesk.providers import ProviderRegistry

    try:
        config = resolve_config()
        profile = ProviderRegistry.from_config(config).get(provider)
        client = _client_config(config, profile.name)
        resolved_id = _credential(
            client_id or client.client_id_source, "client id", profile.name, False
        )
        resolved_secret = _credential(
            client_secret or client.client_secret_source, "client secret", profile.name, False
        )
        with TokenExchanger(
            timeout=config.request.timeout, verify_ssl=config.request.verify_ssl
        ) as exchanger:
            body = exchanger.refresh_raw(profile, refresh_token, resolved_id, resolved_secret)
        if raw:
            print_data(body)
            return
        record = parse_token_response(profile, body)
    except OAuthDeskError as exc:
        raise _fail(exc) from None

    format_response(record.model_dump())


def authorize_url_command(
    provider: str = typer.Argument(help="Provider name."),
    client_id: Optional[str] = typer.Option(None, "--client-id", help=_SOURCE_HELP),
    redirect_uri: Optional[str] = typer.Option(
        None, "--redirect-uri", help="Registered redirect URI."
    ),
) -> None:
    """Print the provider's authorization URL without opening it.

    Example::

        oauthdesk authorize-url github --client-id value:Iv1.abc --redirect-uri http://127.0.0.1:8765/callback
    """
    from oauthdesk.config import resolve_config
    from oauthdesk.models import LoginRequest
    from oauthdesk.oauth.urls import build_authorization_url
    from oauthdesk.providers import ProviderRegistry

    try:
        config = resolve_config()
        profile = ProviderRegistry.from_config(config).get(provider)
        client = _client_config(config, profile.name)
        request = LoginRequest(
            client_id=_credential(
                client_id or client.client_id_source, "client id", profile.name, True
            ),
            redirect_uri=redirect_uri or client.redirect_uri or DEFAULT_REDIRECT_URI,
        )
        url = build_authorization_url(profile, request)
    except OAuthDeskError as exc:
        raise _fail(exc) from None

    print_data(url)
