"""oauthdesk -- OAuth authorization-code logins for desktop applications.

oauthdesk opens a provider's consent page in a login surface supplied by the
host application, catches the redirect back to the registered redirect URI,
exchanges the authorization code for a token record, and publishes the
result to the host as a named event. It can also exchange refresh tokens.
GitHub and PingCode are built in; other providers are plain data.

Typical usage::

    from oauthdesk.api import OAuthDesk

    with OAuthDesk(host) as desk:
        desk.provider("github").open_login_window(client_id, secret, redirect_uri)

The ``oauthdesk`` console script drives the same flow through the system
browser.

Modules:
    api: Host-facing facade and per-provider commands.
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and credential resolution.
    providers: Built-in provider profiles and the provider registry.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting and logging setup.
"""

__version__ = "0.1.0"
