"""Provider commands -- list and inspect provider profiles.

Provides the ``oauthdesk providers`` sub-command group. The listing covers
the built-in profiles, profiles contributed by installed packages through
the ``oauthdesk.providers`` entry points, and custom profiles from the
global config.
"""

from __future__ import annotations

import typer

from oauthdesk.exceptions import OAuthDeskError
from oauthdesk.output import error, format_response, print_table

providers_app = typer.Typer(no_args_is_help=True)


@providers_app.command("list")
def providers_list() -> None:
    """List the available providers.

    Example::

        oauthdesk providers list
        oauthdesk --json providers list
    """
    from oauthdesk.config import resolve_config
    from oauthdesk.providers import ProviderRegistry

    try:
        registry = ProviderRegistry.from_config(resolve_config())
    except OAuthDeskError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    rows = [
        [p.name, p.title, p.exchange_method.value, p.token_endpoint] for p in registry
    ]
    print_table(["name", "display_name", "method", "token_endpoint"], rows, title="Providers")


@providers_app.command("show")
def providers_show(
    name: str = typer.Argument(help="Provider name."),
) -> None:
    """Show the full profile of one provider, including its event names.

    Example::

        oauthdesk providers show pingcode
    """
    from oauthdesk.config import resolve_config
    from oauthdesk.providers import ProviderRegistry

    try:
        profile = ProviderRegistry.from_config(resolve_config()).get(name)
    except OAuthDeskError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    data = profile.model_dump(mode="json")
    data["events"] = {"token": profile.token_event, "failure": profile.failure_event}
    format_response(data)
