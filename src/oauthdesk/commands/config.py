"""Config commands -- view and modify the global configuration.

Provides the ``oauthdesk config`` sub-command group for reading and
updating :class:`~oauthdesk.models.GlobalConfig`: HTTP settings, login
settings, custom provider profiles and per-provider client registrations.
"""

from __future__ import annotations

import typer

from oauthdesk.exceptions import OAuthDeskError
from oauthdesk.output import error, format_response, info, print_data, success

config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the stored configuration.

    Example::

        oauthdesk config show
        oauthdesk --json config show
    """
    from oauthdesk.config import get_config_dir, load_global_config

    try:
        config = load_global_config()
    except OAuthDeskError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key in dot notation, e.g. 'login.redirect_timeout'."
    ),
    value: str = typer.Argument(help="Value to set; parsed as JSON when possible."),
) -> None:
    """Set a configuration value.

    Values are parsed as JSON first, so ``30``, ``true`` and ``null`` keep
    their types; anything else is stored as a string. The updated config is
    validated before it is saved.

    Raises:
        typer.Exit: With code 2 if the key or value is invalid.

    Example::

        oauthdesk config set login.redirect_timeout 120
        oauthdesk config set clients.github.client_id_source env:GH_CLIENT_ID
        oauthdesk config set clients.github.redirect_uri http://127.0.0.1:8765/callback
    """
    from oauthdesk.config import load_global_config, save_global_config, set_config_value

    try:
        updated = set_config_value(load_global_config(), key, value)
    except OAuthDeskError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    save_global_config(updated)
    success(f"Set {key} = {value}")


@config_app.command("path")
def config_path() -> None:
    """Print the path of the global config file."""
    from oauthdesk.config import global_config_path

    print_data(str(global_config_path()))
