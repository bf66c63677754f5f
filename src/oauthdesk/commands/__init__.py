"""Built-in CLI sub-commands for oauthdesk.

* :mod:`~oauthdesk.commands.login` -- ``login``, ``refresh`` and
  ``authorize-url``.
* :mod:`~oauthdesk.commands.providers` -- list and show provider profiles.
* :mod:`~oauthdesk.commands.config` -- view and modify global settings.

Multi-command groups export a :class:`typer.Typer` sub-application; single
commands export a plain function registered on the root app.
"""
