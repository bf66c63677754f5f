"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oauthdesk.exceptions.OAuthDeskError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login apart
from an unreachable provider without parsing stderr.

Example::

    $ oauthdesk refresh pingcode "$REFRESH_TOKEN"
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the provider rejected the refresh token
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, an unknown provider, or incomplete client configuration."""

EXIT_AUTH_FAILURE = 3
"""The provider rejected the authorization code or refresh token."""

EXIT_PROVIDER_ERROR = 5
"""The provider answered with a success status but an unusable token document."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, TLS failure, connection refused)."""

EXIT_CANCELLED = 130
"""The user closed the login surface or interrupted the command."""
