"""Host integration: the interfaces oauthdesk drives and a system-browser host.

- :class:`HostApplication` / :class:`LoginSurface` -- abstract interfaces an
  embedding application implements.
- :class:`BrowserHost` -- a ready-made host that uses the system browser and
  a loopback HTTP server on the redirect URI.
"""

from oauthdesk.host.base import HostApplication, LoginSurface
from oauthdesk.host.loopback import BrowserHost, LoopbackSurface

__all__ = ["HostApplication", "LoginSurface", "BrowserHost", "LoopbackSurface"]
