"""Publisher -- best-effort delivery of login outcomes to the host."""

from __future__ import annotations

import logging
from typing import Any

from oauthdesk.host.base import HostApplication
from oauthdesk.models import FailureNotice, ProviderProfile, TokenRecord

logger = logging.getLogger(__name__)


class EventPublisher:
    """Emit token records and failure notices as named host events.

    Event names follow ``<provider>-access-token`` and
    ``<provider>-login-failed``. Delivery is fire-and-forget: when the host
    raises (for instance because nobody listens any more) the failure is
    logged and reported as ``False``, never raised.

    Args:
        host: The application receiving the events.
    """

    def __init__(self, host: HostApplication) -> None:
        self._host = host

    def publish(self, topic: str, payload: dict[str, Any]) -> bool:
        """Emit *payload* under *topic*; return whether delivery succeeded."""
        try:
            self._host.emit(topic, payload)
        except Exception as exc:
            logger.warning("Failed to deliver host event '%s': %s", topic, exc)
            return False
        return True

    def publish_token(self, profile: ProviderProfile, record: TokenRecord) -> bool:
        """Publish a successful login's token record."""
        logger.info("Publishing %s access token", profile.name)
        return self.publish(profile.token_event, record.model_dump())

    def publish_failure(self, profile: ProviderProfile, notice: FailureNotice) -> bool:
        """Publish a failed login's notice."""
        logger.info("Publishing %s login failure (%s)", profile.name, notice.kind)
        return self.publish(profile.failure_event, notice.model_dump())
