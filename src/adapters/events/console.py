"""
Console event publisher adapter - Implements EventPublisher protocol.

This module provides a console-based implementation of the domain's
event publisher port, logging committed registrar events for
observability and local development.
"""

import logging

from src.domain.events import RegistrarEvent

logger = logging.getLogger(__name__)


class ConsoleEventPublisher:
    """
    Implements EventPublisher protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def publish(self, event: RegistrarEvent) -> None:
        """
        Log an event at INFO level.

        Fields are rendered in declaration order; identifiers are hex.

        Args:
            event: Committed registrar event
        """
        fields = " ".join(f"{key}={value}" for key, value in event.to_dict().items())
        logger.info("[EVENT] %s %s", event.kind, fields)
