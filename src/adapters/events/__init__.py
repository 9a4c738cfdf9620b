"""Event adapters - Registrar event delivery."""

from .console import ConsoleEventPublisher

__all__ = ["ConsoleEventPublisher"]
