"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting the registrar
domain service and the caller identity into routes.
"""

from fastapi import Header, Path, Request

from src.adapters.chain.bootstrap import build_registrar
from src.adapters.chain.memory import InMemoryChain
from src.adapters.events.console import ConsoleEventPublisher
from src.api.models import ADDRESS_PATTERN, HASH_PATTERN
from src.config.settings import get_settings
from src.domain.identity import from_hex
from src.domain.ports import RegistrarRepository
from src.domain.registrar import SubdomainRegistrar

# Module-level singleton - ConsoleEventPublisher is stateless
_event_publisher = ConsoleEventPublisher()


def get_chain(request: Request) -> InMemoryChain:
    """
    Get the host ledger from app state.

    The chain is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.chain


def get_repository(request: Request) -> RegistrarRepository:
    """Get the registrar repository selected at startup."""
    return request.app.state.repository


def get_event_publisher() -> ConsoleEventPublisher:
    """Get console event publisher (singleton)."""
    return _event_publisher


def get_registrar_service(request: Request) -> SubdomainRegistrar:
    """
    Create the registrar service with injected dependencies.

    Wires the host clients, repository and event publisher together.
    """
    settings = get_settings()
    return build_registrar(
        chain=get_chain(request),
        repository=get_repository(request),
        events=get_event_publisher(),
        address=settings.registrar_address,
        tld=settings.tld,
    )


def get_caller(
    x_caller: str = Header(..., alias="X-Caller", pattern=ADDRESS_PATTERN),
) -> str:
    """
    Extract and normalize the calling account from the X-Caller header.

    Returns:
        Lowercased caller address
    """
    return x_caller.strip().lower()


def get_label(label: str = Path(..., pattern=HASH_PATTERN)) -> bytes:
    """Decode a 0x-prefixed 32-byte label hash from the path."""
    return from_hex(label)
