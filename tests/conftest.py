"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A simulated host ledger with the TLD held by the legacy deed registry
- An in-memory registrar repository
- A wired registrar service with a mocked event publisher
- Depositing a legacy deed with the registrar and listing it
"""

from collections.abc import Callable
from dataclasses import dataclass
from unittest.mock import Mock

import pytest

from src.adapters.chain.bootstrap import build_chain, build_registrar
from src.adapters.chain.memory import InMemoryChain
from src.adapters.repository.memory import InMemoryRegistrarRepository
from src.config.settings import Settings
from src.domain.identity import labelhash
from src.domain.registrar import SubdomainRegistrar


@dataclass(frozen=True)
class Accounts:
    """Well-known addresses used across tests."""

    root: str = "0x" + "01" * 20
    deed_registry: str = "0x" + "de" * 20
    registrar: str = "0x" + "5a" * 20
    resolver: str = "0x" + "7e" * 20
    admin: str = "0x" + "ad" * 20
    owner: str = "0x" + "a1" * 20
    buyer: str = "0x" + "b0" * 20
    referrer: str = "0x" + "cc" * 20
    stranger: str = "0x" + "ee" * 20


@pytest.fixture
def accounts() -> Accounts:
    return Accounts()


@pytest.fixture
def settings(accounts: Accounts) -> Settings:
    """Settings pointing at the test accounts (no .env lookup)."""
    return Settings(
        _env_file=None,
        registrar_address=accounts.registrar,
        registrar_owner=accounts.admin,
        tld="eth",
        root_owner_address=accounts.root,
        deed_registry_address=accounts.deed_registry,
        default_resolver_address=accounts.resolver,
        genesis_balances={accounts.buyer: 1_000, accounts.stranger: 1_000},
    )


@pytest.fixture
def chain(settings: Settings) -> InMemoryChain:
    return build_chain(settings)


@pytest.fixture
def repository() -> InMemoryRegistrarRepository:
    return InMemoryRegistrarRepository()


@pytest.fixture
def events() -> Mock:
    return Mock()


@pytest.fixture
def registrar(
    chain: InMemoryChain,
    repository: InMemoryRegistrarRepository,
    events: Mock,
    accounts: Accounts,
) -> SubdomainRegistrar:
    registrar = build_registrar(chain, repository, events, accounts.registrar, "eth")
    registrar.initialize(accounts.admin)
    return registrar


@pytest.fixture
def deposit(chain: InMemoryChain, accounts: Accounts) -> Callable[[str], bytes]:
    """Issue a deed for name to the owner account and hand it to the registrar."""

    def _deposit(name: str, holder: str = accounts.owner) -> bytes:
        label = labelhash(name)
        chain.issue_deed(label, holder)
        chain.transfer_deed(holder, label, accounts.registrar)
        return label

    return _deposit


@pytest.fixture
def listed(
    deposit: Callable[[str], bytes],
    registrar: SubdomainRegistrar,
    events: Mock,
    accounts: Accounts,
) -> bytes:
    """'example' listed at price 10 with a 10% referral fee."""
    label = deposit("example")
    registrar.configure_domain(accounts.owner, "example", 10, 100_000)
    events.reset_mock()
    return label
