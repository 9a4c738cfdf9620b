"""
Host bootstrap - Development wiring of the simulated chain and the registrar.

Recreates the minimal world the registrar expects: a naming registry
whose top-level domain is controlled by the legacy deed registry, a
public resolver, and funded accounts.
"""

import logging

from src.config.settings import Settings
from src.domain.identity import ROOT_NODE, labelhash, namehash
from src.domain.ports import EventPublisher, RegistrarRepository
from src.domain.registrar import SubdomainRegistrar

from .client import (
    ChainDeedRegistry,
    ChainNamingRegistry,
    ChainPayments,
    ChainResolvers,
    ChainTransactions,
)
from .memory import InMemoryChain

logger = logging.getLogger(__name__)


def build_chain(settings: Settings) -> InMemoryChain:
    """
    Create a simulated host from settings.

    Each label of the TLD is allocated by the root owner; the last one is
    handed to the deed registry.
    """
    tld_node = namehash(settings.tld)
    chain = InMemoryChain(
        root_owner=settings.root_owner_address,
        deed_registry_address=settings.deed_registry_address,
        deed_root_node=tld_node,
    )

    with chain.atomic():
        labels = settings.tld.split(".")
        node = ROOT_NODE
        for depth, label in enumerate(reversed(labels), start=1):
            owner = (
                settings.deed_registry_address
                if depth == len(labels)
                else settings.root_owner_address
            )
            node = chain.set_subnode_owner(settings.root_owner_address, node, labelhash(label), owner)

        chain.deploy_resolver(settings.default_resolver_address)
        for account, amount in settings.genesis_balances.items():
            chain.mint(account, amount)

    logger.info(
        "Simulated host ready: tld=%s, %d funded account(s)",
        settings.tld,
        len(settings.genesis_balances),
    )
    return chain


def build_registrar(
    chain: InMemoryChain,
    repository: RegistrarRepository,
    events: EventPublisher,
    address: str,
    tld: str,
) -> SubdomainRegistrar:
    """Wire a registrar to the host through clients bound to its address."""
    return SubdomainRegistrar(
        address=address,
        tld_node=namehash(tld),
        registry=ChainNamingRegistry(chain, address),
        resolvers=ChainResolvers(chain, address),
        deeds=ChainDeedRegistry(chain, address),
        payments=ChainPayments(chain, address),
        host=ChainTransactions(chain),
        repository=repository,
        events=events,
    )
