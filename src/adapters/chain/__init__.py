"""Host ledger adapters - Simulated chain and account-bound clients."""

from .bootstrap import build_chain, build_registrar
from .client import (
    ChainDeedRegistry,
    ChainNamingRegistry,
    ChainPayments,
    ChainResolvers,
    ChainTransactions,
)
from .memory import Deed, InMemoryChain

__all__ = [
    "ChainDeedRegistry",
    "ChainNamingRegistry",
    "ChainPayments",
    "ChainResolvers",
    "ChainTransactions",
    "Deed",
    "InMemoryChain",
    "build_chain",
    "build_registrar",
]
