"""
Host clients - Account-bound adapters implementing the registrar's ports.

Each client wraps the host ledger and issues every write as the account
it is bound to (the registrar), the way a contract's outgoing calls carry
its own address as sender. The clients hold no state of their own.

Uses structural subtyping - no explicit inheritance from the Protocols.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from src.domain.identity import normalize_address
from src.domain.ports import DeedRecord

from .memory import InMemoryChain


class ChainNamingRegistry:
    """Implements NamingRegistry protocol."""

    def __init__(self, chain: InMemoryChain, account: str) -> None:
        self._chain = chain
        self._account = normalize_address(account)

    def owner_of(self, node: bytes) -> str:
        return self._chain.owner(node)

    def set_owner(self, node: bytes, owner: str) -> None:
        self._chain.set_owner(self._account, node, owner)

    def set_subnode_owner(self, parent: bytes, label: bytes, owner: str) -> bytes:
        return self._chain.set_subnode_owner(self._account, parent, label, owner)

    def set_resolver(self, node: bytes, resolver: str) -> None:
        self._chain.set_resolver(self._account, node, resolver)


class ChainResolvers:
    """Implements ResolverGateway protocol."""

    def __init__(self, chain: InMemoryChain, account: str) -> None:
        self._chain = chain
        self._account = normalize_address(account)

    def set_addr(self, resolver: str, node: bytes, address: str) -> None:
        self._chain.set_addr(self._account, resolver, node, address)


class ChainDeedRegistry:
    """Implements DeedRegistry protocol."""

    def __init__(self, chain: InMemoryChain, account: str) -> None:
        self._chain = chain
        self._account = normalize_address(account)

    @property
    def address(self) -> str:
        return self._chain.deed_registry_address

    def root_node(self) -> bytes:
        return self._chain.deed_root_node

    def deed(self, label: bytes) -> DeedRecord | None:
        deed = self._chain.deed(label)
        if deed is None:
            return None
        return DeedRecord(owner=deed.owner, previous_owner=deed.previous_owner)

    def transfer(self, label: bytes, new_holder: str) -> None:
        self._chain.transfer_deed(self._account, label, new_holder)


class ChainPayments:
    """Implements PaymentLedger protocol."""

    def __init__(self, chain: InMemoryChain, account: str) -> None:
        self._chain = chain
        self._account = normalize_address(account)

    def collect(self, payer: str, amount: int) -> None:
        self._chain.transfer_value(payer, self._account, amount)

    def pay(self, recipient: str, amount: int) -> None:
        self._chain.transfer_value(self._account, recipient, amount)


class ChainTransactions:
    """Implements TransactionBoundary protocol."""

    def __init__(self, chain: InMemoryChain) -> None:
        self._chain = chain

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._chain.atomic():
            yield
