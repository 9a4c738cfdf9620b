"""
In-memory host ledger - Simulated naming registry, resolvers, deeds and balances.

This module provides an in-process stand-in for the host the registrar
runs against. It enforces the same authority rules as the real
collaborators (only a node's controller may write it, only a deed's
holder may transfer it, payers must cover what they send) and gives
every call the host's execution guarantees:

- **Serialized**: a re-entrant lock admits one unit of execution at a time.
- **All-or-nothing**: atomic() snapshots the whole state on entry and
  restores it if the unit raises, including value already moved.

Nested atomic() blocks join the outermost unit.
"""

import copy
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from src.domain.exceptions import ExternalCallFailed, InsufficientFunds
from src.domain.identity import ROOT_NODE, ZERO_ADDRESS, normalize_address, subnode, to_hex

logger = logging.getLogger(__name__)


@dataclass
class Deed:
    """Legacy custody token for a name."""

    owner: str
    previous_owner: str = ZERO_ADDRESS


@dataclass
class _LedgerState:
    owners: dict[bytes, str] = field(default_factory=dict)
    resolvers: dict[bytes, str] = field(default_factory=dict)
    addr_records: dict[str, dict[bytes, str]] = field(default_factory=dict)
    deeds: dict[bytes, Deed] = field(default_factory=dict)
    balances: dict[str, int] = field(default_factory=dict)


class InMemoryChain:
    """
    Serialized, transactional host state.

    The node owners table behaves like a hierarchical naming registry
    rooted at ROOT_NODE, which the root account controls. The legacy deed
    registry lives at deed_registry_address and allocates names under
    deed_root_node.
    """

    def __init__(
        self,
        root_owner: str,
        deed_registry_address: str,
        deed_root_node: bytes,
    ) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self._state = _LedgerState()
        self.deed_registry_address = normalize_address(deed_registry_address)
        self.deed_root_node = deed_root_node
        self._state.owners[ROOT_NODE] = normalize_address(root_owner)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Run a unit of execution.

        Holds the ledger lock for the whole unit. On exception the state
        captured at the start of the outermost unit is restored.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            snapshot = copy.deepcopy(self._state)
            self._depth = 1
            try:
                yield
            except BaseException:
                self._state = snapshot
                logger.debug("Rolled back unit of execution")
                raise
            finally:
                self._depth = 0

    # ------------------------------------------------------------------
    # Naming registry
    # ------------------------------------------------------------------

    def owner(self, node: bytes) -> str:
        return self._state.owners.get(node, ZERO_ADDRESS)

    def resolver(self, node: bytes) -> str:
        return self._state.resolvers.get(node, ZERO_ADDRESS)

    def _require_node_owner(self, sender: str, node: bytes) -> None:
        if self.owner(node) != normalize_address(sender):
            raise ExternalCallFailed(f"{sender} does not control node {to_hex(node)}")

    def set_owner(self, sender: str, node: bytes, owner: str) -> None:
        with self.atomic():
            self._require_node_owner(sender, node)
            self._state.owners[node] = normalize_address(owner)

    def set_subnode_owner(self, sender: str, parent: bytes, label: bytes, owner: str) -> bytes:
        with self.atomic():
            self._require_node_owner(sender, parent)
            node = subnode(parent, label)
            self._state.owners[node] = normalize_address(owner)
            return node

    def set_resolver(self, sender: str, node: bytes, resolver: str) -> None:
        with self.atomic():
            self._require_node_owner(sender, node)
            self._state.resolvers[node] = normalize_address(resolver)

    # ------------------------------------------------------------------
    # Resolvers
    # ------------------------------------------------------------------

    def deploy_resolver(self, address: str) -> None:
        with self.atomic():
            self._state.addr_records.setdefault(normalize_address(address), {})

    def set_addr(self, sender: str, resolver: str, node: bytes, address: str) -> None:
        """Bind an address record; only the node's controller may do so."""
        with self.atomic():
            records = self._state.addr_records.get(normalize_address(resolver))
            if records is None:
                raise ExternalCallFailed(f"no resolver deployed at {resolver}")
            self._require_node_owner(sender, node)
            records[node] = normalize_address(address)

    def addr(self, resolver: str, node: bytes) -> str:
        records = self._state.addr_records.get(normalize_address(resolver), {})
        return records.get(node, ZERO_ADDRESS)

    # ------------------------------------------------------------------
    # Legacy deed registry
    # ------------------------------------------------------------------

    def deed(self, label: bytes) -> Deed | None:
        deed = self._state.deeds.get(label)
        return copy.copy(deed) if deed is not None else None

    def issue_deed(self, label: bytes, owner: str) -> None:
        """Grant a deed and the matching registry node, as an auction win would."""
        with self.atomic():
            owner = normalize_address(owner)
            self._state.deeds[label] = Deed(owner=owner)
            self.set_subnode_owner(
                self.deed_registry_address, self.deed_root_node, label, owner
            )

    def transfer_deed(self, sender: str, label: bytes, new_owner: str) -> None:
        """
        Move a deed to a new holder.

        The registry node follows the deed while the deed registry still
        controls its root node.
        """
        with self.atomic():
            deed = self._state.deeds.get(label)
            sender = normalize_address(sender)
            if deed is None or deed.owner != sender:
                raise ExternalCallFailed(f"{sender} does not hold deed {to_hex(label)}")

            new_owner = normalize_address(new_owner)
            deed.previous_owner = deed.owner
            deed.owner = new_owner
            if self.owner(self.deed_root_node) == self.deed_registry_address:
                self._state.owners[subnode(self.deed_root_node, label)] = new_owner

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def balance_of(self, account: str) -> int:
        return self._state.balances.get(normalize_address(account), 0)

    def mint(self, account: str, amount: int) -> None:
        with self.atomic():
            account = normalize_address(account)
            self._state.balances[account] = self.balance_of(account) + amount

    def transfer_value(self, sender: str, recipient: str, amount: int) -> None:
        with self.atomic():
            if amount < 0:
                raise ExternalCallFailed(f"negative value transfer: {amount}")
            sender = normalize_address(sender)
            recipient = normalize_address(recipient)
            balance = self.balance_of(sender)
            if balance < amount:
                raise InsufficientFunds(f"{sender} has {balance}, needs {amount}")
            self._state.balances[sender] = balance - amount
            self._state.balances[recipient] = self.balance_of(recipient) + amount
