"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the registrar requires
from the host ledger and from its own storage, together with the plain
records that travel across them. Adapters implement these protocols.
"""

from contextlib import AbstractContextManager
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .events import RegistrarEvent
from .identity import ZERO_ADDRESS, labelhash


class CustodyState(str, Enum):
    """
    Custody lifecycle of a legacy deed held by the registrar.

    State Transitions (forward-only):
    - ACTIVE -> SURRENDERED (custody reclaimed, or registry ownership assigned)

    Terminal States:
    - SURRENDERED: no custody operation is accepted for the label again
    """

    ACTIVE = "ACTIVE"
    SURRENDERED = "SURRENDERED"


@dataclass
class Domain:
    """Sale listing for a top-level label."""

    name: str = ""
    owner: str = ZERO_ADDRESS
    price: int = 0
    referral_fee_ppm: int = 0

    def is_listed(self, label: bytes) -> bool:
        """A domain is listed iff its stored name hashes back to its label."""
        return labelhash(self.name) == label


@dataclass
class CustodyRecord:
    """Override of the ultimate owner of a deed held by the registrar."""

    override: str = ZERO_ADDRESS
    state: CustodyState = CustodyState.ACTIVE


@dataclass
class RegistrarState:
    """Administrator and emergency-stop flag of the registrar."""

    owner: str = ZERO_ADDRESS
    stopped: bool = False


@dataclass(frozen=True)
class DeedRecord:
    """Custody token of a legacy name: its holder and the holder before."""

    owner: str
    previous_owner: str


class NamingRegistry(Protocol):
    """Port interface for the hierarchical naming registry."""

    def owner_of(self, node: bytes) -> str:
        """Return the controller of a node (ZERO_ADDRESS when unowned)."""
        ...

    def set_owner(self, node: bytes, owner: str) -> None: ...

    def set_subnode_owner(self, parent: bytes, label: bytes, owner: str) -> bytes:
        """
        Assign the child of parent identified by label to owner.

        Returns:
            The child node identifier
        """
        ...

    def set_resolver(self, node: bytes, resolver: str) -> None: ...


class ResolverGateway(Protocol):
    """Port interface for resolver contracts, addressed by resolver address."""

    def set_addr(self, resolver: str, node: bytes, address: str) -> None:
        """Bind the address record of node on the given resolver."""
        ...


class DeedRegistry(Protocol):
    """Port interface for the legacy custody (auction) registry."""

    @property
    def address(self) -> str: ...

    def root_node(self) -> bytes:
        """Node under which the legacy registry allocates names."""
        ...

    def deed(self, label: bytes) -> DeedRecord | None:
        """Return the custody token for label, or None if there is none."""
        ...

    def transfer(self, label: bytes, new_holder: str) -> None: ...


class PaymentLedger(Protocol):
    """Port interface for native-currency value movements."""

    def collect(self, payer: str, amount: int) -> None:
        """
        Move the payment attached to a call from payer to the registrar.

        Raises:
            InsufficientFunds: If payer cannot cover amount
        """
        ...

    def pay(self, recipient: str, amount: int) -> None:
        """Move amount from the registrar to recipient."""
        ...


class TransactionBoundary(Protocol):
    """Port interface for an all-or-nothing unit of execution."""

    def atomic(self) -> AbstractContextManager[None]:
        """
        Open a unit of execution.

        Effects performed inside commit together when the block exits
        normally and are reverted when it raises.
        """
        ...


class RegistrarRepository(Protocol):
    """Port interface for the registrar's own persisted layout."""

    def atomic(self) -> AbstractContextManager[None]: ...

    def get_domain(self, label: bytes) -> Domain:
        """Return the domain for label (an empty Domain if never configured)."""
        ...

    def save_domain(self, label: bytes, domain: Domain) -> None: ...

    def get_custody(self, label: bytes) -> CustodyRecord: ...

    def save_custody(self, label: bytes, record: CustodyRecord) -> None: ...

    def get_state(self) -> RegistrarState: ...

    def save_state(self, state: RegistrarState) -> None: ...


class EventPublisher(Protocol):
    """Port interface for registrar event delivery."""

    def publish(self, event: RegistrarEvent) -> None: ...
