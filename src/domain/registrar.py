"""
Subdomain registrar domain service - Listing, sale and custody state machine.

The controller of a top-level name hands custody of it to the registrar,
lists it with a price and a referral fee rate, and end users then buy
child names under it. Proceeds are split between the listing owner and
an optional referrer.

Authority
=========

controller(label)
    Naming registry controller of the top-level node. When that is the
    registrar itself, the internal listing owner is authoritative; when no
    listing owner exists yet, the legacy deed's ultimate owner is.

ultimate_owner(label)
    For legacy deeds held by the registrar: the custody override if set,
    otherwise the deed's previous holder. ZERO_ADDRESS when the registrar
    does not hold the deed or custody was surrendered.

Custody State Machine (forward-only)
====================================

    ACTIVE -> SURRENDERED   (reclaim_custody or assign_external_ownership)

SURRENDERED is terminal: every later custody call for the label raises
CustodySurrendered.

Atomicity
=========

Each public mutating method runs inside one unit of execution spanning
the host ledger and the registrar repository. Any exception reverts
registry writes, value transfers (including payment already forwarded
within the call) and listing updates. Events are published once the
repository commits, before the host unit is released. Public reads join
the same serialized units, so they never observe a call in flight.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from functools import reduce

from .events import (
    CustodyOverridden,
    CustodyReclaimed,
    DomainConfigured,
    DomainUnlisted,
    ExternalOwnershipAssigned,
    NewRegistration,
    OwnerChanged,
    RegistrarEvent,
    RegistrarHalted,
    RegistrarOwnerChanged,
)
from .exceptions import (
    AuthorizationFailure,
    AvailabilityConflict,
    CustodySurrendered,
    InsufficientPayment,
    InvalidListingTerms,
    InvariantViolation,
    ListingInvalid,
    RegistrarStopped,
    RentNotSupported,
)
from .identity import (
    ZERO_ADDRESS,
    interface_id,
    is_zero,
    labelhash,
    normalize_address,
    subnode,
    to_hex,
)
from .ports import (
    CustodyState,
    DeedRegistry,
    Domain,
    EventPublisher,
    NamingRegistry,
    PaymentLedger,
    RegistrarRepository,
    RegistrarState,
    ResolverGateway,
    TransactionBoundary,
)

logger = logging.getLogger(__name__)

PPM = 1_000_000
MAX_AMOUNT = 2**256 - 1

ERC165_INTERFACE_ID = interface_id("supportsInterface(bytes4)")
REGISTRAR_INTERFACE_ID = bytes(
    reduce(
        lambda acc, selector: [a ^ b for a, b in zip(acc, selector)],
        (
            interface_id("query(bytes32,string)"),
            interface_id("register(bytes32,string,address,address,address)"),
            interface_id("rentDue(bytes32,string)"),
            interface_id("payRent(bytes32,string)"),
        ),
        [0, 0, 0, 0],
    )
)


@dataclass(frozen=True)
class QueryResult:
    """Sale terms of a subdomain; empty name means unavailable."""

    name: str
    price: int
    rent: int
    referral_fee_ppm: int

    @property
    def available(self) -> bool:
        return self.name != ""


UNAVAILABLE = QueryResult(name="", price=0, rent=0, referral_fee_ppm=0)


@dataclass
class SubdomainRegistrar:
    """
    Domain service for delegated subdomain sales.

    Orchestrates authorization, the listing store, payment splitting and
    provisioning of child names in the naming registry and resolver.
    """

    address: str
    tld_node: bytes
    registry: NamingRegistry
    resolvers: ResolverGateway
    deeds: DeedRegistry
    payments: PaymentLedger
    host: TransactionBoundary
    repository: RegistrarRepository
    events: EventPublisher

    def __post_init__(self) -> None:
        self.address = normalize_address(self.address)

    # ------------------------------------------------------------------
    # Access control
    # ------------------------------------------------------------------

    def controller(self, label: bytes) -> str:
        """
        Resolve who controls a top-level label.

        Precedence is strict: the naming registry first; internal listing
        state only when the registry names the registrar as controller.
        """
        with self._read():
            registry_owner = self.registry.owner_of(subnode(self.tld_node, label))
            if registry_owner != self.address:
                return registry_owner

            domain_owner = self.repository.get_domain(label).owner
            if not is_zero(domain_owner):
                return domain_owner
            return self.ultimate_owner(label)

    def ultimate_owner(self, label: bytes) -> str:
        """
        Resolve the owner of a legacy deed held on someone's behalf.

        Returns:
            The custody override if set, else the deed's previous holder.
            ZERO_ADDRESS if the registrar does not hold the deed or custody
            of the label was surrendered.
        """
        with self._read():
            deed = self.deeds.deed(label)
            if deed is None or deed.owner != self.address:
                return ZERO_ADDRESS

            record = self.repository.get_custody(label)
        if record.state == CustodyState.SURRENDERED:
            return ZERO_ADDRESS
        if not is_zero(record.override):
            return record.override
        return deed.previous_owner

    def _authorize(self, caller: str, authority: str, action: str) -> None:
        if is_zero(authority) or caller != authority:
            logger.info("Rejected %s: caller %s is not %s", action, caller, authority)
            raise AuthorizationFailure(action)

    def _authorize_custody(self, caller: str, label: bytes, action: str) -> None:
        if self.repository.get_custody(label).state == CustodyState.SURRENDERED:
            raise CustodySurrendered(to_hex(label))
        self._authorize(caller, self.ultimate_owner(label), action)

    def _require_running(self) -> None:
        if self.repository.get_state().stopped:
            raise RegistrarStopped()

    def _require_external_owner(self, owner: str) -> None:
        # No caller can act as the registrar, so such a listing is unmanageable.
        if owner == self.address:
            raise InvariantViolation("listing owner cannot be the registrar")

    @contextmanager
    def _transaction(self) -> Iterator[list[RegistrarEvent]]:
        """
        Run one unit of execution and publish its events once committed.

        Events go out while the host unit is still held, so their order
        matches commit order across callers.
        """
        emitted: list[RegistrarEvent] = []
        with self.host.atomic():
            with self.repository.atomic():
                yield emitted
            for event in emitted:
                self.events.publish(event)

    @contextmanager
    def _read(self) -> Iterator[None]:
        # Reads join the same serialized units as writes.
        with self.host.atomic(), self.repository.atomic():
            yield

    # ------------------------------------------------------------------
    # Domain listing store
    # ------------------------------------------------------------------

    def configure_domain(
        self,
        caller: str,
        name: str,
        price: int,
        referral_fee_ppm: int,
        owner: str | None = None,
    ) -> bytes:
        """
        List a top-level name for sale, or update its terms.

        Args:
            caller: Address invoking the call (must be the controller)
            name: Top-level label as text
            price: Price per subdomain in minor units
            referral_fee_ppm: Referrer share in parts per million
            owner: Listing owner receiving proceeds (defaults to caller)

        Returns:
            Label hash of the configured name

        Raises:
            RegistrarStopped: If the registrar is stopped
            AuthorizationFailure: If caller is not the controller
            InvalidListingTerms: If price or fee rate is out of range
            InvariantViolation: If owner is the registrar itself
        """
        caller = normalize_address(caller)
        label = labelhash(name)

        with self._transaction() as emitted:
            self._require_running()
            self._authorize(caller, self.controller(label), "configure_domain")
            if not 0 <= price <= MAX_AMOUNT or not 0 <= referral_fee_ppm <= PPM:
                raise InvalidListingTerms(f"price={price} referral_fee_ppm={referral_fee_ppm}")
            listing_owner = caller if is_zero(owner) else normalize_address(owner)
            self._require_external_owner(listing_owner)

            domain = self.repository.get_domain(label)
            domain.owner = listing_owner
            if not domain.is_listed(label):
                domain.name = name
            domain.price = price
            domain.referral_fee_ppm = referral_fee_ppm
            self.repository.save_domain(label, domain)

            emitted.append(
                DomainConfigured(
                    label=label,
                    name=name,
                    owner=domain.owner,
                    price=price,
                    referral_fee_ppm=referral_fee_ppm,
                )
            )
        return label

    def unlist_domain(self, caller: str, name: str) -> bytes:
        """
        Withdraw a name from sale without touching registry ownership.

        The slot is kept: name, price and fee are zeroed and the owner is
        pinned to the controller resolved at unlist time.
        """
        caller = normalize_address(caller)
        label = labelhash(name)

        with self._transaction() as emitted:
            controller = self.controller(label)
            self._authorize(caller, controller, "unlist_domain")

            if self.registry.owner_of(subnode(self.tld_node, label)) != self.address:
                logger.warning(
                    "Unlisting %s while the registry no longer names the registrar as controller",
                    name,
                )

            self.repository.save_domain(label, Domain(owner=controller))
            emitted.append(DomainUnlisted(label=label))
        return label

    def transfer(self, caller: str, name: str, new_owner: str) -> None:
        """Reassign the listing owner; registry ownership is unchanged."""
        caller = normalize_address(caller)
        label = labelhash(name)

        with self._transaction() as emitted:
            self._authorize(caller, self.controller(label), "transfer")
            domain = self.repository.get_domain(label)
            old_owner = domain.owner
            domain.owner = normalize_address(new_owner)
            self._require_external_owner(domain.owner)
            self.repository.save_domain(label, domain)
            emitted.append(OwnerChanged(label=label, old_owner=old_owner, new_owner=domain.owner))

    def set_resolver(self, caller: str, name: str, resolver: str) -> None:
        """Set the resolver of a top-level name held by the registrar."""
        caller = normalize_address(caller)
        label = labelhash(name)

        with self._transaction():
            self._authorize(caller, self.controller(label), "set_resolver")
            self.registry.set_resolver(
                subnode(self.tld_node, label), normalize_address(resolver)
            )

    def domain(self, label: bytes) -> Domain:
        with self._read():
            return self.repository.get_domain(label)

    # ------------------------------------------------------------------
    # Registration engine
    # ------------------------------------------------------------------

    def register(
        self,
        caller: str,
        label: bytes,
        subdomain: str,
        resolver: str,
        value: int = 0,
        owner: str | None = None,
        referrer: str | None = None,
    ) -> bytes:
        """
        Sell a subdomain of a listed name.

        The attached value is collected from the caller first; every
        failure afterwards rolls the collection back.

        Preconditions (checked in order):
        1. Child node is unowned in the naming registry
        2. Label is listed
        3. value >= listed price

        Args:
            caller: Buyer address; pays value
            label: Label hash of the listed top-level name
            subdomain: Child label as text (hashed as given)
            resolver: Resolver address to install on the child
            value: Payment attached to the call
            owner: Final owner of the child (defaults to caller)
            referrer: Address to receive the referral fee

        Returns:
            Node identifier of the new subdomain

        Raises:
            RegistrarStopped, InsufficientFunds, AvailabilityConflict,
            ListingInvalid, InsufficientPayment, ExternalCallFailed
        """
        caller = normalize_address(caller)
        subdomain_owner = caller if is_zero(owner) else normalize_address(owner)
        referrer = normalize_address(referrer)
        domain_node = subnode(self.tld_node, label)
        sub_label = labelhash(subdomain)
        child = subnode(domain_node, sub_label)

        with self._transaction() as emitted:
            self._require_running()
            self.payments.collect(caller, value)

            if not is_zero(self.registry.owner_of(child)):
                raise AvailabilityConflict(subdomain)

            domain = self.repository.get_domain(label)
            if not domain.is_listed(label):
                raise ListingInvalid(to_hex(label))
            if value < domain.price:
                raise InsufficientPayment(f"price={domain.price} value={value}")

            self._settle(caller, domain, value, referrer)
            self._provision(domain_node, sub_label, resolver, subdomain_owner)

            emitted.append(
                NewRegistration(
                    label=label,
                    subdomain=subdomain,
                    owner=subdomain_owner,
                    referrer=referrer,
                    price=domain.price,
                )
            )

        logger.info("Registered %s under %s for %s", subdomain, domain.name, subdomain_owner)
        return child

    def _settle(self, caller: str, domain: Domain, value: int, referrer: str) -> None:
        """Refund overpayment, then split the price between referrer and owner."""
        if value > domain.price:
            self.payments.pay(caller, value - domain.price)

        referral_fee = 0
        if (
            domain.referral_fee_ppm * domain.price > 0
            and not is_zero(referrer)
            and referrer != domain.owner
        ):
            referral_fee = domain.price * domain.referral_fee_ppm // PPM
            if referral_fee > 0:
                self.payments.pay(referrer, referral_fee)

        remainder = domain.price - referral_fee
        if remainder > 0:
            self.payments.pay(domain.owner, remainder)

    def _provision(self, domain_node: bytes, sub_label: bytes, resolver: str, owner: str) -> None:
        # The registrar holds the child until the address record is bound.
        resolver = normalize_address(resolver)
        child = self.registry.set_subnode_owner(domain_node, sub_label, self.address)
        self.registry.set_resolver(child, resolver)
        self.resolvers.set_addr(resolver, child, owner)
        self.registry.set_owner(child, owner)

    # ------------------------------------------------------------------
    # Query / introspection
    # ------------------------------------------------------------------

    def query(self, label: bytes, subdomain: str) -> QueryResult:
        """
        Report sale terms for a subdomain.

        The naming registry takes precedence: a child with any controller
        is unavailable whatever the listing says.
        """
        child = subnode(subnode(self.tld_node, label), labelhash(subdomain))
        with self._read():
            if not is_zero(self.registry.owner_of(child)):
                return UNAVAILABLE
            domain = self.repository.get_domain(label)

        return QueryResult(
            name=domain.name,
            price=domain.price,
            rent=0,
            referral_fee_ppm=domain.referral_fee_ppm,
        )

    def rent_due(self, label: bytes, subdomain: str) -> int:
        """Rent is not implemented: always 0, meaning never due."""
        return 0

    def pay_rent(self, label: bytes, subdomain: str) -> None:
        raise RentNotSupported(subdomain)

    def supports_interface(self, interface: bytes) -> bool:
        return interface in (ERC165_INTERFACE_ID, REGISTRAR_INTERFACE_ID)

    # ------------------------------------------------------------------
    # Deed custody (legacy names)
    # ------------------------------------------------------------------

    def custody_state(self, label: bytes) -> CustodyState:
        with self._read():
            return self.repository.get_custody(label).state

    def set_custody_override(self, caller: str, label: bytes, new_owner: str) -> None:
        """
        Replace the ultimate owner of a deed held by the registrar.

        Raises:
            CustodySurrendered: If custody of the label was surrendered
            AuthorizationFailure: If caller is not the ultimate owner
            InvariantViolation: If new_owner is the registrar itself
        """
        caller = normalize_address(caller)
        new_owner = normalize_address(new_owner)

        with self._transaction() as emitted:
            self._authorize_custody(caller, label, "set_custody_override")
            if new_owner == self.address:
                raise InvariantViolation("custody override cannot be the registrar")

            record = self.repository.get_custody(label)
            record.override = new_owner
            self.repository.save_custody(label, record)
            emitted.append(CustodyOverridden(label=label, new_owner=new_owner))

    def reclaim_custody(self, caller: str, label: bytes) -> None:
        """
        Hand the deed back to its ultimate owner.

        Only allowed once a successor controls the legacy root node.
        Custody of the label is surrendered for good.
        """
        caller = normalize_address(caller)

        with self._transaction() as emitted:
            self._authorize_custody(caller, label, "reclaim_custody")
            if self.registry.owner_of(self.deeds.root_node()) == self.deeds.address:
                raise InvariantViolation("legacy registrar still controls the root node")

            self.deeds.transfer(label, caller)
            self._surrender(label)
            emitted.append(CustodyReclaimed(label=label, owner=caller))

    def assign_external_ownership(self, caller: str, label: bytes, new_owner: str) -> None:
        """
        Set registry ownership of a legacy name directly.

        One-shot: custody of the label is surrendered afterwards.
        """
        caller = normalize_address(caller)
        new_owner = normalize_address(new_owner)

        with self._transaction() as emitted:
            self._authorize_custody(caller, label, "assign_external_ownership")
            self.registry.set_owner(subnode(self.deeds.root_node(), label), new_owner)
            self._surrender(label)
            emitted.append(ExternalOwnershipAssigned(label=label, owner=new_owner))

    def _surrender(self, label: bytes) -> None:
        record = self.repository.get_custody(label)
        record.state = CustodyState.SURRENDERED
        self.repository.save_custody(label, record)

    # ------------------------------------------------------------------
    # Registrar administration
    # ------------------------------------------------------------------

    def registrar_state(self) -> RegistrarState:
        with self._read():
            return self.repository.get_state()

    def initialize(self, owner: str) -> RegistrarState:
        """Assign the administrator if none is recorded yet. Idempotent."""
        with self._transaction():
            state = self.repository.get_state()
            if is_zero(state.owner):
                state.owner = normalize_address(owner)
                self.repository.save_state(state)
        return state

    def stop(self, caller: str) -> None:
        """Halt registrations and listing changes permanently."""
        caller = normalize_address(caller)

        with self._transaction() as emitted:
            state = self.repository.get_state()
            self._authorize(caller, state.owner, "stop")
            self._require_running()
            state.stopped = True
            self.repository.save_state(state)
            emitted.append(RegistrarHalted(by=caller))
        logger.warning("Registrar stopped by %s", caller)

    def transfer_registrar_ownership(self, caller: str, new_owner: str) -> None:
        caller = normalize_address(caller)

        with self._transaction() as emitted:
            state = self.repository.get_state()
            self._authorize(caller, state.owner, "transfer_registrar_ownership")
            state.owner = normalize_address(new_owner)
            self.repository.save_state(state)
            emitted.append(RegistrarOwnerChanged(old_owner=caller, new_owner=state.owner))
