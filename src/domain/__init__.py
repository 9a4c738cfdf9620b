"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic of the delegated subdomain
registrar. It defines its own port interfaces for the host ledger and
storage, ensuring true hexagonal architecture decoupling.
"""

from .exceptions import (
    AuthorizationFailure,
    AvailabilityConflict,
    CustodySurrendered,
    ExternalCallFailed,
    InsufficientFunds,
    InsufficientPayment,
    InvalidListingTerms,
    InvariantViolation,
    ListingInvalid,
    RegistrarError,
    RegistrarStopped,
    RentNotSupported,
)
from .identity import ZERO_ADDRESS, labelhash, namehash, subnode
from .ports import (
    CustodyRecord,
    CustodyState,
    DeedRecord,
    Domain,
    EventPublisher,
    NamingRegistry,
    PaymentLedger,
    RegistrarRepository,
    RegistrarState,
    ResolverGateway,
    TransactionBoundary,
)
from .registrar import QueryResult, SubdomainRegistrar

__all__ = [
    "AuthorizationFailure",
    "AvailabilityConflict",
    "CustodyRecord",
    "CustodyState",
    "CustodySurrendered",
    "DeedRecord",
    "Domain",
    "EventPublisher",
    "ExternalCallFailed",
    "InsufficientFunds",
    "InsufficientPayment",
    "InvalidListingTerms",
    "InvariantViolation",
    "ListingInvalid",
    "NamingRegistry",
    "PaymentLedger",
    "QueryResult",
    "RegistrarError",
    "RegistrarRepository",
    "RegistrarState",
    "RegistrarStopped",
    "RentNotSupported",
    "ResolverGateway",
    "SubdomainRegistrar",
    "TransactionBoundary",
    "ZERO_ADDRESS",
    "labelhash",
    "namehash",
    "subnode",
]
