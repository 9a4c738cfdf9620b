"""
Domain exceptions - Semantic error types for the registrar.

Every exception aborts the call that raised it. Callers never observe a
partial state change: the transactional boundary around each entry point
rolls back registry writes, balance movements and listing updates.
"""


class RegistrarError(Exception):
    """Base class for registrar domain errors."""

    pass


class AuthorizationFailure(RegistrarError):
    """Caller is not the recognized controller or ultimate owner."""

    pass


class AvailabilityConflict(RegistrarError):
    """Target subdomain is already owned in the naming registry."""

    pass


class ListingInvalid(RegistrarError):
    """Label is not currently listed for sale."""

    pass


class InsufficientPayment(RegistrarError):
    """Attached payment is below the listed price."""

    pass


class InvalidListingTerms(RegistrarError):
    """Price or referral fee rate is out of range."""

    pass


class InvariantViolation(RegistrarError):
    """Operation would break a custody invariant."""

    pass


class CustodySurrendered(InvariantViolation):
    """Custody of the label was already given up; no further custody calls."""

    pass


class RegistrarStopped(RegistrarError):
    """Registrar has been stopped by its administrator."""

    pass


class RentNotSupported(RegistrarError):
    """Rent is not implemented; subdomains never fall due."""

    pass


class ExternalCallFailed(RegistrarError):
    """The host rejected a call to an external registry, resolver or ledger."""

    pass


class InsufficientFunds(ExternalCallFailed):
    """Payer balance cannot cover a value transfer."""

    pass
