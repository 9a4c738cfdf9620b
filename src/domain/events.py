"""
Registrar events - Records of committed state changes.

Events are buffered while a call runs and handed to the EventPublisher
only after the call's unit of execution commits.
"""

from dataclasses import asdict, dataclass

from .identity import to_hex


@dataclass(frozen=True)
class RegistrarEvent:
    """Base class for registrar events."""

    def to_dict(self) -> dict[str, object]:
        """Flatten the event for logging, hex-encoding identifiers."""
        return {
            key: to_hex(value) if isinstance(value, bytes) else value
            for key, value in asdict(self).items()
        }

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class DomainConfigured(RegistrarEvent):
    label: bytes
    name: str
    owner: str
    price: int
    referral_fee_ppm: int


@dataclass(frozen=True)
class DomainUnlisted(RegistrarEvent):
    label: bytes


@dataclass(frozen=True)
class OwnerChanged(RegistrarEvent):
    label: bytes
    old_owner: str
    new_owner: str


@dataclass(frozen=True)
class NewRegistration(RegistrarEvent):
    label: bytes
    subdomain: str
    owner: str
    referrer: str
    price: int


@dataclass(frozen=True)
class CustodyOverridden(RegistrarEvent):
    label: bytes
    new_owner: str


@dataclass(frozen=True)
class CustodyReclaimed(RegistrarEvent):
    label: bytes
    owner: str


@dataclass(frozen=True)
class ExternalOwnershipAssigned(RegistrarEvent):
    label: bytes
    owner: str


@dataclass(frozen=True)
class RegistrarHalted(RegistrarEvent):
    by: str


@dataclass(frozen=True)
class RegistrarOwnerChanged(RegistrarEvent):
    old_owner: str
    new_owner: str
