"""
Unit tests for domain ports, records and exceptions.

Tests verify:
- Records carry the documented defaults and listing rule
- Custody state enum is a str enum
- Exceptions are properly structured
- Domain purity (zero framework imports)
"""

import json
import subprocess
from enum import Enum

import pytest

from src.domain.events import DomainConfigured, NewRegistration
from src.domain.exceptions import (
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
from src.domain.identity import ZERO_ADDRESS, labelhash
from src.domain.ports import CustodyRecord, CustodyState, Domain, RegistrarState


class TestCustodyStateEnum:
    def test_custody_state_is_str_enum(self) -> None:
        assert issubclass(CustodyState, Enum)
        assert issubclass(CustodyState, str)

    def test_custody_state_values(self) -> None:
        assert CustodyState.ACTIVE == "ACTIVE"
        assert CustodyState.SURRENDERED == "SURRENDERED"

    def test_custody_state_json_serializable(self) -> None:
        assert json.dumps(CustodyState.SURRENDERED) == '"SURRENDERED"'


class TestRecords:
    def test_domain_defaults_are_unlisted(self) -> None:
        domain = Domain()
        assert domain.name == ""
        assert domain.owner == ZERO_ADDRESS
        assert domain.price == 0
        assert domain.referral_fee_ppm == 0
        assert not domain.is_listed(labelhash("example"))

    def test_domain_listed_iff_name_hashes_to_label(self) -> None:
        domain = Domain(name="example", owner="0x" + "a1" * 20, price=10)
        assert domain.is_listed(labelhash("example"))
        assert not domain.is_listed(labelhash("other"))

    def test_custody_record_defaults(self) -> None:
        record = CustodyRecord()
        assert record.override == ZERO_ADDRESS
        assert record.state == CustodyState.ACTIVE

    def test_registrar_state_defaults(self) -> None:
        state = RegistrarState()
        assert state.owner == ZERO_ADDRESS
        assert state.stopped is False


class TestEvents:
    def test_event_kind_is_class_name(self) -> None:
        event = DomainConfigured(
            label=labelhash("example"), name="example", owner=ZERO_ADDRESS, price=1, referral_fee_ppm=0
        )
        assert event.kind == "DomainConfigured"

    def test_to_dict_hex_encodes_bytes(self) -> None:
        event = NewRegistration(
            label=b"\x01" * 32, subdomain="alice", owner=ZERO_ADDRESS, referrer=ZERO_ADDRESS, price=5
        )
        data = event.to_dict()
        assert data["label"] == "0x" + "01" * 32
        assert data["subdomain"] == "alice"
        assert data["price"] == 5


class TestDomainExceptions:
    @pytest.mark.parametrize(
        "error_type",
        [
            AuthorizationFailure,
            AvailabilityConflict,
            ListingInvalid,
            InsufficientPayment,
            InvalidListingTerms,
            InvariantViolation,
            RegistrarStopped,
            RentNotSupported,
            ExternalCallFailed,
        ],
    )
    def test_inherits_registrar_error(self, error_type: type[Exception]) -> None:
        assert issubclass(error_type, RegistrarError)

    def test_custody_surrendered_is_invariant_violation(self) -> None:
        assert issubclass(CustodySurrendered, InvariantViolation)

    def test_insufficient_funds_is_external_failure(self) -> None:
        assert issubclass(InsufficientFunds, ExternalCallFailed)


class TestDomainPurity:
    """Tests for domain purity - zero framework imports."""

    @pytest.mark.parametrize("pattern", ["fastapi", "pydantic", "psycopg"])
    def test_no_framework_imports_in_domain(self, pattern: str) -> None:
        result = subprocess.run(
            ["grep", "-rE", f"(from|import) {pattern}", "src/domain/"],
            capture_output=True,
            text=True,
        )
        assert result.returncode != 0, f"{pattern} import found: {result.stdout}"
