"""
API v1 routes.

Defines REST endpoints for the delegated subdomain registrar. The
calling account is taken from the X-Caller header; every domain error
is translated to a generic HTTP error with no partial state change.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter, Depends, HTTPException, Path, status

from src.api.dependencies import get_caller, get_label, get_registrar_service
from src.api.models import (
    INTERFACE_PATTERN,
    ConfigureDomainRequest,
    CustodyOwnerRequest,
    DeedResponse,
    DomainResponse,
    ErrorResponse,
    InterfaceResponse,
    QueryResponse,
    RegisterRequest,
    RegisterResponse,
    RegistrarStateResponse,
    RentResponse,
    ResolverRequest,
    TransferRequest,
)
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
from src.domain.identity import from_hex, labelhash, to_hex
from src.domain.registrar import SubdomainRegistrar

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])

# Most specific class wins: lookup walks the exception's MRO.
ERROR_STATUS: dict[type[RegistrarError], tuple[int, str]] = {
    AuthorizationFailure: (status.HTTP_403_FORBIDDEN, "Caller is not authorized"),
    AvailabilityConflict: (status.HTTP_409_CONFLICT, "Subdomain is not available"),
    ListingInvalid: (status.HTTP_404_NOT_FOUND, "Domain is not listed"),
    InsufficientPayment: (status.HTTP_402_PAYMENT_REQUIRED, "Payment below listed price"),
    InsufficientFunds: (status.HTTP_402_PAYMENT_REQUIRED, "Insufficient funds"),
    InvalidListingTerms: (422, "Invalid listing terms"),
    CustodySurrendered: (status.HTTP_409_CONFLICT, "Custody already surrendered"),
    InvariantViolation: (status.HTTP_409_CONFLICT, "Custody invariant violated"),
    RegistrarStopped: (status.HTTP_503_SERVICE_UNAVAILABLE, "Registrar is stopped"),
    RentNotSupported: (status.HTTP_501_NOT_IMPLEMENTED, "Rent is not supported"),
    ExternalCallFailed: (status.HTTP_502_BAD_GATEWAY, "External registry rejected the call"),
}

_AUTH_RESPONSES = {
    403: {"model": ErrorResponse, "description": "Caller is not authorized"},
    422: {"description": "Validation error"},
}


@contextmanager
def translate_errors() -> Iterator[None]:
    """Map domain errors to HTTP errors with generic messages."""
    try:
        yield
    except RegistrarError as exc:
        for error_type in type(exc).__mro__:
            if error_type in ERROR_STATUS:
                status_code, detail = ERROR_STATUS[error_type]
                logger.info("Call rejected: %s(%s)", type(exc).__name__, exc)
                raise HTTPException(status_code=status_code, detail=detail) from None
        raise


def _domain_response(service: SubdomainRegistrar, label: bytes) -> DomainResponse:
    domain = service.domain(label)
    return DomainResponse(
        label=to_hex(label),
        name=domain.name,
        owner=domain.owner,
        price=domain.price,
        referral_fee_ppm=domain.referral_fee_ppm,
        listed=domain.is_listed(label),
        controller=service.controller(label),
    )


# ----------------------------------------------------------------------
# Domain listing store
# ----------------------------------------------------------------------


@router.post(
    "/domains",
    response_model=DomainResponse,
    responses={**_AUTH_RESPONSES, 503: {"model": ErrorResponse, "description": "Stopped"}},
    summary="List a name for sale",
    description="Create or update the sale listing of a top-level name. "
    "The caller must control the name.",
)
async def configure_domain(
    request_data: ConfigureDomainRequest,
    caller: str = Depends(get_caller),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> DomainResponse:
    with translate_errors():
        label = service.configure_domain(
            caller,
            request_data.name,
            request_data.price,
            request_data.referral_fee_ppm,
            owner=request_data.owner,
        )
    return _domain_response(service, label)


@router.delete(
    "/domains/{name}",
    response_model=DomainResponse,
    responses=_AUTH_RESPONSES,
    summary="Withdraw a name from sale",
)
async def unlist_domain(
    name: str,
    caller: str = Depends(get_caller),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> DomainResponse:
    with translate_errors():
        label = service.unlist_domain(caller, name)
    return _domain_response(service, label)


@router.post(
    "/domains/{name}/transfer",
    response_model=DomainResponse,
    responses=_AUTH_RESPONSES,
    summary="Reassign the listing owner",
)
async def transfer_domain(
    name: str,
    request_data: TransferRequest,
    caller: str = Depends(get_caller),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> DomainResponse:
    with translate_errors():
        service.transfer(caller, name, request_data.new_owner)
    return _domain_response(service, labelhash(name))


@router.put(
    "/domains/{name}/resolver",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**_AUTH_RESPONSES, 502: {"model": ErrorResponse}},
    summary="Set the resolver of a listed name",
)
async def set_resolver(
    name: str,
    request_data: ResolverRequest,
    caller: str = Depends(get_caller),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> None:
    with translate_errors():
        service.set_resolver(caller, name, request_data.resolver)


@router.get("/labels/{label}", response_model=DomainResponse, summary="Read a listing")
async def get_domain(
    label: bytes = Depends(get_label),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> DomainResponse:
    return _domain_response(service, label)


# ----------------------------------------------------------------------
# Registration engine and queries
# ----------------------------------------------------------------------


@router.post(
    "/labels/{label}/subdomains",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {"model": ErrorResponse, "description": "Payment below price or insufficient funds"},
        404: {"model": ErrorResponse, "description": "Domain is not listed"},
        409: {"model": ErrorResponse, "description": "Subdomain is not available"},
        422: {"description": "Validation error"},
        503: {"model": ErrorResponse, "description": "Registrar is stopped"},
    },
    summary="Buy a subdomain",
    description="Pay for and register a subdomain of a listed name. Overpayment is "
    "refunded; on any failure the whole payment stays with the caller.",
)
async def register_subdomain(
    request_data: RegisterRequest,
    label: bytes = Depends(get_label),
    caller: str = Depends(get_caller),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> RegisterResponse:
    with translate_errors():
        node = service.register(
            caller,
            label,
            request_data.subdomain,
            request_data.resolver,
            value=request_data.value,
            owner=request_data.owner,
            referrer=request_data.referrer,
        )
    return RegisterResponse(
        label=to_hex(label),
        subdomain=request_data.subdomain,
        node=to_hex(node),
        owner=(request_data.owner or caller).lower(),
    )


@router.get(
    "/labels/{label}/subdomains/{subdomain}",
    response_model=QueryResponse,
    summary="Query sale terms of a subdomain",
)
async def query_subdomain(
    subdomain: str,
    label: bytes = Depends(get_label),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> QueryResponse:
    result = service.query(label, subdomain)
    return QueryResponse(
        name=result.name,
        price=result.price,
        rent=result.rent,
        referral_fee_ppm=result.referral_fee_ppm,
        available=result.available,
    )


@router.get(
    "/labels/{label}/subdomains/{subdomain}/rent",
    response_model=RentResponse,
    summary="Rent due (always 0: never due)",
)
async def rent_due(
    subdomain: str,
    label: bytes = Depends(get_label),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> RentResponse:
    return RentResponse(rent_due=service.rent_due(label, subdomain))


@router.post(
    "/labels/{label}/subdomains/{subdomain}/rent",
    responses={501: {"model": ErrorResponse, "description": "Rent is not supported"}},
    summary="Pay rent (unsupported)",
)
async def pay_rent(
    subdomain: str,
    label: bytes = Depends(get_label),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> None:
    with translate_errors():
        service.pay_rent(label, subdomain)


# ----------------------------------------------------------------------
# Deed custody
# ----------------------------------------------------------------------


def _deed_response(service: SubdomainRegistrar, label: bytes) -> DeedResponse:
    return DeedResponse(
        label=to_hex(label),
        ultimate_owner=service.ultimate_owner(label),
        state=service.custody_state(label).value,
    )


@router.get("/deeds/{label}", response_model=DeedResponse, summary="Read deed custody")
async def get_deed(
    label: bytes = Depends(get_label),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> DeedResponse:
    return _deed_response(service, label)


@router.put(
    "/deeds/{label}/override",
    response_model=DeedResponse,
    responses={**_AUTH_RESPONSES, 409: {"model": ErrorResponse}},
    summary="Override the ultimate owner of a held deed",
)
async def set_custody_override(
    request_data: CustodyOwnerRequest,
    label: bytes = Depends(get_label),
    caller: str = Depends(get_caller),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> DeedResponse:
    with translate_errors():
        service.set_custody_override(caller, label, request_data.new_owner)
    return _deed_response(service, label)


@router.post(
    "/deeds/{label}/reclaim",
    response_model=DeedResponse,
    responses={**_AUTH_RESPONSES, 409: {"model": ErrorResponse}},
    summary="Reclaim a held deed",
    description="Only permitted once a successor controls the legacy root node.",
)
async def reclaim_custody(
    label: bytes = Depends(get_label),
    caller: str = Depends(get_caller),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> DeedResponse:
    with translate_errors():
        service.reclaim_custody(caller, label)
    return _deed_response(service, label)


@router.put(
    "/deeds/{label}/registry-owner",
    response_model=DeedResponse,
    responses={**_AUTH_RESPONSES, 409: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Assign registry ownership of a held name (one-shot)",
)
async def assign_external_ownership(
    request_data: CustodyOwnerRequest,
    label: bytes = Depends(get_label),
    caller: str = Depends(get_caller),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> DeedResponse:
    with translate_errors():
        service.assign_external_ownership(caller, label, request_data.new_owner)
    return _deed_response(service, label)


# ----------------------------------------------------------------------
# Capability probe and administration
# ----------------------------------------------------------------------


@router.get(
    "/interfaces/{interface_id}",
    response_model=InterfaceResponse,
    summary="Capability probe",
)
async def supports_interface(
    interface_id: str = Path(..., pattern=INTERFACE_PATTERN),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> InterfaceResponse:
    supported = service.supports_interface(from_hex(interface_id))
    return InterfaceResponse(interface_id=interface_id.lower(), supported=supported)


def _state_response(service: SubdomainRegistrar) -> RegistrarStateResponse:
    state = service.registrar_state()
    return RegistrarStateResponse(owner=state.owner, stopped=state.stopped)


@router.get("/registrar", response_model=RegistrarStateResponse, summary="Registrar state")
async def registrar_state(
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> RegistrarStateResponse:
    return _state_response(service)


@router.post(
    "/registrar/stop",
    response_model=RegistrarStateResponse,
    responses=_AUTH_RESPONSES,
    summary="Stop registrations and listing changes",
)
async def stop_registrar(
    caller: str = Depends(get_caller),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> RegistrarStateResponse:
    with translate_errors():
        service.stop(caller)
    return _state_response(service)


@router.post(
    "/registrar/transfer",
    response_model=RegistrarStateResponse,
    responses=_AUTH_RESPONSES,
    summary="Hand over registrar administration",
)
async def transfer_registrar(
    request_data: TransferRequest,
    caller: str = Depends(get_caller),
    service: SubdomainRegistrar = Depends(get_registrar_service),
) -> RegistrarStateResponse:
    with translate_errors():
        service.transfer_registrar_ownership(caller, request_data.new_owner)
    return _state_response(service)
