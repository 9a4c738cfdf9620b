"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from typing import Annotated

from pydantic import BaseModel, Field

MAX_AMOUNT = 2**256 - 1

ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"
HASH_PATTERN = r"^0x[0-9a-fA-F]{64}$"
INTERFACE_PATTERN = r"^0x[0-9a-fA-F]{8}$"

Address = Annotated[str, Field(pattern=ADDRESS_PATTERN, description="0x-prefixed 20-byte address")]


class ConfigureDomainRequest(BaseModel):
    """Request model for listing a name for sale."""

    name: str = Field(..., min_length=1, description="Top-level label, already normalized")
    price: int = Field(..., ge=0, le=MAX_AMOUNT, description="Price per subdomain in minor units")
    referral_fee_ppm: int = Field(0, ge=0, le=1_000_000, description="Referrer share in ppm")
    owner: Address | None = Field(None, description="Listing owner (defaults to caller)")


class DomainResponse(BaseModel):
    """Listing record of a top-level label."""

    label: str
    name: str
    owner: str
    price: int
    referral_fee_ppm: int
    listed: bool
    controller: str


class TransferRequest(BaseModel):
    new_owner: Address


class ResolverRequest(BaseModel):
    resolver: Address


class RegisterRequest(BaseModel):
    """Request model for buying a subdomain."""

    subdomain: str = Field(..., description="Child label, already normalized")
    resolver: Address
    value: int = Field(0, ge=0, le=MAX_AMOUNT, description="Payment attached to the call")
    owner: Address | None = Field(None, description="Subdomain owner (defaults to caller)")
    referrer: Address | None = None


class RegisterResponse(BaseModel):
    label: str
    subdomain: str
    node: str
    owner: str


class QueryResponse(BaseModel):
    """Sale terms of a subdomain; empty name means unavailable."""

    name: str
    price: int
    rent: int
    referral_fee_ppm: int
    available: bool


class RentResponse(BaseModel):
    rent_due: int


class DeedResponse(BaseModel):
    label: str
    ultimate_owner: str
    state: str


class CustodyOwnerRequest(BaseModel):
    new_owner: Address


class InterfaceResponse(BaseModel):
    interface_id: str
    supported: bool


class RegistrarStateResponse(BaseModel):
    owner: str
    stopped: bool


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
