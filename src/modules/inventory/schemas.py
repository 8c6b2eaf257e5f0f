"""
Inventory Module - Pydantic Schemas (DTOs)

Create/update bodies are strict: undeclared fields are rejected.
Update bodies are partial; only fields present in the request are applied,
and non-nullable columns refuse an explicit null.
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic_core import PydanticCustomError

from src.modules.inventory.models import DeviceStatus, GatewayLogAction, GatewayStatus

IPV4_PATTERN = (
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)
UID_PATTERN = r"^\d{1,19}$"
INT64_MAX = 2**63 - 1


class StrictModel(BaseModel):
    """Request body rejecting unknown fields."""
    model_config = ConfigDict(extra="forbid")


def _reject_null(value):
    if value is None:
        raise PydanticCustomError("invalid_type", "Field may not be null")
    return value


def _check_uid_range(value: str) -> str:
    if int(value) > INT64_MAX:
        raise PydanticCustomError("too_big", "UID must fit in a signed 64-bit integer")
    return value


# ============== Tenant Schemas ==============

class TenantCreate(StrictModel):
    """Schema for creating a tenant."""
    name: str = Field(..., min_length=1, max_length=100, examples=["Acme"])
    contact_email: EmailStr = Field(..., examples=["ops@acme.com"])


class TenantUpdate(StrictModel):
    """Schema for updating a tenant."""
    name: str | None = Field(None, min_length=1, max_length=100)
    contact_email: EmailStr | None = None

    @field_validator("name", "contact_email")
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class TenantResponse(BaseModel):
    """Tenant response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    contact_email: str
    created_at: datetime


# ============== Device Type Schemas ==============

class DeviceTypeCreate(StrictModel):
    """Schema for creating a device type."""
    name: str = Field(..., min_length=1, max_length=50, examples=["Temperature sensor"])
    description: str = Field(..., min_length=1, max_length=255)


class DeviceTypeUpdate(StrictModel):
    """Schema for updating a device type."""
    name: str | None = Field(None, min_length=1, max_length=50)
    description: str | None = Field(None, min_length=1, max_length=255)

    @field_validator("name", "description")
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class DeviceTypeResponse(BaseModel):
    """Device type response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str


# ============== Device Schemas ==============

class DeviceCreate(StrictModel):
    """Schema for creating a peripheral device."""
    uid: str = Field(..., pattern=UID_PATTERN, description="Numeric UID, up to 19 digits", examples=["123"])
    vendor: str = Field(..., min_length=1, max_length=255)
    status: DeviceStatus
    device_type_id: int = Field(..., gt=0)
    gateway_id: uuid.UUID | None = None

    @field_validator("uid")
    @classmethod
    def check_uid_range(cls, value: str) -> str:
        return _check_uid_range(value)


class DeviceUpdate(StrictModel):
    """Schema for updating a peripheral device. uid is immutable."""
    vendor: str | None = Field(None, min_length=1, max_length=255)
    status: DeviceStatus | None = None
    last_seen_at: datetime | None = None
    device_type_id: int | None = Field(None, gt=0)

    @field_validator("vendor", "status", "device_type_id")
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class DeviceAttach(StrictModel):
    """Body of the attach operation."""
    device_id: uuid.UUID = Field(..., alias="deviceId")


class DeviceResponse(BaseModel):
    """Device response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    uid: str
    vendor: str
    status: DeviceStatus
    device_type_id: int
    gateway_id: uuid.UUID | None = None
    created_at: datetime
    last_seen_at: datetime | None = None

    @field_validator("uid", mode="before")
    @classmethod
    def uid_as_string(cls, value):
        # BIGINT on the wire as a string
        return str(value) if isinstance(value, int) else value


class DeviceWithType(DeviceResponse):
    """Device with its device type."""
    device_type: DeviceTypeResponse


class DeviceTypeWithDevices(DeviceTypeResponse):
    """Device type with the devices referencing it."""
    devices: list[DeviceResponse] = []


# ============== Gateway Schemas ==============

class GatewayCreate(StrictModel):
    """Schema for creating a gateway."""
    serial_number: str = Field(..., min_length=1, max_length=100, examples=["SN1"])
    name: str = Field(..., min_length=1, max_length=255, examples=["GW1"])
    ipv4_address: str = Field(..., pattern=IPV4_PATTERN, examples=["10.0.0.1"])
    status: GatewayStatus
    location: str | None = Field(None, max_length=255)
    tenant_id: uuid.UUID


class GatewayUpdate(StrictModel):
    """Schema for updating a gateway. serial_number and tenant_id are immutable."""
    name: str | None = Field(None, min_length=1, max_length=255)
    ipv4_address: str | None = Field(None, pattern=IPV4_PATTERN)
    status: GatewayStatus | None = None
    location: str | None = Field(None, max_length=255)

    @field_validator("name", "ipv4_address", "status")
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class GatewayResponse(BaseModel):
    """Gateway response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    serial_number: str
    name: str
    ipv4_address: str
    location: str | None = None
    status: GatewayStatus
    tenant_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class GatewayWithTenant(GatewayResponse):
    """Gateway with its owning tenant."""
    tenant: TenantResponse


class GatewayWithDevices(GatewayResponse):
    """Gateway with its attached devices."""
    devices: list[DeviceWithType] = []


class GatewayDetail(GatewayWithDevices):
    """Gateway with attached devices and owning tenant."""
    tenant: TenantResponse


class DeviceDetail(DeviceWithType):
    """Device with its device type and gateway (null for orphans)."""
    gateway: GatewayWithTenant | None = None


class TenantDetail(TenantResponse):
    """Tenant with its gateways and their devices."""
    gateways: list[GatewayWithDevices] = []


# ============== Gateway Log Schemas ==============

class GatewayLogResponse(BaseModel):
    """Gateway log entry. details is the JSON text written with the entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    gateway_id: uuid.UUID
    action: GatewayLogAction
    details: str
    created_at: datetime


class LogTenantRef(BaseModel):
    id: uuid.UUID
    name: str


class LogGatewayRef(BaseModel):
    id: uuid.UUID
    name: str
    serial_number: str
    tenant: LogTenantRef | None = None


class GatewayLogWithGateway(GatewayLogResponse):
    """Log entry annotated with its gateway, null once the gateway is gone."""
    gateway: LogGatewayRef | None = None
