"""
Inventory Module - API Routers

Endpoints (under the API prefix):
- GET/POST/PUT/DELETE   /tenants             - Tenant CRUD
- GET/POST/PATCH/DELETE /gateways            - Gateway CRUD
- POST   /gateways/{id}/devices              - Attach a device
- DELETE /gateways/{id}/devices/{device_id}  - Detach a device
- GET    /gateways/{id}/logs, /gateways/logs - Gateway audit trail
- GET/POST/PATCH/DELETE /devices             - Device CRUD, /devices/orphans
- GET/POST/PATCH/DELETE /device-types        - Device type CRUD
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Path, status

from src.core.exceptions import NotFoundError
from src.modules.inventory.dependencies import (
    DeviceServiceDep,
    DeviceTypeServiceDep,
    GatewayServiceDep,
    TenantServiceDep,
)
from src.modules.inventory.schemas import (
    DeviceAttach,
    DeviceCreate,
    DeviceDetail,
    DeviceTypeCreate,
    DeviceTypeResponse,
    DeviceTypeUpdate,
    DeviceTypeWithDevices,
    DeviceUpdate,
    DeviceWithType,
    GatewayCreate,
    GatewayDetail,
    GatewayLogResponse,
    GatewayLogWithGateway,
    GatewayUpdate,
    TenantCreate,
    TenantDetail,
    TenantResponse,
    TenantUpdate,
)

tenants_router = APIRouter(prefix="/tenants", tags=["Tenants"])
gateways_router = APIRouter(prefix="/gateways", tags=["Gateways"])
devices_router = APIRouter(prefix="/devices", tags=["Devices"])
device_types_router = APIRouter(prefix="/device-types", tags=["Device Types"])

DeviceTypeId = Annotated[int, Path(gt=0, description="Device type id")]


# ============== Tenants ==============

@tenants_router.get("", response_model=list[TenantDetail])
async def list_tenants(service: TenantServiceDep) -> list[TenantDetail]:
    """List tenants with their gateways and devices."""
    tenants = await service.list_tenants()
    return [TenantDetail.model_validate(t) for t in tenants]


@tenants_router.get("/{tenant_id}", response_model=TenantDetail)
async def get_tenant(
    tenant_id: uuid.UUID,
    service: TenantServiceDep,
) -> TenantDetail:
    """Get tenant by ID."""
    tenant = await service.get_tenant(tenant_id)
    if not tenant:
        raise NotFoundError("Tenant", tenant_id)
    return TenantDetail.model_validate(tenant)


@tenants_router.post(
    "",
    response_model=TenantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_tenant(
    data: TenantCreate,
    service: TenantServiceDep,
) -> TenantResponse:
    """Create a new tenant."""
    tenant = await service.create_tenant(data)
    return TenantResponse.model_validate(tenant)


@tenants_router.put("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: uuid.UUID,
    data: TenantUpdate,
    service: TenantServiceDep,
) -> TenantResponse:
    """Update a tenant. Only the fields sent are changed."""
    tenant = await service.update_tenant(tenant_id, data)
    if not tenant:
        raise NotFoundError("Tenant", tenant_id)
    return TenantResponse.model_validate(tenant)


@tenants_router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant(
    tenant_id: uuid.UUID,
    service: TenantServiceDep,
) -> None:
    """Delete a tenant that owns no gateways."""
    if not await service.delete_tenant(tenant_id):
        raise NotFoundError("Tenant", tenant_id)


# ============== Gateways ==============

@gateways_router.get("", response_model=list[GatewayDetail])
async def list_gateways(service: GatewayServiceDep) -> list[GatewayDetail]:
    """List gateways with devices and tenant."""
    gateways = await service.list_gateways()
    return [GatewayDetail.model_validate(g) for g in gateways]


@gateways_router.get("/logs", response_model=list[GatewayLogWithGateway])
async def list_all_gateway_logs(service: GatewayServiceDep) -> list[GatewayLogWithGateway]:
    """All gateway log entries, newest first."""
    return await service.list_all_logs()


@gateways_router.get("/{gateway_id}", response_model=GatewayDetail)
async def get_gateway(
    gateway_id: uuid.UUID,
    service: GatewayServiceDep,
) -> GatewayDetail:
    """Get gateway by ID with devices."""
    gateway = await service.get_gateway(gateway_id)
    if not gateway:
        raise NotFoundError("Gateway", gateway_id)
    return GatewayDetail.model_validate(gateway)


@gateways_router.post(
    "",
    response_model=GatewayDetail,
    status_code=status.HTTP_201_CREATED,
)
async def create_gateway(
    data: GatewayCreate,
    service: GatewayServiceDep,
) -> GatewayDetail:
    """Create a new gateway."""
    gateway = await service.create_gateway(data)
    return GatewayDetail.model_validate(gateway)


@gateways_router.patch("/{gateway_id}", response_model=GatewayDetail)
async def update_gateway(
    gateway_id: uuid.UUID,
    data: GatewayUpdate,
    service: GatewayServiceDep,
) -> GatewayDetail:
    """Update a gateway."""
    gateway = await service.update_gateway(gateway_id, data)
    return GatewayDetail.model_validate(gateway)


@gateways_router.delete("/{gateway_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_gateway(
    gateway_id: uuid.UUID,
    service: GatewayServiceDep,
) -> None:
    """Delete a gateway. Its devices stay, detached."""
    await service.delete_gateway(gateway_id)


@gateways_router.post("/{gateway_id}/devices", response_model=DeviceDetail)
async def attach_device(
    gateway_id: uuid.UUID,
    data: DeviceAttach,
    service: GatewayServiceDep,
) -> DeviceDetail:
    """Attach a device to the gateway."""
    device = await service.attach_device(gateway_id, data.device_id)
    return DeviceDetail.model_validate(device)


@gateways_router.delete("/{gateway_id}/devices/{device_id}", response_model=DeviceDetail)
async def detach_device(
    gateway_id: uuid.UUID,
    device_id: uuid.UUID,
    service: GatewayServiceDep,
) -> DeviceDetail:
    """Detach a device from the gateway."""
    device = await service.detach_device(gateway_id, device_id)
    return DeviceDetail.model_validate(device)


@gateways_router.get("/{gateway_id}/logs", response_model=list[GatewayLogResponse])
async def list_gateway_logs(
    gateway_id: uuid.UUID,
    service: GatewayServiceDep,
) -> list[GatewayLogResponse]:
    """Log entries of one gateway, newest first."""
    logs = await service.list_gateway_logs(gateway_id)
    return [GatewayLogResponse.model_validate(entry) for entry in logs]


# ============== Devices ==============

@devices_router.get("", response_model=list[DeviceDetail])
async def list_devices(service: DeviceServiceDep) -> list[DeviceDetail]:
    """List devices with device type and gateway."""
    devices = await service.list_devices()
    return [DeviceDetail.model_validate(d) for d in devices]


@devices_router.get("/orphans", response_model=list[DeviceWithType])
async def list_orphan_devices(service: DeviceServiceDep) -> list[DeviceWithType]:
    """Devices not attached to any gateway."""
    devices = await service.list_orphans()
    return [DeviceWithType.model_validate(d) for d in devices]


@devices_router.get("/{device_id}", response_model=DeviceDetail)
async def get_device(
    device_id: uuid.UUID,
    service: DeviceServiceDep,
) -> DeviceDetail:
    """Get device by ID."""
    device = await service.get_device(device_id)
    if not device:
        raise NotFoundError("Device", device_id)
    return DeviceDetail.model_validate(device)


@devices_router.post(
    "",
    response_model=DeviceDetail,
    status_code=status.HTTP_201_CREATED,
)
async def create_device(
    data: DeviceCreate,
    service: DeviceServiceDep,
) -> DeviceDetail:
    """Create a new device, optionally attached to a gateway."""
    device = await service.create_device(data)
    return DeviceDetail.model_validate(device)


@devices_router.patch("/{device_id}", response_model=DeviceDetail)
async def update_device(
    device_id: uuid.UUID,
    data: DeviceUpdate,
    service: DeviceServiceDep,
) -> DeviceDetail:
    """Update a device."""
    device = await service.update_device(device_id, data)
    return DeviceDetail.model_validate(device)


@devices_router.delete("/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device(
    device_id: uuid.UUID,
    service: DeviceServiceDep,
) -> None:
    """Delete a device."""
    await service.delete_device(device_id)


# ============== Device Types ==============

@device_types_router.get("", response_model=list[DeviceTypeWithDevices])
async def list_device_types(service: DeviceTypeServiceDep) -> list[DeviceTypeWithDevices]:
    """List device types with their devices."""
    device_types = await service.list_device_types()
    return [DeviceTypeWithDevices.model_validate(t) for t in device_types]


@device_types_router.get("/{device_type_id}", response_model=DeviceTypeWithDevices)
async def get_device_type(
    device_type_id: DeviceTypeId,
    service: DeviceTypeServiceDep,
) -> DeviceTypeWithDevices:
    """Get device type by ID."""
    device_type = await service.get_device_type(device_type_id)
    if not device_type:
        raise NotFoundError("Device type", device_type_id)
    return DeviceTypeWithDevices.model_validate(device_type)


@device_types_router.post(
    "",
    response_model=DeviceTypeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_device_type(
    data: DeviceTypeCreate,
    service: DeviceTypeServiceDep,
) -> DeviceTypeResponse:
    """Create a new device type."""
    device_type = await service.create_device_type(data)
    return DeviceTypeResponse.model_validate(device_type)


@device_types_router.patch("/{device_type_id}", response_model=DeviceTypeResponse)
async def update_device_type(
    data: DeviceTypeUpdate,
    device_type_id: DeviceTypeId,
    service: DeviceTypeServiceDep,
) -> DeviceTypeResponse:
    """Update a device type."""
    device_type = await service.update_device_type(device_type_id, data)
    if not device_type:
        raise NotFoundError("Device type", device_type_id)
    return DeviceTypeResponse.model_validate(device_type)


@device_types_router.delete("/{device_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device_type(
    device_type_id: DeviceTypeId,
    service: DeviceTypeServiceDep,
) -> None:
    """Delete a device type no device refers to."""
    if not await service.delete_device_type(device_type_id):
        raise NotFoundError("Device type", device_type_id)
