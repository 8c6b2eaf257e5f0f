"""
Inventory Module - Tenants, gateways, peripheral devices and device types.

Models: Tenant, Gateway, PeripheralDevice, DeviceType, GatewayLog
"""
from src.modules.inventory.models import (
    DeviceStatus,
    DeviceType,
    Gateway,
    GatewayLog,
    GatewayLogAction,
    GatewayStatus,
    PeripheralDevice,
    Tenant,
)
from src.modules.inventory.router import (
    device_types_router,
    devices_router,
    gateways_router,
    tenants_router,
)

__all__ = [
    "DeviceStatus",
    "DeviceType",
    "Gateway",
    "GatewayLog",
    "GatewayLogAction",
    "GatewayStatus",
    "PeripheralDevice",
    "Tenant",
    "device_types_router",
    "devices_router",
    "gateways_router",
    "tenants_router",
]
