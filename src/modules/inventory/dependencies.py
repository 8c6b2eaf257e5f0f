"""
Inventory Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.inventory.service import (
    DeviceService,
    DeviceTypeService,
    GatewayService,
    TenantService,
)


async def get_tenant_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TenantService:
    """Get TenantService instance."""
    return TenantService(db)


async def get_device_type_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeviceTypeService:
    """Get DeviceTypeService instance."""
    return DeviceTypeService(db)


async def get_device_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeviceService:
    """Get DeviceService instance."""
    return DeviceService(db)


async def get_gateway_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> GatewayService:
    """Get GatewayService instance."""
    return GatewayService(db)


# Type aliases
TenantServiceDep = Annotated[TenantService, Depends(get_tenant_service)]
DeviceTypeServiceDep = Annotated[DeviceTypeService, Depends(get_device_type_service)]
DeviceServiceDep = Annotated[DeviceService, Depends(get_device_service)]
GatewayServiceDep = Annotated[GatewayService, Depends(get_gateway_service)]
