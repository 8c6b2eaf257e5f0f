"""
Inventory Module - Business Logic Services

Every mutating operation is one unit of work: business-rule checks, the
row changes and the matching GatewayLog entry commit together. Gateway and
device rows taking part in an attach/detach are locked (SELECT ... FOR
UPDATE) before the capacity and exclusivity guards run; unique indexes on
serial_number, ipv4_address and uid back the application pre-checks.
"""
import uuid
from typing import Any, Sequence

import orjson
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.config import settings
from src.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from src.core.logging import get_logger
from src.core.models import utc_now
from src.modules.inventory.models import (
    DeviceType,
    Gateway,
    GatewayLog,
    GatewayLogAction,
    PeripheralDevice,
    Tenant,
)
from src.modules.inventory.schemas import (
    DeviceCreate,
    DeviceTypeCreate,
    DeviceTypeUpdate,
    DeviceUpdate,
    GatewayCreate,
    GatewayDetail,
    GatewayLogWithGateway,
    GatewayUpdate,
    LogGatewayRef,
    LogTenantRef,
    TenantCreate,
    TenantUpdate,
)

logger = get_logger(__name__)

SERIAL_NUMBER_CONFLICT = "Gateway serial number already exists"
IPV4_ADDRESS_CONFLICT = "Gateway IPv4 address already exists"
UID_CONFLICT = "Device UID already exists"

# (table.column, message, field) matched against the driver's error text
UNIQUE_VIOLATIONS = (
    ("gateway.serial_number", SERIAL_NUMBER_CONFLICT, "serial_number"),
    ("gateway_serial_number", SERIAL_NUMBER_CONFLICT, "serial_number"),
    ("gateway.ipv4_address", IPV4_ADDRESS_CONFLICT, "ipv4_address"),
    ("gateway_ipv4_address", IPV4_ADDRESS_CONFLICT, "ipv4_address"),
    ("peripheral_device.uid", UID_CONFLICT, "uid"),
    ("peripheral_device_uid", UID_CONFLICT, "uid"),
)

DEVICE_LOAD = (
    selectinload(PeripheralDevice.device_type),
    selectinload(PeripheralDevice.gateway).selectinload(Gateway.tenant),
)
GATEWAY_LOAD = (
    selectinload(Gateway.devices).selectinload(PeripheralDevice.device_type),
    selectinload(Gateway.tenant),
)
TENANT_LOAD = (
    selectinload(Tenant.gateways)
    .selectinload(Gateway.devices)
    .selectinload(PeripheralDevice.device_type),
)


def conflict_from_integrity_error(exc: IntegrityError) -> ConflictError:
    """Translate a storage constraint violation into the matching ConflictError."""
    text = str(exc.orig)
    for marker, message, field in UNIQUE_VIOLATIONS:
        if marker in text:
            return ConflictError(message, field=field)
    return ConflictError("Operation conflicts with existing records")


async def commit_or_conflict(db: AsyncSession) -> None:
    """Commit the unit of work; constraint violations surface as ConflictError."""
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise conflict_from_integrity_error(exc) from exc


async def flush_or_conflict(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise conflict_from_integrity_error(exc) from exc


def encode_details(details: dict[str, Any]) -> str:
    """Serialize a log payload to JSON text."""
    return orjson.dumps(details, default=str).decode()


async def _lock_gateway(db: AsyncSession, gateway_id: uuid.UUID) -> Gateway | None:
    stmt = select(Gateway).where(Gateway.id == gateway_id).with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _lock_device(db: AsyncSession, device_id: uuid.UUID) -> PeripheralDevice | None:
    stmt = select(PeripheralDevice).where(PeripheralDevice.id == device_id).with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


class TenantService:
    """Tenant CRUD. Missing tenants come back as None/False."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_tenant(self, tenant_id: uuid.UUID) -> Tenant | None:
        """Get tenant with its gateways and their devices."""
        stmt = (
            select(Tenant)
            .where(Tenant.id == tenant_id)
            .options(*TENANT_LOAD)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_tenants(self) -> Sequence[Tenant]:
        stmt = select(Tenant).options(*TENANT_LOAD).order_by(Tenant.created_at)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def create_tenant(self, data: TenantCreate) -> Tenant:
        tenant = Tenant(**data.model_dump())
        self.db.add(tenant)
        await commit_or_conflict(self.db)

        logger.info("Tenant created", tenant_id=str(tenant.id))
        return tenant

    async def update_tenant(self, tenant_id: uuid.UUID, data: TenantUpdate) -> Tenant | None:
        tenant = await self.db.get(Tenant, tenant_id)
        if not tenant:
            return None

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(tenant, field, value)

        await commit_or_conflict(self.db)
        logger.info("Tenant updated", tenant_id=str(tenant_id))
        return tenant

    async def delete_tenant(self, tenant_id: uuid.UUID) -> bool:
        """
        Delete a tenant.
        Tenants still owning gateways are kept and a ConflictError is raised.
        """
        tenant = await self.db.get(Tenant, tenant_id)
        if not tenant:
            return False

        gateway_count = await self.db.scalar(
            select(func.count(Gateway.id)).where(Gateway.tenant_id == tenant_id)
        )
        if gateway_count:
            raise ConflictError("Tenant still owns gateways", field="tenant_id")

        await self.db.delete(tenant)
        await commit_or_conflict(self.db)

        logger.info("Tenant deleted", tenant_id=str(tenant_id))
        return True


class DeviceTypeService:
    """DeviceType CRUD. Missing types come back as None/False."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_device_type(self, device_type_id: int) -> DeviceType | None:
        stmt = (
            select(DeviceType)
            .where(DeviceType.id == device_type_id)
            .options(selectinload(DeviceType.devices))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_device_types(self) -> Sequence[DeviceType]:
        stmt = select(DeviceType).options(selectinload(DeviceType.devices)).order_by(DeviceType.id)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def create_device_type(self, data: DeviceTypeCreate) -> DeviceType:
        device_type = DeviceType(**data.model_dump())
        self.db.add(device_type)
        await commit_or_conflict(self.db)

        logger.info("Device type created", device_type_id=device_type.id, name=device_type.name)
        return await self.get_device_type(device_type.id)

    async def update_device_type(self, device_type_id: int, data: DeviceTypeUpdate) -> DeviceType | None:
        device_type = await self.db.get(DeviceType, device_type_id)
        if not device_type:
            return None

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(device_type, field, value)

        await commit_or_conflict(self.db)
        return await self.get_device_type(device_type_id)

    async def delete_device_type(self, device_type_id: int) -> bool:
        device_type = await self.db.get(DeviceType, device_type_id)
        if not device_type:
            return False

        in_use = await self.db.scalar(
            select(func.count(PeripheralDevice.id)).where(
                PeripheralDevice.device_type_id == device_type_id
            )
        )
        if in_use:
            raise ConflictError("Device type is in use", field="device_type_id")

        await self.db.delete(device_type)
        await commit_or_conflict(self.db)

        logger.info("Device type deleted", device_type_id=device_type_id)
        return True


class GatewayLogService:
    """
    Append-only gateway audit trail.
    record() only stages the entry; it commits with the caller's unit of work.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def record(
        self,
        gateway_id: uuid.UUID,
        action: GatewayLogAction,
        details: dict[str, Any],
    ) -> GatewayLog:
        entry = GatewayLog(
            gateway_id=gateway_id,
            action=action.value,
            details=encode_details(details),
        )
        self.db.add(entry)
        return entry

    async def list_for_gateway(self, gateway_id: uuid.UUID) -> Sequence[GatewayLog]:
        """Entries of one gateway, newest first. Works for deleted gateways too."""
        stmt = (
            select(GatewayLog)
            .where(GatewayLog.gateway_id == gateway_id)
            .order_by(GatewayLog.created_at.desc(), GatewayLog.id.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_all(self) -> list[GatewayLogWithGateway]:
        """All entries, newest first, annotated with the current gateway and tenant."""
        stmt = (
            select(GatewayLog, Gateway, Tenant)
            .outerjoin(Gateway, Gateway.id == GatewayLog.gateway_id)
            .outerjoin(Tenant, Tenant.id == Gateway.tenant_id)
            .order_by(GatewayLog.created_at.desc(), GatewayLog.id.desc())
        )
        result = await self.db.execute(stmt)

        entries = []
        for log, gateway, tenant in result.all():
            gateway_ref = None
            if gateway is not None:
                gateway_ref = LogGatewayRef(
                    id=gateway.id,
                    name=gateway.name,
                    serial_number=gateway.serial_number,
                    tenant=LogTenantRef(id=tenant.id, name=tenant.name) if tenant else None,
                )
            entries.append(
                GatewayLogWithGateway(
                    id=log.id,
                    gateway_id=log.gateway_id,
                    action=log.action,
                    details=log.details,
                    created_at=log.created_at,
                    gateway=gateway_ref,
                )
            )
        return entries


class DeviceService:
    """Peripheral device CRUD, orphan listing and gateway capacity checks."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logs = GatewayLogService(db)

    @property
    def max_devices_per_gateway(self) -> int:
        return settings.max_devices_per_gateway

    async def get_device(self, device_id: uuid.UUID) -> PeripheralDevice | None:
        """Get device with its device type and gateway."""
        stmt = (
            select(PeripheralDevice)
            .where(PeripheralDevice.id == device_id)
            .options(*DEVICE_LOAD)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_devices(self) -> Sequence[PeripheralDevice]:
        stmt = select(PeripheralDevice).options(*DEVICE_LOAD).order_by(PeripheralDevice.created_at)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_orphans(self) -> Sequence[PeripheralDevice]:
        """Devices not attached to any gateway."""
        stmt = (
            select(PeripheralDevice)
            .where(PeripheralDevice.gateway_id.is_(None))
            .options(selectinload(PeripheralDevice.device_type))
            .order_by(PeripheralDevice.created_at)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def uid_exists(self, uid: int) -> bool:
        found = await self.db.scalar(
            select(PeripheralDevice.id).where(PeripheralDevice.uid == uid).limit(1)
        )
        return found is not None

    async def count_in_gateway(self, gateway_id: uuid.UUID) -> int:
        count = await self.db.scalar(
            select(func.count(PeripheralDevice.id)).where(PeripheralDevice.gateway_id == gateway_id)
        )
        return count or 0

    async def check_gateway_capacity(self, gateway_id: uuid.UUID) -> None:
        """Raise when the gateway cannot take one more device."""
        limit = self.max_devices_per_gateway
        if await self.count_in_gateway(gateway_id) >= limit:
            raise BusinessRuleError(
                f"Gateway already has the maximum number of devices ({limit})",
                rule="gateway_capacity",
            )

    async def _require_device_type(self, device_type_id: int) -> None:
        if await self.db.get(DeviceType, device_type_id) is None:
            raise NotFoundError("Device type", device_type_id)

    async def create_device(self, data: DeviceCreate) -> PeripheralDevice:
        """
        Create a device, optionally attached to a gateway right away.
        Creation-time attachment goes through the same capacity guard as attach.
        """
        uid = int(data.uid)
        if await self.uid_exists(uid):
            raise ConflictError(UID_CONFLICT, field="uid")

        await self._require_device_type(data.device_type_id)

        if data.gateway_id is not None:
            if await _lock_gateway(self.db, data.gateway_id) is None:
                raise NotFoundError("Gateway", data.gateway_id)
            await self.check_gateway_capacity(data.gateway_id)

        device = PeripheralDevice(
            uid=uid,
            vendor=data.vendor,
            status=data.status,
            device_type_id=data.device_type_id,
            gateway_id=data.gateway_id,
        )
        self.db.add(device)
        await flush_or_conflict(self.db)

        if device.gateway_id is not None:
            self.logs.record(
                device.gateway_id,
                GatewayLogAction.DEVICE_ATTACHED,
                {"user": "system", "device_id": str(device.id), "device_uid": str(uid)},
            )

        await commit_or_conflict(self.db)

        logger.info(
            "Device created",
            device_id=str(device.id),
            uid=str(uid),
            gateway_id=str(device.gateway_id) if device.gateway_id else None,
        )
        return await self.get_device(device.id)

    async def update_device(self, device_id: uuid.UUID, data: DeviceUpdate) -> PeripheralDevice:
        """Apply vendor/status/last_seen_at/device_type_id when present. uid never changes."""
        device = await self.db.get(PeripheralDevice, device_id)
        if not device:
            raise NotFoundError("Device", device_id)

        changes = data.model_dump(exclude_unset=True)
        if "device_type_id" in changes:
            await self._require_device_type(changes["device_type_id"])

        for field, value in changes.items():
            setattr(device, field, value)

        await commit_or_conflict(self.db)
        logger.info("Device updated", device_id=str(device_id), fields=sorted(changes))
        return await self.get_device(device_id)

    async def delete_device(self, device_id: uuid.UUID) -> None:
        device = await self.db.get(PeripheralDevice, device_id)
        if not device:
            raise NotFoundError("Device", device_id)

        await self.db.delete(device)
        await commit_or_conflict(self.db)

        logger.info("Device deleted", device_id=str(device_id))


class GatewayService:
    """Gateway CRUD, device attach/detach and the gateway audit trail."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.devices = DeviceService(db)
        self.logs = GatewayLogService(db)

    # ============== Gateway Operations ==============

    async def get_gateway(self, gateway_id: uuid.UUID) -> Gateway | None:
        """Get gateway with its devices and tenant."""
        stmt = (
            select(Gateway)
            .where(Gateway.id == gateway_id)
            .options(*GATEWAY_LOAD)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_gateways(self) -> Sequence[Gateway]:
        stmt = select(Gateway).options(*GATEWAY_LOAD).order_by(Gateway.created_at)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def serial_number_exists(self, serial_number: str) -> bool:
        found = await self.db.scalar(
            select(Gateway.id).where(Gateway.serial_number == serial_number).limit(1)
        )
        return found is not None

    async def ipv4_address_exists(self, ipv4_address: str) -> bool:
        found = await self.db.scalar(
            select(Gateway.id).where(Gateway.ipv4_address == ipv4_address).limit(1)
        )
        return found is not None

    async def create_gateway(self, data: GatewayCreate) -> Gateway:
        """Create a gateway for an existing tenant. Serial number is checked before IPv4."""
        if await self.serial_number_exists(data.serial_number):
            raise ConflictError(SERIAL_NUMBER_CONFLICT, field="serial_number")

        if await self.ipv4_address_exists(data.ipv4_address):
            raise ConflictError(IPV4_ADDRESS_CONFLICT, field="ipv4_address")

        if await self.db.get(Tenant, data.tenant_id) is None:
            raise NotFoundError("Tenant", data.tenant_id)

        gateway = Gateway(**data.model_dump())
        self.db.add(gateway)
        await flush_or_conflict(self.db)

        self.logs.record(
            gateway.id,
            GatewayLogAction.CREATED,
            {
                "name": gateway.name,
                "serial_number": gateway.serial_number,
                "ipv4_address": gateway.ipv4_address,
            },
        )
        await commit_or_conflict(self.db)

        logger.info(
            "Gateway created",
            gateway_id=str(gateway.id),
            serial=gateway.serial_number,
            tenant_id=str(gateway.tenant_id),
        )
        return await self.get_gateway(gateway.id)

    async def update_gateway(self, gateway_id: uuid.UUID, data: GatewayUpdate) -> Gateway:
        """Apply name/status/ipv4_address/location when present."""
        gateway = await self.db.get(Gateway, gateway_id)
        if not gateway:
            raise NotFoundError("Gateway", gateway_id)

        changes = data.model_dump(exclude_unset=True)

        new_address = changes.get("ipv4_address")
        if new_address is not None and new_address != gateway.ipv4_address:
            if await self.ipv4_address_exists(new_address):
                raise ConflictError(IPV4_ADDRESS_CONFLICT, field="ipv4_address")

        for field, value in changes.items():
            setattr(gateway, field, value)
        gateway.updated_at = utc_now()

        self.logs.record(
            gateway_id,
            GatewayLogAction.UPDATED,
            {"changes": data.model_dump(mode="json", exclude_unset=True)},
        )
        await commit_or_conflict(self.db)

        logger.info("Gateway updated", gateway_id=str(gateway_id), fields=sorted(changes))
        return await self.get_gateway(gateway_id)

    async def delete_gateway(self, gateway_id: uuid.UUID) -> None:
        """
        Delete a gateway.
        The DELETED entry (with a snapshot of the prior state) and the removal
        commit together; attached devices become orphans.
        """
        gateway = await self.get_gateway(gateway_id)
        if not gateway:
            raise NotFoundError("Gateway", gateway_id)

        snapshot = GatewayDetail.model_validate(gateway).model_dump(mode="json")
        self.logs.record(
            gateway_id,
            GatewayLogAction.DELETED,
            {"user": "system", "gateway_data": snapshot},
        )

        await self.db.delete(gateway)
        await commit_or_conflict(self.db)

        logger.info(
            "Gateway deleted",
            gateway_id=str(gateway_id),
            orphaned_devices=len(snapshot["devices"]),
        )

    # ============== Attach / Detach ==============

    async def attach_device(self, gateway_id: uuid.UUID, device_id: uuid.UUID) -> PeripheralDevice:
        """
        Attach a device to a gateway.

        Guards run in order and the first failure wins:
        gateway exists, device exists, gateway below capacity, device not
        attached to a different gateway. Re-attaching to the current gateway
        succeeds without a write or a log entry.
        """
        if await _lock_gateway(self.db, gateway_id) is None:
            raise NotFoundError("Gateway", gateway_id)

        device = await _lock_device(self.db, device_id)
        if device is None:
            raise NotFoundError("Device", device_id)

        await self.devices.check_gateway_capacity(gateway_id)

        if device.gateway_id is not None and device.gateway_id != gateway_id:
            raise BusinessRuleError(
                "Device is already attached to another gateway",
                rule="device_attached_elsewhere",
            )

        if device.gateway_id == gateway_id:
            await self.db.rollback()
            logger.info("Device already attached", gateway_id=str(gateway_id), device_id=str(device_id))
            return await self.devices.get_device(device_id)

        device.gateway_id = gateway_id
        self.logs.record(
            gateway_id,
            GatewayLogAction.DEVICE_ATTACHED,
            {"user": "system", "device_id": str(device_id), "device_uid": str(device.uid)},
        )
        await commit_or_conflict(self.db)

        logger.info("Device attached", gateway_id=str(gateway_id), device_id=str(device_id))
        return await self.devices.get_device(device_id)

    async def detach_device(self, gateway_id: uuid.UUID, device_id: uuid.UUID) -> PeripheralDevice:
        """
        Detach a device from a gateway.
        Fails unless the device is currently attached to exactly this gateway.
        """
        if await _lock_gateway(self.db, gateway_id) is None:
            raise NotFoundError("Gateway", gateway_id)

        device = await _lock_device(self.db, device_id)
        if device is None:
            raise NotFoundError("Device", device_id)

        if device.gateway_id != gateway_id:
            raise BusinessRuleError(
                "Device is not attached to this gateway",
                rule="device_not_attached",
            )

        device.gateway_id = None
        self.logs.record(
            gateway_id,
            GatewayLogAction.DEVICE_DETACHED,
            {"user": "system", "device_id": str(device_id), "device_uid": str(device.uid)},
        )
        await commit_or_conflict(self.db)

        logger.info("Device detached", gateway_id=str(gateway_id), device_id=str(device_id))
        return await self.devices.get_device(device_id)

    # ============== Logs ==============

    async def list_gateway_logs(self, gateway_id: uuid.UUID) -> Sequence[GatewayLog]:
        return await self.logs.list_for_gateway(gateway_id)

    async def list_all_logs(self) -> list[GatewayLogWithGateway]:
        return await self.logs.list_all()
