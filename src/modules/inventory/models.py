"""
Inventory Module - Database Models
Tenant, Gateway, PeripheralDevice, DeviceType and the GatewayLog audit trail.

Uniqueness of gateway serial/IPv4 and device uid is declared here so the
database stays the authoritative backstop behind the service pre-checks.
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.models import (
    Base,
    CreatedAtMixin,
    TenantMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class GatewayStatus(str, Enum):
    """Gateway lifecycle status."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DECOMMISSIONED = "DECOMMISSIONED"


class DeviceStatus(str, Enum):
    """Peripheral device operational status."""
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    MAINTENANCE = "MAINTENANCE"


class GatewayLogAction(str, Enum):
    """Actions recorded in the gateway audit trail."""
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    DEVICE_ATTACHED = "DEVICE_ATTACHED"
    DEVICE_DETACHED = "DEVICE_DETACHED"


class Tenant(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """Organization owning gateways."""
    __tablename__ = "tenant"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)

    gateways: Mapped[list["Gateway"]] = relationship(
        "Gateway",
        back_populates="tenant",
        passive_deletes="all",
        order_by="Gateway.created_at",
    )


class DeviceType(Base):
    """Category of peripheral device."""
    __tablename__ = "device_type"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)

    devices: Mapped[list["PeripheralDevice"]] = relationship(
        "PeripheralDevice",
        back_populates="device_type",
        passive_deletes="all",
    )


class Gateway(Base, UUIDPrimaryKeyMixin, TimestampMixin, TenantMixin):
    """
    Gateway model.
    Network hub hosting a bounded number of peripheral devices.
    """
    __tablename__ = "gateway"

    __table_args__ = (
        Index("ix_gateway_tenant_status", "tenant_id", "status"),
    )

    serial_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    ipv4_address: Mapped[str] = mapped_column(String(15), unique=True, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[GatewayStatus] = mapped_column(
        String(20),
        default=GatewayStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="gateways")

    # Devices survive their gateway as orphans (FK is SET NULL)
    devices: Mapped[list["PeripheralDevice"]] = relationship(
        "PeripheralDevice",
        back_populates="gateway",
        passive_deletes=True,
        order_by="PeripheralDevice.created_at",
    )


class PeripheralDevice(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """
    Peripheral device model.
    Sensor/actuator identified by a numeric uid, optionally attached to one gateway.
    """
    __tablename__ = "peripheral_device"

    uid: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    vendor: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[DeviceStatus] = mapped_column(
        String(20),
        default=DeviceStatus.OFFLINE,
        nullable=False,
        index=True,
    )
    last_seen_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    device_type_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("device_type.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    gateway_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("gateway.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    device_type: Mapped["DeviceType"] = relationship("DeviceType", back_populates="devices")
    gateway: Mapped["Gateway | None"] = relationship("Gateway", back_populates="devices")


class GatewayLog(Base, CreatedAtMixin):
    """
    Append-only audit record of a gateway lifecycle or attachment event.

    gateway_id has no foreign key: entries outlive the gateway they
    describe, including its DELETED entry.
    """
    __tablename__ = "gateway_log"

    __table_args__ = (
        Index("ix_gateway_log_gateway_created", "gateway_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    gateway_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    details: Mapped[str] = mapped_column(Text, nullable=False, comment="JSON encoded payload")
