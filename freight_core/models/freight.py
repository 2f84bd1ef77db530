from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freight_core.db.base import Base, new_id, utcnow
from freight_core.security.capability import EntityOwnership
from freight_core.workflow.booking import RequestStatus
from freight_core.workflow.load import LoadStatus
from freight_core.workflow.trip import INITIAL_TRIP_STATUS


class FeeStatus(str, Enum):
    PENDING = "PENDING"
    DEDUCTED = "DEDUCTED"
    WAIVED = "WAIVED"


class PostingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    MATCHED = "MATCHED"


class Load(Base):
    __tablename__ = "loads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    shipper_org_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    # Set when a booking is approved; denormalized from the assigned truck for scoping.
    carrier_org_id: Mapped[str | None] = mapped_column(ForeignKey("organizations.id"), nullable=True, index=True)
    created_by_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    assigned_truck_id: Mapped[str | None] = mapped_column(ForeignKey("trucks.id"), nullable=True)

    status: Mapped[str] = mapped_column(String(32), default=LoadStatus.DRAFT.value, nullable=False, index=True)

    pickup_city: Mapped[str] = mapped_column(String(100), nullable=False)
    delivery_city: Mapped[str] = mapped_column(String(100), nullable=False)
    cargo_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    # Fee amounts are computed upstream (corridor pricing); the core only moves them.
    shipper_service_fee: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    carrier_service_fee: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    fee_status: Mapped[str] = mapped_column(String(16), default=FeeStatus.PENDING.value, nullable=False)
    fees_settled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    posted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def ownership(self) -> EntityOwnership:
        return EntityOwnership(
            shipper_org_id=self.shipper_org_id,
            carrier_org_id=self.carrier_org_id,
            created_by_id=self.created_by_id,
        )


class Truck(Base):
    __tablename__ = "trucks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    carrier_org_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    license_plate: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    truck_type: Mapped[str] = mapped_column(String(32), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def ownership(self) -> EntityOwnership:
        return EntityOwnership(carrier_org_id=self.carrier_org_id)


class TruckPosting(Base):
    __tablename__ = "truck_postings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    truck_id: Mapped[str] = mapped_column(ForeignKey("trucks.id"), nullable=False, index=True)
    carrier_org_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    created_by_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    status: Mapped[str] = mapped_column(String(16), default=PostingStatus.ACTIVE.value, nullable=False, index=True)
    origin_city: Mapped[str] = mapped_column(String(100), nullable=False)
    destination_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    available_from: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    truck: Mapped[Truck] = relationship()

    def ownership(self) -> EntityOwnership:
        return EntityOwnership(carrier_org_id=self.carrier_org_id, created_by_id=self.created_by_id)


class Trip(Base):
    __tablename__ = "trips"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    load_id: Mapped[str] = mapped_column(ForeignKey("loads.id"), unique=True, nullable=False)
    truck_id: Mapped[str | None] = mapped_column(ForeignKey("trucks.id"), nullable=True)

    # Both fixed at creation.
    carrier_org_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    shipper_org_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(32), default=INITIAL_TRIP_STATUS.value, nullable=False, index=True)
    tracking_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    picked_up_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    load: Mapped[Load] = relationship()

    def ownership(self) -> EntityOwnership:
        return EntityOwnership(shipper_org_id=self.shipper_org_id, carrier_org_id=self.carrier_org_id)


class BookingRequest(Base):
    """
    Load requests, truck requests and match proposals share one table; `kind`
    decides who proposes and who must respond.
    """

    __tablename__ = "booking_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    kind: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    load_id: Mapped[str] = mapped_column(ForeignKey("loads.id"), nullable=False, index=True)
    truck_id: Mapped[str] = mapped_column(ForeignKey("trucks.id"), nullable=False)
    shipper_org_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    carrier_org_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    created_by_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    status: Mapped[str] = mapped_column(String(16), default=RequestStatus.PENDING.value, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    responded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    responded_by_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    response_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    load: Mapped[Load] = relationship()

    def ownership(self) -> EntityOwnership:
        return EntityOwnership(
            shipper_org_id=self.shipper_org_id,
            carrier_org_id=self.carrier_org_id,
            created_by_id=self.created_by_id,
        )


class LoadEvent(Base):
    __tablename__ = "load_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    load_id: Mapped[str] = mapped_column(ForeignKey("loads.id"), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
