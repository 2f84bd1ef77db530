from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    shipper_org_id: str
    carrier_org_id: str | None
    assigned_truck_id: str | None
    status: str
    pickup_city: str
    delivery_city: str
    cargo_description: str | None
    weight_kg: Decimal | None
    shipper_service_fee: Decimal
    carrier_service_fee: Decimal
    fee_status: str
    posted_at: datetime | None
    assigned_at: datetime | None
    created_at: datetime
    updated_at: datetime


class LoadUpdateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: str | None = None
    pickup_city: str | None = Field(default=None, min_length=1, max_length=100)
    delivery_city: str | None = Field(default=None, min_length=1, max_length=100)
    cargo_description: str | None = None
    weight_kg: Decimal | None = Field(default=None, gt=0)

    @field_validator("pickup_city", "delivery_city")
    @classmethod
    def _city_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("must not be null")
        return value


class TripOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    load_id: str
    truck_id: str | None
    carrier_org_id: str
    shipper_org_id: str
    status: str
    tracking_enabled: bool
    started_at: datetime | None
    picked_up_at: datetime | None
    delivered_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    created_at: datetime
    updated_at: datetime


class TripUpdateIn(BaseModel):
    # Left as a free string: unknown values are reported by the trip workflow.
    status: str


class TruckOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    carrier_org_id: str
    license_plate: str
    truck_type: str
    is_available: bool


class TruckPostingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    truck_id: str
    carrier_org_id: str
    status: str
    origin_city: str
    destination_city: str | None
    available_from: datetime | None
    created_at: datetime


class BookingRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: str
    load_id: str
    truck_id: str
    shipper_org_id: str
    carrier_org_id: str
    status: str
    expires_at: datetime
    responded_at: datetime | None
    response_notes: str | None
    created_at: datetime


class RespondIn(BaseModel):
    action: Literal["APPROVE", "REJECT"]
    response_notes: str | None = Field(default=None, max_length=500)
