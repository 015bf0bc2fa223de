"""Domain Value Objects"""
import math
from pydantic import BaseModel, Field, validator
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from typing import Optional

from domain.clock import ensure_utc, utc_now


class StayPeriod(BaseModel):
    """Value Object for a half-open [check_in, check_out) stay"""
    check_in: datetime
    check_out: datetime

    @validator('check_in', 'check_out')
    def normalize_to_utc(cls, v):
        return ensure_utc(v)

    @validator('check_out')
    def check_out_after_check_in(cls, v, values):
        if 'check_in' in values and v <= values['check_in']:
            raise ValueError('Check-out date must be after check-in date')
        return v

    def overlaps(self, other: "StayPeriod") -> bool:
        """Half-open intersection test; back-to-back stays do not overlap"""
        return self.check_in < other.check_out and self.check_out > other.check_in

    def nights(self) -> int:
        """Number of nights, counting a partial day as a full night"""
        seconds = (self.check_out - self.check_in).total_seconds()
        return math.ceil(seconds / 86400)

    def contains(self, moment: datetime) -> bool:
        return self.check_in <= moment < self.check_out

    class Config:
        frozen = True


class BookingGuests(BaseModel):
    """Value Object for a booking party"""
    adults: int = Field(ge=1)
    children: int = Field(ge=0, default=0)

    @property
    def total(self) -> int:
        return self.adults + self.children

    class Config:
        frozen = True


class RoomCapacity(BaseModel):
    """Value Object for how many guests a room sleeps"""
    adults: int = Field(ge=1, le=10)
    children: int = Field(ge=0, le=5, default=0)

    @validator('children')
    def children_not_above_adults(cls, v, values):
        if 'adults' in values and v > values['adults']:
            raise ValueError('Children capacity cannot exceed adult capacity')
        return v

    @property
    def total(self) -> int:
        return self.adults + self.children

    class Config:
        frozen = True


class RoomFeatures(BaseModel):
    has_balcony: bool = False
    has_sea_view: bool = False
    has_kitchen: bool = False
    has_jacuzzi: bool = False
    is_accessible: bool = False

    class Config:
        frozen = True


class PaymentResult(BaseModel):
    """Opaque payment processor outcome, stored as received"""
    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: str = "USD"

    class Config:
        frozen = True


class StaffNote(BaseModel):
    """Append-only note left by staff on a booking or room"""
    note: str = Field(min_length=1)
    date: datetime = Field(default_factory=utc_now)
    staff: UUID

    class Config:
        frozen = True
