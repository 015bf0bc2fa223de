"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from typing import Dict, List, Optional

from domain.enums import RoomType, RoomStatus, BookingStatus, PaymentMethod, UserRole


# ============================================================================
# SHARED SCHEMAS
# ============================================================================

class StaffNoteResponse(BaseModel):
    """Staff note response DTO"""
    note: str
    date: datetime
    staff: UUID


class PaymentResultSchema(BaseModel):
    """Payment processor outcome, passed through untouched"""
    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: str = "USD"


class RefundResponse(BaseModel):
    """Cancellation outcome DTO"""
    id: UUID
    status: str
    refund_amount: Decimal
    message: str


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class RoomCapacitySchema(BaseModel):
    adults: int = Field(ge=1, le=10)
    children: int = Field(ge=0, le=5, default=0)


class RoomFeaturesSchema(BaseModel):
    has_balcony: bool = False
    has_sea_view: bool = False
    has_kitchen: bool = False
    has_jacuzzi: bool = False
    is_accessible: bool = False


class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    number: str = Field(min_length=1, max_length=10)
    type: RoomType
    price_per_night: Decimal = Field(ge=0, le=10000)
    capacity: RoomCapacitySchema
    description: Optional[str] = Field(None, max_length=1000)
    amenities: List[str] = []
    size: Optional[int] = Field(None, ge=10, le=500)
    floor: Optional[int] = Field(None, ge=0, le=50)
    features: RoomFeaturesSchema = RoomFeaturesSchema()


class UpdateRoomRequest(BaseModel):
    """Partial room update DTO; omitted fields are left unchanged"""
    number: Optional[str] = Field(None, min_length=1, max_length=10)
    type: Optional[RoomType] = None
    price_per_night: Optional[Decimal] = Field(None, ge=0, le=10000)
    capacity: Optional[Dict[str, int]] = None
    status: Optional[RoomStatus] = None
    description: Optional[str] = Field(None, max_length=1000)
    amenities: Optional[List[str]] = None
    size: Optional[int] = Field(None, ge=10, le=500)
    floor: Optional[int] = Field(None, ge=0, le=50)
    features: Optional[Dict[str, bool]] = None


class MaintenanceNoteRequest(BaseModel):
    note: str = Field(min_length=1)


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: UUID
    number: str
    type: str
    price_per_night: Decimal
    capacity: RoomCapacitySchema
    total_capacity: int
    status: str
    is_active: bool
    is_available: bool
    description: Optional[str] = None
    amenities: List[str]
    size: Optional[int] = None
    floor: Optional[int] = None
    features: RoomFeaturesSchema
    maintenance_notes: List[StaffNoteResponse]
    created_at: datetime
    modified_at: datetime
    version: int


# ============================================================================
# BOOKING SCHEMAS
# ============================================================================

class CreateBookingRequest(BaseModel):
    """Create booking request DTO"""
    room_id: UUID
    check_in: datetime
    check_out: datetime
    adults: int = Field(ge=1)
    children: int = Field(ge=0, default=0)
    total_price: Decimal = Field(ge=0)
    special_requests: Optional[str] = Field(None, max_length=500)


class UpdateBookingRequest(BaseModel):
    """Staff booking update DTO"""
    status: Optional[BookingStatus] = None
    cancellation_reason: Optional[str] = Field(None, max_length=200)
    is_paid: Optional[bool] = None
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = None
    payment_result: Optional[PaymentResultSchema] = None
    special_requests: Optional[str] = Field(None, max_length=500)
    internal_note: Optional[str] = None


class CancelRequest(BaseModel):
    """Cancellation request DTO"""
    reason: Optional[str] = Field(None, max_length=200)


class BookingResponse(BaseModel):
    """Booking response DTO"""
    booking_id: UUID
    room_id: UUID
    guest_id: UUID
    identification_document_id: Optional[UUID] = None
    source_reservation_id: Optional[UUID] = None
    check_in: datetime
    check_out: datetime
    adults: int
    children: int
    total_guests: int
    number_of_nights: int
    total_price: Decimal
    status: str
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    is_paid: bool
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_result: Optional[PaymentResultSchema] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    internal_notes: List[StaffNoteResponse]
    created_at: datetime
    modified_at: datetime
    version: int


class BookingListResponse(BaseModel):
    """Paginated bookings"""
    items: List[BookingResponse]
    total: int
    page: int
    limit: int
    pages: int


class BookingStatsResponse(BaseModel):
    total_bookings: int
    total_revenue: Decimal
    average_booking_value: Decimal
    by_status: Dict[str, int]


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    room_id: UUID
    check_in: datetime
    check_out: datetime
    guest_count: int = Field(ge=1)
    total_price: Decimal = Field(ge=0)
    identification_document_id: Optional[UUID] = None
    special_requests: Optional[str] = Field(None, max_length=500)
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = None


class ConfirmReservationRequest(BaseModel):
    """Confirm reservation (deposit paid) request DTO"""
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = None


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    room_id: UUID
    guest_id: UUID
    identification_document_id: UUID
    converted_to_booking_id: Optional[UUID] = None
    check_in: datetime
    check_out: datetime
    guest_count: int
    number_of_nights: int
    total_price: Decimal
    status: str
    special_requests: Optional[str] = None
    deposit_amount: Decimal
    deposit_paid: bool
    deposit_paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    expires_at: datetime
    confirmed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    modified_at: datetime
    version: int


class ConversionResponse(BaseModel):
    """Result of turning a reservation into a booking"""
    reservation: ReservationResponse
    booking: BookingResponse


# ============================================================================
# DOCUMENT SCHEMAS
# ============================================================================

class RegisterDocumentRequest(BaseModel):
    """Metadata of an identification file already stored by the upload pipeline"""
    filename: str = Field(min_length=1)
    original_name: Optional[str] = None
    mimetype: str
    size: int = Field(ge=0)


class DocumentResponse(BaseModel):
    document_id: UUID
    owner_id: UUID
    filename: str
    original_name: Optional[str] = None
    mimetype: str
    size: int
    uploaded_at: datetime


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str

class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None

class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole
    disabled: bool
