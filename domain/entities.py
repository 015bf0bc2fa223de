"""Domain Entities - Aggregates"""
import re
from pydantic import BaseModel, Field, validator, ValidationError as PydanticValidationError
from uuid import UUID, uuid4
from datetime import datetime, timedelta
from typing import Optional, List, Dict, FrozenSet
from decimal import Decimal, ROUND_HALF_UP

from domain.clock import utc_now, start_of_day
from domain.enums import (
    RoomType, RoomStatus, BookingStatus, ReservationStatus, PaymentMethod, ClaimKind
)
from domain.exceptions import (
    ValidationError, InvalidStateTransitionError, AlreadyConvertedError, ExpiredError
)
from domain.occupancy import (
    OccupancyClaim, BLOCKING_BOOKING_STATUSES, BLOCKING_RESERVATION_STATUSES
)
from domain.value_objects import (
    StayPeriod, BookingGuests, RoomCapacity, RoomFeatures, PaymentResult, StaffNote
)


ROOM_NUMBER_PATTERN = re.compile(r"^[A-Z0-9-]+$")

BOOKING_MAX_ADULTS = 10
BOOKING_MAX_CHILDREN = 5
RESERVATION_MAX_GUESTS = 20

FULL_REFUND_HOURS = 24
PARTIAL_REFUND_RATE = Decimal("0.5")

DEPOSIT_RATE = Decimal("0.20")
RESERVATION_HOLD = timedelta(hours=48)

BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.CHECKED_IN,
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.CHECKED_OUT}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
    BookingStatus.CHECKED_OUT: frozenset(),
}

RESERVATION_TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
        ReservationStatus.EXPIRED,
    }),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.CONVERTED_TO_BOOKING,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.EXPIRED: frozenset(),
    ReservationStatus.CONVERTED_TO_BOOKING: frozenset(),
}

# Room State Manager rule table; statuses not listed leave the room untouched
ROOM_STATUS_BY_BOOKING_STATUS: Dict[BookingStatus, RoomStatus] = {
    BookingStatus.CANCELLED: RoomStatus.AVAILABLE,
    BookingStatus.COMPLETED: RoomStatus.AVAILABLE,
    BookingStatus.CHECKED_OUT: RoomStatus.AVAILABLE,
    BookingStatus.CONFIRMED: RoomStatus.OCCUPIED,
    BookingStatus.CHECKED_IN: RoomStatus.OCCUPIED,
}

UNBOOKABLE_ROOM_STATUSES = frozenset({RoomStatus.MAINTENANCE, RoomStatus.OUT_OF_ORDER})


def validation_error_from(exc: PydanticValidationError) -> ValidationError:
    """Translate a pydantic model error into a domain ValidationError"""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "Invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return ValidationError("; ".join(messages), {"errors": messages})


def calculate_deposit(total_price: Decimal) -> Decimal:
    """20% of the total, rounded half-up to a whole unit"""
    return (Decimal(total_price) * DEPOSIT_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


class Room(BaseModel):
    """Room Aggregate Root Entity

    ``status`` is an advisory occupancy cache for browsing and display.
    Conflict checks never read it; they query bookings and reservations.
    """

    # Identity
    room_id: UUID = Field(default_factory=uuid4)
    number: str

    # Attributes
    type: RoomType
    price_per_night: Decimal = Field(ge=0, le=10000)
    capacity: RoomCapacity
    status: RoomStatus = RoomStatus.AVAILABLE
    is_active: bool = True
    description: Optional[str] = Field(None, max_length=1000)
    amenities: List[str] = []
    size: Optional[int] = Field(None, ge=10, le=500)
    floor: Optional[int] = Field(None, ge=0, le=50)
    features: RoomFeatures = Field(default_factory=RoomFeatures)
    maintenance_notes: List[StaffNote] = []

    # Metadata
    created_at: datetime = Field(default_factory=utc_now)
    modified_at: datetime = Field(default_factory=utc_now)
    version: int = 1

    class Config:
        from_attributes = True

    @validator('number', pre=True)
    def normalize_number(cls, v):
        if not isinstance(v, str):
            raise ValueError('Room number must be a string')
        v = v.strip().upper()
        if not ROOM_NUMBER_PATTERN.match(v):
            raise ValueError('Room number must contain only letters, numbers, and hyphens')
        return v

    @validator('amenities', each_item=True)
    def amenity_length(cls, v):
        v = v.strip()
        if not 0 < len(v) <= 50:
            raise ValueError('Each amenity must be between 1 and 50 characters')
        return v

    # ==================== QUERY METHODS ====================
    @property
    def total_capacity(self) -> int:
        return self.capacity.total

    @property
    def is_available(self) -> bool:
        return self.status == RoomStatus.AVAILABLE and self.is_active

    def can_be_booked(self) -> bool:
        """Active and not taken out of service by staff"""
        return self.is_active and self.status not in UNBOOKABLE_ROOM_STATUSES

    # ==================== STATE METHODS ====================
    def apply_booking_status(self, booking_status: BookingStatus) -> bool:
        """Mirror a booking transition onto the room; returns True if status changed"""
        target = ROOM_STATUS_BY_BOOKING_STATUS.get(booking_status)
        if target is None or target == self.status:
            return False
        self.status = target
        self._touch()
        return True

    def deactivate(self) -> None:
        self.is_active = False
        self._touch()

    def add_maintenance_note(self, note: str, staff_id: UUID) -> StaffNote:
        entry = StaffNote(note=note, staff=staff_id)
        self.maintenance_notes.append(entry)
        self._touch()
        return entry

    def _touch(self) -> None:
        self.modified_at = utc_now()
        self.version += 1


class IdentificationDocument(BaseModel):
    """Metadata for an identification upload held by the document store"""
    document_id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    filename: str = Field(min_length=1)
    original_name: Optional[str] = None
    mimetype: str
    size: int = Field(ge=0)
    uploaded_at: datetime = Field(default_factory=utc_now)

    class Config:
        from_attributes = True


class Booking(BaseModel):
    """Booking Aggregate Root Entity"""

    # Identity
    booking_id: UUID = Field(default_factory=uuid4)

    # References
    room_id: UUID
    guest_id: UUID
    identification_document_id: Optional[UUID] = None
    source_reservation_id: Optional[UUID] = None

    # Value Objects
    stay: StayPeriod
    guests: BookingGuests
    total_price: Decimal = Field(ge=0)

    status: BookingStatus = BookingStatus.PENDING
    special_requests: Optional[str] = Field(None, max_length=500)

    # Cancellation
    cancellation_reason: Optional[str] = Field(None, max_length=200)
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[UUID] = None

    # Payment
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = None
    payment_result: Optional[PaymentResult] = None

    # Check-in/out tracking
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[UUID] = None
    checked_out_at: Optional[datetime] = None
    checked_out_by: Optional[UUID] = None

    internal_notes: List[StaffNote] = []

    # Metadata
    created_at: datetime = Field(default_factory=utc_now)
    modified_at: datetime = Field(default_factory=utc_now)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHODS ====================
    @staticmethod
    def create(
        room: Room,
        guest_id: UUID,
        stay: StayPeriod,
        guests: BookingGuests,
        total_price: Decimal,
        special_requests: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> "Booking":
        """Create a pending booking after validating party size and dates"""
        now = now or utc_now()
        Booking._validate_guests(guests, room)
        Booking._validate_stay(stay, now)

        try:
            return Booking(
                room_id=room.room_id,
                guest_id=guest_id,
                stay=stay,
                guests=guests,
                total_price=total_price,
                special_requests=special_requests,
                status=BookingStatus.PENDING,
                is_paid=False,
                created_at=now,
                modified_at=now
            )
        except PydanticValidationError as e:
            raise validation_error_from(e)

    @staticmethod
    def from_reservation(reservation: "Reservation", now: Optional[datetime] = None) -> "Booking":
        """Materialize a confirmed reservation as a confirmed, unpaid booking"""
        now = now or utc_now()
        return Booking(
            room_id=reservation.room_id,
            guest_id=reservation.guest_id,
            identification_document_id=reservation.identification_document_id,
            source_reservation_id=reservation.reservation_id,
            stay=reservation.stay,
            guests=BookingGuests(adults=reservation.guest_count, children=0),
            total_price=reservation.total_price,
            special_requests=reservation.special_requests,
            status=BookingStatus.CONFIRMED,
            is_paid=False,
            payment_method=reservation.payment_method,
            payment_reference=reservation.payment_reference,
            created_at=now,
            modified_at=now
        )

    # ==================== STATE TRANSITION METHODS ====================
    def transition_to(
        self,
        new_status: BookingStatus,
        actor_id: UUID,
        now: Optional[datetime] = None,
        reason: Optional[str] = None
    ) -> bool:
        """Move to ``new_status``; re-entering the current status is a no-op.

        Audit stamps are written only on the first entry into a status.
        Returns True when the status actually changed.
        """
        if new_status == self.status:
            return False

        if new_status not in BOOKING_TRANSITIONS[self.status]:
            raise InvalidStateTransitionError(
                f"Cannot change booking status from {self.status.value} to {new_status.value}",
                current_status=self.status.value,
                requested_status=new_status.value
            )

        now = now or utc_now()
        self.status = new_status

        if new_status == BookingStatus.CANCELLED and self.cancelled_at is None:
            self.cancelled_at = now
            self.cancelled_by = actor_id
            if reason:
                self.cancellation_reason = reason
        elif new_status == BookingStatus.CHECKED_IN and self.checked_in_at is None:
            self.checked_in_at = now
            self.checked_in_by = actor_id
        elif new_status == BookingStatus.CHECKED_OUT and self.checked_out_at is None:
            self.checked_out_at = now
            self.checked_out_by = actor_id

        self._touch(now)
        return True

    def confirm(self, actor_id: UUID, now: Optional[datetime] = None) -> None:
        if self.status != BookingStatus.PENDING:
            raise InvalidStateTransitionError(
                "Only pending bookings can be confirmed",
                current_status=self.status.value,
                requested_status=BookingStatus.CONFIRMED.value
            )
        self.transition_to(BookingStatus.CONFIRMED, actor_id, now)

    def check_in(self, actor_id: UUID, now: Optional[datetime] = None) -> None:
        """Mark guest as checked in"""
        if self.status != BookingStatus.CONFIRMED:
            raise InvalidStateTransitionError(
                "Only confirmed bookings can be checked in",
                current_status=self.status.value,
                requested_status=BookingStatus.CHECKED_IN.value
            )
        self.transition_to(BookingStatus.CHECKED_IN, actor_id, now)

    def check_out(self, actor_id: UUID, now: Optional[datetime] = None) -> None:
        """Process guest check-out"""
        if self.status != BookingStatus.CHECKED_IN:
            raise InvalidStateTransitionError(
                "Only checked-in bookings can be checked out",
                current_status=self.status.value,
                requested_status=BookingStatus.CHECKED_OUT.value
            )
        self.transition_to(BookingStatus.CHECKED_OUT, actor_id, now)

    def cancel(
        self,
        actor_id: UUID,
        reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Decimal:
        """Cancel on behalf of the guest and return the refund due"""
        now = now or utc_now()

        if self.status == BookingStatus.CANCELLED:
            raise InvalidStateTransitionError("Booking is already cancelled", current_status=self.status.value)
        if self.status == BookingStatus.COMPLETED:
            raise InvalidStateTransitionError("Cannot cancel a completed booking", current_status=self.status.value)
        if self.status == BookingStatus.CHECKED_OUT:
            raise InvalidStateTransitionError("Cannot cancel a checked-out booking", current_status=self.status.value)
        if BookingStatus.CANCELLED not in BOOKING_TRANSITIONS[self.status]:
            raise InvalidStateTransitionError(
                f"Cannot cancel booking with status {self.status.value}",
                current_status=self.status.value,
                requested_status=BookingStatus.CANCELLED.value
            )
        if now > self.stay.check_in:
            raise InvalidStateTransitionError(
                "Cannot cancel a booking that has already started",
                current_status=self.status.value,
                requested_status=BookingStatus.CANCELLED.value
            )

        self.transition_to(BookingStatus.CANCELLED, actor_id, now, reason=reason)
        return self.calculate_refund(now)

    # ==================== MODIFICATION METHODS ====================
    def record_payment(
        self,
        is_paid: Optional[bool] = None,
        payment_method: Optional[PaymentMethod] = None,
        payment_reference: Optional[str] = None,
        payment_result: Optional[PaymentResult] = None,
        now: Optional[datetime] = None
    ) -> None:
        """Store payment data supplied by the payment processor"""
        now = now or utc_now()
        if is_paid is not None:
            self.is_paid = is_paid
            if is_paid and self.paid_at is None:
                self.paid_at = now
        if payment_method is not None:
            self.payment_method = payment_method
        if payment_reference:
            self.payment_reference = payment_reference
        if payment_result is not None:
            self.payment_result = payment_result
        self._touch(now)

    def update_special_requests(self, special_requests: Optional[str]) -> None:
        if special_requests is not None and len(special_requests) > 500:
            raise ValidationError("Special requests cannot exceed 500 characters")
        self.special_requests = special_requests
        self._touch()

    def add_internal_note(self, note: str, staff_id: UUID, now: Optional[datetime] = None) -> StaffNote:
        now = now or utc_now()
        entry = StaffNote(note=note, staff=staff_id, date=now)
        self.internal_notes.append(entry)
        self._touch(now)
        return entry

    # ==================== QUERY METHODS ====================
    def calculate_refund(self, now: Optional[datetime] = None) -> Decimal:
        """Refund owed for a cancelled booking, evaluated at ``now``"""
        if self.status != BookingStatus.CANCELLED:
            return Decimal("0")

        now = now or utc_now()
        hours_until_check_in = (self.stay.check_in - now).total_seconds() / 3600

        if hours_until_check_in > FULL_REFUND_HOURS:
            return Decimal(self.total_price)
        if hours_until_check_in > 0:
            return Decimal(self.total_price) * PARTIAL_REFUND_RATE
        return Decimal("0")

    def can_transition_to(self, new_status: BookingStatus) -> bool:
        return new_status in BOOKING_TRANSITIONS[self.status]

    def is_terminal(self) -> bool:
        return not BOOKING_TRANSITIONS[self.status]

    def blocks_room(self) -> bool:
        return self.status in BLOCKING_BOOKING_STATUSES

    def is_active_stay(self, now: Optional[datetime] = None) -> bool:
        """Confirmed and currently inside the stay window"""
        now = now or utc_now()
        return self.status == BookingStatus.CONFIRMED and self.stay.contains(now)

    def can_be_cancelled(self, now: Optional[datetime] = None) -> bool:
        now = now or utc_now()
        hours_until_check_in = (self.stay.check_in - now).total_seconds() / 3600
        return self.status == BookingStatus.CONFIRMED and hours_until_check_in > FULL_REFUND_HOURS

    @property
    def total_guests(self) -> int:
        return self.guests.total

    @property
    def number_of_nights(self) -> int:
        return self.stay.nights()

    def to_claim(self) -> OccupancyClaim:
        return OccupancyClaim(
            kind=ClaimKind.BOOKING,
            claim_id=self.booking_id,
            room_id=self.room_id,
            status=self.status.value,
            stay=self.stay
        )

    # ==================== PRIVATE VALIDATION METHODS ====================
    @staticmethod
    def _validate_guests(guests: BookingGuests, room: Room) -> None:
        if guests.adults < 1:
            raise ValidationError("At least 1 adult is required")
        if guests.adults > BOOKING_MAX_ADULTS:
            raise ValidationError(f"Cannot exceed {BOOKING_MAX_ADULTS} adults")
        if guests.children > BOOKING_MAX_CHILDREN:
            raise ValidationError(f"Cannot exceed {BOOKING_MAX_CHILDREN} children")
        if guests.total > room.total_capacity:
            raise ValidationError(
                f"Room capacity exceeded. Maximum {room.total_capacity} guests allowed"
            )

    @staticmethod
    def _validate_stay(stay: StayPeriod, now: datetime) -> None:
        # Bookings need a check-in strictly in the future
        if stay.check_in <= now:
            raise ValidationError("Check-in date must be in the future")

    def _touch(self, now: Optional[datetime] = None) -> None:
        self.modified_at = now or utc_now()
        self.version += 1


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity

    A deposit-secured hold on a room. ``expires_at`` is fixed at creation;
    a pending reservation past it is expired whether or not the stored
    status has caught up yet.
    """

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)

    # References
    room_id: UUID
    guest_id: UUID
    identification_document_id: UUID
    converted_to_booking_id: Optional[UUID] = None

    stay: StayPeriod
    guest_count: int = Field(ge=1, le=RESERVATION_MAX_GUESTS)
    total_price: Decimal = Field(ge=0)

    status: ReservationStatus = ReservationStatus.PENDING
    special_requests: Optional[str] = Field(None, max_length=500)

    # Deposit
    deposit_amount: Decimal = Field(ge=0, default=Decimal("0"))
    deposit_paid: bool = False
    deposit_paid_at: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = None

    # Lifecycle timestamps
    expires_at: datetime
    confirmed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = Field(None, max_length=200)
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[UUID] = None

    # Metadata
    created_at: datetime = Field(default_factory=utc_now)
    modified_at: datetime = Field(default_factory=utc_now)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        room: Room,
        guest_id: UUID,
        stay: StayPeriod,
        guest_count: int,
        total_price: Decimal,
        identification_document_id: Optional[UUID],
        special_requests: Optional[str] = None,
        payment_method: Optional[PaymentMethod] = None,
        payment_reference: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> "Reservation":
        """Create a pending reservation with a 48 hour hold"""
        now = now or utc_now()

        if identification_document_id is None:
            raise ValidationError("Identification document is required for reservation verification")

        Reservation._validate_guest_count(guest_count, room)
        Reservation._validate_stay(stay, now)

        try:
            return Reservation(
                room_id=room.room_id,
                guest_id=guest_id,
                identification_document_id=identification_document_id,
                stay=stay,
                guest_count=guest_count,
                total_price=total_price,
                special_requests=special_requests,
                deposit_amount=calculate_deposit(total_price),
                payment_method=payment_method,
                payment_reference=payment_reference,
                status=ReservationStatus.PENDING,
                expires_at=now + RESERVATION_HOLD,
                created_at=now,
                modified_at=now
            )
        except PydanticValidationError as e:
            raise validation_error_from(e)

    # ==================== STATE TRANSITION METHODS ====================
    def refresh_expiry(self, now: Optional[datetime] = None) -> bool:
        """Apply lazy expiry; returns True if the status flipped to expired"""
        if not self.is_expired(now):
            return False
        self.status = ReservationStatus.EXPIRED
        self._touch(now)
        return True

    def confirm(
        self,
        payment_method: Optional[PaymentMethod] = None,
        payment_reference: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> None:
        """Confirm after the deposit is paid"""
        now = now or utc_now()

        if self.status == ReservationStatus.CONFIRMED:
            raise InvalidStateTransitionError("Reservation is already confirmed", current_status=self.status.value)

        if self.refresh_expiry(now) or self.status == ReservationStatus.EXPIRED:
            raise ExpiredError(
                "Reservation has expired. Please create a new reservation.",
                {"expires_at": self.expires_at.isoformat()}
            )

        if self.status == ReservationStatus.CANCELLED:
            raise InvalidStateTransitionError("Cannot confirm a cancelled reservation", current_status=self.status.value)

        self._require_transition(ReservationStatus.CONFIRMED)

        self.status = ReservationStatus.CONFIRMED
        self.deposit_paid = True
        self.deposit_paid_at = now
        if self.confirmed_at is None:
            self.confirmed_at = now
        if payment_method is not None:
            self.payment_method = payment_method
        if payment_reference:
            self.payment_reference = payment_reference
        self._touch(now)

    def cancel(
        self,
        actor_id: UUID,
        reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Decimal:
        """Cancel and return the refund due (the deposit, if one was paid)"""
        now = now or utc_now()

        if self.status == ReservationStatus.CANCELLED:
            raise InvalidStateTransitionError("Reservation is already cancelled", current_status=self.status.value)
        if self.status == ReservationStatus.CONVERTED_TO_BOOKING:
            raise InvalidStateTransitionError(
                "Cannot cancel a reservation that has been converted to a booking",
                current_status=self.status.value
            )

        self.refresh_expiry(now)
        self._require_transition(ReservationStatus.CANCELLED)

        self.status = ReservationStatus.CANCELLED
        self.cancelled_at = now
        self.cancelled_by = actor_id
        if reason:
            self.cancellation_reason = reason
        self._touch(now)

        return self.refund_amount()

    def ensure_convertible(self) -> None:
        """Raise unless this reservation may be turned into a booking"""
        if self.converted_to_booking_id is not None:
            raise AlreadyConvertedError(
                "Reservation has already been converted to a booking",
                current_status=self.status.value
            )
        if self.status != ReservationStatus.CONFIRMED:
            raise InvalidStateTransitionError(
                "Only confirmed reservations can be converted to bookings",
                current_status=self.status.value,
                requested_status=ReservationStatus.CONVERTED_TO_BOOKING.value
            )

    def mark_converted(self, booking_id: UUID, now: Optional[datetime] = None) -> None:
        self.ensure_convertible()
        self.status = ReservationStatus.CONVERTED_TO_BOOKING
        self.converted_to_booking_id = booking_id
        self._touch(now)

    # ==================== QUERY METHODS ====================
    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Pending and at or past ``expires_at``"""
        now = now or utc_now()
        return self.status == ReservationStatus.PENDING and now >= self.expires_at

    def refund_amount(self) -> Decimal:
        return self.deposit_amount if self.deposit_paid else Decimal("0")

    def blocks_room(self, now: Optional[datetime] = None) -> bool:
        return self.status in BLOCKING_RESERVATION_STATUSES and not self.is_expired(now)

    def can_transition_to(self, new_status: ReservationStatus) -> bool:
        return new_status in RESERVATION_TRANSITIONS[self.status]

    @property
    def number_of_nights(self) -> int:
        return self.stay.nights()

    def to_claim(self) -> OccupancyClaim:
        return OccupancyClaim(
            kind=ClaimKind.RESERVATION,
            claim_id=self.reservation_id,
            room_id=self.room_id,
            status=self.status.value,
            stay=self.stay
        )

    # ==================== PRIVATE VALIDATION METHODS ====================
    def _require_transition(self, new_status: ReservationStatus) -> None:
        if new_status not in RESERVATION_TRANSITIONS[self.status]:
            raise InvalidStateTransitionError(
                f"Cannot change reservation status from {self.status.value} to {new_status.value}",
                current_status=self.status.value,
                requested_status=new_status.value
            )

    @staticmethod
    def _validate_guest_count(guest_count: int, room: Room) -> None:
        if guest_count < 1:
            raise ValidationError("At least 1 guest is required")
        if guest_count > RESERVATION_MAX_GUESTS:
            raise ValidationError(f"Cannot exceed {RESERVATION_MAX_GUESTS} guests")
        if guest_count > room.total_capacity:
            raise ValidationError(
                f"Room capacity exceeded. Maximum {room.total_capacity} guests allowed"
            )

    @staticmethod
    def _validate_stay(stay: StayPeriod, now: datetime) -> None:
        # Same-day check-in is allowed for reservations
        if stay.check_in < start_of_day(now):
            raise ValidationError("Check-in date cannot be in the past")

    def _touch(self, now: Optional[datetime] = None) -> None:
        self.modified_at = now or utc_now()
        self.version += 1
