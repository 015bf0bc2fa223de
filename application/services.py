"""Application Services - Business use cases"""
import logging
from uuid import UUID
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from application.availability import AvailabilityService
from domain.auth import Principal
from domain.clock import Clock, utc_now, ensure_utc
from domain.entities import (
    Room, Booking, Reservation, IdentificationDocument, validation_error_from
)
from domain.enums import (
    RoomType, RoomStatus, BookingStatus, ReservationStatus, PaymentMethod
)
from domain.exceptions import (
    ValidationError, NotFoundError, ConflictError, AuthorizationError, ExpiredError,
    InvalidStateTransitionError
)
from domain.occupancy import BLOCKING_BOOKING_STATUSES
from domain.repositories import (
    RoomRepository, BookingRepository, ReservationRepository, DocumentRepository
)
from domain.value_objects import (
    StayPeriod, BookingGuests, RoomCapacity, RoomFeatures, PaymentResult
)

logger = logging.getLogger(__name__)


BOOKING_SORT_FIELDS = {
    "created_at": lambda b: b.created_at,
    "check_in": lambda b: b.stay.check_in,
    "check_out": lambda b: b.stay.check_out,
    "total_price": lambda b: b.total_price,
    "status": lambda b: b.status.value,
}

# Room statuses that take the room out of service; booking transitions leave them alone
STAFF_HELD_ROOM_STATUSES = frozenset({
    RoomStatus.MAINTENANCE,
    RoomStatus.OUT_OF_ORDER,
})


def _require_staff(principal: Principal, action: str) -> None:
    if not principal.is_staff:
        logger.warning("User %s (%s) denied: %s", principal.id, principal.role.value, action)
        raise AuthorizationError(f"Not authorized to {action}")


def _require_admin(principal: Principal, action: str) -> None:
    if not principal.is_admin:
        logger.warning("User %s (%s) denied: %s", principal.id, principal.role.value, action)
        raise AuthorizationError(f"Not authorized to {action}")


def _build_stay(check_in: datetime, check_out: datetime) -> StayPeriod:
    try:
        return StayPeriod(check_in=check_in, check_out=check_out)
    except PydanticValidationError as e:
        raise validation_error_from(e)


class RoomStateManager:
    """Keeps the advisory Room.status in step with booking transitions.

    Room.status is a display cache. Availability decisions are made from
    booking and reservation intervals, never from this field.
    """

    def __init__(self,
                 room_repo: RoomRepository,
                 booking_repo: BookingRepository,
                 clock: Clock = utc_now):
        self.room_repo = room_repo
        self.booking_repo = booking_repo
        self.clock = clock

    async def sync_room_status(self, room_id: UUID, booking_status: BookingStatus) -> Optional[Room]:
        """Apply the booking-status rule table to the room"""
        room = await self.room_repo.find_by_id(room_id)
        if not room:
            logger.warning("Room %s vanished before status sync", room_id)
            return None

        if room.status in STAFF_HELD_ROOM_STATUSES:
            return room

        # A release only frees the room if no other booking still holds it
        if booking_status not in BLOCKING_BOOKING_STATUSES and await self._has_active_booking(room_id):
            return room

        if room.apply_booking_status(booking_status):
            await self.room_repo.update(room)
            logger.info("Room %s status -> %s (booking %s)", room.number, room.status.value, booking_status.value)
        return room

    async def recompute(self, room_id: UUID) -> Room:
        """Rebuild the room status from the bookings currently holding it"""
        room = await self.room_repo.find_by_id(room_id)
        if not room:
            raise NotFoundError("Room not found")
        if room.status in STAFF_HELD_ROOM_STATUSES:
            return room

        target = RoomStatus.OCCUPIED if await self._has_active_booking(room_id) else RoomStatus.AVAILABLE
        if room.status != target:
            room.status = target
            room.modified_at = self.clock()
            room.version += 1
            await self.room_repo.update(room)
            logger.info("Room %s status recomputed -> %s", room.number, target.value)
        return room

    async def _has_active_booking(self, room_id: UUID) -> bool:
        now = self.clock()
        bookings = await self.booking_repo.find_all(room_id=room_id)
        return any(b.blocks_room() and b.stay.check_out > now for b in bookings)


class RoomService:
    """Service for Room business use cases"""

    def __init__(self,
                 repository: RoomRepository,
                 booking_repo: BookingRepository,
                 reservation_repo: ReservationRepository,
                 room_state: RoomStateManager):
        self.repository = repository
        self.booking_repo = booking_repo
        self.reservation_repo = reservation_repo
        self.room_state = room_state

    async def create_room(
        self,
        principal: Principal,
        number: str,
        room_type: RoomType,
        price_per_night: Decimal,
        capacity_adults: int,
        capacity_children: int = 0,
        description: Optional[str] = None,
        amenities: Optional[List[str]] = None,
        size: Optional[int] = None,
        floor: Optional[int] = None,
        features: Optional[Dict[str, bool]] = None
    ) -> Room:
        """Create a new available, active room"""
        _require_admin(principal, "create rooms")

        try:
            room = Room(
                number=number,
                type=room_type,
                price_per_night=price_per_night,
                capacity=RoomCapacity(adults=capacity_adults, children=capacity_children),
                description=description,
                amenities=amenities or [],
                size=size,
                floor=floor,
                features=RoomFeatures(**(features or {})),
                status=RoomStatus.AVAILABLE,
                is_active=True
            )
        except PydanticValidationError as e:
            raise validation_error_from(e)

        if await self.repository.find_by_number(room.number):
            raise ConflictError(f"Room number {room.number} already exists")

        saved = await self.repository.save(room)
        logger.info("Room %s created by %s", saved.number, principal.id)
        return saved

    async def get_room(self, room_id: UUID) -> Room:
        """Get room by ID"""
        room = await self.repository.find_by_id(room_id)
        if not room:
            raise NotFoundError("Room not found")
        return room

    async def list_rooms(
        self,
        room_type: Optional[RoomType] = None,
        status: Optional[RoomStatus] = None,
        is_active: Optional[bool] = None,
        available_only: bool = False
    ) -> List[Room]:
        """List rooms; ``available_only`` keeps active rooms marked available"""
        rooms = await self.repository.find_all(room_type=room_type, status=status, is_active=is_active)
        if available_only:
            rooms = [r for r in rooms if r.is_available]
        return rooms

    async def update_room(self, principal: Principal, room_id: UUID, changes: Dict[str, Any]) -> Room:
        """Apply a partial update and re-validate the whole room"""
        _require_admin(principal, "update rooms")
        room = await self.get_room(room_id)

        data = room.model_dump()
        if "capacity" in changes and changes["capacity"] is not None:
            data["capacity"] = {**data["capacity"], **changes.pop("capacity")}
        if "features" in changes and changes["features"] is not None:
            data["features"] = {**data["features"], **changes.pop("features")}
        data.update({k: v for k, v in changes.items() if v is not None})

        try:
            updated = Room(**data)
        except PydanticValidationError as e:
            raise validation_error_from(e)

        if updated.number != room.number:
            existing = await self.repository.find_by_number(updated.number)
            if existing and existing.room_id != room.room_id:
                raise ConflictError(f"Room number {updated.number} already exists")

        updated.modified_at = utc_now()
        updated.version = room.version + 1
        saved = await self.repository.update(updated)
        logger.info("Room %s updated by %s", saved.number, principal.id)
        return saved

    async def deactivate_room(self, principal: Principal, room_id: UUID) -> Room:
        """Soft-disable a room; it stays referenced by its bookings"""
        _require_admin(principal, "deactivate rooms")
        room = await self.get_room(room_id)
        room.deactivate()
        saved = await self.repository.update(room)
        logger.info("Room %s deactivated by %s", saved.number, principal.id)
        return saved

    async def delete_room(self, principal: Principal, room_id: UUID) -> bool:
        """Hard delete, allowed only while nothing references the room"""
        _require_admin(principal, "delete rooms")
        room = await self.get_room(room_id)

        bookings = await self.booking_repo.find_all(room_id=room_id)
        reservations = await self.reservation_repo.find_all(room_id=room_id)
        if bookings or reservations:
            raise ConflictError(
                "Room is referenced by bookings or reservations; deactivate it instead",
                {"bookings": len(bookings), "reservations": len(reservations)}
            )

        deleted = await self.repository.delete(room.room_id)
        logger.info("Room %s deleted by %s", room.number, principal.id)
        return deleted

    async def add_maintenance_note(self, principal: Principal, room_id: UUID, note: str) -> Room:
        _require_staff(principal, "add maintenance notes")
        room = await self.get_room(room_id)
        try:
            room.add_maintenance_note(note, principal.id)
        except PydanticValidationError as e:
            raise validation_error_from(e)
        return await self.repository.update(room)

    async def recompute_room_status(self, principal: Principal, room_id: UUID) -> Room:
        _require_staff(principal, "recompute room status")
        return await self.room_state.recompute(room_id)


class BookingService:
    """Service for Booking business use cases"""

    def __init__(self,
                 repository: BookingRepository,
                 room_repo: RoomRepository,
                 availability: AvailabilityService,
                 room_state: RoomStateManager,
                 clock: Clock = utc_now):
        self.repository = repository
        self.room_repo = room_repo
        self.availability = availability
        self.room_state = room_state
        self.clock = clock

    async def create_booking(
        self,
        principal: Principal,
        room_id: UUID,
        check_in: datetime,
        check_out: datetime,
        adults: int,
        total_price: Decimal,
        children: int = 0,
        special_requests: Optional[str] = None
    ) -> Booking:
        """Create a pending booking once the stay is free on both ledgers"""
        room = await self.room_repo.find_by_id(room_id)
        if not room:
            raise NotFoundError("Room not found")
        if not room.can_be_booked():
            raise ValidationError("Room is not available for booking")

        stay = _build_stay(check_in, check_out)
        try:
            guests = BookingGuests(adults=adults, children=children)
        except PydanticValidationError as e:
            raise validation_error_from(e)

        booking = Booking.create(
            room=room,
            guest_id=principal.id,
            stay=stay,
            guests=guests,
            total_price=total_price,
            special_requests=special_requests,
            now=self.clock()
        )

        async with self.availability.room_lock(room.room_id):
            await self.availability.ensure_available(room.room_id, stay)
            saved = await self.repository.save(booking)

        logger.info("Booking %s created for room %s by %s", saved.booking_id, room.number, principal.id)
        return saved

    async def get_booking(self, principal: Principal, booking_id: UUID) -> Booking:
        """Get booking by ID; guests may only see their own"""
        booking = await self._load(booking_id)
        if not principal.is_staff and not principal.owns(booking.guest_id):
            raise AuthorizationError("Not authorized to view this booking")
        return booking

    async def list_bookings(
        self,
        principal: Principal,
        status: Optional[BookingStatus] = None,
        room_id: Optional[UUID] = None,
        check_in_from: Optional[datetime] = None,
        check_out_until: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc"
    ) -> Tuple[List[Booking], int]:
        """Filtered, sorted, paginated bookings plus the unpaginated total"""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        if sort_by not in BOOKING_SORT_FIELDS:
            raise ValidationError(f"Cannot sort by {sort_by}")

        guest_id = None if principal.is_staff else principal.id
        bookings = await self.repository.find_all(guest_id=guest_id, room_id=room_id, status=status)

        if check_in_from is not None:
            bookings = [b for b in bookings if b.stay.check_in >= ensure_utc(check_in_from)]
        if check_out_until is not None:
            bookings = [b for b in bookings if b.stay.check_out <= ensure_utc(check_out_until)]

        bookings.sort(key=BOOKING_SORT_FIELDS[sort_by], reverse=sort_order != "asc")
        total = len(bookings)
        start = (page - 1) * limit
        return bookings[start:start + limit], total

    async def confirm_booking(self, principal: Principal, booking_id: UUID) -> Booking:
        """Confirm a pending booking (staff/admin)"""
        _require_staff(principal, "confirm bookings")
        booking = await self._load(booking_id)

        async with self.availability.room_lock(booking.room_id):
            await self.availability.ensure_available(booking.room_id, booking.stay, booking.booking_id)
            booking.confirm(principal.id, self.clock())
            await self.repository.update(booking)

        await self.room_state.sync_room_status(booking.room_id, booking.status)
        logger.info("Booking %s confirmed by %s", booking.booking_id, principal.id)
        return booking

    async def update_booking(
        self,
        principal: Principal,
        booking_id: UUID,
        status: Optional[BookingStatus] = None,
        cancellation_reason: Optional[str] = None,
        is_paid: Optional[bool] = None,
        payment_method: Optional[PaymentMethod] = None,
        payment_reference: Optional[str] = None,
        payment_result: Optional[PaymentResult] = None,
        special_requests: Optional[str] = None,
        internal_note: Optional[str] = None
    ) -> Booking:
        """Staff patch limited to status, payment, special requests and notes"""
        _require_staff(principal, "update bookings")
        booking = await self._load(booking_id)
        now = self.clock()

        status_changes = status is not None and status != booking.status
        if status_changes and not booking.can_transition_to(status):
            raise InvalidStateTransitionError(
                f"Cannot change booking status from {booking.status.value} to {status.value}",
                current_status=booking.status.value,
                requested_status=status.value
            )
        if special_requests is not None and len(special_requests) > 500:
            raise ValidationError("Special requests cannot exceed 500 characters")
        if cancellation_reason is not None and len(cancellation_reason) > 200:
            raise ValidationError("Cancellation reason cannot exceed 200 characters")
        if internal_note is not None and not internal_note.strip():
            raise ValidationError("Internal note cannot be empty")

        async with self.availability.room_lock(booking.room_id):
            if status_changes and status in BLOCKING_BOOKING_STATUSES:
                await self.availability.ensure_available(booking.room_id, booking.stay, booking.booking_id)

            if status_changes:
                booking.transition_to(status, principal.id, now, reason=cancellation_reason)
            if any(v is not None for v in (is_paid, payment_method, payment_reference, payment_result)):
                booking.record_payment(is_paid, payment_method, payment_reference, payment_result, now)
            if special_requests is not None:
                booking.update_special_requests(special_requests)
            if internal_note is not None:
                booking.add_internal_note(internal_note, principal.id, now)

            await self.repository.update(booking)

        if status_changes:
            await self.room_state.sync_room_status(booking.room_id, booking.status)
            logger.info("Booking %s status -> %s by %s", booking.booking_id, booking.status.value, principal.id)
        return booking

    async def cancel_booking(
        self,
        principal: Principal,
        booking_id: UUID,
        reason: Optional[str] = None
    ) -> Tuple[Booking, Decimal]:
        """Guest cancels their own booking; returns the booking and refund due"""
        booking = await self._load(booking_id)
        if not principal.owns(booking.guest_id):
            raise AuthorizationError("Not authorized to cancel this booking")
        if reason is not None and len(reason) > 200:
            raise ValidationError("Cancellation reason cannot exceed 200 characters")

        refund = booking.cancel(principal.id, reason, self.clock())
        await self.repository.update(booking)
        await self.room_state.sync_room_status(booking.room_id, booking.status)

        logger.info("Booking %s cancelled by guest %s, refund %s", booking.booking_id, principal.id, refund)
        return booking, refund

    async def check_in_guest(self, principal: Principal, booking_id: UUID) -> Booking:
        """Check in guest"""
        _require_staff(principal, "check in guests")
        booking = await self._load(booking_id)
        booking.check_in(principal.id, self.clock())
        await self.repository.update(booking)
        await self.room_state.sync_room_status(booking.room_id, booking.status)
        logger.info("Booking %s checked in by %s", booking.booking_id, principal.id)
        return booking

    async def check_out_guest(self, principal: Principal, booking_id: UUID) -> Booking:
        """Check out guest"""
        _require_staff(principal, "check out guests")
        booking = await self._load(booking_id)
        booking.check_out(principal.id, self.clock())
        await self.repository.update(booking)
        await self.room_state.sync_room_status(booking.room_id, booking.status)
        logger.info("Booking %s checked out by %s", booking.booking_id, principal.id)
        return booking

    async def booking_stats(self, principal: Principal) -> Dict[str, Any]:
        """Totals, revenue and per-status counts"""
        _require_staff(principal, "view booking statistics")
        bookings = await self.repository.find_all()

        total_revenue = sum((b.total_price for b in bookings), Decimal("0"))
        by_status = {s.value: 0 for s in BookingStatus}
        for booking in bookings:
            by_status[booking.status.value] += 1

        return {
            "total_bookings": len(bookings),
            "total_revenue": total_revenue,
            "average_booking_value": (total_revenue / len(bookings)) if bookings else Decimal("0"),
            "by_status": by_status,
        }

    async def _load(self, booking_id: UUID) -> Booking:
        booking = await self.repository.find_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking


class ReservationService:
    """Service for Reservation business use cases, including conversion to a booking"""

    def __init__(self,
                 repository: ReservationRepository,
                 booking_repo: BookingRepository,
                 room_repo: RoomRepository,
                 document_repo: DocumentRepository,
                 availability: AvailabilityService,
                 room_state: RoomStateManager,
                 clock: Clock = utc_now):
        self.repository = repository
        self.booking_repo = booking_repo
        self.room_repo = room_repo
        self.document_repo = document_repo
        self.availability = availability
        self.room_state = room_state
        self.clock = clock

    async def create_reservation(
        self,
        principal: Principal,
        room_id: UUID,
        check_in: datetime,
        check_out: datetime,
        guest_count: int,
        total_price: Decimal,
        identification_document_id: Optional[UUID],
        special_requests: Optional[str] = None,
        payment_method: Optional[PaymentMethod] = None,
        payment_reference: Optional[str] = None
    ) -> Reservation:
        """Create a pending reservation held for 48 hours"""
        if identification_document_id is None:
            raise ValidationError("Identification document is required for reservation verification")
        document = await self.document_repo.find_by_id(identification_document_id)
        if not document:
            raise NotFoundError("Identification document not found")
        if not principal.is_staff and not principal.owns(document.owner_id):
            raise AuthorizationError("Identification document belongs to another user")

        room = await self.room_repo.find_by_id(room_id)
        if not room:
            raise NotFoundError("Room not found")
        if not room.can_be_booked():
            raise ValidationError("Room is not available for reservation")

        stay = _build_stay(check_in, check_out)
        reservation = Reservation.create(
            room=room,
            guest_id=principal.id,
            stay=stay,
            guest_count=guest_count,
            total_price=total_price,
            identification_document_id=document.document_id,
            special_requests=special_requests,
            payment_method=payment_method,
            payment_reference=payment_reference,
            now=self.clock()
        )

        async with self.availability.room_lock(room.room_id):
            await self.availability.ensure_available(room.room_id, stay)
            saved = await self.repository.save(reservation)

        logger.info(
            "Reservation %s created for room %s by %s, deposit %s due by %s",
            saved.reservation_id, room.number, principal.id, saved.deposit_amount, saved.expires_at.isoformat()
        )
        return saved

    async def get_reservation(self, principal: Principal, reservation_id: UUID) -> Reservation:
        """Get reservation by ID; owner or staff"""
        reservation = await self._load(reservation_id)
        if not principal.is_staff and not principal.owns(reservation.guest_id):
            raise AuthorizationError("Not authorized to view this reservation")
        return reservation

    async def list_reservations(
        self,
        principal: Principal,
        status: Optional[ReservationStatus] = None
    ) -> List[Reservation]:
        """Reservations visible to the principal, newest first, with expiry applied"""
        guest_id = None if principal.is_staff else principal.id
        reservations = await self.repository.find_all(guest_id=guest_id)
        for reservation in reservations:
            await self._apply_expiry(reservation)
        if status is not None:
            reservations = [r for r in reservations if r.status == status]
        return reservations

    async def confirm_reservation(
        self,
        principal: Principal,
        reservation_id: UUID,
        payment_method: Optional[PaymentMethod] = None,
        payment_reference: Optional[str] = None
    ) -> Reservation:
        """Confirm after deposit payment; owner or staff"""
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise NotFoundError("Reservation not found")
        if not principal.is_staff and not principal.owns(reservation.guest_id):
            raise AuthorizationError("Not authorized to confirm this reservation")

        try:
            reservation.confirm(payment_method, payment_reference, self.clock())
        except ExpiredError:
            await self.repository.update(reservation)
            logger.warning("Reservation %s expired before confirmation", reservation.reservation_id)
            raise

        await self.repository.update(reservation)
        logger.info("Reservation %s confirmed, deposit %s paid", reservation.reservation_id, reservation.deposit_amount)
        return reservation

    async def cancel_reservation(
        self,
        principal: Principal,
        reservation_id: UUID,
        reason: Optional[str] = None
    ) -> Tuple[Reservation, Decimal]:
        """Owner cancels; returns the reservation and refund due"""
        reservation = await self._load(reservation_id)
        if not principal.owns(reservation.guest_id):
            raise AuthorizationError("Not authorized to cancel this reservation")
        if reason is not None and len(reason) > 200:
            raise ValidationError("Cancellation reason cannot exceed 200 characters")

        refund = reservation.cancel(principal.id, reason, self.clock())
        await self.repository.update(reservation)
        logger.info("Reservation %s cancelled by %s, refund %s", reservation.reservation_id, principal.id, refund)
        return reservation, refund

    async def convert_to_booking(
        self,
        principal: Principal,
        reservation_id: UUID
    ) -> Tuple[Reservation, Booking]:
        """Turn a confirmed reservation into a confirmed, unpaid booking.

        The booking is written first; if flipping the reservation then
        fails, the booking is deleted again before the error propagates.
        """
        _require_staff(principal, "convert reservations")
        reservation = await self._load(reservation_id)
        reservation.ensure_convertible()

        async with self.availability.room_lock(reservation.room_id):
            # Re-read under the lock so a concurrent conversion is seen
            reservation = await self._load(reservation_id)
            reservation.ensure_convertible()
            await self.availability.ensure_no_booking_overlap(reservation.room_id, reservation.stay)

            now = self.clock()
            booking = Booking.from_reservation(reservation, now)
            await self.booking_repo.save(booking)

            converted = reservation.model_copy(deep=True)
            converted.mark_converted(booking.booking_id, now)
            try:
                await self.repository.update(converted)
            except Exception:
                logger.exception(
                    "Conversion of reservation %s failed; removing booking %s",
                    reservation_id, booking.booking_id
                )
                await self.booking_repo.delete(booking.booking_id)
                raise

        await self.room_state.sync_room_status(booking.room_id, booking.status)
        logger.info("Reservation %s converted to booking %s by %s", reservation_id, booking.booking_id, principal.id)
        return converted, booking

    async def delete_reservation(self, principal: Principal, reservation_id: UUID) -> bool:
        """Hard delete by admin or owner; a converted booking is left intact"""
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise NotFoundError("Reservation not found")
        if not principal.is_admin and not principal.owns(reservation.guest_id):
            raise AuthorizationError("Not authorized to delete this reservation")

        deleted = await self.repository.delete(reservation_id)
        logger.info("Reservation %s deleted by %s", reservation_id, principal.id)
        return deleted

    async def expire_stale_reservations(self, now: Optional[datetime] = None) -> List[UUID]:
        """Flip every lapsed pending reservation to expired"""
        now = now or self.clock()
        expired = []
        for reservation in await self.repository.find_pending_expired(now):
            if reservation.refresh_expiry(now):
                await self.repository.update(reservation)
                expired.append(reservation.reservation_id)
        if expired:
            logger.info("Expired %d stale reservations", len(expired))
        return expired

    async def _load(self, reservation_id: UUID) -> Reservation:
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise NotFoundError("Reservation not found")
        await self._apply_expiry(reservation)
        return reservation

    async def _apply_expiry(self, reservation: Reservation) -> None:
        if reservation.refresh_expiry(self.clock()):
            await self.repository.update(reservation)
            logger.info("Reservation %s expired on access", reservation.reservation_id)


class DocumentService:
    """Registers identification document metadata produced by the upload pipeline"""

    def __init__(self, repository: DocumentRepository):
        self.repository = repository

    async def register_document(
        self,
        principal: Principal,
        filename: str,
        mimetype: str,
        size: int,
        original_name: Optional[str] = None
    ) -> IdentificationDocument:
        try:
            document = IdentificationDocument(
                owner_id=principal.id,
                filename=filename,
                original_name=original_name,
                mimetype=mimetype,
                size=size
            )
        except PydanticValidationError as e:
            raise validation_error_from(e)
        return await self.repository.save(document)

    async def get_document(self, principal: Principal, document_id: UUID) -> IdentificationDocument:
        document = await self.repository.find_by_id(document_id)
        if not document:
            raise NotFoundError("Identification document not found")
        if not principal.is_staff and not principal.owns(document.owner_id):
            raise AuthorizationError("Not authorized to view this document")
        return document
