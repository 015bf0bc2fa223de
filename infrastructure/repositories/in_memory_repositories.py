"""In-Memory Repository Implementations"""
from typing import Optional, List, Dict
from uuid import UUID
from datetime import datetime

from domain.repositories import (
    RoomRepository, BookingRepository, ReservationRepository, DocumentRepository
)
from domain.entities import Room, Booking, Reservation, IdentificationDocument
from domain.enums import RoomType, RoomStatus, BookingStatus, ReservationStatus
from domain.exceptions import NotFoundError
from domain.occupancy import BLOCKING_BOOKING_STATUSES, BLOCKING_RESERVATION_STATUSES
from domain.value_objects import StayPeriod


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Room] = {}

    async def save(self, room: Room) -> Room:
        """Save room to memory"""
        self._storage[room.room_id] = room
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        return self._storage.get(room_id)

    async def find_by_number(self, number: str) -> Optional[Room]:
        """Find room by number"""
        wanted = number.strip().upper()
        for room in self._storage.values():
            if room.number == wanted:
                return room
        return None

    async def find_all(
        self,
        room_type: Optional[RoomType] = None,
        status: Optional[RoomStatus] = None,
        is_active: Optional[bool] = None
    ) -> List[Room]:
        """Find rooms matching every given filter"""
        rooms = [
            r for r in self._storage.values()
            if (room_type is None or r.type == room_type)
            and (status is None or r.status == status)
            and (is_active is None or r.is_active == is_active)
        ]
        return sorted(rooms, key=lambda r: r.number)

    async def update(self, room: Room) -> Room:
        """Update room"""
        if room.room_id in self._storage:
            self._storage[room.room_id] = room
            return room
        raise NotFoundError("Room not found")

    async def delete(self, room_id: UUID) -> bool:
        """Delete room"""
        if room_id in self._storage:
            del self._storage[room_id]
            return True
        return False


class InMemoryBookingRepository(BookingRepository):
    """In-memory implementation of BookingRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Booking] = {}

    async def save(self, booking: Booking) -> Booking:
        """Save booking to memory"""
        self._storage[booking.booking_id] = booking
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        return self._storage.get(booking_id)

    async def find_all(
        self,
        guest_id: Optional[UUID] = None,
        room_id: Optional[UUID] = None,
        status: Optional[BookingStatus] = None
    ) -> List[Booking]:
        """Find bookings matching every given filter"""
        return [
            b for b in self._storage.values()
            if (guest_id is None or b.guest_id == guest_id)
            and (room_id is None or b.room_id == room_id)
            and (status is None or b.status == status)
        ]

    async def find_overlapping(
        self,
        room_id: UUID,
        check_in: datetime,
        check_out: datetime,
        exclude_id: Optional[UUID] = None
    ) -> List[Booking]:
        """Blocking bookings on the room whose stay intersects the window"""
        window = StayPeriod(check_in=check_in, check_out=check_out)
        return [
            b for b in self._storage.values()
            if b.room_id == room_id
            and b.booking_id != exclude_id
            and b.status in BLOCKING_BOOKING_STATUSES
            and b.stay.overlaps(window)
        ]

    async def update(self, booking: Booking) -> Booking:
        """Update booking"""
        if booking.booking_id in self._storage:
            self._storage[booking.booking_id] = booking
            return booking
        raise NotFoundError("Booking not found")

    async def delete(self, booking_id: UUID) -> bool:
        """Delete booking"""
        if booking_id in self._storage:
            del self._storage[booking_id]
            return True
        return False


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Reservation] = {}

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        self._storage[reservation.reservation_id] = reservation
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        return self._storage.get(reservation_id)

    async def find_all(
        self,
        guest_id: Optional[UUID] = None,
        room_id: Optional[UUID] = None,
        status: Optional[ReservationStatus] = None
    ) -> List[Reservation]:
        """Find reservations matching every given filter, newest first"""
        reservations = [
            r for r in self._storage.values()
            if (guest_id is None or r.guest_id == guest_id)
            and (room_id is None or r.room_id == room_id)
            and (status is None or r.status == status)
        ]
        return sorted(reservations, key=lambda r: r.created_at, reverse=True)

    async def find_overlapping(
        self,
        room_id: UUID,
        check_in: datetime,
        check_out: datetime,
        exclude_id: Optional[UUID] = None
    ) -> List[Reservation]:
        """Pending or confirmed reservations on the room whose stay intersects the window"""
        window = StayPeriod(check_in=check_in, check_out=check_out)
        return [
            r for r in self._storage.values()
            if r.room_id == room_id
            and r.reservation_id != exclude_id
            and r.status in BLOCKING_RESERVATION_STATUSES
            and r.stay.overlaps(window)
        ]

    async def find_pending_expired(self, now: datetime) -> List[Reservation]:
        """Pending reservations whose hold has lapsed"""
        return [r for r in self._storage.values() if r.is_expired(now)]

    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        if reservation.reservation_id in self._storage:
            self._storage[reservation.reservation_id] = reservation
            return reservation
        raise NotFoundError("Reservation not found")

    async def delete(self, reservation_id: UUID) -> bool:
        """Delete reservation"""
        if reservation_id in self._storage:
            del self._storage[reservation_id]
            return True
        return False


class InMemoryDocumentRepository(DocumentRepository):
    """In-memory implementation of DocumentRepository"""

    def __init__(self):
        self._storage: Dict[UUID, IdentificationDocument] = {}

    async def save(self, document: IdentificationDocument) -> IdentificationDocument:
        self._storage[document.document_id] = document
        return document

    async def find_by_id(self, document_id: UUID) -> Optional[IdentificationDocument]:
        return self._storage.get(document_id)
