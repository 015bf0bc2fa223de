"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from domain.entities import Room, Booking, Reservation, IdentificationDocument
from domain.enums import RoomType, RoomStatus, BookingStatus, ReservationStatus


class RoomRepository(ABC):
    """Repository interface for Room Aggregate"""

    @abstractmethod
    async def save(self, room: Room) -> Room:
        """Save room"""
        pass

    @abstractmethod
    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        pass

    @abstractmethod
    async def find_by_number(self, number: str) -> Optional[Room]:
        """Find room by its (upper-cased) number"""
        pass

    @abstractmethod
    async def find_all(
        self,
        room_type: Optional[RoomType] = None,
        status: Optional[RoomStatus] = None,
        is_active: Optional[bool] = None
    ) -> List[Room]:
        """Find rooms, optionally filtered, ordered by number"""
        pass

    @abstractmethod
    async def update(self, room: Room) -> Room:
        """Update room"""
        pass

    @abstractmethod
    async def delete(self, room_id: UUID) -> bool:
        """Delete room"""
        pass


class BookingRepository(ABC):
    """Repository interface for Booking Aggregate"""

    @abstractmethod
    async def save(self, booking: Booking) -> Booking:
        """Save booking"""
        pass

    @abstractmethod
    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        pass

    @abstractmethod
    async def find_all(
        self,
        guest_id: Optional[UUID] = None,
        room_id: Optional[UUID] = None,
        status: Optional[BookingStatus] = None
    ) -> List[Booking]:
        """Find bookings, optionally filtered"""
        pass

    @abstractmethod
    async def find_overlapping(
        self,
        room_id: UUID,
        check_in: datetime,
        check_out: datetime,
        exclude_id: Optional[UUID] = None
    ) -> List[Booking]:
        """Confirmed or checked-in bookings on the room intersecting [check_in, check_out)"""
        pass

    @abstractmethod
    async def update(self, booking: Booking) -> Booking:
        """Update booking"""
        pass

    @abstractmethod
    async def delete(self, booking_id: UUID) -> bool:
        """Delete booking"""
        pass


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_all(
        self,
        guest_id: Optional[UUID] = None,
        room_id: Optional[UUID] = None,
        status: Optional[ReservationStatus] = None
    ) -> List[Reservation]:
        """Find reservations, newest first, optionally filtered"""
        pass

    @abstractmethod
    async def find_overlapping(
        self,
        room_id: UUID,
        check_in: datetime,
        check_out: datetime,
        exclude_id: Optional[UUID] = None
    ) -> List[Reservation]:
        """Pending or confirmed reservations on the room intersecting [check_in, check_out)"""
        pass

    @abstractmethod
    async def find_pending_expired(self, now: datetime) -> List[Reservation]:
        """Pending reservations whose hold lapsed at or before ``now``"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass

    @abstractmethod
    async def delete(self, reservation_id: UUID) -> bool:
        """Delete reservation"""
        pass


class DocumentRepository(ABC):
    """Repository interface for identification document metadata"""

    @abstractmethod
    async def save(self, document: IdentificationDocument) -> IdentificationDocument:
        pass

    @abstractmethod
    async def find_by_id(self, document_id: UUID) -> Optional[IdentificationDocument]:
        pass
