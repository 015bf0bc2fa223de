"""Availability Engine

Read-only conflict detection for a room and a stay. Bookings and
reservations are both turned into occupancy claims and checked through
one overlap path, so a pending reservation blocks a new booking and a
confirmed booking blocks a new reservation.
"""
import asyncio
import logging
from uuid import UUID
from datetime import datetime
from typing import Dict, List, Optional

from domain.clock import Clock, utc_now
from domain.entities import Booking, Reservation
from domain.exceptions import ConflictError
from domain.occupancy import OccupancyClaim, find_conflicts
from domain.repositories import BookingRepository, ReservationRepository
from domain.value_objects import StayPeriod

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Service for overlap queries across bookings and reservations"""

    def __init__(self,
                 booking_repo: BookingRepository,
                 reservation_repo: ReservationRepository,
                 clock: Clock = utc_now):
        self.booking_repo = booking_repo
        self.reservation_repo = reservation_repo
        self.clock = clock
        self._room_locks: Dict[UUID, asyncio.Lock] = {}

    def room_lock(self, room_id: UUID) -> asyncio.Lock:
        """Serializes check-then-write sequences for one room"""
        lock = self._room_locks.get(room_id)
        if lock is None:
            lock = asyncio.Lock()
            self._room_locks[room_id] = lock
        return lock

    async def find_overlapping_bookings(
        self,
        room_id: UUID,
        check_in: datetime,
        check_out: datetime,
        exclude_id: Optional[UUID] = None
    ) -> List[Booking]:
        """Confirmed or checked-in bookings intersecting the stay"""
        return await self.booking_repo.find_overlapping(room_id, check_in, check_out, exclude_id)

    async def find_overlapping_reservations(
        self,
        room_id: UUID,
        check_in: datetime,
        check_out: datetime,
        exclude_id: Optional[UUID] = None
    ) -> List[Reservation]:
        """Pending or confirmed reservations intersecting the stay.

        Pending reservations whose hold already lapsed are skipped even if
        their stored status has not been flipped to expired yet.
        """
        now = self.clock()
        candidates = await self.reservation_repo.find_overlapping(room_id, check_in, check_out, exclude_id)
        return [r for r in candidates if r.blocks_room(now)]

    async def find_conflicts(
        self,
        room_id: UUID,
        stay: StayPeriod,
        exclude_id: Optional[UUID] = None
    ) -> List[OccupancyClaim]:
        """All claims on the room that intersect ``stay``"""
        bookings = await self.find_overlapping_bookings(room_id, stay.check_in, stay.check_out, exclude_id)
        reservations = await self.find_overlapping_reservations(room_id, stay.check_in, stay.check_out, exclude_id)
        claims = [b.to_claim() for b in bookings] + [r.to_claim() for r in reservations]
        return find_conflicts(claims, room_id, stay, exclude_id)

    async def is_available(
        self,
        room_id: UUID,
        stay: StayPeriod,
        exclude_id: Optional[UUID] = None
    ) -> bool:
        """Check if the room is free for the stay"""
        return not await self.find_conflicts(room_id, stay, exclude_id)

    async def ensure_available(
        self,
        room_id: UUID,
        stay: StayPeriod,
        exclude_id: Optional[UUID] = None
    ) -> None:
        """Raise ConflictError if any booking or reservation holds the stay"""
        conflicts = await self.find_conflicts(room_id, stay, exclude_id)
        if conflicts:
            logger.warning(
                "Room %s unavailable for %s - %s (%d conflicting claims)",
                room_id, stay.check_in.isoformat(), stay.check_out.isoformat(), len(conflicts)
            )
            raise ConflictError(
                "Room is already reserved or booked for the selected dates",
                {"conflicts": [_describe(c) for c in conflicts]}
            )

    async def ensure_no_booking_overlap(
        self,
        room_id: UUID,
        stay: StayPeriod,
        exclude_id: Optional[UUID] = None
    ) -> None:
        """Raise ConflictError if another confirmed/checked-in booking holds the stay"""
        bookings = await self.find_overlapping_bookings(room_id, stay.check_in, stay.check_out, exclude_id)
        if bookings:
            logger.warning("Room %s already has an active booking for the stay", room_id)
            raise ConflictError(
                "Room is already booked for the selected dates",
                {"conflicts": [_describe(b.to_claim()) for b in bookings]}
            )


def _describe(claim: OccupancyClaim) -> dict:
    return {
        "kind": claim.kind.value,
        "id": str(claim.claim_id),
        "status": claim.status,
        "check_in": claim.stay.check_in.isoformat(),
        "check_out": claim.stay.check_out.isoformat(),
    }
