"""Occupancy claims

Bookings and reservations both hold a room for a stay. The availability
check treats them uniformly through ``OccupancyClaim`` so a single
overlap path serves both lifecycles.
"""
from pydantic import BaseModel
from uuid import UUID
from typing import Iterable, List, Optional

from domain.enums import BookingStatus, ClaimKind, ReservationStatus
from domain.value_objects import StayPeriod


BLOCKING_BOOKING_STATUSES = frozenset({
    BookingStatus.CONFIRMED,
    BookingStatus.CHECKED_IN,
})

BLOCKING_RESERVATION_STATUSES = frozenset({
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
})


class OccupancyClaim(BaseModel):
    """A booking or reservation holding a room for a stay"""
    kind: ClaimKind
    claim_id: UUID
    room_id: UUID
    status: str
    stay: StayPeriod

    class Config:
        frozen = True

    def conflicts_with(self, room_id: UUID, stay: StayPeriod) -> bool:
        return self.room_id == room_id and self.stay.overlaps(stay)


def find_conflicts(
    claims: Iterable[OccupancyClaim],
    room_id: UUID,
    stay: StayPeriod,
    exclude_id: Optional[UUID] = None
) -> List[OccupancyClaim]:
    """Claims on ``room_id`` whose stay intersects ``stay``"""
    return [
        claim for claim in claims
        if claim.claim_id != exclude_id and claim.conflicts_with(room_id, stay)
    ]
