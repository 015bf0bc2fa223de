"""Background sweep that flips lapsed pending reservations to expired"""
import asyncio
import logging

from application.services import ReservationService

logger = logging.getLogger(__name__)


async def expire_reservations_worker(service: ReservationService, poll_interval_seconds: int = 60) -> None:
    """Periodically expire stale reservation holds.

    Availability checks already ignore lapsed holds, so the sweep only
    brings stored statuses up to date.
    """
    while True:
        try:
            expired_ids = await service.expire_stale_reservations()
            if expired_ids:
                logger.info("Sweep expired reservations: %s", [str(i) for i in expired_ids])
        except Exception:
            logger.exception("Reservation expiry sweep failed")
            await asyncio.sleep(10)
            continue

        await asyncio.sleep(poll_interval_seconds)
