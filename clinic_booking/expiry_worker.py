import asyncio
import logging

from .db import Database
from .rabbitmq import RabbitPublisher
from .reaper import sweep_expired

logger = logging.getLogger(__name__)


async def expiry_loop(
    db: Database,
    publisher: RabbitPublisher,
    stop_event: asyncio.Event,
    interval_seconds: float,
):
    while not stop_event.is_set():
        try:
            async with db.SessionLocal() as session:
                expired = await sweep_expired(session)
            for booking_id in expired:
                await publisher.publish_event("booking.expired", {"booking_id": booking_id})
        except Exception:
            # keep sweeping on the next tick; the read-path sweep still runs
            logger.exception("expiry sweep failed")

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue
