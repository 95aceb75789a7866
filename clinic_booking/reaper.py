"""
Expiry of abandoned bookings.

A booking left in (PENDING, PENDING) longer than the staleness window is
moved to (FAILED, FAILED) and its slot is released. The sweep runs at the
start of read paths, so an expired booking is never observed unmarked, and
optionally on a timer (see expiry_worker). Running it twice is harmless:
resolved bookings no longer match the predicate.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from . import slots
from .config import PENDING_BOOKING_TTL_SECONDS
from .db import transaction
from .models import Booking, BookingStatus, PaymentStatus, SlotStatus, utcnow

logger = logging.getLogger(__name__)

DEFAULT_STALENESS = timedelta(seconds=PENDING_BOOKING_TTL_SECONDS)


async def sweep_expired(
    db: AsyncSession,
    staleness: timedelta = DEFAULT_STALENESS,
    now: datetime | None = None,
) -> list[int]:
    now = now or utcnow()
    cutoff = now - staleness

    async with transaction(db):
        res = await db.execute(
            select(Booking)
            .where(
                Booking.status == BookingStatus.PENDING.value,
                Booking.payment_status == PaymentStatus.PENDING.value,
                Booking.created_at < cutoff,
            )
            .order_by(Booking.id)
            .with_for_update(skip_locked=True)
        )
        stale = list(res.scalars().all())

        for booking in stale:
            booking.status = BookingStatus.FAILED.value
            booking.payment_status = PaymentStatus.FAILED.value
            booking.updated_at = now
            await slots.set_status(db, booking.slot_id, SlotStatus.AVAILABLE)

    expired_ids = [b.id for b in stale]
    if expired_ids:
        logger.info("expired %d stale pending booking(s): %s", len(expired_ids), expired_ids)
    return expired_ids
