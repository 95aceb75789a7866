"""Slot registry: lookup, locking and status writes for doctor time slots."""

import logging
from datetime import date, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .db import transaction
from .errors import Conflict, NotFound, ValidationFailed
from .models import Doctor, Slot, SlotStatus

logger = logging.getLogger(__name__)


def appointment_date_for(start_time: datetime) -> date:
    """Queue partition key: the calendar date of the slot start."""
    return start_time.date()


async def get_slot(db: AsyncSession, slot_id: int) -> Slot | None:
    res = await db.execute(select(Slot).where(Slot.id == slot_id))
    return res.scalar_one_or_none()


async def lock_slot(db: AsyncSession, slot_id: int) -> Slot:
    """
    Read a slot holding an exclusive row lock until the enclosing
    transaction ends. Required before any read-then-write of slot status.
    """
    res = await db.execute(
        select(Slot).where(Slot.id == slot_id).with_for_update()
    )
    slot = res.scalar_one_or_none()
    if not slot:
        raise NotFound("Slot not found")
    return slot


async def list_available(db: AsyncSession, doctor_id: int) -> list[Slot]:
    res = await db.execute(
        select(Slot)
        .where(Slot.doctor_id == doctor_id, Slot.status == SlotStatus.AVAILABLE.value)
        .order_by(Slot.start_time)
    )
    return list(res.scalars().all())


async def set_status(db: AsyncSession, slot_id: int, status: SlotStatus):
    await db.execute(
        update(Slot)
        .where(Slot.id == slot_id)
        .values(status=status.value)
    )


async def create_slot(
    db: AsyncSession,
    doctor_id: int,
    start_time: datetime,
    end_time: datetime,
) -> Slot:
    if end_time <= start_time:
        raise ValidationFailed("end_time must be after start_time")

    try:
        async with transaction(db):
            doctor = await db.get(Doctor, doctor_id)
            if not doctor:
                raise NotFound("Doctor not found")

            slot = Slot(
                doctor_id=doctor_id,
                start_time=start_time,
                end_time=end_time,
                status=SlotStatus.AVAILABLE.value,
            )
            db.add(slot)
            await db.flush()
    except IntegrityError:
        logger.info("duplicate slot window for doctor_id=%s at %s", doctor_id, start_time)
        raise Conflict("Slot at this time already exists for this doctor")

    return slot
