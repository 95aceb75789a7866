"""Queue numbers within a doctor's per-day visit queue.

Numbers are assigned as (non-cancelled bookings already on that day) + 1 and
are never compacted: a cancelled or failed booking does not shift the
numbers of the bookings after it.
"""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import NotFound
from .models import Booking, BookingStatus, Doctor, Slot


async def lock_doctor_queue(db: AsyncSession, doctor_id: int) -> Doctor:
    # serializes queue assignment per doctor for the rest of the transaction
    res = await db.execute(
        select(Doctor).where(Doctor.id == doctor_id).with_for_update()
    )
    doctor = res.scalar_one_or_none()
    if not doctor:
        raise NotFound("Doctor not found")
    return doctor


async def count_queued(
    db: AsyncSession,
    doctor_id: int,
    appointment_date: date,
    exclude_booking_id: int | None = None,
) -> int:
    stmt = (
        select(func.count(Booking.id))
        .join(Slot, Booking.slot_id == Slot.id)
        .where(
            Slot.doctor_id == doctor_id,
            Booking.appointment_date == appointment_date,
            Booking.status != BookingStatus.CANCELLED.value,
        )
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(Booking.id != exclude_booking_id)

    res = await db.execute(stmt)
    return int(res.scalar_one())


async def next_queue_number(
    db: AsyncSession,
    doctor_id: int,
    appointment_date: date,
    exclude_booking_id: int | None = None,
) -> int:
    await lock_doctor_queue(db, doctor_id)
    existing = await count_queued(db, doctor_id, appointment_date, exclude_booking_id)
    return existing + 1


async def people_ahead_now(db: AsyncSession, doctor_id: int, appointment_date: date) -> int:
    """How many patients a booking made right now would wait behind."""
    return await count_queued(db, doctor_id, appointment_date)
