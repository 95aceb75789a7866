"""Read-side joins used by the HTTP layer."""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Booking, BookingStatus, Doctor, Slot
from .wait_time import estimate


def _wait(booking: Booking) -> dict:
    w = estimate(booking.queue_number)
    return {"people_ahead": w.people_ahead, "estimated_wait_minutes": w.estimated_wait_minutes}


def _detail(booking: Booking, slot: Slot, doctor: Doctor) -> dict:
    return {"booking": booking, "slot": slot, "doctor": doctor, **_wait(booking)}


async def list_doctors(db: AsyncSession) -> list[Doctor]:
    res = await db.execute(select(Doctor).order_by(Doctor.created_at.desc(), Doctor.id.desc()))
    return list(res.scalars().all())


async def get_booking_detail(db: AsyncSession, booking_id: int) -> dict | None:
    res = await db.execute(
        select(Booking, Slot, Doctor)
        .join(Slot, Booking.slot_id == Slot.id)
        .join(Doctor, Slot.doctor_id == Doctor.id)
        .where(Booking.id == booking_id)
    )
    row = res.first()
    if not row:
        return None
    return _detail(*row)


async def list_patient_bookings(db: AsyncSession, email: str) -> list[dict]:
    res = await db.execute(
        select(Booking, Slot, Doctor)
        .join(Slot, Booking.slot_id == Slot.id)
        .join(Doctor, Slot.doctor_id == Doctor.id)
        .where(
            Booking.patient_email == email,
            Booking.status != BookingStatus.CANCELLED.value,
        )
        .order_by(Booking.appointment_date, Slot.start_time)
    )
    return [_detail(*row) for row in res.all()]


async def list_day_bookings(db: AsyncSession, doctor_id: int, day: date) -> list[dict]:
    res = await db.execute(
        select(Booking, Slot)
        .join(Slot, Booking.slot_id == Slot.id)
        .where(Slot.doctor_id == doctor_id, Booking.appointment_date == day)
        .order_by(Booking.queue_number, Booking.id)
    )

    entries = []
    for booking, slot in res.all():
        entries.append({
            "id": booking.id,
            "slot_id": booking.slot_id,
            "patient_name": booking.patient_name,
            "patient_email": booking.patient_email,
            "reason": booking.reason,
            "status": booking.status,
            "payment_status": booking.payment_status,
            "queue_number": booking.queue_number,
            "appointment_date": booking.appointment_date,
            "start_time": slot.start_time,
            "end_time": slot.end_time,
            **_wait(booking),
        })
    return entries
