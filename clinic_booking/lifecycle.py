"""
Booking lifecycle: creation, payment resolution, cancellation and reschedule.

Each operation runs in a single transaction. The row whose status decides
the outcome (the slot on creation, the booking otherwise) is read under
an exclusive lock, and the booking and slot writes commit or roll back
together.

    (PENDING, PENDING) --pay ok-->   (CONFIRMED, SUCCESS)
    (PENDING, PENDING) --pay fail--> (FAILED, FAILED)      slot freed
    any but CANCELLED  --cancel-->   (CANCELLED, same)     slot freed
    PENDING/CONFIRMED  --reschedule--> same status on another slot
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from . import queueing, slots
from .config import BOOKING_TOKEN_AMOUNT
from .db import transaction
from .errors import InvalidTransition, NotFound, Conflict
from .models import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingStatus,
    PaymentStatus,
    SlotStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


async def lock_booking(db: AsyncSession, booking_id: int) -> Booking | None:
    res = await db.execute(
        select(Booking).where(Booking.id == booking_id).with_for_update()
    )
    return res.scalar_one_or_none()


async def create_booking(
    db: AsyncSession,
    slot_id: int,
    doctor_id: int,
    patient_name: str,
    patient_email: str,
    reason: str | None = None,
    patient_id: int | None = None,
    token_amount: Decimal = BOOKING_TOKEN_AMOUNT,
) -> Booking:
    async with transaction(db):
        try:
            slot = await slots.lock_slot(db, slot_id)
        except NotFound:
            raise NotFound("Slot not found for this doctor")

        if slot.doctor_id != doctor_id:
            raise NotFound("Slot not found for this doctor")

        if slot.status != SlotStatus.AVAILABLE.value:
            raise Conflict("Slot is not available")

        appointment_date = slots.appointment_date_for(slot.start_time)
        queue_number = await queueing.next_queue_number(db, doctor_id, appointment_date)

        booking = Booking(
            slot_id=slot.id,
            patient_id=patient_id,
            patient_name=patient_name,
            patient_email=patient_email,
            reason=reason or None,
            status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            queue_number=queue_number,
            appointment_date=appointment_date,
            token_amount=token_amount,
        )
        db.add(booking)
        await slots.set_status(db, slot.id, SlotStatus.BOOKED)
        await db.flush()

    logger.info(
        "booking %s created on slot %s (doctor %s, %s, queue #%s)",
        booking.id, slot_id, doctor_id, appointment_date, queue_number,
    )
    return booking


async def resolve_payment(db: AsyncSession, booking_id: int, success: bool) -> Booking:
    async with transaction(db):
        booking = await lock_booking(db, booking_id)
        if (
            not booking
            or booking.status != BookingStatus.PENDING.value
            or booking.payment_status != PaymentStatus.PENDING.value
        ):
            raise InvalidTransition("Booking not found or not in PENDING/payment pending state")

        if success:
            booking.status = BookingStatus.CONFIRMED.value
            booking.payment_status = PaymentStatus.SUCCESS.value
        else:
            booking.status = BookingStatus.FAILED.value
            booking.payment_status = PaymentStatus.FAILED.value
            await slots.set_status(db, booking.slot_id, SlotStatus.AVAILABLE)
        booking.updated_at = utcnow()

    logger.info("booking %s payment resolved: %s", booking_id, booking.status)
    return booking


async def confirm_payment(db: AsyncSession, booking_id: int) -> Booking:
    return await resolve_payment(db, booking_id, success=True)


async def cancel_booking(db: AsyncSession, booking_id: int) -> Booking:
    async with transaction(db):
        booking = await lock_booking(db, booking_id)
        if not booking:
            raise NotFound("Booking not found")

        if booking.status == BookingStatus.CANCELLED.value:
            raise InvalidTransition("Booking is already cancelled")

        held_slot = booking.status in ACTIVE_BOOKING_STATUSES
        booking.status = BookingStatus.CANCELLED.value
        booking.updated_at = utcnow()

        # a FAILED booking already gave its slot back, possibly to someone else
        if held_slot:
            await slots.set_status(db, booking.slot_id, SlotStatus.AVAILABLE)

    logger.info("booking %s cancelled", booking_id)
    return booking


async def reschedule_booking(db: AsyncSession, booking_id: int, new_slot_id: int) -> Booking:
    async with transaction(db):
        booking = await lock_booking(db, booking_id)
        if not booking:
            raise NotFound("Booking not found")

        if booking.status == BookingStatus.CANCELLED.value:
            raise InvalidTransition("Cannot reschedule a cancelled booking")
        if booking.status not in ACTIVE_BOOKING_STATUSES:
            raise InvalidTransition(f"Cannot reschedule a {booking.status} booking")

        old_slot = await slots.get_slot(db, booking.slot_id)

        try:
            new_slot = await slots.lock_slot(db, new_slot_id)
        except NotFound:
            raise NotFound("New slot not found")

        if new_slot.status != SlotStatus.AVAILABLE.value:
            raise InvalidTransition("New slot is not available")

        if old_slot is None or new_slot.doctor_id != old_slot.doctor_id:
            raise InvalidTransition("Reschedule allowed only within the same doctor")

        new_date = slots.appointment_date_for(new_slot.start_time)
        new_queue_number = await queueing.next_queue_number(
            db, new_slot.doctor_id, new_date, exclude_booking_id=booking.id
        )

        old_slot_id = booking.slot_id
        booking.slot_id = new_slot.id
        booking.appointment_date = new_date
        booking.queue_number = new_queue_number
        booking.updated_at = utcnow()

        await slots.set_status(db, old_slot_id, SlotStatus.AVAILABLE)
        await slots.set_status(db, new_slot.id, SlotStatus.BOOKED)

    logger.info(
        "booking %s moved from slot %s to slot %s (%s, queue #%s)",
        booking_id, old_slot_id, new_slot_id, new_date, new_queue_number,
    )
    return booking
