"""Tests for the stale-booking reaper and the background expiry loop."""

import asyncio
from datetime import datetime, timedelta

from clinic_booking import lifecycle
from clinic_booking.expiry_worker import expiry_loop
from clinic_booking.models import Booking, Slot, utcnow
from clinic_booking.rabbitmq import RabbitPublisher
from clinic_booking.reaper import DEFAULT_STALENESS, sweep_expired
from factories import add_doctor, add_slot, fetch

NINE = datetime(2030, 1, 15, 9, 0)


async def pending_booking(database, session, start=NINE):
    doctor = await add_doctor(database)
    slot = await add_slot(database, doctor.id, start)
    booking = await lifecycle.create_booking(
        session,
        slot_id=slot.id,
        doctor_id=doctor.id,
        patient_name="Asha",
        patient_email="asha@example.com",
    )
    return booking, slot


class TestSweepExpired:
    """Tests for sweep_expired()."""

    def test_default_staleness_is_two_minutes(self) -> None:
        """Pending bookings live for two minutes unless configured otherwise."""
        assert DEFAULT_STALENESS == timedelta(seconds=120)

    async def test_fresh_pending_booking_survives(self, database, session) -> None:
        """A booking younger than the window is left alone."""
        booking, slot = await pending_booking(database, session)

        assert await sweep_expired(session) == []
        assert (await fetch(database, Booking, booking.id)).status == "PENDING"
        assert (await fetch(database, Slot, slot.id)).status == "BOOKED"

    async def test_stale_pending_booking_expires(self, database, session) -> None:
        """An old (PENDING, PENDING) booking fails and frees its slot."""
        booking, slot = await pending_booking(database, session)

        expired = await sweep_expired(session, now=utcnow() + timedelta(minutes=3))

        assert expired == [booking.id]
        stored = await fetch(database, Booking, booking.id)
        assert (stored.status, stored.payment_status) == ("FAILED", "FAILED")
        assert (await fetch(database, Slot, slot.id)).status == "AVAILABLE"

    async def test_custom_staleness(self, database, session) -> None:
        """The window can be shortened per call."""
        booking, _ = await pending_booking(database, session)

        expired = await sweep_expired(
            session, staleness=timedelta(seconds=5), now=utcnow() + timedelta(seconds=30)
        )

        assert expired == [booking.id]

    async def test_confirmed_booking_untouched(self, database, session) -> None:
        """Paid bookings never expire."""
        booking, slot = await pending_booking(database, session)
        await lifecycle.confirm_payment(session, booking.id)

        assert await sweep_expired(session, now=utcnow() + timedelta(hours=1)) == []
        assert (await fetch(database, Slot, slot.id)).status == "BOOKED"

    async def test_sweep_is_idempotent(self, database, session) -> None:
        """A second sweep finds nothing more to do."""
        await pending_booking(database, session)
        later = utcnow() + timedelta(minutes=3)

        assert len(await sweep_expired(session, now=later)) == 1
        assert await sweep_expired(session, now=later) == []

    async def test_old_failed_booking_does_not_free_rebooked_slot(self, database, session) -> None:
        """Only the bookings expired by this sweep release slots."""
        booking, slot = await pending_booking(database, session)
        await lifecycle.resolve_payment(session, booking.id, success=False)
        rebooked = await lifecycle.create_booking(
            session,
            slot_id=slot.id,
            doctor_id=slot.doctor_id,
            patient_name="Ravi",
            patient_email="ravi@example.com",
        )
        await lifecycle.confirm_payment(session, rebooked.id)

        assert await sweep_expired(session, now=utcnow() + timedelta(hours=1)) == []
        assert (await fetch(database, Slot, slot.id)).status == "BOOKED"


class TestExpiryLoop:
    """Tests for the background expiry_loop()."""

    async def test_stops_when_signalled(self, database) -> None:
        """The loop sweeps and then exits once the stop event is set."""
        stop = asyncio.Event()
        task = asyncio.create_task(
            expiry_loop(database, RabbitPublisher(url=None), stop, interval_seconds=0.01)
        )
        await asyncio.sleep(0.05)
        stop.set()

        await asyncio.wait_for(task, timeout=2)
        assert task.done()
