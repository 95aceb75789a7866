"""Tests for queue number assignment."""

from datetime import date, datetime, timedelta

import pytest

from clinic_booking import lifecycle, queueing
from clinic_booking.errors import NotFound
from factories import add_doctor, add_slot

DAY = date(2030, 1, 15)
NINE = datetime(2030, 1, 15, 9, 0)


async def book(session, doctor_id, slot_id, email="asha@example.com"):
    return await lifecycle.create_booking(
        session,
        slot_id=slot_id,
        doctor_id=doctor_id,
        patient_name="Asha",
        patient_email=email,
    )


class TestNextQueueNumber:
    """Tests for next_queue_number() and count_queued()."""

    async def test_empty_day_starts_at_one(self, database, session) -> None:
        """The first booking of the day gets number 1."""
        doctor = await add_doctor(database)

        assert await queueing.next_queue_number(session, doctor.id, DAY) == 1
        await session.rollback()

    async def test_numbers_follow_existing_bookings(self, database, session) -> None:
        """Each booking on the same day takes the next number."""
        doctor = await add_doctor(database)
        first = await add_slot(database, doctor.id, NINE)
        second = await add_slot(database, doctor.id, NINE + timedelta(minutes=15))
        third = await add_slot(database, doctor.id, NINE + timedelta(minutes=30))

        numbers = [
            (await book(session, doctor.id, s.id)).queue_number
            for s in (first, second, third)
        ]

        assert numbers == [1, 2, 3]

    async def test_days_have_separate_queues(self, database, session) -> None:
        """A booking on another day does not count."""
        doctor = await add_doctor(database)
        today = await add_slot(database, doctor.id, NINE)
        tomorrow = await add_slot(database, doctor.id, NINE + timedelta(days=1))

        await book(session, doctor.id, today.id)
        other_day = await book(session, doctor.id, tomorrow.id)

        assert other_day.queue_number == 1

    async def test_doctors_have_separate_queues(self, database, session) -> None:
        """Bookings with another doctor on the same day do not count."""
        first = await add_doctor(database)
        second = await add_doctor(database, name="Dr. Iyer")
        slot_a = await add_slot(database, first.id, NINE)
        slot_b = await add_slot(database, second.id, NINE)

        await book(session, first.id, slot_a.id)
        other = await book(session, second.id, slot_b.id)

        assert other.queue_number == 1

    async def test_cancelled_bookings_are_not_counted(self, database, session) -> None:
        """Cancelling frees a place for the next booking's count."""
        doctor = await add_doctor(database)
        first = await add_slot(database, doctor.id, NINE)
        second = await add_slot(database, doctor.id, NINE + timedelta(minutes=15))

        booking = await book(session, doctor.id, first.id)
        await lifecycle.cancel_booking(session, booking.id)

        assert (await book(session, doctor.id, second.id)).queue_number == 1

    async def test_excluded_booking_is_not_counted(self, database, session) -> None:
        """A booking being moved does not queue behind itself."""
        doctor = await add_doctor(database)
        slot = await add_slot(database, doctor.id, NINE)
        booking = await book(session, doctor.id, slot.id)

        count = await queueing.count_queued(session, doctor.id, DAY, exclude_booking_id=booking.id)
        await session.rollback()

        assert count == 0

    async def test_unknown_doctor(self, session) -> None:
        """The doctor row must exist to take its queue lock."""
        with pytest.raises(NotFound):
            await queueing.next_queue_number(session, 999, DAY)
        await session.rollback()


class TestPeopleAheadNow:
    """Tests for people_ahead_now()."""

    async def test_counts_active_bookings_of_the_day(self, database, session) -> None:
        """Pending and confirmed bookings are ahead of a new arrival."""
        doctor = await add_doctor(database)
        first = await add_slot(database, doctor.id, NINE)
        second = await add_slot(database, doctor.id, NINE + timedelta(minutes=15))

        booking = await book(session, doctor.id, first.id)
        await lifecycle.confirm_payment(session, booking.id)
        await book(session, doctor.id, second.id)

        ahead = await queueing.people_ahead_now(session, doctor.id, DAY)
        await session.rollback()

        assert ahead == 2
