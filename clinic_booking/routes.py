from datetime import date
from typing import List, Optional

from dateutil import parser
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from . import lifecycle, queries, queueing, reaper, slots
from .db import get_db
from .errors import ValidationFailed
from .events import booking_payload
from .rabbitmq import RabbitPublisher
from .schemas import (
    BookingDetail,
    BookingResponse,
    CreateBookingRequest,
    DoctorResponse,
    FakePaymentRequest,
    Me,
    QueuePreview,
    RescheduleRequest,
    SlotResponse,
)
from .security import Claims, get_current_user, get_optional_user
from .wait_time import estimate

router = APIRouter()


def get_publisher(request: Request) -> RabbitPublisher:
    return request.app.state.publisher


def parse_day(value: str | None, doctor_id: int) -> date:
    if not doctor_id or not value:
        raise ValidationFailed("doctorId and date (YYYY-MM-DD) are required")
    try:
        return parser.isoparse(value).date()
    except (ValueError, OverflowError):
        raise ValidationFailed("Invalid date format, expected YYYY-MM-DD")


async def expire_stale(db: AsyncSession, publisher: RabbitPublisher):
    for booking_id in await reaper.sweep_expired(db):
        await publisher.publish_event("booking.expired", {"booking_id": booking_id})


@router.get("/me", response_model=Me)
async def me(claims: Claims = Depends(get_current_user)):
    return Me(user_id=claims.user_id, role=claims.role)


@router.get("/doctors", response_model=List[DoctorResponse])
async def list_doctors(db: AsyncSession = Depends(get_db)):
    return await queries.list_doctors(db)


@router.get("/doctors/{doctor_id}/slots", response_model=List[SlotResponse])
async def list_available_slots(
    doctor_id: int = Path(gt=0),
    db: AsyncSession = Depends(get_db),
    publisher: RabbitPublisher = Depends(get_publisher),
):
    await expire_stale(db, publisher)
    return await slots.list_available(db, doctor_id)


@router.post(
    "/doctors/{doctor_id}/slots/{slot_id}/bookings",
    response_model=BookingResponse,
    status_code=201,
)
async def create_booking(
    data: CreateBookingRequest,
    doctor_id: int = Path(gt=0),
    slot_id: int = Path(gt=0),
    claims: Optional[Claims] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    publisher: RabbitPublisher = Depends(get_publisher),
):
    booking = await lifecycle.create_booking(
        db,
        slot_id=slot_id,
        doctor_id=doctor_id,
        patient_name=data.patient_name,
        patient_email=data.patient_email,
        reason=data.reason,
        patient_id=claims.user_id if claims else None,
    )
    await publisher.publish_event("booking.created", booking_payload(booking))
    return booking


@router.get("/doctors/{doctor_id}/queue-preview", response_model=QueuePreview)
async def queue_preview(
    doctor_id: int = Path(gt=0),
    day_param: Optional[str] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
):
    day = parse_day(day_param, doctor_id)
    ahead = await queueing.people_ahead_now(db, doctor_id, day)
    wait = estimate(ahead + 1)
    return QueuePreview(
        people_ahead_now=wait.people_ahead,
        estimated_wait_minutes_now=wait.estimated_wait_minutes,
    )


@router.post("/payments/fake", response_model=BookingResponse)
async def fake_payment(
    data: FakePaymentRequest,
    db: AsyncSession = Depends(get_db),
    publisher: RabbitPublisher = Depends(get_publisher),
):
    booking = await lifecycle.resolve_payment(db, data.booking_id, data.success)
    event_type = "booking.confirmed" if data.success else "booking.failed"
    await publisher.publish_event(event_type, booking_payload(booking))
    return booking


@router.patch("/bookings/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: int = Path(gt=0),
    db: AsyncSession = Depends(get_db),
    publisher: RabbitPublisher = Depends(get_publisher),
):
    booking = await lifecycle.confirm_payment(db, booking_id)
    await publisher.publish_event("booking.confirmed", booking_payload(booking))
    return booking


@router.patch("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int = Path(gt=0),
    db: AsyncSession = Depends(get_db),
    publisher: RabbitPublisher = Depends(get_publisher),
):
    booking = await lifecycle.cancel_booking(db, booking_id)
    await publisher.publish_event("booking.cancelled", booking_payload(booking))
    return booking


@router.patch("/bookings/{booking_id}/reschedule", response_model=BookingResponse)
async def reschedule_booking(
    data: RescheduleRequest,
    booking_id: int = Path(gt=0),
    db: AsyncSession = Depends(get_db),
    publisher: RabbitPublisher = Depends(get_publisher),
):
    booking = await lifecycle.reschedule_booking(db, booking_id, data.new_slot_id)
    await publisher.publish_event("booking.rescheduled", booking_payload(booking))
    return booking


@router.get("/bookings/{booking_id}", response_model=BookingDetail)
async def get_booking(
    booking_id: int = Path(gt=0),
    db: AsyncSession = Depends(get_db),
    publisher: RabbitPublisher = Depends(get_publisher),
):
    await expire_stale(db, publisher)
    detail = await queries.get_booking_detail(db, booking_id)
    if not detail:
        raise HTTPException(status_code=404, detail="Booking not found")
    return detail


@router.get("/patients/bookings", response_model=List[BookingDetail])
async def list_patient_bookings(
    email: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    publisher: RabbitPublisher = Depends(get_publisher),
):
    if not email or not email.strip():
        raise ValidationFailed("email is required")

    await expire_stale(db, publisher)
    return await queries.list_patient_bookings(db, email.strip())
