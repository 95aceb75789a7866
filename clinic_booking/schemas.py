from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateDoctor(BaseModel):
    name: str = Field(min_length=1)
    specialization: str = Field(min_length=1)
    city: str = Field(min_length=1)
    consultation_type: str = Field(min_length=1)
    consultation_fee: float = Field(gt=0)
    rating: Optional[float] = None


class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    specialization: str
    city: str
    consultation_type: str
    consultation_fee: float
    rating: Optional[float] = None


class CreateSlot(BaseModel):
    start_time: datetime
    end_time: datetime


class SlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    start_time: datetime
    end_time: datetime
    status: str


class CreateBookingRequest(BaseModel):
    patient_name: str = Field(min_length=1)
    patient_email: str = Field(min_length=3)
    reason: Optional[str] = None


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slot_id: int
    patient_id: Optional[int] = None
    patient_name: str
    patient_email: str
    reason: Optional[str] = None
    status: str
    payment_status: str
    queue_number: int
    appointment_date: date
    token_amount: float
    created_at: datetime
    updated_at: datetime


class FakePaymentRequest(BaseModel):
    booking_id: int = Field(gt=0)
    success: bool


class RescheduleRequest(BaseModel):
    new_slot_id: int = Field(gt=0)


class WaitFields(BaseModel):
    people_ahead: int
    estimated_wait_minutes: int


class BookingDetail(WaitFields):
    booking: BookingResponse
    doctor: DoctorResponse
    slot: SlotResponse


class DayQueueEntry(WaitFields):
    """A booking row in the admin's per-day view."""

    id: int
    slot_id: int
    patient_name: str
    patient_email: str
    reason: Optional[str] = None
    status: str
    payment_status: str
    queue_number: int
    appointment_date: date
    start_time: datetime
    end_time: datetime


class QueuePreview(BaseModel):
    people_ahead_now: int
    estimated_wait_minutes_now: int


class Me(BaseModel):
    user_id: int
    role: str
