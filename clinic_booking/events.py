import json
import uuid
from datetime import datetime, timezone

from .models import Booking


def build_event(event_type: str, data: dict) -> dict:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


def to_json(event: dict) -> str:
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False, default=str)


def booking_payload(booking: Booking) -> dict:
    return {
        "booking_id": booking.id,
        "slot_id": booking.slot_id,
        "patient_email": booking.patient_email,
        "status": booking.status,
        "payment_status": booking.payment_status,
        "queue_number": booking.queue_number,
        "appointment_date": booking.appointment_date.isoformat(),
    }
