import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from . import queries, slots
from .db import get_db, transaction
from .models import Doctor
from .rabbitmq import RabbitPublisher
from .rbac import require_admin
from .routes import expire_stale, get_publisher, parse_day
from .schemas import CreateDoctor, CreateSlot, DayQueueEntry, DoctorResponse, SlotResponse

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/doctors", response_model=DoctorResponse, status_code=201)
async def create_doctor(data: CreateDoctor, db: AsyncSession = Depends(get_db)):
    doctor = Doctor(
        name=data.name,
        specialization=data.specialization,
        city=data.city,
        consultation_type=data.consultation_type,
        consultation_fee=data.consultation_fee,
        rating=data.rating,
    )
    async with transaction(db):
        db.add(doctor)

    logger.info("doctor %s created (%s, %s)", doctor.id, doctor.specialization, doctor.city)
    return doctor


@router.post("/doctors/{doctor_id}/slots", response_model=SlotResponse, status_code=201)
async def create_slot(
    data: CreateSlot,
    doctor_id: int = Path(gt=0),
    db: AsyncSession = Depends(get_db),
):
    return await slots.create_slot(db, doctor_id, data.start_time, data.end_time)


@router.get("/doctors/{doctor_id}/bookings", response_model=List[DayQueueEntry])
async def list_day_bookings(
    doctor_id: int = Path(gt=0),
    day_param: Optional[str] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
    publisher: RabbitPublisher = Depends(get_publisher),
):
    day = parse_day(day_param, doctor_id)
    await expire_stale(db, publisher)
    return await queries.list_day_bookings(db, doctor_id, day)
