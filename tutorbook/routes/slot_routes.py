from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator

from tutorbook.auth.dependencies import get_current_user, require_teacher
from tutorbook.core import config
from tutorbook.core.errors import BookingError
from tutorbook.models.slot import SLOT_STATUSES
from tutorbook.models.user import User
from tutorbook.routes.common import get_booking_engine, to_http_exception
from tutorbook.services.booking_engine import BookingEngine

router = APIRouter(tags=['slots'])


class CreateSlotRequest(BaseModel):
    date: date
    start_time: time
    end_time: time
    location: str | None = None
    notes: str | None = None
    recurring: bool = False

    @field_validator('location', 'notes')
    @classmethod
    def normalize_text(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_NOTES_LENGTH:
            raise ValueError(f'Must be {config.MAX_NOTES_LENGTH} characters or fewer.')

        return normalized


def validate_slot_status_filter(slot_status: str | None) -> str | None:
    if slot_status is None or slot_status == 'all':
        return None

    normalized = slot_status.strip().lower()
    if normalized not in SLOT_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid slot status.',
        )
    return normalized


class SlotResponse(BaseModel):
    id: str
    teacher_id: str
    date: date
    start_time: time
    end_time: time
    location: str | None = None
    notes: str | None = None
    status: str
    booked_by: str | None = None
    parent_slot_id: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


@router.post('', response_model=list[SlotResponse], status_code=status.HTTP_201_CREATED)
def create_slot(
    data: CreateSlotRequest,
    current_user: User = Depends(require_teacher),
    engine: BookingEngine = Depends(get_booking_engine),
):
    try:
        return engine.create_slot(
            teacher_id=current_user.id,
            slot_date=data.date,
            start_time=data.start_time,
            end_time=data.end_time,
            location=data.location,
            notes=data.notes,
            recurring=data.recurring,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/mine', response_model=list[SlotResponse])
def list_my_slots(
    slot_status: str | None = Query(default=None, alias='status'),
    current_user: User = Depends(require_teacher),
    engine: BookingEngine = Depends(get_booking_engine),
):
    status_filter = validate_slot_status_filter(slot_status)

    try:
        slots = engine.list_slots(current_user.id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    if status_filter is None:
        return slots
    return [slot for slot in slots if slot.status == status_filter]


@router.get('/available', response_model=list[SlotResponse])
def list_available_slots(
    teacher_id: str = Query(...),
    from_date: date | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    engine: BookingEngine = Depends(get_booking_engine),
):
    del current_user
    try:
        return engine.list_available(teacher_id, from_date)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_slot(
    slot_id: str,
    current_user: User = Depends(require_teacher),
    engine: BookingEngine = Depends(get_booking_engine),
):
    try:
        slot = engine.get_slot(slot_id)
        if slot.teacher_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the teacher who owns this slot can delete it.',
            )

        engine.delete_slot(slot_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
