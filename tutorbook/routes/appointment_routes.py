from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator

from tutorbook.auth.dependencies import get_current_user, require_student, require_teacher
from tutorbook.core import config
from tutorbook.core.errors import BookingError
from tutorbook.models.appointment import (
    APPOINTMENT_STATUSES,
    CANCELLED_BY_STUDENT,
    CANCELLED_BY_TEACHER,
    Appointment,
)
from tutorbook.models.user import ROLE_TEACHER, User
from tutorbook.routes.common import get_booking_engine, to_http_exception
from tutorbook.services.booking_engine import BookingEngine

router = APIRouter(tags=['appointments'])


class BookSlotRequest(BaseModel):
    slot_id: str
    purpose: str
    message: str | None = None

    @field_validator('slot_id')
    @classmethod
    def validate_slot_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Please select a time slot.')
        return normalized

    @field_validator('purpose')
    @classmethod
    def validate_purpose(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Purpose is required.')
        return normalized

    @field_validator('message')
    @classmethod
    def validate_message(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_NOTES_LENGTH:
            raise ValueError(f'Message must be {config.MAX_NOTES_LENGTH} characters or fewer.')

        return normalized


class AppointmentResponse(BaseModel):
    id: str
    student_id: str
    teacher_id: str
    slot_id: str
    date: date
    start_time: time
    end_time: time
    location: str | None = None
    purpose: str | None = None
    message: str | None = None
    status: str
    created_at: datetime | None = None
    approved_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    completed_at: datetime | None = None

    class Config:
        from_attributes = True


class TeacherStatsResponse(BaseModel):
    today_appointments: int
    pending_requests: int
    total_students: int


def validate_status_filter(appointment_status: str | None) -> str | None:
    if appointment_status is None or appointment_status == 'all':
        return None

    normalized = appointment_status.strip().lower()
    if normalized not in APPOINTMENT_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid appointment status.',
        )
    return normalized


def load_teacher_appointment(engine: BookingEngine, appointment_id: str, teacher: User) -> Appointment:
    appointment = engine.get_appointment(appointment_id)
    if appointment.teacher_id != teacher.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only the teacher of this appointment can change it.',
        )
    return appointment


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_slot(
    data: BookSlotRequest,
    current_user: User = Depends(require_student),
    engine: BookingEngine = Depends(get_booking_engine),
):
    try:
        return engine.book_slot(
            slot_id=data.slot_id,
            student_id=current_user.id,
            purpose=data.purpose,
            message=data.message,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/mine', response_model=list[AppointmentResponse])
def list_my_appointments(
    appointment_status: str | None = Query(default=None, alias='status'),
    current_user: User = Depends(get_current_user),
    engine: BookingEngine = Depends(get_booking_engine),
):
    status_filter = validate_status_filter(appointment_status)

    try:
        if current_user.role == ROLE_TEACHER:
            return engine.list_teacher_appointments(current_user.id, status_filter)
        return engine.list_student_appointments(current_user.id, status_filter)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/upcoming', response_model=list[AppointmentResponse])
def list_upcoming_appointments(
    current_user: User = Depends(require_teacher),
    engine: BookingEngine = Depends(get_booking_engine),
):
    try:
        return engine.upcoming_appointments(current_user.id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/stats', response_model=TeacherStatsResponse)
def get_teacher_stats(
    current_user: User = Depends(require_teacher),
    engine: BookingEngine = Depends(get_booking_engine),
):
    try:
        stats = engine.teacher_stats(current_user.id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return TeacherStatsResponse(
        today_appointments=stats.today_appointments,
        pending_requests=stats.pending_requests,
        total_students=stats.total_students,
    )


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    engine: BookingEngine = Depends(get_booking_engine),
):
    try:
        appointment = engine.get_appointment(appointment_id)
        if current_user.id == appointment.student_id:
            cancelled_by = CANCELLED_BY_STUDENT
        elif current_user.id == appointment.teacher_id:
            cancelled_by = CANCELLED_BY_TEACHER
        else:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the student or teacher of this appointment can cancel it.',
            )

        return engine.cancel_booking(appointment_id, cancelled_by)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/{appointment_id}/approve', response_model=AppointmentResponse)
def approve_appointment(
    appointment_id: str,
    current_user: User = Depends(require_teacher),
    engine: BookingEngine = Depends(get_booking_engine),
):
    try:
        load_teacher_appointment(engine, appointment_id, current_user)
        return engine.approve_appointment(appointment_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: str,
    current_user: User = Depends(require_teacher),
    engine: BookingEngine = Depends(get_booking_engine),
):
    try:
        load_teacher_appointment(engine, appointment_id, current_user)
        return engine.complete_appointment(appointment_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
