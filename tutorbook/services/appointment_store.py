from dataclasses import dataclass
from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from tutorbook.models.appointment import (
    APPOINTMENT_CANCELLED,
    APPOINTMENT_PENDING,
    TERMINAL_APPOINTMENT_STATUSES,
    Appointment,
)


@dataclass(frozen=True)
class TeacherStats:
    today_appointments: int
    pending_requests: int
    total_students: int


class AppointmentStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_id(self, appointment_id: str, for_update: bool = False) -> Appointment | None:
        query = self.db.query(Appointment).filter(Appointment.id == appointment_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def add(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def list_for_teacher(self, teacher_id: str, status: str | None = None) -> list[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.teacher_id == teacher_id)
        if status is not None:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.date.asc(), Appointment.start_time.asc()).all()

    def list_for_student(self, student_id: str, status: str | None = None) -> list[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.student_id == student_id)
        if status is not None:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.date.asc(), Appointment.start_time.asc()).all()

    def list_for_slot(self, slot_id: str) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.slot_id == slot_id,
        ).order_by(Appointment.created_at.asc()).all()

    def list_upcoming(self, teacher_id: str, today: date, limit: int = 5) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.teacher_id == teacher_id,
            Appointment.status.not_in(TERMINAL_APPOINTMENT_STATUSES),
            Appointment.date >= today,
        ).order_by(Appointment.date.asc(), Appointment.start_time.asc()).limit(limit).all()

    def teacher_stats(self, teacher_id: str, today: date) -> TeacherStats:
        today_count = self.db.query(func.count(Appointment.id)).filter(
            Appointment.teacher_id == teacher_id,
            Appointment.date == today,
            Appointment.status != APPOINTMENT_CANCELLED,
        ).scalar()
        pending_count = self.db.query(func.count(Appointment.id)).filter(
            Appointment.teacher_id == teacher_id,
            Appointment.status == APPOINTMENT_PENDING,
        ).scalar()
        student_count = self.db.query(func.count(func.distinct(Appointment.student_id))).filter(
            Appointment.teacher_id == teacher_id,
        ).scalar()

        return TeacherStats(
            today_appointments=today_count or 0,
            pending_requests=pending_count or 0,
            total_students=student_count or 0,
        )
