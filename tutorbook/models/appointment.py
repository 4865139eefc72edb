"""Appointment model definitions."""

from sqlalchemy import Column, Date, DateTime, Index, String, Time
from tutorbook.database import Base
from tutorbook.models.slot import generate_id

APPOINTMENT_PENDING = "pending"
APPOINTMENT_APPROVED = "approved"
APPOINTMENT_CANCELLED = "cancelled"
APPOINTMENT_COMPLETED = "completed"
APPOINTMENT_STATUSES = (
    APPOINTMENT_PENDING,
    APPOINTMENT_APPROVED,
    APPOINTMENT_CANCELLED,
    APPOINTMENT_COMPLETED,
)
TERMINAL_APPOINTMENT_STATUSES = (APPOINTMENT_CANCELLED, APPOINTMENT_COMPLETED)

CANCELLED_BY_STUDENT = "student"
CANCELLED_BY_TEACHER = "teacher"


class Appointment(Base):
    """Represents a student's claim on a slot."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_teacher_date", "teacher_id", "date"),
        Index("idx_appointments_student_date", "student_id", "date"),
    )

    id = Column(String(32), primary_key=True, default=generate_id)
    student_id = Column(String, nullable=False, index=True)
    teacher_id = Column(String, nullable=False, index=True)
    slot_id = Column(String(32), nullable=False, index=True)
    # Copied from the slot at booking time.
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    location = Column(String)
    purpose = Column(String)
    message = Column(String)
    status = Column(String, nullable=False, default=APPOINTMENT_PENDING)
    created_at = Column(DateTime)
    approved_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    cancelled_by = Column(String)
    completed_at = Column(DateTime)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_APPOINTMENT_STATUSES
