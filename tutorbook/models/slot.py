"""Slot model definitions."""

import uuid

from sqlalchemy import Column, Date, DateTime, Index, String, Time
from tutorbook.database import Base

SLOT_AVAILABLE = "available"
SLOT_BOOKED = "booked"
SLOT_COMPLETED = "completed"
SLOT_STATUSES = (SLOT_AVAILABLE, SLOT_BOOKED, SLOT_COMPLETED)


def generate_id() -> str:
    return uuid.uuid4().hex


class Slot(Base):
    """Represents one bookable time window owned by a teacher."""
    __tablename__ = "slots"
    __table_args__ = (
        Index("idx_slots_teacher_date", "teacher_id", "date", "start_time"),
        Index("idx_slots_status_date", "status", "date"),
    )

    id = Column(String(32), primary_key=True, default=generate_id)
    teacher_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    location = Column(String)
    notes = Column(String)
    status = Column(String, nullable=False, default=SLOT_AVAILABLE)
    booked_by = Column(String)
    parent_slot_id = Column(String(32))  # recurring instances only
    created_at = Column(DateTime)

    def __repr__(self) -> str:
        return f"<Slot {self.id} {self.teacher_id} {self.date} {self.start_time}-{self.end_time} {self.status}>"
