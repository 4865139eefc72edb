"""Slot lifecycle and booking state transitions.

All mutations of slot ``status``/``booked_by`` and appointment status
timestamps go through :class:`BookingEngine`. Each operation runs in a single
transaction on the session it was given: it commits on success and rolls back
on any failure, so a failed call leaves no partial state behind.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tutorbook.core import config
from tutorbook.core.errors import (
    AlreadyTerminal,
    InvalidRange,
    NotFound,
    SlotConflict,
    SlotInUse,
    SlotUnavailable,
    StoreUnavailable,
)
from tutorbook.models.appointment import (
    APPOINTMENT_APPROVED,
    APPOINTMENT_CANCELLED,
    APPOINTMENT_COMPLETED,
    APPOINTMENT_PENDING,
    Appointment,
)
from tutorbook.models.slot import SLOT_AVAILABLE, SLOT_BOOKED, SLOT_COMPLETED, Slot, generate_id
from tutorbook.services.appointment_store import AppointmentStore, TeacherStats
from tutorbook.services.slot_store import SlotStore

logger = logging.getLogger(__name__)

RECURRING_WEEKS = 4

Clock = Callable[[], datetime]


class BookingEngine:
    def __init__(
        self,
        db: Session,
        clock: Clock = datetime.now,
    ) -> None:
        self.db = db
        self.slots = SlotStore(db)
        self.appointments = AppointmentStore(db)
        self.clock = clock

    @contextmanager
    def _transaction(self, commit: bool = True) -> Iterator[None]:
        try:
            yield
            if commit:
                self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable() from exc
        except Exception:
            self.db.rollback()
            raise

    def create_slot(
        self,
        teacher_id: str,
        slot_date: date,
        start_time: time,
        end_time: time,
        location: str | None = None,
        notes: str | None = None,
        recurring: bool = False,
    ) -> list[Slot]:
        """Create a slot and, when ``recurring``, one copy per following week.

        The base slot must not overlap any of the teacher's slots on that
        date. Weekly copies are checked one by one and a conflicting week is
        skipped without affecting the others.
        """
        if start_time >= end_time:
            raise InvalidRange(start_time=start_time, end_time=end_time)

        with self._transaction():
            conflicting = self.slots.find_overlapping(teacher_id, slot_date, start_time, end_time)
            if conflicting:
                raise SlotConflict(
                    date=slot_date,
                    conflicting_slot_ids=[slot.id for slot in conflicting],
                )

            now = self.clock()
            base_slot = self._new_slot(teacher_id, slot_date, start_time, end_time, location, notes, now)
            created = [base_slot]

            if recurring:
                for week in range(1, RECURRING_WEEKS + 1):
                    week_date = slot_date + timedelta(weeks=week)
                    if self.slots.find_overlapping(teacher_id, week_date, start_time, end_time):
                        logger.info(
                            'Skipping recurring slot on %s for teacher %s: time already taken',
                            week_date,
                            teacher_id,
                        )
                        continue

                    created.append(
                        self._new_slot(
                            teacher_id,
                            week_date,
                            start_time,
                            end_time,
                            location,
                            notes,
                            now,
                            parent_slot_id=base_slot.id,
                        )
                    )

        logger.info(
            'Teacher %s created %d slot(s) starting %s %s-%s',
            teacher_id,
            len(created),
            slot_date,
            start_time,
            end_time,
        )
        return created

    def _new_slot(
        self,
        teacher_id: str,
        slot_date: date,
        start_time: time,
        end_time: time,
        location: str | None,
        notes: str | None,
        created_at: datetime,
        parent_slot_id: str | None = None,
    ) -> Slot:
        slot = Slot(
            id=generate_id(),
            teacher_id=teacher_id,
            date=slot_date,
            start_time=start_time,
            end_time=end_time,
            location=location,
            notes=notes,
            status=SLOT_AVAILABLE,
            booked_by=None,
            parent_slot_id=parent_slot_id,
            created_at=created_at,
        )
        return self.slots.upsert(slot)

    def book_slot(
        self,
        slot_id: str,
        student_id: str,
        purpose: str | None = None,
        message: str | None = None,
    ) -> Appointment:
        with self._transaction():
            slot = self.slots.find_by_id(slot_id, for_update=True)
            if slot is None:
                raise NotFound(slot_id=slot_id)
            if slot.status != SLOT_AVAILABLE:
                raise SlotUnavailable(slot_id=slot_id, status=slot.status)

            # Compare-and-set on status so a concurrent claim cannot slip in
            # between the read above and this write.
            claimed = self.db.execute(
                update(Slot)
                .where(Slot.id == slot_id, Slot.status == SLOT_AVAILABLE)
                .values(status=SLOT_BOOKED, booked_by=student_id)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                raise SlotUnavailable(slot_id=slot_id)
            self.db.refresh(slot)

            appointment = self.appointments.add(
                Appointment(
                    id=generate_id(),
                    student_id=student_id,
                    teacher_id=slot.teacher_id,
                    slot_id=slot.id,
                    date=slot.date,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    location=slot.location,
                    purpose=purpose,
                    message=message,
                    status=APPOINTMENT_PENDING,
                    created_at=self.clock(),
                )
            )

        logger.info('Student %s booked slot %s (appointment %s)', student_id, slot_id, appointment.id)
        return appointment

    def cancel_booking(self, appointment_id: str, cancelled_by: str) -> Appointment:
        with self._transaction():
            appointment = self._load_open_appointment(appointment_id)

            appointment.status = APPOINTMENT_CANCELLED
            appointment.cancelled_at = self.clock()
            appointment.cancelled_by = cancelled_by

            slot = self.slots.find_by_id(appointment.slot_id, for_update=True)
            if slot is None:
                logger.warning(
                    'Slot %s for cancelled appointment %s no longer exists; nothing to release',
                    appointment.slot_id,
                    appointment.id,
                )
            elif slot.status == SLOT_BOOKED and slot.booked_by == appointment.student_id:
                slot.status = SLOT_AVAILABLE
                slot.booked_by = None
            else:
                logger.warning(
                    'Slot %s for cancelled appointment %s is %s (booked by %s); left unchanged',
                    slot.id,
                    appointment.id,
                    slot.status,
                    slot.booked_by,
                )
            self.db.flush()

        logger.info('Appointment %s cancelled by %s', appointment_id, cancelled_by)
        return appointment

    def approve_appointment(self, appointment_id: str) -> Appointment:
        with self._transaction():
            appointment = self._load_open_appointment(appointment_id)
            if appointment.status != APPOINTMENT_PENDING:
                raise AlreadyTerminal(appointment_id=appointment_id, status=appointment.status)

            appointment.status = APPOINTMENT_APPROVED
            appointment.approved_at = self.clock()
            self.db.flush()

        logger.info('Appointment %s approved', appointment_id)
        return appointment

    def complete_appointment(self, appointment_id: str) -> Appointment:
        with self._transaction():
            appointment = self._load_open_appointment(appointment_id)

            appointment.status = APPOINTMENT_COMPLETED
            appointment.completed_at = self.clock()

            slot = self.slots.find_by_id(appointment.slot_id, for_update=True)
            if slot is not None and slot.status == SLOT_BOOKED:
                slot.status = SLOT_COMPLETED
                slot.booked_by = None
            self.db.flush()

        logger.info('Appointment %s completed', appointment_id)
        return appointment

    def _load_open_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.appointments.find_by_id(appointment_id, for_update=True)
        if appointment is None:
            raise NotFound(appointment_id=appointment_id)
        if appointment.is_terminal:
            raise AlreadyTerminal(appointment_id=appointment_id, status=appointment.status)
        return appointment

    def delete_slot(self, slot_id: str) -> None:
        with self._transaction():
            slot = self.slots.find_by_id(slot_id, for_update=True)
            if slot is None:
                raise NotFound(slot_id=slot_id)
            if slot.status != SLOT_AVAILABLE:
                raise SlotInUse(slot_id=slot_id, status=slot.status)

            self.slots.delete(slot_id)

        logger.info('Slot %s deleted', slot_id)

    def get_slot(self, slot_id: str) -> Slot:
        with self._transaction(commit=False):
            slot = self.slots.find_by_id(slot_id)
        if slot is None:
            raise NotFound(slot_id=slot_id)
        return slot

    def get_appointment(self, appointment_id: str) -> Appointment:
        with self._transaction(commit=False):
            appointment = self.appointments.find_by_id(appointment_id)
        if appointment is None:
            raise NotFound(appointment_id=appointment_id)
        return appointment

    def list_slots(self, teacher_id: str) -> list[Slot]:
        with self._transaction(commit=False):
            return self.slots.list_slots(teacher_id)

    def list_available(self, teacher_id: str, from_date: date | None = None) -> list[Slot]:
        from_date = from_date or self.clock().date()
        with self._transaction(commit=False):
            return self.slots.list_available(teacher_id, from_date)

    def list_teacher_appointments(self, teacher_id: str, status: str | None = None) -> list[Appointment]:
        with self._transaction(commit=False):
            return self.appointments.list_for_teacher(teacher_id, status)

    def list_student_appointments(self, student_id: str, status: str | None = None) -> list[Appointment]:
        with self._transaction(commit=False):
            return self.appointments.list_for_student(student_id, status)

    def upcoming_appointments(self, teacher_id: str, limit: int = config.UPCOMING_LIMIT) -> list[Appointment]:
        with self._transaction(commit=False):
            return self.appointments.list_upcoming(teacher_id, self.clock().date(), limit)

    def teacher_stats(self, teacher_id: str) -> TeacherStats:
        with self._transaction(commit=False):
            return self.appointments.teacher_stats(teacher_id, self.clock().date())
