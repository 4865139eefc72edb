from datetime import date, time

from sqlalchemy.orm import Session

from tutorbook.models.slot import SLOT_AVAILABLE, Slot


class SlotStore:
    """Query and persist slots through a SQLAlchemy session.

    The store never validates and never commits; transaction boundaries
    belong to the booking engine.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def list_slots(self, teacher_id: str) -> list[Slot]:
        return self.db.query(Slot).filter(
            Slot.teacher_id == teacher_id,
        ).order_by(Slot.date.asc(), Slot.start_time.asc()).all()

    def list_available(self, teacher_id: str, from_date: date) -> list[Slot]:
        return self.db.query(Slot).filter(
            Slot.teacher_id == teacher_id,
            Slot.status == SLOT_AVAILABLE,
            Slot.date >= from_date,
        ).order_by(Slot.date.asc(), Slot.start_time.asc()).all()

    def find_by_id(self, slot_id: str, for_update: bool = False) -> Slot | None:
        query = self.db.query(Slot).filter(Slot.id == slot_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def find_overlapping(
        self,
        teacher_id: str,
        slot_date: date,
        start_time: time,
        end_time: time,
    ) -> list[Slot]:
        # Half-open intervals: a slot ending at start_time does not overlap.
        return self.db.query(Slot).filter(
            Slot.teacher_id == teacher_id,
            Slot.date == slot_date,
            Slot.start_time < end_time,
            Slot.end_time > start_time,
        ).order_by(Slot.start_time.asc()).all()

    def upsert(self, slot: Slot) -> Slot:
        merged = self.db.merge(slot)
        self.db.flush()
        return merged

    def delete(self, slot_id: str) -> None:
        slot = self.find_by_id(slot_id)
        if slot is None:
            return
        self.db.delete(slot)
        self.db.flush()
