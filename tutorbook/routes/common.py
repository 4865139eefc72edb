from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from tutorbook.auth.dependencies import get_db
from tutorbook.core.errors import (
    AlreadyTerminal,
    BookingError,
    InvalidRange,
    NotFound,
    SlotConflict,
    SlotInUse,
    SlotUnavailable,
    StoreUnavailable,
)
from tutorbook.services.booking_engine import BookingEngine

ERROR_RESPONSES = {
    InvalidRange.kind: (status.HTTP_400_BAD_REQUEST, 'End time must be after start time.'),
    SlotConflict.kind: (status.HTTP_409_CONFLICT, 'This time slot conflicts with an existing slot.'),
    NotFound.kind: (status.HTTP_404_NOT_FOUND, 'Not found.'),
    SlotUnavailable.kind: (status.HTTP_409_CONFLICT, 'This time slot is no longer available.'),
    AlreadyTerminal.kind: (status.HTTP_409_CONFLICT, 'This appointment can no longer be changed.'),
    SlotInUse.kind: (status.HTTP_409_CONFLICT, 'This time slot is booked. Cancel the appointment first.'),
    StoreUnavailable.kind: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        'Database unavailable. Verify DATABASE_URL and database credentials.',
    ),
}


def get_booking_engine(db: Session = Depends(get_db)) -> BookingEngine:
    return BookingEngine(db)


def to_http_exception(exc: BookingError) -> HTTPException:
    status_code, detail = ERROR_RESPONSES.get(
        exc.kind,
        (status.HTTP_400_BAD_REQUEST, 'Request could not be completed.'),
    )
    return HTTPException(status_code=status_code, detail=detail)
