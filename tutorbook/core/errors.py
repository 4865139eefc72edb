"""Failure kinds raised by the booking engine.

Every failure carries a stable ``kind`` string plus the identifiers involved,
never a user-facing message. Callers either catch the concrete class or
dispatch on ``exc.kind``.
"""


class BookingError(Exception):
    kind = 'booking_error'

    def __init__(self, **details) -> None:
        self.details = details
        super().__init__(self.kind, details)


class InvalidRange(BookingError):
    kind = 'invalid_range'


class SlotConflict(BookingError):
    kind = 'slot_conflict'


class NotFound(BookingError):
    kind = 'not_found'


class SlotUnavailable(BookingError):
    kind = 'slot_unavailable'


class AlreadyTerminal(BookingError):
    kind = 'already_terminal'


class SlotInUse(BookingError):
    kind = 'slot_in_use'


class StoreUnavailable(BookingError):
    """The backing database could not be reached or rejected the transaction."""
    kind = 'store_unavailable'
