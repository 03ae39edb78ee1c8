"""
Errori di dominio: tutti recuperabili, sollevati in modo sincrono.
Lo stato dello Store resta invariato quando vengono sollevati.
"""


class BookingError(ValueError):
    """Base per gli errori mostrati all'operatore."""


class FieldValidationError(BookingError):
    """Una regola del validator è fallita; `field` indica il campo del form."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ConflictError(BookingError):
    """Sovrapposizione con un'altra prenotazione sulla stessa lodge."""

    def __init__(self, message: str, conflicting=None):
        super().__init__(message)
        self.message = message
        self.conflicting = conflicting


class NotFoundError(BookingError):
    def __init__(self, booking_id: str):
        super().__init__("Prenotazione non trovata.")
        self.booking_id = booking_id


class FormatError(BookingError):
    """Payload di import malformato (rilevato prima di toccare lo Store)."""
