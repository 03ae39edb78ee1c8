"""
Regole di validità di un singolo payload di prenotazione.

L'ordine delle regole è fisso: vince la prima violata, perché la UI usa
`FieldValidationError.field` per evidenziare il campo del form.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import LODGES, BOOKING_STATUSES, BOOKING_CHANNELS
from core.errors import FieldValidationError


def _is_integer(val) -> bool:
    if isinstance(val, bool):
        return False
    if isinstance(val, int):
        return True
    return isinstance(val, float) and val.is_integer()


def validate_booking(payload) -> None:
    """Solleva FieldValidationError alla prima regola violata."""
    if not (payload.guest_name or "").strip():
        raise FieldValidationError("Il nome ospite è obbligatorio.", "guest_name")

    if not payload.check_in or not payload.check_out:
        raise FieldValidationError("Check-in e check-out sono obbligatori.", "check_in")

    if not payload.check_in < payload.check_out:
        raise FieldValidationError("Il check-out deve essere successivo al check-in.", "check_out")

    if not _is_integer(payload.guests_count) or payload.guests_count < 1:
        raise FieldValidationError("Il numero ospiti deve essere almeno 1.", "guests_count")

    if payload.total_amount < 0 or payload.deposit_amount < 0:
        raise FieldValidationError("Gli importi non possono essere negativi.", "total_amount")

    if payload.deposit_amount > payload.total_amount:
        raise FieldValidationError("La caparra non può superare il totale.", "deposit_amount")

    if payload.deposit_received and payload.deposit_amount <= 0:
        raise FieldValidationError(
            "Caparra ricevuta richiede un importo caparra maggiore di zero.", "deposit_amount"
        )

    if payload.lodge not in LODGES:
        raise FieldValidationError(f"Lodge sconosciuta: {payload.lodge or '—'}.", "lodge")

    if payload.status not in BOOKING_STATUSES:
        raise FieldValidationError(f"Stato non valido: {payload.status}.", "status")

    if payload.channel not in BOOKING_CHANNELS:
        raise FieldValidationError(f"Canale non valido: {payload.channel}.", "channel")
