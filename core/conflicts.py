"""
Rilevamento sovrapposizioni tra prenotazioni della stessa lodge.

Le prenotazioni cancellate non collidono mai con nulla. Il controllo va
rieseguito sullo stato corrente a ogni create, update e record di import.
"""

from typing import Iterable, Optional

from core.errors import ConflictError
from core.intervals import overlaps
from core.models import Booking


def find_conflict(existing: Iterable[Booking], candidate, exclude_id: str = None) -> Optional[Booking]:
    """Prima prenotazione (in ordine di collezione) in collisione col candidato."""
    if candidate.status == "cancelled":
        return None
    for b in existing:
        if exclude_id and b.id == exclude_id:
            continue
        if b.lodge != candidate.lodge or b.status == "cancelled":
            continue
        if overlaps(b, candidate):
            return b
    return None


def ensure_no_overlap(existing: Iterable[Booking], candidate, exclude_id: str = None) -> None:
    colliding = find_conflict(existing, candidate, exclude_id)
    if colliding is not None:
        raise ConflictError(
            f"Sovrapposizione su {candidate.lodge} con prenotazione {colliding.guest_name} "
            f"({colliding.check_in:%Y-%m-%d} → {colliding.check_out:%Y-%m-%d}).",
            conflicting=colliding,
        )
