"""
Booking Store: possiede la collezione autorevole delle prenotazioni.

Ogni mutazione è atomica rispetto alla collezione in memoria: o riesce ed è
applicata (e persistita una volta), o fallisce con un BookingError e nulla
cambia. Lo Store viene costruito esplicitamente e passato alla UI.

Lo stato di vista (mese corrente e filtri) sta in BoardView, uno per sessione:
lo Store è condiviso fra tutte le sessioni del processo.
"""

import copy
import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable, Iterable, List, Tuple

from core.conflicts import ensure_no_overlap
from core.errors import BookingError, NotFoundError
from core.intervals import add_months, month_start
from core.models import Booking, BookingFilters, BookingInput, ImportResult, booking_from_dict
from core.validator import validate_booking

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _detached(b: Booking) -> Booking:
    """Copia con guest_profile indipendente da quello del chiamante."""
    if b.guest_profile is None:
        return b
    return replace(b, guest_profile=copy.deepcopy(b.guest_profile))


def _sorted(bookings: Iterable[Booking]) -> List[Booking]:
    # sort stabile: a parità di check-in resta l'ordine di inserimento
    return sorted(bookings, key=lambda b: b.check_in)


class BookingStore:
    def __init__(
        self,
        storage,
        clock: Callable[[], datetime] = None,
        id_factory: Callable[[], str] = None,
    ):
        self._storage = storage
        self._clock = clock or _utc_now
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._bookings: List[Booking] = []

    # ── Lifecycle ──────────────────────────────────────────────────────────

    def load(self) -> None:
        """Carica la collezione dallo storage (all'avvio dell'app)."""
        self._bookings = _sorted(self._storage.load())
        logger.info("Caricate %d prenotazioni", len(self._bookings))
        if getattr(self._storage, "needs_migration", False):
            self._persist()

    # ── Letture ────────────────────────────────────────────────────────────

    @property
    def storage(self):
        return self._storage

    @property
    def bookings(self) -> Tuple[Booking, ...]:
        return tuple(_detached(b) for b in self._bookings)

    def export(self) -> Tuple[Booking, ...]:
        return tuple(_detached(b) for b in self._bookings)

    def get(self, booking_id: str) -> Booking:
        for b in self._bookings:
            if b.id == booking_id:
                return _detached(b)
        raise NotFoundError(booking_id)

    # ── Mutazioni ──────────────────────────────────────────────────────────

    def create(self, payload: BookingInput) -> Booking:
        validate_booking(payload)
        ensure_no_overlap(self._bookings, payload)

        now = self._now()
        booking = Booking(
            id=self._id_factory(),
            guest_name=payload.guest_name.strip(),
            lodge=payload.lodge,
            check_in=payload.check_in,
            check_out=payload.check_out,
            status=payload.status,
            channel=payload.channel,
            notes=payload.notes.strip(),
            guests_count=payload.guests_count,
            total_amount=payload.total_amount,
            deposit_amount=payload.deposit_amount,
            deposit_received=payload.deposit_received,
            created_at=now,
            updated_at=now,
            guest_profile=payload.guest_profile,
        )
        self._bookings = _sorted([*self._bookings, _detached(booking)])
        self._persist()
        logger.info("Creata prenotazione %s (%s, %s)", booking.id, booking.guest_name, booking.lodge)
        return _detached(booking)

    def update(self, booking_id: str, payload: BookingInput) -> Booking:
        current = self.get(booking_id)
        validate_booking(payload)
        ensure_no_overlap(self._bookings, payload, exclude_id=booking_id)

        cleaned = replace(payload, guest_name=payload.guest_name.strip(), notes=payload.notes.strip())
        updated = _detached(current.with_input(cleaned, updated_at=self._now()))
        self._bookings = _sorted(updated if b.id == booking_id else b for b in self._bookings)
        self._persist()
        logger.info("Aggiornata prenotazione %s", booking_id)
        return _detached(updated)

    def delete(self, booking_id: str) -> None:
        self._bookings = [b for b in self._bookings if b.id != booking_id]
        self._persist()
        logger.info("Eliminata prenotazione %s", booking_id)

    def import_merge(self, incoming: Iterable) -> ImportResult:
        """
        Upsert per id di record esterni. Ogni record è validato e controllato
        contro lo stato corrente della mappa di lavoro (che include i record
        già accettati in questo batch); un record non valido viene scartato
        senza interrompere il batch.
        """
        now = self._now()
        # i record senza id o nome ospite non entrano nemmeno nel conteggio
        normalized = [
            booking_from_dict(item, now, touch=True)
            for item in incoming
            if isinstance(item, dict) and item.get("id") and item.get("guestName")
        ]

        working = {b.id: b for b in self._bookings}
        merged = 0
        skipped = 0
        for candidate in normalized:
            try:
                validate_booking(candidate)
                ensure_no_overlap(working.values(), candidate, exclude_id=candidate.id)
            except BookingError as e:
                logger.debug("Import: scartato %s: %s", candidate.id, e)
                skipped += 1
                continue
            working[candidate.id] = _detached(candidate)
            merged += 1

        self._bookings = _sorted(working.values())
        self._persist()
        logger.info("Import completato: %d unite, %d scartate", merged, skipped)
        return ImportResult(merged=merged, skipped=skipped)

    # ── Interni ────────────────────────────────────────────────────────────

    def _now(self) -> str:
        return self._clock().isoformat()

    def _persist(self) -> None:
        self._storage.save(list(self._bookings))


class BoardView:
    """Mese mostrato e filtri del tabellone, per una singola sessione."""

    def __init__(self, clock: Callable[[], datetime] = None):
        self._clock = clock or _utc_now
        self.current_month: date = month_start(self._clock().date())
        self.filters = BookingFilters()

    def set_month(self, day: date) -> None:
        self.current_month = month_start(day)

    def prev_month(self) -> None:
        self.current_month = add_months(self.current_month, -1)

    def next_month(self) -> None:
        self.current_month = add_months(self.current_month, 1)

    def go_to_today(self) -> None:
        self.set_month(self._clock().date())

    def set_filters(self, **changes) -> BookingFilters:
        self.filters = replace(self.filters, **changes)
        return self.filters

    def visible(self, bookings: Iterable[Booking]) -> List[Booking]:
        return [b for b in bookings if self.filters.matches(b)]
