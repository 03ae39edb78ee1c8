"""
Fixture comuni: storage in memoria, clock fisso, factory di payload.
"""

import itertools
from datetime import date, datetime, timezone

import pytest

from core.models import BookingInput
from core.store import BookingStore


class MemoryStorage:
    """Storage finto: conta i salvataggi e tiene l'ultima collezione scritta."""

    def __init__(self, initial=None):
        self.saved = list(initial or [])
        self.save_calls = 0
        self.needs_migration = False

    def load(self):
        return list(self.saved)

    def save(self, bookings):
        self.save_calls += 1
        self.saved = list(bookings)


FIXED_NOW = datetime(2024, 5, 20, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    counter = itertools.count(1)
    s = BookingStore(storage, clock=lambda: FIXED_NOW, id_factory=lambda: f"b{next(counter)}")
    s.load()
    return s


def make_input(**overrides) -> BookingInput:
    values = dict(
        guest_name="Rossi",
        lodge="Giglio",
        check_in=date(2024, 6, 1),
        check_out=date(2024, 6, 5),
        status="confirmed",
        channel="direct",
        notes="",
        guests_count=2,
        total_amount=500.0,
        deposit_amount=150.0,
        deposit_received=True,
    )
    values.update(overrides)
    return BookingInput(**values)


def make_record(id, **overrides) -> dict:
    """Record JSON come nel file di export."""
    rec = {
        "id": id,
        "guestName": "Ospite " + id,
        "lodge": "Giglio",
        "checkIn": "2024-07-01",
        "checkOut": "2024-07-03",
        "status": "confirmed",
        "channel": "direct",
        "notes": "",
        "guestsCount": 2,
        "totalAmount": 300,
        "depositAmount": 0,
        "depositReceived": False,
        "createdAt": "2024-01-01T00:00:00+00:00",
        "updatedAt": "2024-01-01T00:00:00+00:00",
    }
    rec.update(overrides)
    return rec
