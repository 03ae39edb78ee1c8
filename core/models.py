"""
Modelli dati: Booking (prenotazione), BookingInput (payload di create/update),
BookingFilters (filtri del tabellone), ImportResult (esito del merge).

Le date di soggiorno sono `date` senza orario; i timestamp sono stringhe
ISO-8601 impostate dallo Store. Su JSON le chiavi sono camelCase.
"""

import math
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from typing import Optional

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import DEFAULT_GUESTS_COUNT


@dataclass(frozen=True)
class BookingInput:
    """Campi modificabili di una prenotazione (tutto tranne id e timestamp)."""
    guest_name: str
    lodge: str
    check_in: Optional[date]
    check_out: Optional[date]
    status: str = "confirmed"       # confirmed | option | blocked | cancelled
    channel: str = "direct"         # direct | airbnb | booking | expedia | other
    notes: str = ""
    guests_count: int = DEFAULT_GUESTS_COUNT
    total_amount: float = 0.0
    deposit_amount: float = 0.0
    deposit_received: bool = False
    guest_profile: Optional[dict] = None   # dati documento, pass-through


@dataclass(frozen=True)
class Booking:
    """Una prenotazione validata e presente nella collezione."""
    id: str
    guest_name: str
    lodge: str
    check_in: date
    check_out: date
    status: str
    channel: str
    notes: str
    guests_count: int
    total_amount: float
    deposit_amount: float
    deposit_received: bool
    created_at: str
    updated_at: str
    guest_profile: Optional[dict] = None

    def to_input(self) -> BookingInput:
        names = {f.name for f in fields(BookingInput)}
        return BookingInput(**{n: getattr(self, n) for n in names})

    def with_input(self, payload: BookingInput, updated_at: str) -> "Booking":
        """Nuovo record con i campi di `payload`; id e created_at restano."""
        values = {f.name: getattr(payload, f.name) for f in fields(BookingInput)}
        return replace(self, updated_at=updated_at, **values)


@dataclass
class BookingFilters:
    search: str = ""
    status: str = "all"
    channel: str = "all"
    show_cancelled: bool = False

    def matches(self, b: Booking) -> bool:
        if self.status != "all" and b.status != self.status:
            return False
        if self.channel != "all" and b.channel != self.channel:
            return False
        if not self.show_cancelled and b.status == "cancelled":
            return False
        needle = self.search.strip().lower()
        if needle and needle not in b.guest_name.lower():
            return False
        return True


@dataclass(frozen=True)
class ImportResult:
    merged: int = 0
    skipped: int = 0


# ─── Coercizione valori grezzi (JSON, fogli Google) ─────────────────────────

def to_float(val) -> float:
    """Converte in float; None, stringhe vuote e valori non numerici → 0.0."""
    if val is None or isinstance(val, bool):
        return float(bool(val))
    try:
        out = float(str(val).strip().replace(",", "."))
    except (ValueError, TypeError):
        return 0.0
    return 0.0 if math.isnan(out) else out


def to_date(val) -> Optional[date]:
    """Converte in date; accetta date, datetime e stringhe YYYY-MM-DD o dd/mm/YYYY."""
    if val is None:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    s = str(val).strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def to_bool(val) -> bool:
    if isinstance(val, str):
        return val.strip().lower() not in ("", "false", "0", "no")
    return bool(val)


def to_guests_count(val):
    """Numero ospiti: solo numeri >= 1, altrimenti il default."""
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return DEFAULT_GUESTS_COUNT
    if math.isnan(val) or val < 1:
        return DEFAULT_GUESTS_COUNT
    # i decimali passano e vengono poi rifiutati dal validator
    return int(val) if float(val).is_integer() else val


def fmt_date(d) -> str:
    return d.strftime("%Y-%m-%d") if d else ""


# ─── JSON ───────────────────────────────────────────────────────────────────

def booking_to_dict(b: Booking) -> dict:
    """Converte un Booking nel record JSON (chiavi camelCase)."""
    data = {
        "id":              b.id,
        "guestName":       b.guest_name,
        "lodge":           b.lodge,
        "checkIn":         fmt_date(b.check_in),
        "checkOut":        fmt_date(b.check_out),
        "status":          b.status,
        "channel":         b.channel,
        "notes":           b.notes,
        "guestsCount":     b.guests_count,
        "totalAmount":     b.total_amount,
        "depositAmount":   b.deposit_amount,
        "depositReceived": b.deposit_received,
        "createdAt":       b.created_at,
        "updatedAt":       b.updated_at,
    }
    if b.guest_profile is not None:
        data["guestProfile"] = b.guest_profile
    return data


def booking_from_dict(data: dict, now: str, touch: bool = False) -> Booking:
    """
    Costruisce un Booking da un record JSON, con i default dell'import:
    guestsCount → 2, notes → "", importi → 0, createdAt → now.
    Con `touch=True` anche updatedAt viene impostato a now.
    Le chiavi sconosciute vengono ignorate.
    """
    profile = data.get("guestProfile")
    return Booking(
        id=str(data["id"]),
        guest_name=str(data.get("guestName") or "").strip(),
        lodge=str(data.get("lodge") or ""),
        check_in=to_date(data.get("checkIn")),
        check_out=to_date(data.get("checkOut")),
        status=str(data.get("status") or "confirmed"),
        channel=str(data.get("channel") or "direct"),
        notes=str(data.get("notes") if data.get("notes") is not None else "").strip(),
        guests_count=to_guests_count(data.get("guestsCount")),
        total_amount=to_float(data.get("totalAmount")),
        deposit_amount=to_float(data.get("depositAmount")),
        deposit_received=to_bool(data.get("depositReceived")),
        created_at=str(data.get("createdAt") or now),
        updated_at=now if touch else str(data.get("updatedAt") or now),
        guest_profile=profile if isinstance(profile, dict) else None,
    )
