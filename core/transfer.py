"""
Import/export JSON del tabellone.

Import: accetta un array di prenotazioni oppure un oggetto con campo
`bookings` array (il formato prodotto dall'export). Ogni altra forma è un
FormatError, sollevato prima di arrivare allo Store.
"""

import json
from datetime import date, datetime, timezone
from typing import Iterable, List

from config import EXPORT_FILE_PREFIX
from core.errors import FormatError
from core.models import Booking, booking_to_dict


def parse_import_payload(raw) -> List[dict]:
    """Estrae l'elenco di record grezzi da testo, bytes o oggetto già decodificato."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise FormatError(f"File non in UTF-8: {e}")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise FormatError(f"JSON non valido: {e}")

    incoming = raw if isinstance(raw, list) else (raw.get("bookings") if isinstance(raw, dict) else None)
    if not isinstance(incoming, list):
        raise FormatError("Formato JSON non valido.")
    return incoming


def build_export_payload(bookings: Iterable[Booking], exported_at: str = None) -> dict:
    return {
        "exportedAt": exported_at or datetime.now(timezone.utc).isoformat(),
        "bookings": [booking_to_dict(b) for b in bookings],
    }


def dumps_export(bookings: Iterable[Booking], exported_at: str = None) -> str:
    return json.dumps(build_export_payload(bookings, exported_at), ensure_ascii=False, indent=2)


def export_filename(month: date, ext: str = "json") -> str:
    return f"{EXPORT_FILE_PREFIX}-{month:%Y-%m}.{ext}"
