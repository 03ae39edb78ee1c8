"""
Google Sheets storage: alternativa remota al file JSON locale.

Il Google Sheet ha un foglio "prenotazioni" con una riga per prenotazione e
le colonne camelCase del record JSON. Il foglio è trattato come storage
opaco: ad ogni salvataggio viene riscritto per intero con una sola chiamata.

Autenticazione via Service Account (credenziali in Streamlit secrets):
  1. Crea Service Account su Google Cloud
  2. Condividi il Google Sheet con l'email del service account
  3. Metti le credenziali in .streamlit/secrets.toml
"""

import json
import logging
from datetime import datetime, timezone
from typing import List

import gspread
from gspread.utils import rowcol_to_a1

from config import SHEET_BOOKINGS
from core.models import Booking, booking_to_dict, to_float
from core.storage import needs_guests_migration, records_to_bookings

logger = logging.getLogger(__name__)


# Colonne del foglio "prenotazioni"
SHEET_COLUMNS = [
    "id", "guestName", "lodge", "checkIn", "checkOut", "status", "channel",
    "notes", "guestsCount", "totalAmount", "depositAmount", "depositReceived",
    "createdAt", "updatedAt", "guestProfile",
]

LAST_COLUMN = rowcol_to_a1(1, len(SHEET_COLUMNS)).rstrip("1")


def _booking_to_row(b: Booking) -> list:
    """Converte un Booking in lista di valori per il Sheet."""
    data = booking_to_dict(b)
    row = []
    for col in SHEET_COLUMNS:
        val = data.get(col, "")
        if col == "guestProfile":
            val = json.dumps(val, ensure_ascii=False) if val else ""
        elif col == "depositReceived":
            val = "TRUE" if val else "FALSE"
        row.append(val)
    return row


def _row_to_record(row: dict) -> dict:
    """Riga letta con get_all_records → record JSON."""
    rec = dict(row)
    profile = rec.get("guestProfile")
    if isinstance(profile, str) and profile.strip():
        try:
            rec["guestProfile"] = json.loads(profile)
        except ValueError:
            rec["guestProfile"] = None
    else:
        rec["guestProfile"] = None
    # le celle vengono lette come testo: solo i campi numerici si convertono
    guests = str(rec.get("guestsCount", "")).strip()
    if guests:
        n = to_float(guests)
        rec["guestsCount"] = int(n) if n.is_integer() else n
    else:
        rec.pop("guestsCount", None)
    for col in ("totalAmount", "depositAmount"):
        rec[col] = to_float(rec.get(col))
    return rec


class SheetsStorage:
    def __init__(self, client: gspread.Client, spreadsheet_id: str, sheet_name: str = SHEET_BOOKINGS):
        self.client = client
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.needs_migration = False

    @classmethod
    def from_service_account(cls, creds_dict: dict, spreadsheet_id: str, sheet_name: str = SHEET_BOOKINGS):
        gc = gspread.service_account_from_dict(creds_dict)
        return cls(gc, spreadsheet_id, sheet_name)

    def _worksheet(self):
        """Apre il foglio prenotazioni, creandolo se non esiste."""
        sh = self.client.open_by_key(self.spreadsheet_id)
        try:
            return sh.worksheet(self.sheet_name)
        except gspread.WorksheetNotFound:
            ws = sh.add_worksheet(title=self.sheet_name, rows=1000, cols=len(SHEET_COLUMNS))
            ws.append_row(SHEET_COLUMNS)
            return ws

    def load(self) -> List[Booking]:
        self.needs_migration = False
        try:
            ws = self._worksheet()
            rows = ws.get_all_records(expected_headers=SHEET_COLUMNS[:5], numericise_ignore=["all"])
        except Exception:
            logger.exception("Lettura Google Sheets fallita")
            return []
        records = [_row_to_record(r) for r in rows]
        self.needs_migration = needs_guests_migration(records)
        return records_to_bookings(records, datetime.now(timezone.utc).isoformat())

    def save(self, bookings: List[Booking]) -> None:
        rows = [SHEET_COLUMNS] + [_booking_to_row(b) for b in bookings]
        try:
            ws = self._worksheet()
            # Una sola chiamata API per tutto il foglio, poi via le righe avanzate
            ws.update(rows, "A1", value_input_option="RAW")
            ws.batch_clear([f"A{len(rows) + 1}:{LAST_COLUMN}"])
        except Exception:
            logger.exception("Salvataggio su Google Sheets fallito")
            return
        self.needs_migration = False
