"""
Parser euristico per il testo delle email di prenotazione.

Incolla il testo di una email (richiesta diretta, conferma Airbnb/Booking,
scambio con l'ospite) e ottieni i campi per precompilare il form:
  - nome ospite     → saluto ("Gentile Mario Rossi"), etichetta ("Ospite: ...")
  - date            → "15 marzo 2025" / "15 March 2025", 15/03/2025, 2025-03-15
  - lodge           → nome di una delle nove lodge nel testo
  - importi         → "€ 500" / "500,00 €", classificati dalle parole vicine
  - ospiti          → "4 persone", "2 pax", "3 guests"
  - canale          → airbnb, booking.com, expedia

Nessuna garanzia di correttezza: il risultato è solo un seed per il form e
passa comunque dal validator prima della creazione.

NOTE SUI FORMATI:
  - date numeriche ambigue: se il secondo numero è > 12 si scambiano giorno e mese
  - anni a due cifre → 2000+
  - caparra: parole "caparra", "acconto", "deposito", "anticipo" entro 80
    caratteri prima dell'importo (o 30 dopo)
  - senza parole chiave: primo importo → totale, secondo → caparra
"""

import re
from datetime import date, timedelta
from typing import List, Optional

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import LODGES, DEFAULT_GUESTS_COUNT, DEPOSIT_SUGGESTED_RATIO
from core.models import BookingInput


MONTH_NAMES = {
    "gennaio": 1, "febbraio": 2, "marzo": 3, "aprile": 4, "maggio": 5, "giugno": 6,
    "luglio": 7, "agosto": 8, "settembre": 9, "ottobre": 10, "novembre": 11, "dicembre": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
}

LODGE_RE = re.compile(r"\b(" + "|".join(LODGES) + r")\b", re.IGNORECASE)
DATE_NUM_RE = re.compile(r"\b(\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}|\d{4}[/\-]\d{2}[/\-]\d{2})\b")
DATE_WORD_RE = re.compile(
    r"\b(\d{1,2})\s+(" + "|".join(MONTH_NAMES) + r")\s+(\d{4})\b", re.IGNORECASE
)
EUR_RE = re.compile(r"(\d+(?:[.,]\d{2})?)\s*€|€\s*(\d+(?:[.,]\d{2})?)")
GUESTS_RE = re.compile(r"\b(\d+)\s*(?:ospiti?|persone?|pax|guests?|p\.?)\b", re.IGNORECASE)

DEPOSIT_KW = re.compile(r"caparra|acconto|deposit[oa]?|anticipo", re.IGNORECASE)
TOTAL_KW = re.compile(r"total[ei]?|importo|saldo|prezzo|costo", re.IGNORECASE)

NAME_PATTERNS = [
    # Saluto: "Gentile Mario Rossi" / "Dear John Smith"
    re.compile(r"(?:gentile|dear|caro|cara)\s+(?:sig(?:nor[ae]?)?\.?\s+)?([A-Za-zÀ-ÿ][A-Za-zÀ-ÿ \t]{1,48})", re.IGNORECASE),
    # Etichetta: "Ospite: Mario Rossi"
    re.compile(r"(?:ospite|guest|nome|cognome|signor[ea]?|sig\.?)\s*[:‒–—\-]?\s*([A-Za-zÀ-ÿ \t]{2,50})", re.IGNORECASE),
    # "prenotazione per Mario Rossi"
    re.compile(r"(?:prenotazione|booking|prenotato)\s+(?:per|da|di)\s+([A-Za-zÀ-ÿ \t]{2,50})", re.IGNORECASE),
    # Nome Cognome a inizio riga
    re.compile(r"^([A-Z][a-zà-ù]+[ \t]+[A-Z][a-zà-ù]+)(?:\s|,|$)", re.MULTILINE),
]


# ─── Date ───────────────────────────────────────────────────────────────────

def _safe_date(y: int, m: int, d: int) -> Optional[date]:
    try:
        return date(y, m, d)
    except ValueError:
        return None


def _parse_numeric_date(s: str) -> Optional[date]:
    """Data numerica già normalizzata con i trattini."""
    m = re.match(r"^(\d{4})-(\d{2})-(\d{2})$", s)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    m = re.match(r"^(\d{1,2})-(\d{1,2})-(\d{2,4})$", s)
    if not m:
        return None
    d, mo, y = int(m.group(1)), int(m.group(2)), int(m.group(3))
    if y < 100:
        y += 2000
    if mo > 12:
        d, mo = mo, d
    return _safe_date(y, mo, d)


def extract_dates(text: str) -> List[date]:
    """Date trovate nel testo, senza duplicati, in ordine di apparizione."""
    entries = []
    seen = set()

    # Date testuali prima: più affidabili
    for m in DATE_WORD_RE.finditer(text):
        day = int(m.group(1))
        month = MONTH_NAMES.get(m.group(2).lower(), 0)
        parsed = _safe_date(int(m.group(3)), month, day) if month and 1 <= day <= 31 else None
        if parsed and parsed not in seen:
            seen.add(parsed)
            entries.append((m.start(), parsed))

    for m in DATE_NUM_RE.finditer(text):
        parsed = _parse_numeric_date(re.sub(r"[./]", "-", m.group(1)))
        if parsed and parsed not in seen:
            seen.add(parsed)
            entries.append((m.start(), parsed))

    entries.sort(key=lambda e: e[0])
    return [d for _, d in entries]


# ─── Importi ────────────────────────────────────────────────────────────────

def _parse_amount(s: str) -> float:
    try:
        return max(0.0, float(s.replace(",", ".").replace(" ", "")))
    except ValueError:
        return 0.0


def extract_amounts(text: str) -> tuple:
    """Restituisce (totale, caparra); 0 se non trovati."""
    total = 0.0
    deposit = 0.0
    untagged = []

    for m in EUR_RE.finditer(text):
        value = _parse_amount(m.group(1) or m.group(2) or "0")
        if value <= 0:
            continue
        ctx = text[max(0, m.start() - 80): m.start() + 30]
        if DEPOSIT_KW.search(ctx):
            if deposit == 0:
                deposit = value
        elif TOTAL_KW.search(ctx):
            if total == 0:
                total = value
        else:
            untagged.append(value)

    if total == 0 and untagged:
        total = untagged[0]
    if deposit == 0 and len(untagged) > 1:
        deposit = untagged[1]
    return total, deposit


# ─── Altri campi ────────────────────────────────────────────────────────────

def extract_guest_name(text: str) -> str:
    for pat in NAME_PATTERNS:
        m = pat.search(text)
        if m:
            return re.sub(r"\s{2,}", " ", m.group(1).strip())
    return ""


def extract_lodge(text: str) -> Optional[str]:
    m = LODGE_RE.search(text)
    if not m:
        return None
    found = m.group(1).lower()
    return next((lodge for lodge in LODGES if lodge.lower() == found), None)


def extract_channel(text: str) -> Optional[str]:
    tl = text.lower()
    if re.search(r"\bairbnb\b", tl):
        return "airbnb"
    if re.search(r"\bbooking\.com\b", tl):
        return "booking"
    if re.search(r"\bexpedia\b", tl):
        return "expedia"
    return None


def parse_email(text: str) -> dict:
    """
    Estrae dal testo i campi riconosciuti. Le chiavi presenti sono un
    sottoinsieme di quelle di BookingInput; i campi non trovati mancano.
    """
    result = {}

    guest_name = extract_guest_name(text)
    if guest_name:
        result["guest_name"] = guest_name

    dates = extract_dates(text)
    if dates:
        result["check_in"] = dates[0]
    if len(dates) > 1:
        result["check_out"] = dates[1]

    lodge = extract_lodge(text)
    if lodge:
        result["lodge"] = lodge

    total, deposit = extract_amounts(text)
    if total > 0:
        result["total_amount"] = total
    if deposit > 0:
        result["deposit_amount"] = deposit

    m = GUESTS_RE.search(text)
    if m:
        result["guests_count"] = max(1, int(m.group(1)))

    channel = extract_channel(text)
    if channel:
        result["channel"] = channel

    return result


def build_form_defaults(prefill: dict = None, lodge: str = None, day: date = None, today: date = None) -> BookingInput:
    """
    Valori iniziali del form "Nuova prenotazione".

    Senza giorno selezionato il check-in è domani; il check-out è il giorno
    dopo il check-in. Con un totale ma senza caparra si propone il 30%.
    """
    prefill = prefill or {}
    today = today or date.today()

    check_in = prefill.get("check_in") or day or today + timedelta(days=1)
    check_out = prefill.get("check_out") or check_in + timedelta(days=1)

    guests = prefill.get("guests_count")
    if not isinstance(guests, int) or guests < 1:
        guests = DEFAULT_GUESTS_COUNT

    total = float(prefill.get("total_amount") or 0.0)
    deposit = prefill.get("deposit_amount")
    if deposit is None:
        deposit = round(total * DEPOSIT_SUGGESTED_RATIO, 2) if total > 0 else 0.0

    return BookingInput(
        guest_name=prefill.get("guest_name", ""),
        lodge=prefill.get("lodge") or lodge or LODGES[0],
        check_in=check_in,
        check_out=check_out,
        status="confirmed",
        channel=prefill.get("channel") or "direct",
        notes="",
        guests_count=guests,
        total_amount=total,
        deposit_amount=float(deposit),
        deposit_received=False,
    )
