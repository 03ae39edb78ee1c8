"""
Report mensili del tabellone.

Produce DataFrame pandas per Streamlit (st.dataframe):
  - griglia lodge × giorni del mese con il nome ospite nelle notti occupate
  - riepilogo per lodge (notti, occupancy, ricavo pro-rata)
  - KPI del mese e riepilogo delle prenotazioni filtrate
  - elenco prenotazioni per export CSV/Excel
"""

import io
from datetime import date
from typing import Iterable, List

import pandas as pd

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import LODGES, CHANNEL_LABELS
from core.intervals import is_active_on_day, month_days, month_end, month_start, nights, nights_in_range
from core.models import Booking


def format_money(value: float) -> str:
    """Euro in formato italiano senza decimali: 1234.5 → '€ 1.235'."""
    if value is None or pd.isna(value):
        return "€ 0"
    return "€ " + f"{value:,.0f}".replace(",", ".")


def _active(bookings: Iterable[Booking]) -> List[Booking]:
    return [b for b in bookings if b.status != "cancelled"]


def board_grid(month: date, bookings: Iterable[Booking], include_cancelled: bool = False) -> pd.DataFrame:
    """
    Griglia lodge × giorni: cella = nome ospite se la lodge è occupata quella
    notte, stringa vuota altrimenti. Il giorno di check-out resta libero.
    """
    days = month_days(month)
    shown = list(bookings) if include_cancelled else _active(bookings)
    grid = pd.DataFrame("", index=list(LODGES), columns=[d.day for d in days])
    grid.index.name = "Lodge"

    for b in shown:
        if b.lodge not in grid.index:
            continue
        for d in days:
            if is_active_on_day(b, d):
                grid.at[b.lodge, d.day] = b.guest_name
    return grid


def revenue_in_range(b: Booking, start: date, end: date) -> float:
    """Quota del totale che cade in [start, end), ripartita per notte."""
    total_nights = nights(b)
    if total_nights <= 0:
        return 0.0
    return b.total_amount / total_nights * nights_in_range(b, start, end)


def lodge_summaries(month: date, bookings: Iterable[Booking]) -> pd.DataFrame:
    """Per ogni lodge: prenotazioni attive nel mese, notti, occupancy %, ricavo."""
    start = month_start(month)
    end = month_end(start)
    total_days = (end - start).days
    active = _active(bookings)

    rows = []
    for lodge in LODGES:
        in_month = [b for b in active if b.lodge == lodge and nights_in_range(b, start, end) > 0]
        booked = sum(nights_in_range(b, start, end) for b in in_month)
        rows.append({
            "lodge":       lodge,
            "prenotazioni": len(in_month),
            "notti":       booked,
            "occupancy":   booked / total_days * 100 if total_days else 0.0,
            "ricavo":      sum(revenue_in_range(b, start, end) for b in in_month),
        })
    return pd.DataFrame(rows)


def month_kpi(month: date, bookings: Iterable[Booking]) -> dict:
    """KPI del mese: prenotazioni, fatturato, caparre ricevute, occupancy media."""
    start = month_start(month)
    end = month_end(start)
    total_days = (end - start).days
    in_month = [b for b in _active(bookings) if nights_in_range(b, start, end) > 0]
    booked = sum(nights_in_range(b, start, end) for b in in_month)

    return {
        "prenotazioni":      len(in_month),
        "fatturato":         sum(revenue_in_range(b, start, end) for b in in_month),
        "caparre_ricevute":  sum(b.deposit_amount for b in in_month if b.deposit_received),
        "occupancy":         booked / (total_days * len(LODGES)) * 100 if total_days else 0.0,
        "notti":             booked,
        "giorni":            total_days,
    }


def visible_summary(bookings: Iterable[Booking]) -> dict:
    """Conteggio e somme per le prenotazioni visibili con i filtri correnti."""
    items = list(bookings)
    return {
        "count":    len(items),
        "total":    sum(b.total_amount for b in items),
        "deposits": sum(b.deposit_amount for b in items),
    }


def bookings_dataframe(bookings: Iterable[Booking]) -> pd.DataFrame:
    """Lista prenotazioni per visualizzazione tabellare ed export."""
    rows = [{
        "Ospite":    b.guest_name,
        "Lodge":     b.lodge,
        "Check-in":  b.check_in.strftime("%d/%m/%Y"),
        "Check-out": b.check_out.strftime("%d/%m/%Y"),
        "Notti":     nights(b),
        "Stato":     b.status,
        "Canale":    CHANNEL_LABELS.get(b.channel, b.channel),
        "Ospiti":    b.guests_count,
        "Totale €":  round(b.total_amount, 2),
        "Caparra €": round(b.deposit_amount, 2),
        "Caparra ricevuta": "sì" if b.deposit_received else "no",
        "Note":      b.notes,
        "id":        b.id,
    } for b in bookings]
    return pd.DataFrame(rows)


def df_to_excel_bytes(df: pd.DataFrame, sheet_name: str = "Prenotazioni") -> bytes:
    """Converte DataFrame in bytes XLSX per il download."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
    return buf.getvalue()
