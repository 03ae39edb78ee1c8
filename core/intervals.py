"""
Semantica degli intervalli di soggiorno: [check_in, check_out) a granularità
giorno. Il giorno di check-out non è mai "attivo": l'ospite occupa la lodge
nelle notti da check_in fino al giorno prima del check-out.
"""

import calendar
from datetime import date, timedelta
from typing import List


def is_active_on_day(booking, day: date) -> bool:
    """Vero se l'ospite è presente nella notte del giorno `day`."""
    return booking.check_in <= day < booking.check_out


def overlaps(a, b) -> bool:
    """
    Intersezione di due intervalli semiaperti. Check-out di una uguale al
    check-in dell'altra non è sovrapposizione (cambio ospite in giornata).
    """
    return a.check_in < b.check_out and b.check_in < a.check_out


def nights(booking) -> int:
    return (booking.check_out - booking.check_in).days


def nights_in_range(booking, start: date, end: date) -> int:
    """Notti della prenotazione che cadono in [start, end)."""
    b_start = max(booking.check_in, start)
    b_end = min(booking.check_out, end)
    if b_start >= b_end:
        return 0
    return (b_end - b_start).days


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(month: date) -> date:
    """Primo giorno del mese successivo (estremo escluso)."""
    last = calendar.monthrange(month.year, month.month)[1]
    return month.replace(day=last) + timedelta(days=1)


def add_months(month: date, delta: int) -> date:
    idx = month.year * 12 + (month.month - 1) + delta
    return date(idx // 12, idx % 12 + 1, 1)


def month_days(month: date) -> List[date]:
    start = month_start(month)
    end = month_end(start)
    return [start + timedelta(days=i) for i in range((end - start).days)]
