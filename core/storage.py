"""
Storage locale su file JSON.

  - bookings.json          → array di prenotazioni (chiavi camelCase)
  - bookings_backups.json  → ultime MAX_BACKUPS istantanee {createdAt, bookings}

Contratto verso lo Store:
  load() non solleva mai: dati mancanti o corrotti → lista vuota.
  save() non solleva mai: gli errori di I/O finiscono nel log.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import List

from config import BACKUP_PATH, DATA_PATH, MAX_BACKUPS
from core.models import Booking, booking_from_dict, booking_to_dict

logger = logging.getLogger(__name__)


def _write_json_atomic(path: str, data) -> None:
    """Scrive su file temporaneo nella stessa cartella e poi rinomina."""
    folder = os.path.dirname(os.path.abspath(path))
    os.makedirs(folder, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=folder, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def records_to_bookings(records, now: str) -> List[Booking]:
    """Converte record grezzi in Booking, saltando quelli senza id o date."""
    out = []
    for rec in records:
        if not isinstance(rec, dict) or not rec.get("id"):
            logger.warning("Record senza id ignorato: %r", rec)
            continue
        b = booking_from_dict(rec, now)
        if b.check_in is None or b.check_out is None:
            logger.warning("Record %s con date non valide ignorato", b.id)
            continue
        out.append(b)
    return out


def needs_guests_migration(records) -> bool:
    """Record salvati prima che esistesse guestsCount."""
    return any(
        isinstance(rec, dict) and not isinstance(rec.get("guestsCount"), (int, float))
        for rec in records
    )


class JsonFileStorage:
    def __init__(self, path: str = DATA_PATH, backup_path: str = BACKUP_PATH, max_backups: int = MAX_BACKUPS):
        self.path = path
        self.backup_path = backup_path
        self.max_backups = max_backups
        self.needs_migration = False

    def load(self) -> List[Booking]:
        self.needs_migration = False
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("File prenotazioni illeggibile (%s): %s", self.path, e)
            return []
        if not isinstance(raw, list):
            logger.warning("File prenotazioni non è un array: %s", self.path)
            return []
        self.needs_migration = needs_guests_migration(raw)
        return records_to_bookings(raw, datetime.now(timezone.utc).isoformat())

    def save(self, bookings: List[Booking]) -> None:
        records = [booking_to_dict(b) for b in bookings]
        try:
            _write_json_atomic(self.path, records)
            self._push_backup(records)
        except (OSError, TypeError, ValueError):
            logger.exception("Salvataggio prenotazioni fallito (%s)", self.path)
            return
        self.needs_migration = False

    def load_backups(self) -> list:
        if not os.path.exists(self.backup_path):
            return []
        try:
            with open(self.backup_path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("File backup illeggibile (%s): %s", self.backup_path, e)
            return []
        return raw if isinstance(raw, list) else []

    def _push_backup(self, records: list) -> None:
        snapshot = {
            "createdAt": datetime.now(timezone.utc).isoformat(),
            "bookings": records,
        }
        snapshots = [snapshot] + self.load_backups()
        _write_json_atomic(self.backup_path, snapshots[: self.max_backups])
