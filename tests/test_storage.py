import json
from datetime import date
from unittest.mock import MagicMock

import gspread
from google.auth.exceptions import RefreshError

from conftest import FIXED_NOW, make_input, make_record
from core.sheets import SHEET_COLUMNS, SheetsStorage, _booking_to_row
from core.storage import JsonFileStorage
from core.store import BookingStore


def file_storage(tmp_path, max_backups=10):
    return JsonFileStorage(
        path=str(tmp_path / "bookings.json"),
        backup_path=str(tmp_path / "backups.json"),
        max_backups=max_backups,
    )


def test_missing_file_loads_empty(tmp_path):
    assert file_storage(tmp_path).load() == []


def test_corrupt_file_loads_empty(tmp_path):
    (tmp_path / "bookings.json").write_text("{non json", encoding="utf-8")
    assert file_storage(tmp_path).load() == []


def test_non_array_file_loads_empty(tmp_path):
    (tmp_path / "bookings.json").write_text('{"bookings": []}', encoding="utf-8")
    assert file_storage(tmp_path).load() == []


def test_save_then_load_through_store(tmp_path):
    storage = file_storage(tmp_path)
    store = BookingStore(storage, clock=lambda: FIXED_NOW)
    store.load()
    created = store.create(make_input(guest_profile={"documentNumber": "AB123"}))

    raw = json.loads((tmp_path / "bookings.json").read_text(encoding="utf-8"))
    assert raw[0]["guestName"] == "Rossi"
    assert raw[0]["checkIn"] == "2024-06-01"
    assert raw[0]["guestProfile"] == {"documentNumber": "AB123"}

    reloaded = BookingStore(file_storage(tmp_path), clock=lambda: FIXED_NOW)
    reloaded.load()
    assert reloaded.bookings == (created,)


def test_backup_ring_keeps_last_snapshots(tmp_path):
    storage = file_storage(tmp_path, max_backups=3)
    store = BookingStore(storage, clock=lambda: FIXED_NOW)
    for i in range(5):
        store.create(make_input(check_in=date(2024, 6, 1 + 2 * i), check_out=date(2024, 6, 2 + 2 * i)))
    backups = storage.load_backups()
    assert len(backups) == 3
    assert len(backups[0]["bookings"]) == 5
    assert len(backups[-1]["bookings"]) == 3


def test_records_without_id_or_dates_are_skipped(tmp_path):
    records = [make_record("ok"), make_record("", guestName="Senza id"), make_record("bad", checkIn="31/31/2024")]
    (tmp_path / "bookings.json").write_text(json.dumps(records), encoding="utf-8")
    assert [b.id for b in file_storage(tmp_path).load()] == ["ok"]


def test_old_records_without_guests_count_are_migrated(tmp_path):
    rec = make_record("old")
    rec.pop("guestsCount")
    (tmp_path / "bookings.json").write_text(json.dumps([rec]), encoding="utf-8")

    storage = file_storage(tmp_path)
    store = BookingStore(storage, clock=lambda: FIXED_NOW)
    store.load()
    assert store.get("old").guests_count == 2
    raw = json.loads((tmp_path / "bookings.json").read_text(encoding="utf-8"))
    assert raw[0]["guestsCount"] == 2
    assert storage.needs_migration is False


def test_save_failure_is_logged_not_raised(tmp_path, caplog):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    storage = JsonFileStorage(path=str(blocker / "bookings.json"), backup_path=str(blocker / "b.json"))
    storage.save([])
    assert "Salvataggio prenotazioni fallito" in caplog.text


def sheets_storage(rows=None):
    ws = MagicMock()
    ws.get_all_records.return_value = rows or []
    client = MagicMock()
    client.open_by_key.return_value.worksheet.return_value = ws
    return SheetsStorage(client, "sheet-id"), ws


def test_sheets_save_writes_header_and_rows_in_one_call():
    storage, ws = sheets_storage()
    store = BookingStore(storage, clock=lambda: FIXED_NOW, id_factory=lambda: "s1")
    b = store.create(make_input())
    rows = ws.update.call_args.args[0]
    assert rows[0] == SHEET_COLUMNS
    assert rows[1] == _booking_to_row(b)
    assert rows[1][SHEET_COLUMNS.index("depositReceived")] == "TRUE"
    ws.batch_clear.assert_called_once_with(["A3:O"])
    ws.clear.assert_not_called()


def test_sheets_load_parses_rows():
    row = {col: "" for col in SHEET_COLUMNS}
    row.update({k: v for k, v in make_record("g1").items() if k in SHEET_COLUMNS})
    row["depositReceived"] = "FALSE"
    row["guestProfile"] = '{"documentNumber": "X1"}'
    storage, _ = sheets_storage([row])
    [b] = storage.load()
    assert b.id == "g1"
    assert b.check_in == date(2024, 7, 1)
    assert b.deposit_received is False
    assert b.guest_profile == {"documentNumber": "X1"}


def test_sheets_api_error_loads_empty():
    storage, ws = sheets_storage()
    ws.get_all_records.side_effect = gspread.exceptions.GSpreadException("quota")
    assert storage.load() == []


def test_sheets_auth_error_on_save_is_logged_not_raised(caplog):
    storage, ws = sheets_storage()
    ws.update.side_effect = RefreshError("token expired")
    store = BookingStore(storage, clock=lambda: FIXED_NOW, id_factory=lambda: "s1")
    b = store.create(make_input())
    assert store.get("s1") == b
    assert "Salvataggio su Google Sheets fallito" in caplog.text


def test_sheets_failed_write_leaves_existing_rows():
    storage, ws = sheets_storage()
    ws.update.side_effect = gspread.exceptions.GSpreadException("quota")
    storage.save([])
    ws.clear.assert_not_called()
    ws.batch_clear.assert_not_called()


def test_sheets_auth_error_on_load_returns_empty():
    storage, ws = sheets_storage()
    ws.get_all_records.side_effect = RefreshError("token expired")
    assert storage.load() == []


def test_sheets_cells_are_read_as_text():
    row = {col: "" for col in SHEET_COLUMNS}
    row.update({k: str(v) for k, v in make_record("007", guestName="0012", notes="1e3").items()
                if k in SHEET_COLUMNS})
    row.update({"guestsCount": "3", "totalAmount": "450.5", "depositAmount": "100"})
    storage, ws = sheets_storage([row])
    [b] = storage.load()
    assert ws.get_all_records.call_args.kwargs["numericise_ignore"] == ["all"]
    assert (b.id, b.guest_name, b.notes) == ("007", "0012", "1e3")
    assert b.guests_count == 3
    assert b.total_amount == 450.5
    assert b.deposit_amount == 100.0
    assert storage.needs_migration is False
