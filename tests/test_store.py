from datetime import date

import pytest

from conftest import FIXED_NOW, MemoryStorage, make_input, make_record
from core.errors import ConflictError, FieldValidationError, NotFoundError
from core.store import BoardView, BookingStore


def test_create_assigns_id_and_timestamps(store, storage):
    b = store.create(make_input(guest_name="  Rossi  ", notes="  tardi  "))
    assert b.id == "b1"
    assert b.guest_name == "Rossi"
    assert b.notes == "tardi"
    assert b.created_at == b.updated_at == FIXED_NOW.isoformat()
    assert store.bookings == (b,)
    assert storage.save_calls == 1
    assert storage.saved == [b]


def test_create_conflict_leaves_collection_unchanged(store, storage):
    store.create(make_input())
    before = store.bookings
    with pytest.raises(ConflictError) as exc:
        store.create(make_input(guest_name="Verdi", check_in=date(2024, 6, 3), check_out=date(2024, 6, 6)))
    assert "Rossi" in str(exc.value)
    assert store.bookings == before
    assert storage.save_calls == 1


def test_equal_dates_rejected(store):
    with pytest.raises(FieldValidationError) as exc:
        store.create(make_input(check_in=date(2024, 6, 5), check_out=date(2024, 6, 5)))
    assert exc.value.field == "check_out"
    assert store.bookings == ()


def test_deposit_received_without_amount_rejected(store):
    with pytest.raises(FieldValidationError) as exc:
        store.create(make_input(deposit_received=True, deposit_amount=0.0))
    assert "Caparra ricevuta" in str(exc.value)


def test_cancelled_booking_never_collides(store):
    store.create(make_input())
    store.create(make_input(guest_name="Annullata", status="cancelled"))
    store.create(make_input(guest_name="Annullata 2", status="cancelled"))
    assert len(store.bookings) == 3


def test_back_to_back_same_lodge_allowed(store):
    store.create(make_input())
    store.create(make_input(guest_name="Verdi", check_in=date(2024, 6, 5), check_out=date(2024, 6, 8)))
    assert [b.guest_name for b in store.bookings] == ["Rossi", "Verdi"]


def test_collection_sorted_by_check_in(store):
    store.create(make_input(guest_name="Tardi", check_in=date(2024, 8, 1), check_out=date(2024, 8, 3)))
    store.create(make_input(guest_name="Presto", check_in=date(2024, 5, 1), check_out=date(2024, 5, 3)))
    assert [b.guest_name for b in store.bookings] == ["Presto", "Tardi"]


def test_update_with_unchanged_values_does_not_self_conflict(store):
    b = store.create(make_input())
    updated = store.update(b.id, b.to_input())
    assert updated.id == b.id
    assert updated.created_at == b.created_at


def test_update_replaces_fields_and_resorts(store, storage):
    first = store.create(make_input())
    second = store.create(make_input(guest_name="Verdi", check_in=date(2024, 7, 1), check_out=date(2024, 7, 4)))
    store.update(second.id, make_input(guest_name=" Verdi ", lodge="Azalea",
                                       check_in=date(2024, 5, 1), check_out=date(2024, 5, 4)))
    assert [b.id for b in store.bookings] == [second.id, first.id]
    assert store.get(second.id).lodge == "Azalea"
    assert store.get(second.id).guest_name == "Verdi"
    assert storage.save_calls == 3


def test_update_into_conflict_raises(store):
    store.create(make_input())
    other = store.create(make_input(guest_name="Verdi", check_in=date(2024, 6, 10), check_out=date(2024, 6, 12)))
    with pytest.raises(ConflictError):
        store.update(other.id, make_input(guest_name="Verdi", check_in=date(2024, 6, 4), check_out=date(2024, 6, 12)))
    assert store.get(other.id).check_in == date(2024, 6, 10)


def test_update_unknown_id(store):
    with pytest.raises(NotFoundError):
        store.update("missing", make_input())


def test_delete_is_idempotent_and_persists(store, storage):
    b = store.create(make_input())
    store.delete(b.id)
    store.delete(b.id)
    assert store.bookings == ()
    assert storage.save_calls == 3


def test_export_cannot_mutate_internal_state(store):
    store.create(make_input())
    exported = store.export()
    assert isinstance(exported, tuple)
    assert store.bookings == exported


def test_load_migrates_when_storage_flags_it():
    storage = MemoryStorage()
    storage.needs_migration = True
    s = BookingStore(storage, clock=lambda: FIXED_NOW)
    s.load()
    assert storage.save_calls == 1


def test_month_cursor_and_filters(store):
    view = BoardView(clock=lambda: FIXED_NOW)
    assert view.current_month == date(2024, 5, 1)
    view.next_month()
    assert view.current_month == date(2024, 6, 1)
    view.prev_month()
    view.prev_month()
    assert view.current_month == date(2024, 4, 1)
    view.set_month(date(2025, 1, 17))
    assert view.current_month == date(2025, 1, 1)
    view.go_to_today()
    assert view.current_month == date(2024, 5, 1)

    store.create(make_input())
    store.create(make_input(guest_name="Bianchi", status="cancelled"))
    store.create(make_input(guest_name="Neri", lodge="Azalea", channel="airbnb"))
    assert [b.guest_name for b in view.visible(store.bookings)] == ["Rossi", "Neri"]
    view.set_filters(show_cancelled=True, search="bian")
    assert [b.guest_name for b in view.visible(store.bookings)] == ["Bianchi"]
    view.set_filters(search="", channel="airbnb")
    assert [b.guest_name for b in view.visible(store.bookings)] == ["Neri"]


def test_views_are_independent():
    a = BoardView(clock=lambda: FIXED_NOW)
    b = BoardView(clock=lambda: FIXED_NOW)
    a.next_month()
    a.set_filters(search="rossi")
    assert b.current_month == date(2024, 5, 1)
    assert b.filters.search == ""


def test_guest_profile_is_not_shared_with_callers(store):
    profile = {"documentNumber": "AB123"}
    b = store.create(make_input(guest_profile=profile))
    profile["documentNumber"] = "cambiato"
    store.export()[0].guest_profile["documentNumber"] = "cambiato"
    b.guest_profile["documentNumber"] = "cambiato"
    assert store.get(b.id).guest_profile == {"documentNumber": "AB123"}

    updated = store.update(b.id, make_input(guest_profile=profile))
    profile["documentNumber"] = "ancora"
    assert store.get(updated.id).guest_profile == {"documentNumber": "cambiato"}


def test_imported_guest_profile_is_copied(store):
    record = make_record("imp1", guestProfile={"documentNumber": "X1"})
    store.import_merge([record])
    record["guestProfile"]["documentNumber"] = "cambiato"
    assert store.get("imp1").guest_profile == {"documentNumber": "X1"}
