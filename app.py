"""
Tabellone Prenotazioni - Villa Olimpia, nove lodge.
Web app Streamlit: griglia mensile lodge × giorni, create/modifica/elimina,
import/export JSON, precompilazione da testo email.

Storage: file JSON locale (default) oppure Google Sheets (BOOKING_STORAGE=sheets).
"""

import logging
import os
import sys
from datetime import date

import pandas as pd
import streamlit as st

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import (
    BOOKING_CHANNELS, BOOKING_STATUSES, CHANNEL_LABELS, LODGES, LOG_LEVEL,
    MONTH_NAMES_IT, STATUS_COLORS, STORAGE_BACKEND,
)
from core.errors import BookingError, ConflictError, FieldValidationError, FormatError
from core.models import BookingInput
from core.sheets import SheetsStorage
from core.storage import JsonFileStorage
from core.store import BoardView, BookingStore
from core.transfer import dumps_export, export_filename, parse_import_payload
from parsers.email_text import build_form_defaults, parse_email
from reports.pivot import (
    board_grid, bookings_dataframe, df_to_excel_bytes, format_money,
    lodge_summaries, month_kpi, visible_summary,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="Tabellone Prenotazioni",
    page_icon="📅",
    layout="wide",
)

st.title("📅 Tabellone Prenotazioni - Villa Olimpia")

FIELD_LABELS = {
    "guest_name":     "Nome ospite",
    "check_in":       "Check-in",
    "check_out":      "Check-out",
    "guests_count":   "Ospiti",
    "total_amount":   "Totale €",
    "deposit_amount": "Caparra €",
    "lodge":          "Lodge",
    "status":         "Stato",
    "channel":        "Canale",
}


# ── Verifica connessione Google Sheets ──────────────────────────────────────
def check_sheets_connection() -> bool:
    try:
        _ = st.secrets["gcp_service_account"]
        _ = st.secrets["google_sheets"]["spreadsheet_id"]
        return True
    except Exception:
        return False


@st.cache_resource
def get_store() -> BookingStore:
    """Costruisce lo Store una volta per processo e carica le prenotazioni."""
    if STORAGE_BACKEND == "sheets" and check_sheets_connection():
        storage = SheetsStorage.from_service_account(
            dict(st.secrets["gcp_service_account"]),
            st.secrets["google_sheets"]["spreadsheet_id"],
        )
    else:
        storage = JsonFileStorage()
    store = BookingStore(storage)
    store.load()
    return store


def get_view() -> BoardView:
    """Mese e filtri sono della singola sessione browser, non del processo."""
    if "board_view" not in st.session_state:
        st.session_state["board_view"] = BoardView()
    return st.session_state["board_view"]


def show_booking_error(e: BookingError) -> None:
    if isinstance(e, FieldValidationError) and e.field in FIELD_LABELS:
        st.error(f"**{FIELD_LABELS[e.field]}**: {e}")
    elif isinstance(e, ConflictError):
        st.error(f"⚠️ {e}")
    else:
        st.error(str(e))


def booking_label(b) -> str:
    return f"{b.guest_name} — {b.lodge} — {b.check_in:%d/%m} → {b.check_out:%d/%m/%Y} ({b.status})"


def render_sidebar(store: BookingStore, view: BoardView) -> None:
    with st.sidebar:
        st.header("Mese")
        col1, col2, col3 = st.columns(3)
        if col1.button("◀", use_container_width=True):
            view.prev_month()
        if col2.button("Oggi", use_container_width=True):
            view.go_to_today()
        if col3.button("▶", use_container_width=True):
            view.next_month()

        month = view.current_month
        years = [month.year + d for d in range(-2, 3)]
        sel_month = st.selectbox(
            "Mese", options=list(range(1, 13)), index=month.month - 1,
            format_func=lambda m: MONTH_NAMES_IT[m - 1],
        )
        sel_year = st.selectbox("Anno", options=years, index=2)
        if (sel_year, sel_month) != (month.year, month.month):
            view.set_month(date(sel_year, sel_month, 1))
            st.rerun()

        st.divider()
        st.header("Filtri")
        view.set_filters(
            search=st.text_input("Cerca ospite", value=view.filters.search),
            status=st.selectbox("Stato", ["all", *BOOKING_STATUSES],
                                index=["all", *BOOKING_STATUSES].index(view.filters.status)),
            channel=st.selectbox("Canale", ["all", *BOOKING_CHANNELS],
                                 index=["all", *BOOKING_CHANNELS].index(view.filters.channel),
                                 format_func=lambda c: "Tutti" if c == "all" else CHANNEL_LABELS[c]),
            show_cancelled=st.checkbox("Mostra cancellate", value=view.filters.show_cancelled),
        )

        st.divider()
        with st.expander("Legenda"):
            for status, color in STATUS_COLORS.items():
                st.markdown(f"<span style='color:{color}'>■</span> {status}", unsafe_allow_html=True)
        backend = "Google Sheets" if isinstance(store.storage, SheetsStorage) else "File locale"
        st.caption(f"Storage: {backend}")


def render_board(store: BookingStore, view: BoardView) -> None:
    month = view.current_month
    st.header(f"{MONTH_NAMES_IT[month.month - 1]} {month.year}")

    kpi = month_kpi(month, store.bookings)
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Prenotazioni", kpi["prenotazioni"])
    k2.metric("Fatturato", format_money(kpi["fatturato"]))
    k3.metric("Caparre ricevute", format_money(kpi["caparre_ricevute"]))
    k4.metric("Occupancy", f"{kpi['occupancy']:.0f}%")

    visible = view.visible(store.bookings)
    grid = board_grid(month, visible, include_cancelled=view.filters.show_cancelled)
    st.dataframe(grid, use_container_width=True)

    summary = visible_summary(visible)
    st.caption(
        f"Visibili: {summary['count']} prenotazioni · Totale {format_money(summary['total'])} · "
        f"Caparre {format_money(summary['deposits'])}"
    )


def render_form(store: BookingStore) -> None:
    st.header("Prenotazione")

    options = ["__new__", *[b.id for b in store.bookings]]
    by_id = {b.id: b for b in store.bookings}
    selected = st.selectbox(
        "Seleziona",
        options=options,
        format_func=lambda i: "➕ Nuova prenotazione" if i == "__new__" else booking_label(by_id[i]),
    )

    if selected == "__new__":
        defaults = build_form_defaults(
            prefill=st.session_state.get("email_prefill"),
        )
    else:
        defaults = by_id[selected].to_input()

    with st.form(key=f"booking_form_{selected}"):
        col1, col2 = st.columns(2)
        with col1:
            guest_name = st.text_input("Nome ospite", value=defaults.guest_name)
            lodge = st.selectbox("Lodge", LODGES, index=LODGES.index(defaults.lodge) if defaults.lodge in LODGES else 0)
            check_in = st.date_input("Check-in", value=defaults.check_in, format="DD/MM/YYYY")
            check_out = st.date_input("Check-out", value=defaults.check_out, format="DD/MM/YYYY")
            guests_count = st.number_input("Ospiti", min_value=1, step=1, value=int(defaults.guests_count))
        with col2:
            status = st.selectbox("Stato", BOOKING_STATUSES, index=BOOKING_STATUSES.index(defaults.status))
            channel = st.selectbox("Canale", BOOKING_CHANNELS, index=BOOKING_CHANNELS.index(defaults.channel),
                                   format_func=lambda c: CHANNEL_LABELS[c])
            total_amount = st.number_input("Totale €", min_value=0.0, step=10.0, value=float(defaults.total_amount))
            deposit_amount = st.number_input("Caparra €", min_value=0.0, step=10.0, value=float(defaults.deposit_amount))
            deposit_received = st.checkbox("Caparra ricevuta", value=defaults.deposit_received)
        notes = st.text_area("Note", value=defaults.notes)
        submitted = st.form_submit_button("💾 Salva", type="primary")

    if submitted:
        payload = BookingInput(
            guest_name=guest_name,
            lodge=lodge,
            check_in=check_in,
            check_out=check_out,
            status=status,
            channel=channel,
            notes=notes,
            guests_count=int(guests_count),
            total_amount=float(total_amount),
            deposit_amount=float(deposit_amount),
            deposit_received=deposit_received,
            guest_profile=defaults.guest_profile,
        )
        try:
            if selected == "__new__":
                b = store.create(payload)
                st.session_state.pop("email_prefill", None)
                st.success(f"✓ Creata prenotazione per **{b.guest_name}**.")
            else:
                store.update(selected, payload)
                st.success("✓ Prenotazione aggiornata.")
        except BookingError as e:
            show_booking_error(e)

    if selected != "__new__":
        st.divider()
        confirm = st.checkbox("Confermo l'eliminazione", key=f"confirm_delete_{selected}")
        if st.button("🗑️ Elimina prenotazione", disabled=not confirm):
            store.delete(selected)
            st.success("Prenotazione eliminata.")
            st.rerun()


def render_email(store: BookingStore) -> None:
    st.header("Importa da email")
    text = st.text_area(
        "Incolla il testo dell'email",
        height=200,
        placeholder="Incolla qui il contenuto dell'email di prenotazione...",
    )
    if st.button("🔍 Analizza", disabled=not text.strip()):
        parsed = parse_email(text)
        if parsed:
            st.session_state["email_parsed"] = parsed
        else:
            st.session_state.pop("email_parsed", None)
            st.warning("Nessun dato riconosciuto nel testo.")

    parsed = st.session_state.get("email_parsed")
    if parsed:
        preview = {FIELD_LABELS.get(k, k): (v.strftime("%d/%m/%Y") if isinstance(v, date) else v)
                   for k, v in parsed.items()}
        st.dataframe(pd.DataFrame([preview]), use_container_width=True, hide_index=True)
        if st.button("➕ Usa per nuova prenotazione", type="primary"):
            st.session_state["email_prefill"] = parsed
            st.info("Dati caricati: apri il tab **Prenotazione** per completare e salvare.")


def render_transfer(store: BookingStore, view: BoardView) -> None:
    st.header("Import / Export")

    st.subheader("Import JSON (merge)")
    uploaded = st.file_uploader("File JSON esportato dal tabellone", type=["json"])
    if uploaded is not None:
        try:
            incoming = parse_import_payload(uploaded.getvalue())
        except FormatError as e:
            st.error(str(e))
        else:
            st.write(f"Trovati **{len(incoming)}** record nel file.")
            if st.button("✅ Conferma merge", type="primary"):
                result = store.import_merge(incoming)
                st.success(f"Import completato. Merge: {result.merged}, scartate: {result.skipped}.")

    st.divider()
    st.subheader("Esporta")
    month = view.current_month
    col_json, col_csv, col_xlsx = st.columns(3)
    with col_json:
        st.download_button(
            "⬇️ Scarica JSON",
            dumps_export(store.export()).encode("utf-8"),
            file_name=export_filename(month),
            mime="application/json",
        )
    df = bookings_dataframe(store.export())
    with col_csv:
        st.download_button(
            "⬇️ Scarica CSV",
            df.to_csv(index=False).encode("utf-8"),
            file_name=export_filename(month, "csv"),
            mime="text/csv",
        )
    with col_xlsx:
        st.download_button(
            "⬇️ Scarica Excel",
            df_to_excel_bytes(df),
            file_name=export_filename(month, "xlsx"),
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )


def render_summary(store: BookingStore, view: BoardView) -> None:
    month = view.current_month
    st.header(f"Riepilogo {MONTH_NAMES_IT[month.month - 1]} {month.year}")
    df = lodge_summaries(month, store.bookings)
    if df["prenotazioni"].sum() == 0:
        st.info("Nessuna prenotazione nel mese.")
        return
    kpi = month_kpi(month, store.bookings)
    st.write(
        f"{kpi['notti']} notti occupate / {kpi['giorni']} giorni · "
        f"Occupancy media {kpi['occupancy']:.0f}%"
    )
    st.dataframe(df.round(1), use_container_width=True, hide_index=True)
    st.bar_chart(df.set_index("lodge")["occupancy"])

    st.subheader("Elenco prenotazioni visibili")
    st.dataframe(bookings_dataframe(view.visible(store.bookings)), use_container_width=True, hide_index=True)


# ── Tabs ─────────────────────────────────────────────────────────────────────
try:
    store = get_store()
except Exception as e:
    st.error(f"Errore inizializzazione storage: {e}")
    st.exception(e)
    st.stop()

view = get_view()
render_sidebar(store, view)

tab_board, tab_form, tab_email, tab_transfer, tab_summary = st.tabs(
    ["📅 Tabellone", "✏️ Prenotazione", "📧 Da email", "🔁 Import/Export", "📊 Riepilogo"]
)

with tab_board:
    render_board(store, view)
with tab_form:
    render_form(store)
with tab_email:
    render_email(store)
with tab_transfer:
    render_transfer(store, view)
with tab_summary:
    render_summary(store, view)
