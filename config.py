"""
Configurazione centralizzata - modifica qui lodge, percorsi e storage.
"""

import os

# Le nove lodge della struttura (ordine = ordine delle righe nel tabellone)
LODGES = (
    "Frangipane",
    "Fiordaliso",
    "Giglio",
    "Tulipano",
    "Orchidea",
    "Lavanda",
    "Geranio",
    "Gardenia",
    "Azalea",
)

BOOKING_STATUSES = ("confirmed", "option", "blocked", "cancelled")
BOOKING_CHANNELS = ("direct", "airbnb", "booking", "expedia", "other")

STATUS_COLORS = {
    "confirmed": "#16a34a",
    "option":    "#f59e0b",
    "blocked":   "#6b7280",
    "cancelled": "#dc2626",
}

CHANNEL_LABELS = {
    "direct":  "Direct",
    "airbnb":  "Airbnb",
    "booking": "Booking.com",
    "expedia": "Expedia",
    "other":   "Other",
}

MONTH_NAMES_IT = [
    "Gennaio", "Febbraio", "Marzo", "Aprile", "Maggio", "Giugno",
    "Luglio", "Agosto", "Settembre", "Ottobre", "Novembre", "Dicembre",
]

# Default usati da import e form
DEFAULT_GUESTS_COUNT = 2
DEPOSIT_SUGGESTED_RATIO = 0.3

# Storage: "file" (JSON locale) oppure "sheets" (Google Sheets)
STORAGE_BACKEND = os.getenv("BOOKING_STORAGE", "file")

DATA_PATH = os.getenv("BOOKING_DATA_PATH", os.path.join("data", "bookings.json"))
BACKUP_PATH = os.getenv("BOOKING_BACKUP_PATH", os.path.join("data", "bookings_backups.json"))
MAX_BACKUPS = 10

# Nome del foglio Google con una riga per prenotazione
SHEET_BOOKINGS = "prenotazioni"

EXPORT_FILE_PREFIX = "villa-olimpia-booking-board"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
