"""Centralized configuration for the customs operations backend.

Re-exports everything from customsops.infrastructure.settings, then adds
typed constants for pagination, reconciliation, flow runs, container checks,
rate limiting and the team rosters used by the statistics views.
"""

from __future__ import annotations

from customsops.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Pagination ---
ARRIVALS_PAGE_SIZE: int = 8
FLOW_RUNS_PAGE_SIZE: int = 10
VIOLATIONS_PAGE_SIZE: int = 10

# --- Reconciliation ---
ATTENTION_THRESHOLD_DAYS: int = 2
BULK_CHECK_DEFAULT_NOTE: str = "Bulk checked"
UNKNOWN_USER: str = "Unknown User"

# --- Flow runs ---
SHADOW_PENDING_WINDOW_MINUTES: int = 30

# --- Container weight ---
CRITICAL_EXCESS_KG: int = 10000

# --- Statistics ---
ACTIVITY_CALENDAR_DAYS: int = 120
ACTIVE_HOURS: tuple[int, int] = (6, 19)

# --- Rate Limiting (per-minute and per-hour limits come from settings) ---
RATE_LIMIT_MAX_IPS: int = 10000

# --- Tracking payload limits ---
API_BATCH_SIZE_MAX: int = 500

# --- Team rosters (user ids as reported by the performance API) ---
IMPORT_USERS: tuple[str, ...] = (
    "FADWA.ERRAZIKI", "AYOUB.SOURISTE", "AYMANE.BERRIOUA", "SANA.IDRISSI", "AMINA.SAISS",
    "KHADIJA.OUFKIR", "ZOHRA.HMOUDOU", "SIMO.ONSI", "YOUSSEF.ASSABIR", "ABOULHASSAN.AMINA",
    "MEHDI.OUAZIR", "OUMAIMA.EL.OUTMANI", "HAMZA.ALLALI", "MUSTAPHA.BOUJALA", "HIND.EZZAOUI",
)

EXPORT_USERS: tuple[str, ...] = (
    "IKRAM.OULHIANE", "MOURAD.ELBAHAZ", "MOHSINE.SABIL", "AYA.HANNI",
    "ZAHIRA.OUHADDA", "CHAIMAAE.EJJARI", "HAFIDA.BOOHADDOU", "KHADIJA.HICHAMI",
    "FATIMA.ZAHRA.BOUGSIM",
)
