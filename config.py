"""
config.py

Single source of truth for:
- Environment variable reads
- Admin config DB helpers
- Light-fare airline table used by the luggage filter

Nothing here should contain route handlers or business logic beyond config resolution.
"""

import os
from typing import List, Optional

from sqlalchemy.orm import Session


# =====================================================================
# SECTION: ENV VARS
# =====================================================================

# Airline reference dataset (OpenFlights airlines.dat).
# Set AIRLINE_REFERENCE_URL="" to disable the external lookup stage.
AIRLINE_REFERENCE_URL = os.getenv(
    "AIRLINE_REFERENCE_URL",
    "https://raw.githubusercontent.com/jpatokal/openflights/master/data/airlines.dat",
)
AIRLINE_REFERENCE_TIMEOUT = int(os.getenv("AIRLINE_REFERENCE_TIMEOUT", "10"))

# Search result store
SEARCH_RESULT_MAX_AGE_MINUTES = int(os.getenv("SEARCH_RESULT_MAX_AGE_MINUTES", "30"))

# Results shown to the user after filtering
TOP_N_DISPLAY = int(os.getenv("TOP_N_DISPLAY", "5"))

# Thread pool used for per-fare airline resolution
RESOLVER_WORKERS = int(os.getenv("RESOLVER_WORKERS", "8"))


# =====================================================================
# SECTION: LIGHT FARE AIRLINES
# Carriers whose fares with 0 checked + 0 carry-on usually mean
# "personal item only". Any other carrier reading 0/0 is treated as
# a standard carry-on allowance.
# Override with LIGHT_FARE_AIRLINES="LA,H2,AV".
# =====================================================================

DEFAULT_LIGHT_FARE_AIRLINES = ["LA", "H2", "AV", "AM", "JA", "AR"]


def _parse_code_list(raw: Optional[str], default_value: List[str]) -> List[str]:
    if raw is None:
        return list(default_value)
    return [c.strip().upper() for c in raw.split(",") if c.strip()]


LIGHT_FARE_AIRLINES = _parse_code_list(os.getenv("LIGHT_FARE_AIRLINES"), DEFAULT_LIGHT_FARE_AIRLINES)


# =====================================================================
# SECTION: ADMIN CONFIG DB HELPERS
# Read runtime configuration values stored in admin_config table.
# =====================================================================

def _get_config_row(db: Session, key: str):
    from models import AdminConfig
    return db.query(AdminConfig).filter(AdminConfig.key == key).first()


def get_config_str(key: str, default_value: Optional[str] = None) -> Optional[str]:
    """Read a config value from admin_config as string."""
    from db import SessionLocal
    db = SessionLocal()
    try:
        row = _get_config_row(db, key)
        if not row or row.value is None:
            return default_value
        return str(row.value)
    finally:
        db.close()


def get_config_int(key: str, default_value: int) -> int:
    """Read a config value from admin_config and cast to int."""
    raw = get_config_str(key, None)
    if raw is None:
        return default_value
    try:
        return int(raw)
    except ValueError:
        return default_value
