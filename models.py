# =======================================
# SECTION: IMPORTS AND BASE
# =======================================

from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Text,
)

from db import Base


# =======================================
# SECTION: ADMIN CONFIG MODEL
# =======================================

class AdminConfig(Base):
    __tablename__ = "admin_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(String(255), nullable=True)
    description = Column(String(255), nullable=True)


# =======================================
# SECTION: SEARCH RESULT MODEL
# One row per search. The full (post-filtered) candidate set is kept
# so facet filters can be re-applied without another upstream call.
# Rows older than SEARCH_RESULT_MAX_AGE_MINUTES are swept on save.
# =======================================

class SearchResult(Base):
    __tablename__ = "search_results"

    # {origin}_{destination}_{departureDate}_{returnDate}_{base36 ms}
    search_id = Column(String(255), primary_key=True)

    flights_json = Column(Text, nullable=False)         # JSON list of NormalizedFlight
    search_params_json = Column(Text, nullable=True)    # JSON object
    flight_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
