"""
services/search_store.py

Per-search result storage in the search_results table.

- save() sweeps expired rows first, then replaces any row with the same id
- load() treats an expired row as a miss and deletes it
- storage errors are logged, rolled back and re-raised: a silently lost
  search would break every later filter call for it

Search ids are built by generate_search_id() only:
  {origin}_{destination}_{departureDate}_{returnDate}_{base36 epoch ms}
"""

import json
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from config import SEARCH_RESULT_MAX_AGE_MINUTES
from db import SessionLocal
from models import SearchResult
from schemas.flights import NormalizedFlight
from schemas.search import SearchResultRecord


# =====================================================================
# SECTION: SEARCH ID
# =====================================================================

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    sign = "-" if n < 0 else ""
    n = abs(n)
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return sign + "".join(reversed(out))


def generate_search_id(
    origin: Optional[str],
    destination: Optional[str],
    departure_date: Optional[str],
    return_date: Optional[str],
    now: Optional[datetime] = None,
) -> str:
    """Missing parts become empty strings; the separator is always kept."""
    ts = now or datetime.utcnow()
    epoch_ms = int((ts - datetime(1970, 1, 1)).total_seconds() * 1000)
    parts = [origin or "", destination or "", departure_date or "", return_date or "", _to_base36(epoch_ms)]
    return "_".join(parts)


# =====================================================================
# SECTION: STORE
# =====================================================================

class SearchResultStore:
    def __init__(
        self,
        session_factory: Callable = SessionLocal,
        max_age_minutes: int = SEARCH_RESULT_MAX_AGE_MINUTES,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.session_factory = session_factory
        self.max_age = timedelta(minutes=max_age_minutes)
        self.clock = clock

    def _is_expired(self, created_at: datetime) -> bool:
        return self.clock() - created_at > self.max_age

    def save(
        self,
        search_id: str,
        flights: Sequence[NormalizedFlight],
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.cleanup()

        flights_json = json.dumps([f.model_dump(mode="json") for f in flights])
        params_json = json.dumps(params or {})

        db = self.session_factory()
        try:
            row = db.get(SearchResult, search_id)
            if row is None:
                row = SearchResult(search_id=search_id)
                db.add(row)
            row.flights_json = flights_json
            row.search_params_json = params_json
            row.flight_count = len(flights)
            row.created_at = self.clock()
            db.commit()
        except SQLAlchemyError as e:
            print(f"[store] save failed search_id={search_id}: {e}")
            db.rollback()
            raise
        finally:
            db.close()

        print(f"[store] saved search_id={search_id} flights={len(flights)}")

    def load_record(self, search_id: str) -> Optional[SearchResultRecord]:
        db = self.session_factory()
        try:
            row = db.get(SearchResult, search_id)
            if row is None:
                return None
            if self._is_expired(row.created_at):
                db.delete(row)
                db.commit()
                print(f"[store] expired search_id={search_id}")
                return None

            return SearchResultRecord(
                searchId=row.search_id,
                flights=[NormalizedFlight.model_validate(f) for f in json.loads(row.flights_json)],
                timestamp=row.created_at,
                searchParams=json.loads(row.search_params_json or "{}"),
            )
        except SQLAlchemyError as e:
            print(f"[store] load failed search_id={search_id}: {e}")
            db.rollback()
            raise
        finally:
            db.close()

    def load(self, search_id: str) -> Optional[List[NormalizedFlight]]:
        record = self.load_record(search_id)
        return record.flights if record else None

    def delete(self, search_id: str) -> bool:
        db = self.session_factory()
        try:
            deleted = db.query(SearchResult).filter(SearchResult.search_id == search_id).delete()
            db.commit()
            return deleted > 0
        except SQLAlchemyError as e:
            print(f"[store] delete failed search_id={search_id}: {e}")
            db.rollback()
            raise
        finally:
            db.close()

    def cleanup(self) -> int:
        """Delete every row older than max_age. Returns the number removed."""
        cutoff = self.clock() - self.max_age
        db = self.session_factory()
        try:
            stale = (
                db.query(SearchResult)
                .filter(SearchResult.created_at < cutoff)
                .order_by(SearchResult.created_at.asc())
                .all()
            )
            for row in stale:
                db.delete(row)
            db.commit()
        except SQLAlchemyError as e:
            print(f"[store] cleanup failed: {e}")
            db.rollback()
            raise
        finally:
            db.close()

        if stale:
            print(f"[store] cleanup removed={len(stale)}")
        return len(stale)

    def clear_all(self) -> int:
        db = self.session_factory()
        try:
            removed = db.query(SearchResult).delete()
            db.commit()
            return removed
        except SQLAlchemyError as e:
            print(f"[store] clear_all failed: {e}")
            db.rollback()
            raise
        finally:
            db.close()

    def stats(self) -> Dict[str, Any]:
        db = self.session_factory()
        try:
            rows = db.query(SearchResult.search_id, SearchResult.flight_count, SearchResult.created_at).all()
        finally:
            db.close()

        created = [r.created_at for r in rows]
        return {
            "totalSearches": len(rows),
            "totalFlights": sum(r.flight_count or 0 for r in rows),
            "oldestSearch": min(created).isoformat() if created else None,
            "newestSearch": max(created).isoformat() if created else None,
        }
