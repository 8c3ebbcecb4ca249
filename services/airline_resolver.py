"""
services/airline_resolver.py

Airline code / name resolution.

Lookup order (first hit wins):
  1. learned   - mappings observed in fare responses or resolved earlier
  2. static    - curated table in airlines.py
  3. external  - OpenFlights airlines.dat, fetched once per resolver
  4. placeholder

One AirlineResolver is created by main.py and kept on app.state.
Tests build their own instance with an injected fetch callable.
"""

import csv
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests
from pydantic import BaseModel

from airlines import (
    AIRLINE_NAMES,
    get_airline_code_from_name,
    get_airline_name_from_code,
    is_known_code,
)
from config import AIRLINE_REFERENCE_TIMEOUT, AIRLINE_REFERENCE_URL


class AirlineInfo(BaseModel):
    code: str
    name: str
    source: str  # learned | static | external | api


# Returns the raw airlines.dat text
FetchFn = Callable[[str, int], str]


def _http_fetch(url: str, timeout: int) -> str:
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    return resp.text


# =====================================================================
# SECTION: REFERENCE DATASET PARSING
# OpenFlights format: ID,Name,Alias,IATA,ICAO,Callsign,Country,Active
# =====================================================================

def parse_openflights(text: str) -> Dict[str, AirlineInfo]:
    airlines: Dict[str, AirlineInfo] = {}
    for fields in csv.reader(text.strip().splitlines()):
        if len(fields) < 8:
            continue
        name = fields[1].strip()
        iata = fields[3].strip()
        active = fields[7].strip()
        if active != "Y" or not iata or iata == "\\N" or len(iata) != 2:
            continue
        airlines[iata.upper()] = AirlineInfo(code=iata.upper(), name=name, source="external")
    return airlines


# =====================================================================
# SECTION: RESOLVER
# =====================================================================

class AirlineResolver:
    def __init__(
        self,
        dataset_url: Optional[str] = AIRLINE_REFERENCE_URL,
        timeout: int = AIRLINE_REFERENCE_TIMEOUT,
        fetch: Optional[FetchFn] = None,
    ):
        self.dataset_url = dataset_url or ""
        self.timeout = timeout
        self._fetch = fetch or _http_fetch

        self._lock = threading.Lock()
        self._learned: Dict[str, AirlineInfo] = {}

        # Reference dataset state. _dataset_future is the in-flight load;
        # concurrent callers wait on it instead of fetching again.
        self._dataset: Optional[Dict[str, AirlineInfo]] = None
        self._dataset_future: Optional[Future] = None

        self._strategies: List[Callable[[str], Optional[AirlineInfo]]] = [
            self._from_learned,
            self._from_static,
            self._from_external,
        ]

    # ----- lifecycle -----

    def init(self) -> None:
        """Load the reference dataset eagerly (optional; lookups load lazily)."""
        self._load_dataset()

    def clear(self) -> None:
        with self._lock:
            self._learned.clear()
            self._dataset = None
            self._dataset_future = None

    # ----- resolution -----

    def resolve(self, value: str) -> AirlineInfo:
        key = (value or "").strip()
        for strategy in self._strategies:
            hit = strategy(key)
            if hit is not None:
                return hit

        placeholder = self._placeholder(key)
        self._learn(key, placeholder)
        print(f"[resolver] placeholder input={key!r} code={placeholder.code}")
        return placeholder

    def _from_learned(self, key: str) -> Optional[AirlineInfo]:
        with self._lock:
            return self._learned.get(key.lower())

    def _from_static(self, key: str) -> Optional[AirlineInfo]:
        if not key:
            return None
        if len(key) <= 3:
            code = key.upper()
            if is_known_code(code):
                return AirlineInfo(code=code, name=get_airline_name_from_code(code), source="static")
            return None

        code = get_airline_code_from_name(key)
        if code != key.upper() and code in AIRLINE_NAMES:
            return AirlineInfo(code=code, name=get_airline_name_from_code(code), source="static")
        return None

    def _from_external(self, key: str) -> Optional[AirlineInfo]:
        if not key or not self.dataset_url:
            return None
        try:
            dataset = self._load_dataset()
        except Exception as e:
            # Network or parse failure: fall through to placeholder
            print(f"[resolver] external lookup failed input={key!r} error={e}")
            return None

        hit = dataset.get(key.upper())
        if hit is None:
            needle = key.lower()
            for info in dataset.values():
                hay = info.name.lower()
                if needle in hay or hay in needle:
                    hit = info
                    break

        if hit is not None:
            self._learn(key, hit)
        return hit

    @staticmethod
    def _placeholder(key: str) -> AirlineInfo:
        if len(key) <= 3:
            code = key.upper()
            return AirlineInfo(code=code, name=f"Airline {code}", source="learned")
        return AirlineInfo(code=key[:2].upper(), name=key, source="learned")

    # ----- reference dataset -----

    def _load_dataset(self) -> Dict[str, AirlineInfo]:
        with self._lock:
            if self._dataset is not None:
                return self._dataset
            future = self._dataset_future
            owner = future is None
            if owner:
                future = Future()
                self._dataset_future = future

        if not owner:
            return future.result()

        try:
            print(f"[resolver] loading reference dataset url={self.dataset_url}")
            dataset = parse_openflights(self._fetch(self.dataset_url, self.timeout))
            print(f"[resolver] reference dataset loaded airlines={len(dataset)}")
        except Exception as e:
            with self._lock:
                self._dataset_future = None
            future.set_exception(e)
            raise

        with self._lock:
            self._dataset = dataset
            self._dataset_future = None
        future.set_result(dataset)
        return dataset

    # ----- learning -----

    def _learn(self, key: str, info: AirlineInfo) -> None:
        if not key:
            return
        with self._lock:
            self._learned[key.lower()] = info

    def learn_from_api_response(self, segments: Iterable[Dict[str, Any]]) -> int:
        """Register (code, OperatingAirlineName) pairs the static table does not know."""
        learned = 0
        for seg in segments or []:
            if not isinstance(seg, dict):
                continue
            code = seg.get("Airline") or seg.get("OperatingAirline")
            name = seg.get("OperatingAirlineName")
            if not code or not name or is_known_code(code):
                continue
            info = AirlineInfo(code=str(code), name=str(name), source="api")
            self._learn(str(code), info)
            self._learn(str(name), info)
            learned += 1
        return learned

    def process_api_response(self, raw_response: Any) -> int:
        if not isinstance(raw_response, dict):
            return 0
        learned = 0
        for fare in raw_response.get("Fares") or []:
            if not isinstance(fare, dict):
                continue
            for leg in fare.get("Legs") or []:
                if not isinstance(leg, dict):
                    continue
                for option in leg.get("Options") or []:
                    if isinstance(option, dict):
                        learned += self.learn_from_api_response(option.get("Segments") or [])
        if learned:
            print(f"[resolver] learned_from_response pairs={learned}")
        return learned

    # ----- export -----

    def get_learned_mappings(self) -> Dict[str, AirlineInfo]:
        with self._lock:
            return dict(self._learned)

    def export_learned_mappings(self) -> List[Dict[str, str]]:
        """One row per distinct code, for admin inspection."""
        seen: Dict[str, Dict[str, str]] = {}
        for info in self.get_learned_mappings().values():
            seen.setdefault(info.code, info.model_dump())
        return [seen[k] for k in sorted(seen)]
