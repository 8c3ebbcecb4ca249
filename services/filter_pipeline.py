"""
services/filter_pipeline.py

Facet filtering over a stored search:
- calculate_distribution: chip counts (airline, stops, time slots, baggage, price range)
- apply_filters: conjunctive facet predicates over the full result set
- apply_pipeline_and_limit: filter, rank by price, cut to top N
- SearchResultsCache: per-search view that recomputes everything on each change

Every function is pure over its inputs. Flights are never modified.
"""

from typing import Any, Dict, List, Optional, Sequence

from config import TOP_N_DISPLAY
from schemas.flights import NormalizedFlight
from schemas.search import Distribution, FilterState, FilterStats, TimeSlots
from services.connections import max_connections_per_leg, max_layover_hours


# =====================================================================
# SECTION: TIME HELPERS
# =====================================================================

TIME_SLOT_NAMES: Dict[str, str] = {
    "morning": "Mañana (6-12h)",
    "afternoon": "Tarde (12-18h)",
    "evening": "Noche (18-22h)",
    "night": "Madrugada (22-6h)",
}


def time_string_to_number(time_str: Optional[str]) -> int:
    """'08:30' -> 830. Blank or garbled input -> 0."""
    if not time_str:
        return 0
    parts = str(time_str).split(":")
    try:
        hours = int(parts[0]) if parts[0] else 0
    except ValueError:
        hours = 0
    try:
        minutes = int(parts[1][:2]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        minutes = 0
    return hours * 100 + minutes


def time_number_to_string(value: int) -> str:
    """830 -> '08:30'"""
    return f"{value // 100:02d}:{value % 100:02d}"


def get_time_slot_name(slot: str) -> str:
    return TIME_SLOT_NAMES.get(slot, slot)


def time_slot_for(hhmm: int) -> str:
    hour = hhmm // 100
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    if 18 <= hour < 22:
        return "evening"
    return "night"


# =====================================================================
# SECTION: FLIGHT ACCESSORS
# =====================================================================

def get_max_stops(flight: NormalizedFlight) -> int:
    """Most stops on any single leg (worst option). 0 = every leg direct."""
    return max_connections_per_leg(flight)


def get_first_departure_time(flight: NormalizedFlight) -> int:
    if not flight.legs or not flight.legs[0].options:
        return 0
    segments = flight.legs[0].options[0].segments
    return time_string_to_number(segments[0].departure.time) if segments else 0


def get_last_arrival_time(flight: NormalizedFlight) -> int:
    if not flight.legs or not flight.legs[-1].options:
        return 0
    segments = flight.legs[-1].options[0].segments
    return time_string_to_number(segments[-1].arrival.time) if segments else 0


def price_sort_key(flight: NormalizedFlight):
    return (flight.price.amount or 0.0, flight.stops.count, flight.duration.totalMinutes)


def rank_by_price(flights: Sequence[NormalizedFlight]) -> List[NormalizedFlight]:
    return sorted(flights, key=price_sort_key)


# =====================================================================
# SECTION: DISTRIBUTION
# =====================================================================

def calculate_distribution(flights: Sequence[NormalizedFlight]) -> Distribution:
    airlines: Dict[str, int] = {}
    stops: Dict[int, int] = {}
    departure_slots = {"morning": 0, "afternoon": 0, "evening": 0, "night": 0}
    arrival_slots = {"morning": 0, "afternoon": 0, "evening": 0, "night": 0}
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    with_baggage = 0

    for flight in flights:
        code = flight.airline.code
        airlines[code] = airlines.get(code, 0) + 1

        n = get_max_stops(flight)
        stops[n] = stops.get(n, 0) + 1

        price = flight.price.amount or 0.0
        min_price = price if min_price is None else min(min_price, price)
        max_price = price if max_price is None else max(max_price, price)

        departure_slots[time_slot_for(get_first_departure_time(flight))] += 1
        arrival_slots[time_slot_for(get_last_arrival_time(flight))] += 1

        if flight.baggage.included:
            with_baggage += 1

    return Distribution(
        airlines=airlines,
        stops=stops,
        priceRange=(min_price or 0.0, max_price or 0.0),
        departureTimeSlots=TimeSlots(**departure_slots),
        arrivalTimeSlots=TimeSlots(**arrival_slots),
        withBaggage=with_baggage,
        withoutBaggage=len(flights) - with_baggage,
    )


# =====================================================================
# SECTION: FILTERS
# =====================================================================

def get_default_filters() -> FilterState:
    return FilterState()


def has_active_filters(state: FilterState) -> bool:
    return any(v is not None for v in state.model_dump().values())


def _matches_stop_bucket(flight: NormalizedFlight, bucket: int) -> bool:
    n = get_max_stops(flight)
    if bucket <= 0:
        return n == 0
    if bucket == 1:
        return n == 1
    return n >= 2


def apply_filters(flights: Sequence[NormalizedFlight], state: FilterState) -> List[NormalizedFlight]:
    """
    All non-None facets must hold (AND). Always starts from `flights`, so an
    all-None state returns every input flight.
    """
    out = list(flights)

    if state.airlines:
        wanted = set(state.airlines)
        out = [f for f in out if f.airline.code in wanted]

    if state.maxStops is not None:
        out = [f for f in out if _matches_stop_bucket(f, state.maxStops)]

    if state.departureTimeRange is not None:
        lo, hi = state.departureTimeRange
        out = [f for f in out if lo <= get_first_departure_time(f) <= hi]

    if state.arrivalTimeRange is not None:
        lo, hi = state.arrivalTimeRange
        out = [f for f in out if lo <= get_last_arrival_time(f) <= hi]

    # False means "don't care", same as None
    if state.includeBaggage is True:
        out = [f for f in out if f.baggage.included]

    if state.maxLayoverHours is not None:
        out = [f for f in out if max_layover_hours(f) <= state.maxLayoverHours]

    return out


def apply_pipeline_and_limit(
    flights: Sequence[NormalizedFlight],
    state: FilterState,
    limit: int = TOP_N_DISPLAY,
) -> List[NormalizedFlight]:
    return rank_by_price(apply_filters(flights, state))[:limit]


def build_filter_stats(
    all_flights: Sequence[NormalizedFlight],
    filtered: Sequence[NormalizedFlight],
    displayed: Sequence[NormalizedFlight],
    state: FilterState,
) -> FilterStats:
    return FilterStats(
        totalResults=len(all_flights),
        filteredCount=len(filtered),
        displayedCount=len(displayed),
        hasActiveFilters=has_active_filters(state),
    )


# =====================================================================
# SECTION: PER-SEARCH CACHE
# =====================================================================

class SearchResultsCache:
    """
    View over one search: the full result set plus the active filters.

    Every change rebuilds filtered/displayed/distribution from all_results,
    never from the previous filtered set.
    """

    def __init__(self, flights: Sequence[NormalizedFlight], limit: int = TOP_N_DISPLAY):
        self.all_results: List[NormalizedFlight] = list(flights)
        self.limit = limit
        self.active_filters = get_default_filters()
        self.filtered: List[NormalizedFlight] = []
        self.displayed_results: List[NormalizedFlight] = []
        self.distribution = Distribution()
        self._recompute()

    def _recompute(self) -> None:
        self.filtered = apply_filters(self.all_results, self.active_filters)
        self.displayed_results = rank_by_price(self.filtered)[: self.limit]
        self.distribution = calculate_distribution(self.filtered)

    def set_filters(self, state: FilterState) -> None:
        self.active_filters = state
        self._recompute()

    def apply_filter(self, name: str, value: Any) -> None:
        if name not in FilterState.model_fields:
            raise ValueError(f"unknown filter: {name}")
        data = self.active_filters.model_dump()
        data[name] = value
        self.set_filters(FilterState.model_validate(data))

    def clear_filter(self, name: str) -> None:
        self.apply_filter(name, None)

    def clear_all_filters(self) -> None:
        self.set_filters(get_default_filters())

    def toggle_airline(self, code: str) -> None:
        current = list(self.active_filters.airlines or [])
        if code in current:
            current.remove(code)
        else:
            current.append(code)
        self.apply_filter("airlines", current or None)

    def set_max_stops(self, max_stops: Optional[int]) -> None:
        self.apply_filter("maxStops", max_stops)

    def toggle_baggage(self, required: Optional[bool]) -> None:
        self.apply_filter("includeBaggage", required)

    @property
    def filter_stats(self) -> FilterStats:
        return build_filter_stats(self.all_results, self.filtered, self.displayed_results, self.active_filters)
