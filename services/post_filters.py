"""
services/post_filters.py

Hard filters implied by the travel request itself, applied once right after
normalization. Order is fixed:

  stop policy
  -> max layover (every option of every leg)
  -> light-fare carriers (only when a real carry-on is requested)
  -> departure time preference
  -> luggage preference
  -> price ranking
  -> optional truncation
"""

from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel, Field

from config import LIGHT_FARE_AIRLINES, TOP_N_DISPLAY
from schemas.flights import NormalizedFlight
from schemas.search import FlightRequest, LuggagePreference, StopPolicy, TravelRequest
from services.baggage import is_light_fare_airline, matches_luggage_preference
from services.connections import exceeds_max_layover, has_exact_connections_per_leg, is_direct_flight
from services.filter_pipeline import get_first_departure_time, rank_by_price, time_slot_for


class PostFilterResult(BaseModel):
    flights: List[NormalizedFlight] = Field(default_factory=list)
    totalBeforeFilters: int = 0
    totalAfterFilters: int = 0
    excludedByStops: int = 0
    excludedByLayover: int = 0
    excludedByLightFare: int = 0
    excludedByTime: int = 0
    excludedByLuggage: int = 0


def _stop_predicate(policy: Optional[StopPolicy]) -> Optional[Callable[[NormalizedFlight], bool]]:
    if policy is None or policy == StopPolicy.ANY:
        return None
    if policy == StopPolicy.DIRECT:
        return is_direct_flight
    if policy == StopPolicy.WITH_STOPS:
        return lambda f: not is_direct_flight(f)
    if policy == StopPolicy.ONE_STOP:
        return lambda f: has_exact_connections_per_leg(f, 1)
    if policy == StopPolicy.TWO_STOPS:
        return lambda f: has_exact_connections_per_leg(f, 2)
    return None


def _split(flights: List[NormalizedFlight], keep: Callable[[NormalizedFlight], bool]):
    kept = [f for f in flights if keep(f)]
    return kept, len(flights) - len(kept)


def apply_request_filters(
    flights: Sequence[NormalizedFlight],
    travel_request: Optional[TravelRequest],
    limit: Optional[int] = TOP_N_DISPLAY,
    light_fare_airlines: Sequence[str] = LIGHT_FARE_AIRLINES,
) -> PostFilterResult:
    """limit=None keeps the whole ranked set (used when storing a search)."""
    req: FlightRequest = (travel_request.flights if travel_request else None) or FlightRequest()
    out = list(flights)
    result = PostFilterResult(totalBeforeFilters=len(out))

    pred = _stop_predicate(req.stops)
    if pred is not None:
        out, result.excludedByStops = _split(out, pred)

    if req.maxLayoverHours is not None:
        max_hours = req.maxLayoverHours
        # Single-segment options have no layover, so they never exceed it
        out, result.excludedByLayover = _split(out, lambda f: not exceeds_max_layover(f, max_hours))

    if req.luggage == LuggagePreference.CARRY_ON:
        # Carry-on requests drop light-fare carriers outright
        out, result.excludedByLightFare = _split(
            out, lambda f: not is_light_fare_airline(f.airline.code, light_fare_airlines)
        )

    if req.departureTimePreference is not None:
        slot = req.departureTimePreference.value
        out, result.excludedByTime = _split(out, lambda f: time_slot_for(get_first_departure_time(f)) == slot)

    if req.luggage is not None:
        out, result.excludedByLuggage = _split(
            out,
            lambda f: matches_luggage_preference(f.baggageAnalysis, req.luggage, light_fare_airlines, f.baggage),
        )

    ranked = rank_by_price(out)
    result.flights = ranked if limit is None else ranked[:limit]
    result.totalAfterFilters = len(ranked)

    print(
        f"[post_filter] before={result.totalBeforeFilters} after={result.totalAfterFilters} "
        f"stops={req.stops.value if req.stops else None} excluded_stops={result.excludedByStops} "
        f"excluded_layover={result.excludedByLayover} excluded_light_fare={result.excludedByLightFare} "
        f"excluded_time={result.excludedByTime} "
        f"excluded_luggage={result.excludedByLuggage} limit={limit}"
    )
    return result
