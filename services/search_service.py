"""
services/search_service.py

Flight search composition:
  normalize -> request post-filters -> store full ranked set -> facets -> top N

Re-filtering a stored search never touches the fare API: it reloads the
stored set and runs the facet pipeline from scratch.
"""

from typing import Any, Dict, Optional

from config import TOP_N_DISPLAY
from providers.starling import normalize_fares
from schemas.search import FilterState, FlightSearchResponse, TravelRequest
from services.airline_resolver import AirlineResolver
from services.filter_pipeline import SearchResultsCache
from services.post_filters import apply_request_filters
from services.search_store import SearchResultStore, generate_search_id


SearchOutcome = FlightSearchResponse


def _outcome(search_id: str, view: SearchResultsCache) -> SearchOutcome:
    return SearchOutcome(
        searchId=search_id,
        totalResults=len(view.all_results),
        flights=view.displayed_results,
        activeFilters=view.active_filters,
        distribution=view.distribution,
        stats=view.filter_stats,
    )


def _search_params(travel_request: Optional[TravelRequest]) -> Dict[str, Any]:
    if travel_request is None or travel_request.flights is None:
        return {}
    return travel_request.flights.model_dump(mode="json", exclude_none=True)


def run_flight_search(
    raw_response: Any,
    travel_request: Optional[TravelRequest],
    resolver: AirlineResolver,
    store: SearchResultStore,
    limit: int = TOP_N_DISPLAY,
) -> SearchOutcome:
    flights = normalize_fares(raw_response, travel_request, resolver=resolver)
    filtered = apply_request_filters(flights, travel_request, limit=None)

    params = _search_params(travel_request)
    search_id = generate_search_id(
        params.get("origin"),
        params.get("destination"),
        params.get("departureDate"),
        params.get("returnDate"),
        now=store.clock(),
    )
    store.save(search_id, filtered.flights, params)

    view = SearchResultsCache(filtered.flights, limit=limit)
    print(
        f"[search] search_id={search_id} normalized={len(flights)} "
        f"stored={len(filtered.flights)} displayed={len(view.displayed_results)}"
    )
    return _outcome(search_id, view)


def refilter_search(
    store: SearchResultStore,
    search_id: str,
    state: Optional[FilterState] = None,
    limit: int = TOP_N_DISPLAY,
) -> Optional[SearchOutcome]:
    """None when the search is unknown or expired."""
    flights = store.load(search_id)
    if flights is None:
        return None

    view = SearchResultsCache(flights, limit=limit)
    if state is not None:
        view.set_filters(state)

    print(
        f"[search] refilter search_id={search_id} total={len(flights)} "
        f"filtered={len(view.filtered)} displayed={len(view.displayed_results)}"
    )
    return _outcome(search_id, view)
