"""routers/search.py - Flight search routes: run, re-filter, fetch, delete."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from config import TOP_N_DISPLAY, get_config_int
from providers.starling import FareResponseError
from schemas.search import FilterState, FlightSearchRequest, FlightSearchResponse
from services.search_service import refilter_search, run_flight_search

router = APIRouter(prefix="/flights")


def _top_n() -> int:
    return get_config_int("TOP_N_DISPLAY", TOP_N_DISPLAY)


@router.post("/search", response_model=FlightSearchResponse)
def search_flights(payload: FlightSearchRequest, request: Request):
    """
    Normalize a raw fare response, apply the request's own filters and
    store the full ranked set for later facet filtering.
    """
    try:
        return run_flight_search(
            payload.rawResponse,
            payload.travelRequest,
            resolver=request.app.state.resolver,
            store=request.app.state.store,
            limit=_top_n(),
        )
    except FareResponseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SQLAlchemyError as e:
        print(f"[search] storage error: {e}")
        raise HTTPException(status_code=503, detail="search storage unavailable")


def _refilter(request: Request, search_id: str, state: Optional[FilterState] = None):
    try:
        outcome = refilter_search(request.app.state.store, search_id, state, limit=_top_n())
    except SQLAlchemyError as e:
        print(f"[search] storage error search_id={search_id}: {e}")
        raise HTTPException(status_code=503, detail="search storage unavailable")
    if outcome is None:
        raise HTTPException(status_code=404, detail="search not found or expired, search again")
    return outcome


@router.post("/search/{search_id}/filters", response_model=FlightSearchResponse)
def filter_search(search_id: str, state: FilterState, request: Request):
    return _refilter(request, search_id, state)


@router.get("/search/{search_id}", response_model=FlightSearchResponse)
def get_search(search_id: str, request: Request):
    return _refilter(request, search_id)


@router.delete("/search/{search_id}")
def delete_search(search_id: str, request: Request):
    try:
        deleted = request.app.state.store.delete(search_id)
    except SQLAlchemyError as e:
        print(f"[search] storage error search_id={search_id}: {e}")
        raise HTTPException(status_code=503, detail="search storage unavailable")
    if not deleted:
        raise HTTPException(status_code=404, detail="search not found")
    return {"deleted": True, "searchId": search_id}


@router.get("/airlines/learned")
def learned_airlines(request: Request):
    return {"airlines": request.app.state.resolver.export_learned_mappings()}
