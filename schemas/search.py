"""schemas/search.py - Pydantic models for travel requests, facet filters and search results."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from schemas.flights import NormalizedFlight


# =====================================================================
# SECTION: TRAVEL REQUEST (produced by the external NLP parser)
# =====================================================================

class StopPolicy(str, Enum):
    DIRECT = "direct"
    WITH_STOPS = "with_stops"
    ONE_STOP = "one_stop"
    TWO_STOPS = "two_stops"
    ANY = "any"


class LuggagePreference(str, Enum):
    CHECKED = "checked"
    CARRY_ON = "carry_on"
    BACKPACK = "backpack"
    BOTH = "both"
    NONE = "none"
    ANY = "any"


class TimePreference(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class FlightRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    origin: str = ""
    destination: str = ""
    departureDate: str = ""
    returnDate: Optional[str] = None
    adults: int = 1
    children: int = 0
    infants: int = 0
    stops: Optional[StopPolicy] = None
    maxLayoverHours: Optional[float] = None
    luggage: Optional[LuggagePreference] = None
    preferredAirline: Optional[str] = None
    departureTimePreference: Optional[TimePreference] = None


class TravelRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    requestType: str = "flights"
    flights: Optional[FlightRequest] = None
    hotels: Optional[Dict[str, Any]] = None


# =====================================================================
# SECTION: FACET FILTERS
# =====================================================================

class FilterState(BaseModel):
    """None in any field means no constraint on that facet."""

    airlines: Optional[List[str]] = None
    # 0 = direct, 1 = exactly one stop, 2 = two or more (per leg)
    maxStops: Optional[int] = None
    # Inclusive HHMM range, e.g. (600, 1200)
    departureTimeRange: Optional[Tuple[int, int]] = None
    arrivalTimeRange: Optional[Tuple[int, int]] = None
    includeBaggage: Optional[bool] = None
    maxLayoverHours: Optional[float] = None


class TimeSlots(BaseModel):
    morning: int = 0      # 06:00 - 11:59
    afternoon: int = 0    # 12:00 - 17:59
    evening: int = 0      # 18:00 - 21:59
    night: int = 0        # 22:00 - 05:59


class Distribution(BaseModel):
    airlines: Dict[str, int] = Field(default_factory=dict)
    stops: Dict[int, int] = Field(default_factory=dict)
    priceRange: Tuple[float, float] = (0.0, 0.0)
    departureTimeSlots: TimeSlots = Field(default_factory=TimeSlots)
    arrivalTimeSlots: TimeSlots = Field(default_factory=TimeSlots)
    withBaggage: int = 0
    withoutBaggage: int = 0


class FilterStats(BaseModel):
    totalResults: int
    filteredCount: int
    displayedCount: int
    hasActiveFilters: bool


# =====================================================================
# SECTION: STORED SEARCH
# =====================================================================

class SearchResultRecord(BaseModel):
    searchId: str
    flights: List[NormalizedFlight]
    timestamp: datetime
    searchParams: Dict[str, Any] = Field(default_factory=dict)


# =====================================================================
# SECTION: API PAYLOADS
# =====================================================================

class FlightSearchRequest(BaseModel):
    rawResponse: Dict[str, Any]
    travelRequest: Optional[TravelRequest] = None


class FlightSearchResponse(BaseModel):
    searchId: str
    totalResults: int
    flights: List[NormalizedFlight]
    activeFilters: FilterState
    distribution: Distribution
    stats: FilterStats
