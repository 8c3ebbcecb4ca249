"""
services/connections.py

Connection / layover analysis.

Two kinds of stop exist in a fare tree:
  - connection: a change from one segment to the next inside an option
    (the passenger changes aircraft / flight number)
  - technical stop: a refuelling stop listed inside a single segment

Every helper here works on anything shaped legs -> options -> segments -> stops,
so it accepts both a RawFare and a NormalizedFlight.
"""

import re
from datetime import datetime, timedelta
from typing import Any, Iterable, List, NamedTuple, Optional

from pydantic import BaseModel


# =====================================================================
# SECTION: ANALYSIS MODELS
# =====================================================================

class OptionAnalysis(BaseModel):
    optionId: str = ""
    segmentCount: int
    isDirect: bool
    connections: int           # segmentConnections + technicalStops
    segmentConnections: int
    technicalStops: int


class LegAnalysis(BaseModel):
    legNumber: int
    options: List[OptionAnalysis]
    hasDirectOptions: bool
    hasConnectionOptions: bool
    minConnections: int
    maxConnections: int


class PerLegConnectionRange(BaseModel):
    minPerLeg: int
    maxPerLeg: int
    allLegsHaveSameConnections: bool


class FlightClassification(BaseModel):
    isCompleteDirect: bool
    hasDirectOptions: bool
    hasConnectionOptions: bool
    minTotalConnections: int
    maxTotalConnections: int
    perLegConnections: PerLegConnectionRange


class FlightAnalysis(BaseModel):
    legs: List[LegAnalysis]
    classification: FlightClassification


# =====================================================================
# SECTION: CONNECTION ANALYSIS
# =====================================================================

def _option_id(option: Any) -> str:
    return getattr(option, "flight_option_id", None) or getattr(option, "optionId", None) or ""


def _leg_number(leg: Any, index: int) -> int:
    return getattr(leg, "leg_number", None) or getattr(leg, "legNumber", None) or index + 1


def analyze_option(option: Any) -> OptionAnalysis:
    segments = list(option.segments or [])
    segment_connections = max(0, len(segments) - 1)
    technical_stops = sum(len(seg.stops or []) for seg in segments)
    return OptionAnalysis(
        optionId=_option_id(option),
        segmentCount=len(segments),
        isDirect=segment_connections + technical_stops == 0,
        connections=segment_connections + technical_stops,
        segmentConnections=segment_connections,
        technicalStops=technical_stops,
    )


def analyze_leg(leg: Any, index: int = 0) -> LegAnalysis:
    options = [analyze_option(o) for o in (leg.options or [])]
    counts = [o.connections for o in options]
    return LegAnalysis(
        legNumber=_leg_number(leg, index),
        options=options,
        hasDirectOptions=any(o.isDirect for o in options),
        hasConnectionOptions=any(not o.isDirect for o in options),
        minConnections=min(counts) if counts else 0,
        maxConnections=max(counts) if counts else 0,
    )


def representative_option(leg_analysis: LegAnalysis) -> OptionAnalysis:
    """The option offering the fewest connections on this leg."""
    return min(leg_analysis.options, key=lambda o: o.connections)


def analyze_flight_type(fare: Any) -> FlightAnalysis:
    legs = [analyze_leg(leg, i) for i, leg in enumerate(fare.legs or [])]

    if legs:
        first = legs[0]
        per_leg = PerLegConnectionRange(
            minPerLeg=min(l.minConnections for l in legs),
            maxPerLeg=max(l.maxConnections for l in legs),
            allLegsHaveSameConnections=all(
                l.minConnections == first.minConnections and l.maxConnections == first.maxConnections
                for l in legs
            ),
        )
    else:
        per_leg = PerLegConnectionRange(minPerLeg=0, maxPerLeg=0, allLegsHaveSameConnections=False)

    classification = FlightClassification(
        isCompleteDirect=all(not l.hasConnectionOptions for l in legs),
        hasDirectOptions=bool(legs) and all(l.hasDirectOptions for l in legs),
        hasConnectionOptions=any(l.hasConnectionOptions for l in legs),
        minTotalConnections=sum(l.minConnections for l in legs),
        maxTotalConnections=sum(l.maxConnections for l in legs),
        perLegConnections=per_leg,
    )
    return FlightAnalysis(legs=legs, classification=classification)


def is_direct_flight(fare: Any) -> bool:
    """
    Zero segment changes and zero technical stops on every option of every
    leg. A fare with no legs (or legs without options) reads as direct, the
    same as its stops.direct flag and the maxStops=0 facet bucket.
    """
    return analyze_flight_type(fare).classification.isCompleteDirect


def has_exact_connections_count(fare: Any, target: int) -> bool:
    """Total connections across legs can equal target (range check)."""
    c = analyze_flight_type(fare).classification
    return c.minTotalConnections <= target <= c.maxTotalConnections


def has_exact_connections_per_leg(fare: Any, target: int) -> bool:
    """
    Every leg, taken on its own, has exactly `target` connections.

    1 stop out + 1 stop back matches target=1; direct out + 2 stops back
    does not, even though the total is the same.
    """
    legs = analyze_flight_type(fare).legs
    if not legs:
        return False
    return all(l.minConnections == target and l.maxConnections == target for l in legs)


def max_connections_per_leg(fare: Any) -> int:
    """Worst option on the worst leg. Used for the 0 / 1 / 2+ stop buckets."""
    legs = analyze_flight_type(fare).legs
    return max((l.maxConnections for l in legs), default=0)


# =====================================================================
# SECTION: LAYOVERS
# =====================================================================

class Layover(NamedTuple):
    hours: float
    formatted: str
    known: bool


UNKNOWN_LAYOVER = Layover(hours=0.0, formatted="N/A", known=False)


def _parse_instant(date_str: str, time_str: str) -> datetime:
    return datetime.fromisoformat(f"{date_str.strip()}T{time_str.strip()}")


def format_hours_minutes(total_minutes: int) -> str:
    total_minutes = max(0, int(total_minutes))
    return f"{total_minutes // 60}h {total_minutes % 60}m"


def calculate_layover(
    arrival_date: str,
    arrival_time: str,
    departure_date: str,
    departure_time: str,
) -> Layover:
    """
    Time on the ground between an arrival and the next departure.

    If the departure instant precedes the arrival the layover is assumed to
    cross midnight and 24h are added. Missing or unparseable fields give
    UNKNOWN_LAYOVER instead of raising.
    """
    if not (arrival_date and arrival_time and departure_date and departure_time):
        return UNKNOWN_LAYOVER

    try:
        arrival = _parse_instant(arrival_date, arrival_time)
        departure = _parse_instant(departure_date, departure_time)
    except ValueError:
        return UNKNOWN_LAYOVER

    if departure < arrival:
        departure += timedelta(hours=24)

    minutes = int((departure - arrival).total_seconds() // 60)
    return Layover(hours=minutes / 60.0, formatted=format_hours_minutes(minutes), known=True)


def segment_layover(current: Any, following: Any) -> Layover:
    return calculate_layover(
        current.arrival.date,
        current.arrival.time,
        following.departure.date,
        following.departure.time,
    )


_STOP_DURATION_HM_RE = re.compile(r"^\s*(?:(\d+)\s*h)?\s*(?:(\d+)\s*m)?\s*$", re.IGNORECASE)
_STOP_DURATION_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def parse_stop_duration(value: Any) -> Optional[int]:
    """Ground time of a technical stop in minutes: "45m", "1h 30m", "01:30" or 45."""
    if value is None or value == "":
        return None
    text = str(value)
    if text.strip().isdigit():
        return int(text.strip())
    m = _STOP_DURATION_CLOCK_RE.match(text)
    if m:
        return int(m.group(1)) * 60 + int(m.group(2))
    m = _STOP_DURATION_HM_RE.match(text)
    if m and (m.group(1) or m.group(2)):
        return int(m.group(1) or 0) * 60 + int(m.group(2) or 0)
    return None


def technical_stop_layover(segment: Any, stop: Any) -> Layover:
    """
    Time on the ground at a technical stop inside one segment.

    The stop's Date/Time is the touchdown and its Duration the time until the
    aircraft leaves again. A stop without a date falls back to the segment's
    departure date.
    """
    minutes = parse_stop_duration(stop.duration)
    arrival_date = stop.date or segment.departure.date
    if minutes is None or not (arrival_date and stop.time):
        return UNKNOWN_LAYOVER

    try:
        departure = _parse_instant(arrival_date, stop.time) + timedelta(minutes=minutes)
    except ValueError:
        return UNKNOWN_LAYOVER

    return calculate_layover(
        arrival_date,
        stop.time,
        departure.strftime("%Y-%m-%d"),
        departure.strftime("%H:%M"),
    )


def iter_layovers(fare: Any) -> Iterable[Layover]:
    for leg in fare.legs or []:
        for option in leg.options or []:
            segments = list(option.segments or [])
            for i in range(len(segments) - 1):
                yield segment_layover(segments[i], segments[i + 1])


def max_layover_hours(fare: Any) -> float:
    """
    Worst connection layover across every leg and option.
    Unknown layovers count as 0 so they never exceed a ceiling.
    """
    return max((l.hours for l in iter_layovers(fare) if l.known), default=0.0)


def exceeds_max_layover(fare: Any, max_hours: float) -> bool:
    return any(l.known and l.hours > max_hours for l in iter_layovers(fare))


# =====================================================================
# SECTION: DURATION FORMATTING
# =====================================================================

def format_duration(minutes: int) -> str:
    if not minutes or minutes <= 0:
        return "0h 0m"
    hours = minutes // 60
    mins = minutes % 60
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"
