"""
services/baggage.py

Baggage allowance parsing and luggage-preference matching.

Allowance strings come from the fare response ("1PC", "23KG", "0PC").
Outbound and return legs can carry different allowances, so everything
here is evaluated per leg.
"""

import re
from typing import Iterable, List, Optional, Sequence

from config import LIGHT_FARE_AIRLINES
from schemas.fares import RawCarryOnBagInfo, RawLeg
from schemas.flights import Baggage, BaggageType, LegBaggage
from schemas.search import LuggagePreference


_ALLOWANCE_RE = re.compile(r"(\d+)PC|(\d+)KG")
_CHECKED_PIECES_RE = re.compile(r"^(\d+)PC$")

BACKPACK_INDICATORS = (
    "mochila",
    "backpack",
    "personal item",
    "item personal",
    "bolso personal",
    "personal",
)


def _to_int(value: Optional[str]) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def parse_baggage_quantity(allowance: Optional[str]) -> int:
    """Pieces or kilos from the first PC/KG token, 0 when absent."""
    m = _ALLOWANCE_RE.search(allowance or "")
    if not m:
        return 0
    return int(m.group(1) or m.group(2))


def is_backpack_dimensions(dimensions: Optional[str]) -> bool:
    if not dimensions:
        return False
    d = dimensions.lower()
    return any(ind in d for ind in BACKPACK_INDICATORS)


def is_light_fare_airline(code: str, light_fare_airlines: Sequence[str] = LIGHT_FARE_AIRLINES) -> bool:
    return (code or "").upper() in {c.upper() for c in light_fare_airlines}


def get_baggage_type(
    allowance: Optional[str],
    carry_on: Optional[RawCarryOnBagInfo] = None,
) -> BaggageType:
    """
    Conservative classification:
      "0PC" + no carry-on info     -> unspecified-carryon
      "0PC" + carry-on quantity 1  -> carryon / backpack
      "0PC" + carry-on quantity 0  -> none
      "2PC" + no carry-on info     -> unspecified-carryon
      "2PC" + carry-on quantity 1  -> checked-plus-carryon
      "2PC" + carry-on quantity 0  -> checked
    Only an exact "<n>PC" string counts as checked pieces here.
    """
    if not allowance and carry_on is None:
        return BaggageType.NONE

    m = _CHECKED_PIECES_RE.match(allowance or "")
    checked = int(m.group(1)) if m else 0

    specified = carry_on is not None and bool(carry_on.quantity)
    has_carry_on = specified and _to_int(carry_on.quantity) > 0

    if not specified:
        return BaggageType.UNSPECIFIED_CARRYON
    if checked == 0:
        if not has_carry_on:
            return BaggageType.NONE
        return BaggageType.BACKPACK if is_backpack_dimensions(carry_on.dimensions) else BaggageType.CARRYON
    if has_carry_on:
        return BaggageType.CHECKED_PLUS_CARRYON
    return BaggageType.CHECKED


# =====================================================================
# SECTION: PER-LEG ANALYSIS
# =====================================================================

def analyze_baggage_per_leg(legs: Iterable[RawLeg]) -> List[LegBaggage]:
    """One entry per leg, read from the first segment of the leg's first option."""
    out: List[LegBaggage] = []
    for i, leg in enumerate(legs):
        first_option = leg.options[0] if leg.options else None
        first_segment = first_option.segments[0] if first_option and first_option.segments else None

        if first_segment is None:
            out.append(LegBaggage(legNumber=i + 1))
            continue

        carry_on = first_segment.carry_on_bag_info
        quantity = (carry_on.quantity if carry_on else None) or "0"
        weight = carry_on.weight if carry_on else None
        dimensions = carry_on.dimensions if carry_on else None

        out.append(
            LegBaggage(
                legNumber=i + 1,
                airlineCode=first_segment.airline or "N/A",
                baggageInfo=first_segment.baggage,
                baggageQuantity=parse_baggage_quantity(first_segment.baggage),
                carryOnQuantity=quantity,
                carryOnWeight=weight,
                carryOnDimensions=dimensions,
                type=get_baggage_type(
                    first_segment.baggage,
                    RawCarryOnBagInfo(quantity=quantity, weight=weight, dimensions=dimensions),
                ),
            )
        )
    return out


def _leg_matches(leg: LegBaggage, preference: LuggagePreference, light_fare_airlines: Sequence[str]) -> bool:
    has_checked = leg.baggageQuantity > 0
    has_carry_on = _to_int(leg.carryOnQuantity) > 0
    is_backpack = is_backpack_dimensions(leg.carryOnDimensions)
    light_fare = is_light_fare_airline(leg.airlineCode, light_fare_airlines)
    bare = not has_checked and not has_carry_on

    if preference == LuggagePreference.BACKPACK:
        return (has_carry_on and is_backpack and not has_checked) or (bare and light_fare)
    if preference == LuggagePreference.CARRY_ON:
        return (has_carry_on and not is_backpack and not has_checked) or (bare and not light_fare)
    if preference == LuggagePreference.CHECKED:
        return has_checked
    if preference == LuggagePreference.BOTH:
        return has_checked and has_carry_on
    if preference == LuggagePreference.NONE:
        return bare
    return True


def _summary_matches(summary: Optional[Baggage], preference: LuggagePreference) -> bool:
    has_checked = bool(summary and summary.included)
    has_carry_on = _to_int(summary.carryOnQuantity if summary else None) > 0

    if preference == LuggagePreference.CHECKED:
        return has_checked
    if preference == LuggagePreference.CARRY_ON:
        return has_carry_on or not has_checked
    if preference == LuggagePreference.BOTH:
        return has_checked and has_carry_on
    if preference == LuggagePreference.NONE:
        return not has_checked and not has_carry_on
    return True


def matches_luggage_preference(
    baggage_analysis: Sequence[LegBaggage],
    preference: Optional[LuggagePreference],
    light_fare_airlines: Sequence[str] = LIGHT_FARE_AIRLINES,
    summary: Optional[Baggage] = None,
) -> bool:
    """
    Every leg must satisfy the preference.

    A leg reading 0 checked + 0 carry-on is a personal item (backpack) on
    light-fare carriers and a standard carry-on everywhere else.

    Without per-leg analysis (fare had no legs) only the flight's summary
    baggage is checked.
    """
    if preference is None or preference == LuggagePreference.ANY:
        return True
    if not baggage_analysis:
        return _summary_matches(summary, preference)
    return all(_leg_matches(leg, preference, light_fare_airlines) for leg in baggage_analysis)
