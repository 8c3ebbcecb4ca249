"""
providers/starling.py

Starling / TVC fare normalization:
- Learn airline names from the raw response
- Preferred-airline backup filter over raw fares
- Per-fare validation (bad fares are skipped, never fatal)
- Batch airline name resolution
- RawFare -> NormalizedFlight mapping

The HTTP call to the fare API lives outside this module; callers hand in
the decoded JSON body.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from airlines import get_airline_name_from_code
from config import RESOLVER_WORKERS
from schemas.fares import RawCarryOnBagInfo, RawFare, RawFareResponse, RawLeg, RawOption, RawSegment
from schemas.flights import (
    AirlineRef,
    Baggage,
    Booking,
    Cabin,
    CarryOnBagInfo,
    Duration,
    FlightLeg,
    FlightLegOption,
    FlightPoint,
    FlightSegment,
    LegBaggage,
    LegBaggageSummary,
    NormalizedFlight,
    PassengerFare,
    PerLegConnections,
    Price,
    PriceBreakdown,
    Stops,
    TaxItem,
    TechnicalStop,
)
from schemas.search import TravelRequest
from services.airline_resolver import AirlineResolver
from services.baggage import analyze_baggage_per_leg, get_baggage_type, parse_baggage_quantity
from services.connections import analyze_flight_type, format_duration, representative_option


class FareResponseError(ValueError):
    """The response has no usable Fares array."""


# =====================================================================
# SECTION: TAX DESCRIPTIONS
# =====================================================================

TAX_DESCRIPTIONS: Dict[str, str] = {
    "AR": "Tasa de Salida Argentina",
    "Q1": "Tasa de Combustible",
    "QO": "Tasa de Operación",
    "TQ": "Tasa de Terminal",
    "XY": "Tasa de Inmigración",
    "YC": "Tasa de Seguridad",
    "S7": "Tasa de Servicio",
    "XR": "Tasa de Inspección",
    "XA": "Tasa de Aduanas",
    "XF": "Tasa de Facilidades",
    "UX": "Tasa de Uso",
    "L8": "Tasa Local",
    "VB": "Tasa Variable",
    "AY": "Tasa de Aeropuerto",
    "TY": "Tasa de Turismo",
}


def get_tax_description(code: str) -> str:
    return TAX_DESCRIPTIONS.get(code, f"Tasa {code}")


# =====================================================================
# SECTION: RAW TREE HELPERS
# =====================================================================

def _raw_segments(fare: Any) -> Iterable[Dict[str, Any]]:
    """Segments of a raw fare dict, tolerating missing or odd levels."""
    if not isinstance(fare, dict):
        return
    for leg in fare.get("Legs") or []:
        if not isinstance(leg, dict):
            continue
        for option in leg.get("Options") or []:
            if not isinstance(option, dict):
                continue
            for seg in option.get("Segments") or []:
                if isinstance(seg, dict):
                    yield seg


def fare_matches_airline(fare: Any, code: str) -> bool:
    """True if any segment of any leg/option is marketed or operated by `code`."""
    target = (code or "").upper()
    for seg in _raw_segments(fare):
        if str(seg.get("Airline") or "").upper() == target:
            return True
        if str(seg.get("OperatingAirline") or "").upper() == target:
            return True
    return False


def _first_option(leg: Optional[RawLeg]) -> Optional[RawOption]:
    if leg is None or not leg.options:
        return None
    return leg.options[0]


def _first_segment(option: Optional[RawOption]) -> Optional[RawSegment]:
    if option is None or not option.segments:
        return None
    return option.segments[0]


# =====================================================================
# SECTION: MAPPING
# =====================================================================

def _map_segment(seg: RawSegment) -> FlightSegment:
    operating = seg.operating_airline or seg.airline
    carry_on = seg.carry_on_bag_info
    return FlightSegment(
        segmentNumber=seg.segment_number,
        airline=seg.airline,
        operatingAirline=operating,
        operatingAirlineName=seg.operating_airline_name or get_airline_name_from_code(operating),
        flightNumber=seg.flight_number,
        bookingClass=seg.booking_class,
        cabinClass=seg.cabin_class,
        departure=FlightPoint(
            airportCode=seg.departure.airport_code,
            date=seg.departure.date,
            time=seg.departure.time,
        ),
        arrival=FlightPoint(
            airportCode=seg.arrival.airport_code,
            date=seg.arrival.date,
            time=seg.arrival.time,
        ),
        stops=[
            TechnicalStop(airportCode=s.airport_code, date=s.date, time=s.time, duration=s.duration)
            for s in seg.stops
        ],
        duration=seg.duration,
        equipment=seg.equipment,
        status=seg.status,
        baggage=seg.baggage,
        carryOnBagInfo=CarryOnBagInfo(
            quantity=(carry_on.quantity if carry_on else None) or "1",
            weight=carry_on.weight if carry_on else None,
            dimensions=carry_on.dimensions if carry_on else None,
        ),
        fareBasis=seg.fare_basis,
        brandName=seg.brand_name,
    )


def _map_legs(legs: List[RawLeg]) -> List[FlightLeg]:
    return [
        FlightLeg(
            legNumber=leg.leg_number or i + 1,
            options=[
                FlightLegOption(
                    optionId=opt.flight_option_id,
                    duration=opt.option_duration,
                    segments=[_map_segment(s) for s in opt.segments],
                )
                for opt in leg.options
            ],
        )
        for i, leg in enumerate(legs)
    ]


def _map_price(fare: RawFare, base_currency: str) -> Price:
    ext = fare.extended_fare_info
    return Price(
        amount=fare.total_amount,
        currency=fare.currency or "USD",
        baseAmount=fare.fare_amount,
        netAmount=(ext.net_total_amount if ext else 0.0) or fare.total_amount,
        fareAmount=(ext.net_fare_amount if ext else 0.0) or fare.fare_amount,
        taxAmount=(ext.net_tax_amount if ext else 0.0) or fare.tax_amount,
        serviceAmount=fare.service_amount,
        commissionAmount=fare.commission_amount,
        baseCurrency=base_currency or "USD",
        localAmount=fare.iata_total_amount,
        localCurrency=fare.iata_currency or fare.currency or "USD",
        breakdown=PriceBreakdown(
            fareAmount=fare.fare_amount,
            taxAmount=fare.tax_amount,
            serviceAmount=fare.service_amount,
            commissionAmount=fare.commission_amount,
        ),
    )


def _map_stops(fare: RawFare) -> Stops:
    analysis = analyze_flight_type(fare)
    connections = 0
    technical = 0
    for leg in analysis.legs:
        if not leg.options:
            continue
        rep = representative_option(leg)
        connections += rep.segmentConnections
        technical += rep.technicalStops

    count = connections + technical
    per_leg = analysis.classification.perLegConnections
    return Stops(
        count=count,
        direct=count == 0,
        connections=connections,
        technical=technical,
        perLegConnections=PerLegConnections(
            minPerLeg=per_leg.minPerLeg,
            maxPerLeg=per_leg.maxPerLeg,
            allLegsHaveSameConnections=per_leg.allLegsHaveSameConnections,
        ),
    )


def _map_baggage(first_segment: Optional[RawSegment], per_leg: List[LegBaggage]) -> Baggage:
    allowance = first_segment.baggage if first_segment else ""
    carry_on = first_segment.carry_on_bag_info if first_segment else None
    quantity = parse_baggage_quantity(allowance)
    carry_on_qty = (carry_on.quantity if carry_on else None) or "0"

    return Baggage(
        included=quantity > 0,
        details=allowance,
        quantity=quantity,
        type=get_baggage_type(
            allowance,
            RawCarryOnBagInfo(
                quantity=carry_on_qty,
                weight=carry_on.weight if carry_on else None,
                dimensions=carry_on.dimensions if carry_on else None,
            ),
        ),
        carryOn=carry_on_qty,
        carryOnQuantity=carry_on_qty,
        carryOnWeight=carry_on.weight if carry_on else None,
        carryOnDimensions=carry_on.dimensions if carry_on else None,
        perLeg=[
            LegBaggageSummary(
                legNumber=leg.legNumber,
                type=leg.type,
                quantity=leg.baggageQuantity,
                carryOnQuantity=leg.carryOnQuantity,
            )
            for leg in per_leg
        ],
    )


def _map_tax(code: str, amount: float, currency: str) -> TaxItem:
    return TaxItem(code=code, amount=amount, currency=currency or "USD", description=get_tax_description(code))


def map_fare_to_flight(
    fare: RawFare,
    index: int,
    airline_name: Optional[str] = None,
    base_currency: str = "USD",
    transaction_id: str = "",
    adults: int = 1,
    children: int = 0,
    infants: int = 0,
) -> NormalizedFlight:
    """
    One RawFare -> one NormalizedFlight.

    Airline name priority: first segment OperatingAirlineName, then the
    resolver result passed in, then the static table.
    """
    first_leg = fare.legs[0] if fare.legs else None
    first_option = _first_option(first_leg)
    first_segment = _first_segment(first_option)
    last_segment = first_option.segments[-1] if first_option and first_option.segments else None

    return_date = None
    if len(fare.legs) > 1:
        ret_segment = _first_segment(_first_option(fare.legs[1]))
        if ret_segment is not None and ret_segment.departure.date:
            return_date = ret_segment.departure.date

    airline_code = (first_segment.airline if first_segment else "") or "N/A"
    name = (
        (first_segment.operating_airline_name if first_segment else None)
        or airline_name
        or get_airline_name_from_code(airline_code)
    )

    option_minutes = first_option.option_duration if first_option else 0
    per_leg_baggage = analyze_baggage_per_leg(fare.legs)

    return NormalizedFlight(
        id=fare.fare_id or f"tvc-fare-{index}",
        airline=AirlineRef(code=airline_code, name=name),
        price=_map_price(fare, base_currency),
        adults=adults or 1,
        children=children or 0,
        infants=infants or 0,
        departure_date=first_segment.departure.date if first_segment else "",
        departure_time=first_segment.departure.time if first_segment else "",
        arrival_date=last_segment.arrival.date if last_segment else "",
        arrival_time=last_segment.arrival.time if last_segment else "",
        return_date=return_date,
        duration=Duration(totalMinutes=option_minutes, formatted=format_duration(option_minutes)),
        stops=_map_stops(fare),
        baggage=_map_baggage(first_segment, per_leg_baggage),
        cabin=Cabin(
            cabinClass=(first_segment.cabin_class if first_segment else "") or "Y",
            brandName=(first_segment.brand_name if first_segment else "") or "Economy",
        ),
        booking=Booking(
            validatingCarrier=fare.validating_carrier,
            lastTicketingDate=fare.last_ticketing_date,
            fareType=fare.fare_type,
            fareSupplier=fare.fare_supplier,
            fareSupplierCode=fare.fare_supplier_code,
        ),
        passengerFares=[
            PassengerFare(
                fareAmount=p.pax_fare_amount,
                taxAmount=p.pax_tax_amount,
                commissionAmount=p.pax_commission_amount,
                totalAmount=p.pax_total_amount,
                passengerType=p.pax_type or "ADT",
                count=p.count or 1,
                taxDetails=[_map_tax(t.code, t.amount, t.currency) for t in p.pax_tax_detail],
            )
            for p in fare.pax_fares
        ],
        taxes=[_map_tax(t.code, t.amount, t.currency) for t in fare.tax_detail],
        legs=_map_legs(fare.legs),
        baggageAnalysis=per_leg_baggage,
        provider="TVC",
        transactionId=transaction_id,
    )


# =====================================================================
# SECTION: AIRLINE NAME BATCH
# =====================================================================

def _resolve_names(resolver: AirlineResolver, codes: Iterable[str]) -> Dict[str, str]:
    unique = sorted({c for c in codes if c and c != "N/A"})
    if not unique:
        return {}
    workers = max(1, min(RESOLVER_WORKERS, len(unique)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        infos = list(pool.map(resolver.resolve, unique))
    return {code: info.name for code, info in zip(unique, infos)}


# =====================================================================
# SECTION: ENTRY POINT
# =====================================================================

def normalize_fares(
    raw_response: Any,
    travel_request: Optional[TravelRequest] = None,
    resolver: Optional[AirlineResolver] = None,
) -> List[NormalizedFlight]:
    """
    Raw fare search response -> normalized flights, input order preserved.

    Raises FareResponseError only when there is no Fares array at all.
    Individual malformed fares are skipped and logged.
    """
    if not isinstance(raw_response, dict) or not isinstance(raw_response.get("Fares"), list):
        raise FareResponseError("raw response has no Fares array")

    try:
        envelope = RawFareResponse.model_validate(raw_response)
    except ValidationError as e:
        # Bad BaseCurrency / TransactionID: keep the fares, default the rest
        print(f"[starling] envelope_defaulted error={str(e)[:200]}")
        envelope = RawFareResponse(Fares=raw_response["Fares"])
    resolver = resolver or AirlineResolver()
    flight_req = travel_request.flights if travel_request else None

    # 1) learn first so later lookups see codes from this response
    resolver.process_api_response(raw_response)

    # 2) preferred airline, as a backup to the upstream airline parameter
    indexed: List[Tuple[int, Any]] = list(enumerate(envelope.fares))
    if flight_req and flight_req.preferredAirline:
        preferred = resolver.resolve(flight_req.preferredAirline)
        before = len(indexed)
        indexed = [(i, f) for i, f in indexed if fare_matches_airline(f, preferred.code)]
        print(
            f"[starling] preferred_airline input={flight_req.preferredAirline!r} "
            f"code={preferred.code} kept={len(indexed)} of={before}"
        )

    # 3) validate each fare on its own
    parsed: List[Tuple[int, RawFare]] = []
    skipped = 0
    for i, raw in indexed:
        try:
            parsed.append((i, RawFare.model_validate(raw)))
        except (ValidationError, ValueError, TypeError) as e:
            skipped += 1
            print(f"[starling] skip_fare index={i} error={str(e)[:200]}")

    # 4) resolve display names for fares without an operating airline name
    to_resolve = []
    for _, fare in parsed:
        seg = _first_segment(_first_option(fare.legs[0] if fare.legs else None))
        if seg is not None and not seg.operating_airline_name:
            to_resolve.append(seg.airline)
    names = _resolve_names(resolver, to_resolve)

    # 5) map
    adults = flight_req.adults if flight_req else 1
    children = flight_req.children if flight_req else 0
    infants = flight_req.infants if flight_req else 0

    flights: List[NormalizedFlight] = []
    for i, fare in parsed:
        seg = _first_segment(_first_option(fare.legs[0] if fare.legs else None))
        try:
            flights.append(
                map_fare_to_flight(
                    fare,
                    i,
                    airline_name=names.get(seg.airline) if seg else None,
                    base_currency=envelope.base_currency,
                    transaction_id=envelope.transaction_id,
                    adults=adults,
                    children=children,
                    infants=infants,
                )
            )
        except (ValidationError, ValueError, TypeError) as e:
            skipped += 1
            print(f"[starling] skip_fare index={i} stage=map error={str(e)[:200]}")

    print(
        f"[starling] normalized fares_in={len(envelope.fares)} flights_out={len(flights)} "
        f"skipped={skipped} transaction_id={envelope.transaction_id}"
    )
    return flights
