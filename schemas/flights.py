"""schemas/flights.py - Normalized, UI-ready flight records.

Produced once by the fare normalizer and never edited afterwards:
filtering only selects or drops whole records.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BaggageType(str, Enum):
    CHECKED = "checked"
    CARRYON = "carryon"
    BACKPACK = "backpack"
    CHECKED_PLUS_CARRYON = "checked-plus-carryon"
    UNSPECIFIED_CARRYON = "unspecified-carryon"
    NONE = "none"


class _FlightModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# =====================================================================
# SECTION: ITINERARY STRUCTURE (legs -> options -> segments -> stops)
# =====================================================================

class FlightPoint(_FlightModel):
    airportCode: str = ""
    date: str = ""
    time: str = ""


class TechnicalStop(_FlightModel):
    airportCode: str = ""
    date: str = ""
    time: str = ""
    duration: str = ""


class CarryOnBagInfo(_FlightModel):
    quantity: str = "1"
    weight: Optional[str] = None
    dimensions: Optional[str] = None


class FlightSegment(_FlightModel):
    segmentNumber: int = 0
    airline: str = ""
    operatingAirline: str = ""
    operatingAirlineName: Optional[str] = None
    flightNumber: str = ""
    bookingClass: str = ""
    cabinClass: str = ""
    departure: FlightPoint = Field(default_factory=FlightPoint)
    arrival: FlightPoint = Field(default_factory=FlightPoint)
    stops: List[TechnicalStop] = Field(default_factory=list)
    duration: int = 0
    equipment: str = ""
    status: str = ""
    baggage: str = ""
    carryOnBagInfo: CarryOnBagInfo = Field(default_factory=CarryOnBagInfo)
    fareBasis: str = ""
    brandName: str = ""


class FlightLegOption(_FlightModel):
    optionId: str = ""
    duration: int = 0
    segments: List[FlightSegment] = Field(default_factory=list)


class FlightLeg(_FlightModel):
    legNumber: int
    options: List[FlightLegOption] = Field(default_factory=list)


# =====================================================================
# SECTION: SUMMARY BLOCKS
# =====================================================================

class AirlineRef(_FlightModel):
    code: str
    name: str


class PriceBreakdown(_FlightModel):
    fareAmount: float = 0.0
    taxAmount: float = 0.0
    serviceAmount: float = 0.0
    commissionAmount: float = 0.0


class Price(_FlightModel):
    amount: float = 0.0
    currency: str = "USD"
    baseAmount: float = 0.0
    netAmount: float = 0.0
    fareAmount: float = 0.0
    taxAmount: float = 0.0
    serviceAmount: float = 0.0
    commissionAmount: float = 0.0
    baseCurrency: str = "USD"
    localAmount: float = 0.0
    localCurrency: str = "USD"
    breakdown: PriceBreakdown = Field(default_factory=PriceBreakdown)


class Duration(_FlightModel):
    totalMinutes: int = 0
    formatted: str = "0h 0m"


class PerLegConnections(_FlightModel):
    minPerLeg: int = 0
    maxPerLeg: int = 0
    allLegsHaveSameConnections: bool = False


class Stops(_FlightModel):
    # count == connections + technical, direct == (count == 0)
    count: int = 0
    direct: bool = True
    connections: int = 0
    technical: int = 0
    perLegConnections: PerLegConnections = Field(default_factory=PerLegConnections)


class LegBaggage(_FlightModel):
    """Baggage allowance of one leg (outbound and return may differ)."""
    legNumber: int
    airlineCode: str = "N/A"
    baggageInfo: str = ""
    baggageQuantity: int = 0
    carryOnQuantity: str = "0"
    carryOnWeight: Optional[str] = None
    carryOnDimensions: Optional[str] = None
    type: BaggageType = BaggageType.NONE


class LegBaggageSummary(_FlightModel):
    legNumber: int
    type: BaggageType
    quantity: int = 0
    carryOnQuantity: str = "0"


class Baggage(_FlightModel):
    included: bool = False
    details: str = ""
    quantity: int = 0
    type: BaggageType = BaggageType.NONE
    carryOn: str = "0"
    carryOnQuantity: str = "0"
    carryOnWeight: Optional[str] = None
    carryOnDimensions: Optional[str] = None
    perLeg: List[LegBaggageSummary] = Field(default_factory=list)


class Cabin(_FlightModel):
    cabinClass: str = "Y"
    brandName: str = "Economy"


class Booking(_FlightModel):
    validatingCarrier: str = ""
    lastTicketingDate: str = ""
    fareType: str = ""
    fareSupplier: str = ""
    fareSupplierCode: str = ""


class TaxItem(_FlightModel):
    code: str = ""
    amount: float = 0.0
    currency: str = "USD"
    description: str = ""


class PassengerFare(_FlightModel):
    fareAmount: float = 0.0
    taxAmount: float = 0.0
    commissionAmount: float = 0.0
    totalAmount: float = 0.0
    passengerType: str = "ADT"
    count: int = 1
    taxDetails: List[TaxItem] = Field(default_factory=list)


# =====================================================================
# SECTION: NORMALIZED FLIGHT
# =====================================================================

class NormalizedFlight(_FlightModel):
    id: str

    airline: AirlineRef
    price: Price

    adults: int = 1
    children: int = 0
    infants: int = 0

    departure_date: str = ""
    departure_time: str = ""
    arrival_date: str = ""
    arrival_time: str = ""
    return_date: Optional[str] = None

    duration: Duration = Field(default_factory=Duration)
    stops: Stops = Field(default_factory=Stops)
    baggage: Baggage = Field(default_factory=Baggage)
    cabin: Cabin = Field(default_factory=Cabin)
    booking: Booking = Field(default_factory=Booking)

    passengerFares: List[PassengerFare] = Field(default_factory=list)
    taxes: List[TaxItem] = Field(default_factory=list)

    legs: List[FlightLeg] = Field(default_factory=list)
    baggageAnalysis: List[LegBaggage] = Field(default_factory=list)

    provider: str = "TVC"
    transactionId: str = ""
