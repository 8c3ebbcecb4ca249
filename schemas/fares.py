"""schemas/fares.py - Pydantic models for the raw Starling/TVC fare search response.

Field names mirror the upstream PascalCase keys exactly (via aliases).
Nulls are dropped before validation so every field default is applied
once, here, instead of scattering fallbacks through the normalizer.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _RawModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class RawPoint(_RawModel):
    airport_code: str = Field("", alias="AirportCode")
    date: str = Field("", alias="Date")
    time: str = Field("", alias="Time")


class RawStop(_RawModel):
    """Technical stop inside a single segment (refuelling, crew change)."""
    airport_code: str = Field("", alias="AirportCode")
    date: str = Field("", alias="Date")
    time: str = Field("", alias="Time")
    duration: str = Field("", alias="Duration")


class RawCarryOnBagInfo(_RawModel):
    quantity: Optional[str] = Field(None, alias="Quantity")
    weight: Optional[str] = Field(None, alias="Weight")
    dimensions: Optional[str] = Field(None, alias="Dimensions")


class RawSegment(_RawModel):
    segment_number: int = Field(0, alias="SegmentNumber")
    airline: str = Field("", alias="Airline")
    airline_name: Optional[str] = Field(None, alias="AirlineName")
    operating_airline: str = Field("", alias="OperatingAirline")
    operating_airline_name: Optional[str] = Field(None, alias="OperatingAirlineName")
    flight_number: str = Field("", alias="FlightNumber")
    booking_class: str = Field("", alias="BookingClass")
    cabin_class: str = Field("", alias="CabinClass")
    departure: RawPoint = Field(default_factory=RawPoint, alias="Departure")
    arrival: RawPoint = Field(default_factory=RawPoint, alias="Arrival")
    stops: List[RawStop] = Field(default_factory=list, alias="Stops")
    duration: int = Field(0, alias="Duration")
    equipment: str = Field("", alias="Equipment")
    status: str = Field("", alias="Status")
    baggage: str = Field("", alias="Baggage")
    carry_on_bag_info: Optional[RawCarryOnBagInfo] = Field(None, alias="CarryOnBagInfo")
    fare_basis: str = Field("", alias="FareBasis")
    brand_name: str = Field("", alias="BrandName")


class RawOption(_RawModel):
    flight_option_id: str = Field("", alias="FlightOptionID")
    option_duration: int = Field(0, alias="OptionDuration")
    segments: List[RawSegment] = Field(default_factory=list, alias="Segments")


class RawLeg(_RawModel):
    leg_number: int = Field(0, alias="LegNumber")
    options: List[RawOption] = Field(default_factory=list, alias="Options")


class RawTaxDetail(_RawModel):
    code: str = Field("", alias="Code")
    amount: float = Field(0.0, alias="Amount")
    currency: str = Field("USD", alias="Currency")


class RawPaxFare(_RawModel):
    pax_fare_amount: float = Field(0.0, alias="PaxFareAmount")
    pax_tax_amount: float = Field(0.0, alias="PaxTaxAmount")
    pax_commission_amount: float = Field(0.0, alias="PaxCommissionAmount")
    pax_total_amount: float = Field(0.0, alias="PaxTotalAmount")
    pax_type: str = Field("ADT", alias="PaxType")
    count: int = Field(1, alias="Count")
    pax_tax_detail: List[RawTaxDetail] = Field(default_factory=list, alias="PaxTaxDetail")


class RawExtendedFareInfo(_RawModel):
    net_total_amount: float = Field(0.0, alias="NetTotalAmount")
    net_fare_amount: float = Field(0.0, alias="NetFareAmount")
    net_tax_amount: float = Field(0.0, alias="NetTaxAmount")


class RawFare(_RawModel):
    fare_id: str = Field("", alias="FareID")
    total_amount: float = Field(0.0, alias="TotalAmount")
    fare_amount: float = Field(0.0, alias="FareAmount")
    tax_amount: float = Field(0.0, alias="TaxAmount")
    service_amount: float = Field(0.0, alias="ServiceAmount")
    commission_amount: float = Field(0.0, alias="CommissionAmount")
    currency: str = Field("USD", alias="Currency")
    iata_total_amount: float = Field(0.0, alias="IataTotalAmount")
    iata_currency: Optional[str] = Field(None, alias="IataCurrency")
    extended_fare_info: Optional[RawExtendedFareInfo] = Field(None, alias="ExtendedFareInfo")
    validating_carrier: str = Field("", alias="ValidatingCarrier")
    last_ticketing_date: str = Field("", alias="LastTicketingDate")
    fare_type: str = Field("", alias="FareType")
    fare_supplier: str = Field("", alias="FareSupplier")
    fare_supplier_code: str = Field("", alias="FareSupplierCode")
    pax_fares: List[RawPaxFare] = Field(default_factory=list, alias="PaxFares")
    tax_detail: List[RawTaxDetail] = Field(default_factory=list, alias="TaxDetail")
    legs: List[RawLeg] = Field(default_factory=list, alias="Legs")

    def iter_segments(self):
        for leg in self.legs:
            for option in leg.options:
                for segment in option.segments:
                    yield segment


class RawFareResponse(_RawModel):
    """Envelope of one fare search. Fares stay as plain dicts so one bad fare can be skipped."""
    fares: List[Any] = Field(default_factory=list, alias="Fares")
    base_currency: str = Field("USD", alias="BaseCurrency")
    transaction_id: str = Field("", alias="TransactionID")
