import os
import tempfile

# Must be set before db.py / config.py are imported anywhere
_DB_FILE = os.path.join(tempfile.mkdtemp(prefix="flights-test-"), "test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["AIRLINE_REFERENCE_URL"] = ""

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db import Base
import models  # noqa: F401
from services.airline_resolver import AirlineResolver
from services.search_store import SearchResultStore


# =====================================================================
# SECTION: RAW FARE BUILDERS (upstream PascalCase shape)
# =====================================================================

def raw_segment(
    airline="LA",
    dep=("SCL", "2025-03-01", "08:00"),
    arr=("LIM", "2025-03-01", "10:30"),
    stops=0,
    baggage="1PC",
    carry_on=None,
    operating_name=None,
    number="100",
):
    seg = {
        "SegmentNumber": 1,
        "Airline": airline,
        "OperatingAirline": airline,
        "FlightNumber": number,
        "BookingClass": "Y",
        "CabinClass": "Y",
        "Departure": {"AirportCode": dep[0], "Date": dep[1], "Time": dep[2]},
        "Arrival": {"AirportCode": arr[0], "Date": arr[1], "Time": arr[2]},
        "Stops": [
            {"AirportCode": "ANF", "Date": dep[1], "Time": "09:00", "Duration": "45m"} for _ in range(stops)
        ],
        "Duration": 150,
        "Equipment": "320",
        "Baggage": baggage,
        "FareBasis": "YLOW",
        "BrandName": "LIGHT",
    }
    if carry_on is not None:
        seg["CarryOnBagInfo"] = carry_on
    if operating_name is not None:
        seg["OperatingAirlineName"] = operating_name
    return seg


def raw_leg(number, *options):
    return {
        "LegNumber": number,
        "Options": [
            {"FlightOptionID": f"L{number}O{i + 1}", "OptionDuration": 300, "Segments": list(segs)}
            for i, segs in enumerate(options)
        ],
    }


def raw_fare(fare_id, legs, total=500.0, currency="USD"):
    return {
        "FareID": fare_id,
        "TotalAmount": total,
        "FareAmount": total - 100,
        "TaxAmount": 100.0,
        "Currency": currency,
        "ValidatingCarrier": "LA",
        "TaxDetail": [{"Code": "Q1", "Amount": 40.0, "Currency": "USD"}, {"Code": "ZZ", "Amount": 60.0}],
        "PaxFares": [{"PaxType": "ADT", "Count": 1, "PaxTotalAmount": total}],
        "Legs": legs,
    }


def direct_fare(fare_id, total, airline="LA", dep_time="08:00", baggage="1PC", carry_on=None):
    return raw_fare(
        fare_id,
        [
            raw_leg(1, [raw_segment(airline, dep=("SCL", "2025-03-01", dep_time), baggage=baggage, carry_on=carry_on)]),
            raw_leg(2, [raw_segment(airline, dep=("LIM", "2025-03-10", "18:00"),
                                    arr=("SCL", "2025-03-10", "22:00"), baggage=baggage, carry_on=carry_on)]),
        ],
        total=total,
    )


def one_stop_fare(fare_id, total, airline="AV", second_dep=("BOG", "2025-03-01", "14:00")):
    outbound = [
        raw_segment(airline, dep=("SCL", "2025-03-01", "08:00"), arr=("BOG", "2025-03-01", "12:00")),
        raw_segment(airline, dep=second_dep, arr=("MIA", "2025-03-01", "18:00"), number="200"),
    ]
    inbound = [
        raw_segment(airline, dep=("MIA", "2025-03-10", "08:00"), arr=("BOG", "2025-03-10", "11:00")),
        raw_segment(airline, dep=("BOG", "2025-03-10", "12:30"), arr=("SCL", "2025-03-10", "19:00"), number="300"),
    ]
    return raw_fare(fare_id, [raw_leg(1, outbound), raw_leg(2, inbound)], total=total)


def raw_response(*fares):
    return {"Fares": list(fares), "BaseCurrency": "USD", "TransactionID": "tx-1"}


# =====================================================================
# SECTION: FIXTURES
# =====================================================================

class FakeFetch:
    """Stands in for the HTTP fetch of airlines.dat; counts calls."""

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = 0

    def __call__(self, url, timeout):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


OPENFLIGHTS_SAMPLE = "\n".join([
    '1,"Private flight",\\N,"-","N/A","","","Y"',
    '2,"Zeta Test Airways","ZTA","Z9","ZTA","ZETA","Chile","Y"',
    '3,"Dormant Air",\\N,"D7","DRM","DORMANT","Peru","N"',
    '4,"Comma, Airlines",\\N,"C5","CMA","COMMA","Chile","Y"',
])


@pytest.fixture
def resolver():
    return AirlineResolver(dataset_url="", fetch=FakeFetch())


class Clock:
    def __init__(self, now=None):
        self.now = now or datetime(2025, 3, 1, 12, 0, 0)

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory, clock):
    return SearchResultStore(session_factory=session_factory, max_age_minutes=30, clock=clock)
