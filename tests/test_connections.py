import pytest

from conftest import raw_fare, raw_leg, raw_segment
from schemas.fares import RawFare, RawSegment, RawStop
from services.connections import (
    analyze_flight_type,
    calculate_layover,
    format_duration,
    has_exact_connections_count,
    has_exact_connections_per_leg,
    is_direct_flight,
    max_connections_per_leg,
    max_layover_hours,
    parse_stop_duration,
    technical_stop_layover,
)


def _fare(*legs):
    return RawFare.model_validate(raw_fare("F1", list(legs)))


def _direct_leg(n):
    return raw_leg(n, [raw_segment()])


def _stop_leg(n, count):
    segs = [raw_segment(number=str(i)) for i in range(count + 1)]
    return raw_leg(n, segs)


# ===== analyze_flight_type =====

def test_technical_stop_counts_as_connection():
    fare = _fare(
        raw_leg(1, [raw_segment(stops=1), raw_segment(number="2")]),
        _direct_leg(2),
    )
    analysis = analyze_flight_type(fare)

    outbound = analysis.legs[0].options[0]
    assert outbound.segmentConnections == 1
    assert outbound.technicalStops == 1
    assert outbound.connections == 2
    assert analysis.classification.isCompleteDirect is False
    assert analysis.classification.minTotalConnections == 2


def test_direct_round_trip_is_complete_direct():
    fare = _fare(_direct_leg(1), _direct_leg(2))
    assert is_direct_flight(fare)
    assert analyze_flight_type(fare).classification.perLegConnections.allLegsHaveSameConnections


def test_single_segment_with_technical_stop_is_not_direct():
    fare = _fare(raw_leg(1, [raw_segment(stops=1)]))
    assert not is_direct_flight(fare)


def test_leg_range_spans_options():
    fare = _fare(raw_leg(1, [raw_segment()], [raw_segment(), raw_segment(number="2")]))
    leg = analyze_flight_type(fare).legs[0]
    assert leg.hasDirectOptions and leg.hasConnectionOptions
    assert (leg.minConnections, leg.maxConnections) == (0, 1)
    assert not is_direct_flight(fare)


def test_exact_connections_per_leg_is_symmetric():
    one_each_way = _fare(_stop_leg(1, 1), _stop_leg(2, 1))
    direct_plus_two = _fare(_direct_leg(1), _stop_leg(2, 2))

    assert has_exact_connections_per_leg(one_each_way, 1)
    assert not has_exact_connections_per_leg(direct_plus_two, 1)
    # same total, so the range check cannot tell them apart
    assert has_exact_connections_count(one_each_way, 2)
    assert has_exact_connections_count(direct_plus_two, 2)


def test_exact_connections_per_leg_without_legs_is_false():
    assert not has_exact_connections_per_leg(_fare(), 0)


def test_max_connections_per_leg_uses_worst_leg():
    fare = _fare(_stop_leg(1, 1), _stop_leg(2, 2))
    assert max_connections_per_leg(fare) == 2


# ===== layovers =====

def test_layover_rolls_over_midnight():
    layover = calculate_layover("2025-03-01", "22:35", "2025-03-01", "00:10")
    assert layover.known
    assert layover.hours == pytest.approx(1.58, abs=0.01)
    assert layover.formatted == "1h 35m"


def test_layover_next_day_dates():
    layover = calculate_layover("2025-03-01", "22:35", "2025-03-02", "00:10")
    assert layover.hours == pytest.approx(95 / 60)


@pytest.mark.parametrize("args", [
    ("", "22:35", "2025-03-02", "00:10"),
    ("2025-03-01", "", "2025-03-02", "00:10"),
    ("2025-03-01", "22:35", "not-a-date", "00:10"),
])
def test_missing_or_bad_fields_are_unknown(args):
    layover = calculate_layover(*args)
    assert layover.known is False
    assert layover.formatted == "N/A"
    assert layover.hours == 0.0


def test_max_layover_ignores_unknown_gaps():
    fare = _fare(raw_leg(1, [
        raw_segment(arr=("BOG", "2025-03-01", "10:00")),
        raw_segment(dep=("BOG", "2025-03-01", "13:30"), number="2"),
        raw_segment(dep=("MIA", "", ""), number="3"),
    ]))
    assert max_layover_hours(fare) == pytest.approx(3.5)


def test_format_duration():
    assert format_duration(0) == "0h 0m"
    assert format_duration(45) == "45m"
    assert format_duration(120) == "2h"
    assert format_duration(150) == "2h 30m"


def test_fare_without_legs_is_direct():
    assert is_direct_flight(_fare())
    assert max_connections_per_leg(_fare()) == 0


def test_leg_without_options_is_direct():
    fare = _fare({"LegNumber": 1, "Options": []})
    assert is_direct_flight(fare)


# ===== technical stops =====

@pytest.mark.parametrize("text,expected", [
    ("45m", 45),
    ("1h 30m", 90),
    ("2h", 120),
    ("01:15", 75),
    (50, 50),
    ("", None),
    ("soon", None),
])
def test_parse_stop_duration(text, expected):
    assert parse_stop_duration(text) == expected


def test_technical_stop_layover():
    segment = RawSegment.model_validate(raw_segment(stops=1))
    layover = technical_stop_layover(segment, segment.stops[0])
    assert layover.known
    assert layover.hours == pytest.approx(0.75)
    assert layover.formatted == "0h 45m"


def test_technical_stop_layover_crosses_midnight():
    segment = RawSegment.model_validate(raw_segment())
    stop = RawStop.model_validate({"AirportCode": "PPT", "Date": "2025-03-01", "Time": "23:30", "Duration": "1h 10m"})
    layover = technical_stop_layover(segment, stop)
    assert layover.formatted == "1h 10m"


def test_technical_stop_layover_uses_segment_date():
    segment = RawSegment.model_validate(raw_segment())
    stop = RawStop.model_validate({"AirportCode": "ANF", "Time": "09:00", "Duration": "30m"})
    assert technical_stop_layover(segment, stop).hours == pytest.approx(0.5)


def test_technical_stop_without_duration_is_unknown():
    segment = RawSegment.model_validate(raw_segment())
    stop = RawStop.model_validate({"AirportCode": "ANF", "Date": "2025-03-01", "Time": "09:00"})
    assert technical_stop_layover(segment, stop).known is False
